"""
Double-elimination bracket engine.

Rules:
- Entrants are ordered by rating ("ranked", ties shuffled) or fully shuffled
  ("random"), then padded to the next power of two.
- Round 0 pairs position i against position size-1-i, so the empty padding
  slots always land opposite the top seeds: top seeds receive the byes.
- Lose once → drop to the losers bracket.  Lose twice → eliminated.
- Losers rounds alternate:
    minor (even index) — losers-bracket survivors play each other, field halves
    major (odd index)  — survivors play fresh drop-downs 1:1, field unchanged
- The winners champion meets the losers champion in a single grand final.

Structural byes: a winners round-0 bye never produces a loser, so some
losers-bracket matchups can only ever receive one player (or none).  Those
are flagged `is_bye` when the bracket is generated, and whenever a player
lands in one it is resolved on the spot and the result cascades forward
through the normal routing.  No non-bye matchup can therefore be left with a
single player facing an opponent who will never arrive.

Every public operation takes a Tournament snapshot and returns a new one;
the input is never modified, even when the call raises.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Sequence
from dataclasses import replace

from matchups.errors import (
    AlreadyDecidedError,
    InsufficientPlayersError,
    InvalidIndexError,
    NotReadyError,
    UnknownParticipantError,
)
from matchups.models import Player, new_id
from matchups.tournaments.base import (
    EMPTY,
    Assigned,
    BracketName,
    Matchup,
    Round,
    Seeding,
    Slot,
    Tournament,
)

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ #
# Public interface                                                     #
# ------------------------------------------------------------------ #

def generate_bracket(
    entrants: Sequence[Player],
    seeding: Seeding = "ranked",
    *,
    name: str = "",
    tournament_id: str | None = None,
    rng: random.Random | None = None,
) -> Tournament:
    """
    Build a full double-elimination bracket.

    Round-0 byes are decided immediately and their winners placed into
    winners round 1.  Losers rounds and the grand final start empty.
    """
    if len(entrants) < 2:
        raise InsufficientPlayersError("Double-elimination bracket requires at least 2 players.")
    ids = [p.id for p in entrants]
    if len(set(ids)) != len(ids):
        raise ValueError("Bracket entrants must be distinct players.")

    seeded = _seed_order(entrants, seeding, rng if rng is not None else random)
    bracket_size = next_power_of_two(len(seeded))
    bye_count = bracket_size - len(seeded)
    padded: list[str | None] = [p.id for p in seeded] + [None] * bye_count

    first_round: list[Matchup] = []
    for i in range(bracket_size // 2):
        top, bottom = padded[i], padded[bracket_size - 1 - i]
        is_bye = top is None or bottom is None
        first_round.append(
            Matchup(
                id=new_id(),
                slot1=_slot(top),
                slot2=_slot(bottom),
                winner_id=(top or bottom) if is_bye else None,
                is_bye=is_bye,
            )
        )

    winners: list[list[Matchup]] = [first_round]
    size = len(first_round)
    while size > 1:
        size = math.ceil(size / 2)
        winners.append([Matchup(id=new_id()) for _ in range(size)])

    lb_sizes = [
        max(1, bracket_size // 2 ** (r // 2 + 2))
        for r in range(2 * (len(winners) - 1))
    ]
    losers = [
        [Matchup(id=new_id(), is_bye=live < 2) for live in round_feeders]
        for round_feeders in _live_feeder_counts(first_round, lb_sizes)
    ]

    draft = _BracketDraft(winners, losers, Matchup(id=new_id()))
    for i, matchup in enumerate(first_round):
        if matchup.is_bye:
            logger.info("%s: %s advances on bye", matchup_label("winners", 0, i), matchup.winner_id)
            draft.route_winners_winner(0, i, matchup.winner_id)

    winners_rounds, losers_rounds, grand_final = draft.freeze()
    tournament = Tournament(
        id=tournament_id or new_id(),
        name=name,
        player_ids=tuple(ids),
        winners_rounds=winners_rounds,
        losers_rounds=losers_rounds,
        grand_final=grand_final,
    )
    logger.info(
        "Generated %s bracket %r: %d players, size %d, %d byes, %d winners / %d losers rounds",
        seeding, name, len(ids), bracket_size, bye_count, len(winners_rounds), len(losers_rounds),
    )
    return tournament


def advance_winners_bracket(
    tournament: Tournament,
    round_index: int,
    matchup_index: int,
    winner_id: str,
    loser_id: str,
    *,
    scores: tuple[int, int] | None = None,
) -> Tournament:
    """Decide a winners-bracket matchup; the loser drops to the losers bracket."""
    matchup = _lookup(tournament.winners_rounds, "winners", round_index, matchup_index)
    _check_decidable(matchup, matchup_label("winners", round_index, matchup_index), winner_id, loser_id)

    draft = _BracketDraft.from_tournament(tournament)
    draft.winners[round_index][matchup_index] = _decide(matchup, winner_id, scores)
    draft.route_winners_winner(round_index, matchup_index, winner_id)
    draft.route_winners_loser(round_index, matchup_index, loser_id)
    return draft.commit(tournament)


def advance_losers_bracket(
    tournament: Tournament,
    round_index: int,
    matchup_index: int,
    winner_id: str,
    *,
    scores: tuple[int, int] | None = None,
) -> Tournament:
    """Decide a losers-bracket matchup; the loser is eliminated."""
    matchup = _lookup(tournament.losers_rounds, "losers", round_index, matchup_index)
    _check_decidable(matchup, matchup_label("losers", round_index, matchup_index), winner_id)

    draft = _BracketDraft.from_tournament(tournament)
    draft.losers[round_index][matchup_index] = _decide(matchup, winner_id, scores)
    draft.route_losers_winner(round_index, matchup_index, winner_id)
    return draft.commit(tournament)


def advance_grand_final(
    tournament: Tournament,
    winner_id: str,
    *,
    scores: tuple[int, int] | None = None,
) -> Tournament:
    """Decide the grand final.  There is no bracket reset."""
    if tournament.grand_final is None:
        raise InvalidIndexError("Tournament has no grand final.")
    matchup = tournament.grand_final
    _check_decidable(matchup, matchup_label("grand_final", 0, 0), winner_id)

    draft = _BracketDraft.from_tournament(tournament)
    draft.grand_final = _decide(matchup, winner_id, scores)
    return draft.commit(tournament)


def is_tournament_complete(tournament: Tournament) -> bool:
    """True iff every non-bye matchup with both slots filled has a winner."""
    return all(
        m.is_decided
        for m in tournament.all_matchups()
        if not m.is_bye and m.is_ready
    )


def playable_matchups(tournament: Tournament) -> list[tuple[BracketName, int, int, Matchup]]:
    """Every matchup that can be played right now, in bracket order."""
    playable: list[tuple[BracketName, int, int, Matchup]] = []
    for bracket, rounds in (("winners", tournament.winners_rounds), ("losers", tournament.losers_rounds)):
        for ri, rnd in enumerate(rounds):
            for mi, m in enumerate(rnd):
                if m.is_playable:
                    playable.append((bracket, ri, mi, m))
    if tournament.grand_final is not None and tournament.grand_final.is_playable:
        playable.append(("grand_final", 0, 0, tournament.grand_final))
    return playable


def get_matchup(
    tournament: Tournament,
    bracket: BracketName,
    round_index: int = 0,
    matchup_index: int = 0,
) -> Matchup:
    """Look up a matchup by bracket position, raising InvalidIndexError if absent."""
    match bracket:
        case "winners":
            return _lookup(tournament.winners_rounds, bracket, round_index, matchup_index)
        case "losers":
            return _lookup(tournament.losers_rounds, bracket, round_index, matchup_index)
        case "grand_final":
            if tournament.grand_final is None:
                raise InvalidIndexError("Tournament has no grand final.")
            return tournament.grand_final
        case _:
            raise ValueError(f"Unknown bracket: {bracket!r}. Valid: winners, losers, grand_final")


def seed_order(tournament: Tournament) -> list[str]:
    """
    Entrant ids in seed order, recovered from round-0 slots.

    Round 0 holds (seed 1, seed N), (seed 2, seed N-1), … so slot 1 reads
    the top half forwards and slot 2 the bottom half backwards.
    """
    first_round = tournament.winners_rounds[0] if tournament.winners_rounds else ()
    top = [m.player1_id for m in first_round if m.player1_id is not None]
    bottom = [m.player2_id for m in reversed(first_round) if m.player2_id is not None]
    return top + bottom


def champion(tournament: Tournament) -> str | None:
    """Id of the grand final winner, or None while it is undecided."""
    return tournament.grand_final.winner_id if tournament.grand_final else None


def matchup_label(bracket: BracketName, round_index: int, matchup_index: int) -> str:
    """Return a human-readable matchup ID, e.g. "WB R1-M2", "LB R3-M1", "GF"."""
    if bracket == "grand_final":
        return "GF"
    prefix = "WB" if bracket == "winners" else "LB"
    return f"{prefix} R{round_index + 1}-M{matchup_index + 1}"


def next_power_of_two(n: int) -> int:
    return 1 << math.ceil(math.log2(max(n, 2)))


# ------------------------------------------------------------------ #
# Working copy                                                         #
# ------------------------------------------------------------------ #

class _BracketDraft:
    """
    Mutable working copy of a tournament's rounds.

    Only lists are copied; the Matchups themselves are frozen and replaced
    wholesale, so the source snapshot is never touched.
    """

    def __init__(
        self,
        winners: Sequence[Sequence[Matchup]],
        losers: Sequence[Sequence[Matchup]],
        grand_final: Matchup | None,
    ) -> None:
        self.winners = [list(rnd) for rnd in winners]
        self.losers = [list(rnd) for rnd in losers]
        self.grand_final = grand_final

    @classmethod
    def from_tournament(cls, tournament: Tournament) -> _BracketDraft:
        return cls(tournament.winners_rounds, tournament.losers_rounds, tournament.grand_final)

    def freeze(self) -> tuple[tuple[Round, ...], tuple[Round, ...], Matchup | None]:
        return (
            tuple(tuple(rnd) for rnd in self.winners),
            tuple(tuple(rnd) for rnd in self.losers),
            self.grand_final,
        )

    def commit(self, tournament: Tournament) -> Tournament:
        winners_rounds, losers_rounds, grand_final = self.freeze()
        updated = replace(
            tournament,
            winners_rounds=winners_rounds,
            losers_rounds=losers_rounds,
            grand_final=grand_final,
        )
        if updated.status != "completed" and is_tournament_complete(updated):
            logger.info("Tournament %r complete, champion %s", tournament.name, champion(updated))
            updated = replace(updated, status="completed")
        return updated

    # -- winners bracket ------------------------------------------------ #

    def route_winners_winner(self, round_index: int, matchup_index: int, player_id: str) -> None:
        if round_index < len(self.winners) - 1:
            self._fill(self.winners, "winners", round_index + 1, matchup_index // 2,
                       _parity_slot(matchup_index), player_id)
        else:
            self._fill_grand_final(1, player_id)

    def route_winners_loser(self, round_index: int, matchup_index: int, player_id: str) -> None:
        if not self.losers:
            # Two-player bracket: the only loser goes straight to the grand final.
            self._fill_grand_final(2, player_id)
        elif round_index == 0:
            self.place_losers(0, matchup_index // 2, _parity_slot(matchup_index), player_id)
        else:
            # Drop-down into the major round; slot 1 belongs to the minor-round survivor.
            self.place_losers(2 * round_index - 1, matchup_index, 2, player_id)

    # -- losers bracket ------------------------------------------------- #

    def place_losers(self, round_index: int, matchup_index: int, slot: int, player_id: str) -> None:
        matchup = self._fill(self.losers, "losers", round_index, matchup_index, slot, player_id)
        if matchup.is_bye and not matchup.is_decided:
            logger.info(
                "%s: %s advances on structural bye",
                matchup_label("losers", round_index, matchup_index), player_id,
            )
            self.losers[round_index][matchup_index] = replace(matchup, winner_id=player_id)
            self.route_losers_winner(round_index, matchup_index, player_id)

    def route_losers_winner(self, round_index: int, matchup_index: int, player_id: str) -> None:
        if round_index == len(self.losers) - 1:
            self._fill_grand_final(2, player_id)
        elif round_index % 2 == 0:
            self.place_losers(round_index + 1, matchup_index, 1, player_id)
        else:
            self.place_losers(round_index + 1, matchup_index // 2, _parity_slot(matchup_index), player_id)

    # -- slot filling --------------------------------------------------- #

    def _fill(
        self,
        rounds: list[list[Matchup]],
        bracket: BracketName,
        round_index: int,
        matchup_index: int,
        slot: int,
        player_id: str,
    ) -> Matchup:
        label = matchup_label(bracket, round_index, matchup_index)
        if not (0 <= round_index < len(rounds) and 0 <= matchup_index < len(rounds[round_index])):
            raise InvalidIndexError(f"Routing target {label} is outside the bracket.")
        matchup = _assign(rounds[round_index][matchup_index], slot, player_id, label)
        rounds[round_index][matchup_index] = matchup
        logger.debug("%s slot %d <- %s", label, slot, player_id)
        return matchup

    def _fill_grand_final(self, slot: int, player_id: str) -> None:
        if self.grand_final is None:
            raise InvalidIndexError("Tournament has no grand final.")
        self.grand_final = _assign(self.grand_final, slot, player_id, "GF")
        logger.debug("GF slot %d <- %s", slot, player_id)


# ------------------------------------------------------------------ #
# Bracket helpers                                                     #
# ------------------------------------------------------------------ #

def _seed_order(entrants: Sequence[Player], seeding: Seeding, rng) -> list[Player]:
    """Shuffle, then (for ranked seeding) stable-sort so only rating ties stay random."""
    order = list(entrants)
    rng.shuffle(order)
    if seeding == "ranked":
        order.sort(key=lambda p: -p.rating)
    elif seeding != "random":
        raise ValueError(f"Unknown seeding: {seeding!r}. Valid: ranked, random")
    return order


def _live_feeder_counts(first_round: Sequence[Matchup], lb_sizes: Sequence[int]) -> list[list[int]]:
    """
    For each losers-bracket matchup, count the feeders that can ever deliver a player.

    Only winners round-0 byes fail to produce a loser; drop-downs from later
    winners rounds always exist.  A matchup with fewer than two live feeders
    is a structural bye.
    """
    wb0_live = [not m.is_bye for m in first_round]
    counts: list[list[int]] = []
    prev_live: list[bool] = []
    for r, size in enumerate(lb_sizes):
        round_counts = []
        for i in range(size):
            if r == 0:
                feeders = (_live_at(wb0_live, 2 * i), _live_at(wb0_live, 2 * i + 1))
            elif r % 2 == 1:
                feeders = (_live_at(prev_live, i), True)
            else:
                feeders = (_live_at(prev_live, 2 * i), _live_at(prev_live, 2 * i + 1))
            round_counts.append(sum(feeders))
        counts.append(round_counts)
        prev_live = [c > 0 for c in round_counts]
    return counts


def _live_at(live: list[bool], index: int) -> bool:
    return index < len(live) and live[index]


def _lookup(rounds: tuple[Round, ...], bracket: BracketName, round_index: int, matchup_index: int) -> Matchup:
    if not 0 <= round_index < len(rounds):
        raise InvalidIndexError(
            f"{bracket} round {round_index} out of range (bracket has {len(rounds)} rounds)."
        )
    rnd = rounds[round_index]
    if not 0 <= matchup_index < len(rnd):
        raise InvalidIndexError(
            f"{bracket} round {round_index} has no matchup {matchup_index} ({len(rnd)} matchups)."
        )
    return rnd[matchup_index]


def _check_decidable(
    matchup: Matchup,
    label: str,
    winner_id: str,
    loser_id: str | None = None,
) -> None:
    if matchup.is_decided:
        raise AlreadyDecidedError(f"{label} already has a winner ({matchup.winner_id}).")
    if not matchup.is_ready:
        raise NotReadyError(f"{label} is still waiting for an opponent.")
    occupants = matchup.occupants
    if winner_id not in occupants:
        raise UnknownParticipantError(f"{winner_id!r} is not playing in {label}.")
    if loser_id is not None and (loser_id not in occupants or loser_id == winner_id):
        raise UnknownParticipantError(f"{loser_id!r} is not the opponent in {label}.")


def _decide(matchup: Matchup, winner_id: str, scores: tuple[int, int] | None) -> Matchup:
    if scores is not None:
        if len(scores) != 2:
            raise ValueError(f"scores must be a (slot1, slot2) pair, got {scores!r}")
        scores = (scores[0], scores[1])
    return replace(matchup, winner_id=winner_id, scores=scores)


def _assign(matchup: Matchup, slot: int, player_id: str, label: str) -> Matchup:
    current = matchup.slot1 if slot == 1 else matchup.slot2
    if isinstance(current, Assigned):
        # Every slot has exactly one feeder, so this is a sizing/routing bug.
        raise InvalidIndexError(f"{label} slot {slot} is already occupied by {current.player_id}.")
    if slot == 1:
        return replace(matchup, slot1=Assigned(player_id))
    return replace(matchup, slot2=Assigned(player_id))


def _parity_slot(matchup_index: int) -> int:
    return 1 if matchup_index % 2 == 0 else 2


def _slot(player_id: str | None) -> Slot:
    return EMPTY if player_id is None else Assigned(player_id)
