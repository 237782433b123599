"""
Calibration rounds — diversity-first pairing.

The scheduler is stateless: every call recomputes from the full list of past
rounds.  A new round pairs every active player exactly once, preferring
pairs that have never met, then pairs that are close in the current rating
order, with a random factor breaking ties between equally novel pairs.

Odd player counts sit one player out per round.  The bye goes to a player
with the fewest byes so far, so N rounds with N players give everyone
exactly one.

Pairing is a greedy minimum-cost matching.  It is not an exact
minimum-weight perfect matching; the 1000-point repeat penalty dominates
every other cost term, so a novel pair is always preferred over a repeat.
"""

from __future__ import annotations

import logging
import random
from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from itertools import combinations
from typing import Literal

from matchups.errors import (
    AlreadyDecidedError,
    InsufficientPlayersError,
    InvalidIndexError,
    UnknownParticipantError,
)
from matchups.models import Player, new_id

logger = logging.getLogger(__name__)

SessionStatus = Literal["in_progress", "completed"]

REPEAT_PENALTY = 1000


@dataclass(frozen=True)
class CalibrationMatchup:
    """A calibration pairing.  Both players are always present; byes live on the round."""

    id: str
    player1_id: str
    player2_id: str
    winner_id: str | None = None
    scores: tuple[int, int] | None = None

    @property
    def is_decided(self) -> bool:
        return self.winner_id is not None


@dataclass(frozen=True)
class CalibrationRound:
    round_number: int                       # 1-based
    matchups: tuple[CalibrationMatchup, ...]
    bye_player_id: str | None = None
    completed: bool = False


@dataclass(frozen=True)
class CalibrationSession:
    id: str
    player_ids: tuple[str, ...]
    total_rounds: int
    current_round: int
    rounds: tuple[CalibrationRound, ...]
    starting_ratings: Mapping[str, int]
    status: SessionStatus = "in_progress"
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def active_round(self) -> CalibrationRound | None:
        """The round being played, or None once the session is complete."""
        if self.status == "completed" or not self.rounds:
            return None
        return self.rounds[self.current_round - 1]


# ------------------------------------------------------------------ #
# Pairing                                                              #
# ------------------------------------------------------------------ #

def build_matchup_history(past_rounds: Sequence[CalibrationRound]) -> dict[str, dict[str, int]]:
    """Symmetric player → opponent → times-played counts over every past matchup."""
    history: dict[str, dict[str, int]] = defaultdict(dict)
    for rnd in past_rounds:
        for m in rnd.matchups:
            a, b = m.player1_id, m.player2_id
            history[a][b] = history[a].get(b, 0) + 1
            history[b][a] = history[b].get(a, 0) + 1
    return dict(history)


def generate_calibration_pairings(
    players: Sequence[Player],
    past_rounds: Sequence[CalibrationRound],
    *,
    rng: random.Random | None = None,
) -> CalibrationRound:
    """Produce the next calibration round.  Never modifies past_rounds."""
    if len(players) < 2:
        raise InsufficientPlayersError("Calibration pairing requires at least 2 players.")
    rng = rng if rng is not None else random

    round_number = len(past_rounds) + 1
    history = build_matchup_history(past_rounds)

    bye_player_id: str | None = None
    active = list(players)
    if len(players) % 2 == 1:
        bye_player_id = _pick_bye(players, past_rounds, rng)
        active = [p for p in players if p.id != bye_player_id]

    # Rank index = position in the rating-sorted active list.
    ranked = sorted(active, key=lambda p: -p.rating)

    scored_pairs: list[tuple[float, int, int]] = []
    for i, j in combinations(range(len(ranked)), 2):
        times_played = history.get(ranked[i].id, {}).get(ranked[j].id, 0)
        random_factor = 0.5 + rng.random()
        cost = times_played * REPEAT_PENALTY + abs(i - j) * random_factor
        scored_pairs.append((cost, i, j))
    scored_pairs.sort(key=lambda pair: pair[0])

    paired: set[int] = set()
    matchups: list[CalibrationMatchup] = []
    for _, i, j in scored_pairs:
        if i in paired or j in paired:
            continue
        paired.update((i, j))
        matchups.append(
            CalibrationMatchup(id=new_id(), player1_id=ranked[i].id, player2_id=ranked[j].id)
        )
        if len(paired) == len(ranked):
            break

    logger.debug(
        "Calibration round %d: %d matchups, bye=%s", round_number, len(matchups), bye_player_id
    )
    return CalibrationRound(
        round_number=round_number,
        matchups=tuple(matchups),
        bye_player_id=bye_player_id,
        completed=False,
    )


def create_calibration_session(
    players: Sequence[Player],
    total_rounds: int,
    *,
    rng: random.Random | None = None,
) -> CalibrationSession:
    """Snapshot starting ratings and generate round 1."""
    if total_rounds < 1:
        raise ValueError("A calibration session needs at least 1 round.")
    first_round = generate_calibration_pairings(players, [], rng=rng)
    session = CalibrationSession(
        id=new_id(),
        player_ids=tuple(p.id for p in players),
        total_rounds=total_rounds,
        current_round=1,
        rounds=(first_round,),
        starting_ratings={p.id: p.rating for p in players},
    )
    logger.info("Calibration session %s started: %d players, %d rounds",
                session.id, len(players), total_rounds)
    return session


# ------------------------------------------------------------------ #
# Session progression                                                  #
# ------------------------------------------------------------------ #

def record_calibration_result(
    session: CalibrationSession,
    matchup_id: str,
    winner_id: str,
    scores: tuple[int, int] | None = None,
    *,
    players: Sequence[Player],
    rng: random.Random | None = None,
) -> CalibrationSession:
    """
    Record one result in the active round.

    When that completes the round, either the next round is paired using
    `players` (with their current ratings) or, after the last planned round,
    the session is marked completed.
    """
    current = session.active_round
    if current is None:
        raise AlreadyDecidedError(f"Calibration session {session.id} is already completed.")

    index = next((i for i, m in enumerate(current.matchups) if m.id == matchup_id), None)
    if index is None:
        raise InvalidIndexError(
            f"No matchup {matchup_id!r} in round {current.round_number} of session {session.id}."
        )
    matchup = current.matchups[index]
    if matchup.is_decided:
        raise AlreadyDecidedError(f"Matchup {matchup_id} already has a winner ({matchup.winner_id}).")
    if winner_id not in (matchup.player1_id, matchup.player2_id):
        raise UnknownParticipantError(f"{winner_id!r} is not playing in matchup {matchup_id}.")

    matchups = list(current.matchups)
    matchups[index] = replace(matchup, winner_id=winner_id, scores=scores)
    round_complete = all(m.is_decided for m in matchups)
    updated_round = replace(current, matchups=tuple(matchups), completed=round_complete)

    rounds = list(session.rounds)
    rounds[session.current_round - 1] = updated_round
    if not round_complete:
        return replace(session, rounds=tuple(rounds))

    if session.current_round >= session.total_rounds:
        logger.info("Calibration session %s completed after %d rounds", session.id, len(rounds))
        return replace(session, rounds=tuple(rounds), status="completed")

    session_players = [p for p in players if p.id in session.player_ids]
    rounds.append(generate_calibration_pairings(session_players, rounds, rng=rng))
    return replace(session, rounds=tuple(rounds), current_round=session.current_round + 1)


def rating_changes(session: CalibrationSession, players: Sequence[Player]) -> dict[str, int]:
    """Rating gained (or lost) by each session player since the session started."""
    return {
        p.id: p.rating - session.starting_ratings[p.id]
        for p in players
        if p.id in session.starting_ratings
    }


def _pick_bye(
    players: Sequence[Player],
    past_rounds: Sequence[CalibrationRound],
    rng,
) -> str:
    bye_counts = {p.id: 0 for p in players}
    for rnd in past_rounds:
        if rnd.bye_player_id in bye_counts:
            bye_counts[rnd.bye_player_id] += 1
    fewest = min(bye_counts.values())
    candidates = [pid for pid, count in bye_counts.items() if count == fewest]
    return rng.choice(candidates)
