"""
Match recorder — the glue between a decided match and the engines.

Every function takes an AppState snapshot and returns `(new_state, events)`.
Nothing is mutated in place, so a failed call leaves the caller's state
exactly as it was.  Callers must serialise read-modify-write cycles per
tournament/session (one "apply, then store" at a time): two updates computed
from the same stale snapshot would silently lose one of them.

Typical flow for a bracket result:

    state, events = record_tournament_match(state, t_id, "winners", 0, 1, 6, 2, winner_id)

which applies the rating update, stores a MatchRecord and advances the
bracket (cascading any byes) in one step.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import replace

from matchups.calibration import (
    CalibrationSession,
    create_calibration_session,
    rating_changes,
    record_calibration_result,
)
from matchups.config import RatingConfig, Seeding
from matchups.errors import AlreadyDecidedError, InvalidIndexError, UnknownParticipantError
from matchups.events import (
    CalibrationCompleteEvent,
    CalibrationRoundStartEvent,
    MatchRecordedEvent,
    RecorderEvent,
    TournamentCompleteEvent,
    TournamentStartEvent,
)
from matchups.models import AppState, MatchContext, MatchRecord, new_id
from matchups.rating import calculate_rating_update
from matchups.tournaments.base import BracketName, Tournament
from matchups.tournaments.bracket import (
    advance_grand_final,
    advance_losers_bracket,
    advance_winners_bracket,
    champion,
    generate_bracket,
    get_matchup,
    seed_order,
)

logger = logging.getLogger(__name__)

Result = tuple[AppState, list[RecorderEvent]]

_REMOVED = "(removed player)"


# ------------------------------------------------------------------ #
# Ranked matches                                                       #
# ------------------------------------------------------------------ #

def record_match(
    state: AppState,
    player1_id: str,
    player2_id: str,
    player1_score: int,
    player2_score: int,
    winner_id: str,
    *,
    context: MatchContext = "ranked",
    tournament_id: str | None = None,
    calibration_session_id: str | None = None,
    rating_config: RatingConfig | None = None,
) -> Result:
    """Apply the rating update for one decided match and log it in the history."""
    if player1_id == player2_id:
        raise UnknownParticipantError("A match needs two different players.")
    if winner_id not in (player1_id, player2_id):
        raise UnknownParticipantError(f"Winner {winner_id!r} did not play in this match.")
    cfg = rating_config or RatingConfig()

    loser_id = player2_id if winner_id == player1_id else player1_id
    winner = state.player(winner_id)
    loser = state.player(loser_id)
    if winner_id == player1_id:
        winner_score, loser_score = player1_score, player2_score
    else:
        winner_score, loser_score = player2_score, player1_score

    update = calculate_rating_update(
        winner.rating,
        loser.rating,
        winner_score if cfg.use_score_margin else None,
        loser_score if cfg.use_score_margin else None,
        k_factor=cfg.k_factor,
    )

    record = MatchRecord(
        id=new_id(),
        player1_id=player1_id,
        player2_id=player2_id,
        player1_score=player1_score,
        player2_score=player2_score,
        winner_id=winner_id,
        rating_change=update.delta,
        context=context,
        tournament_id=tournament_id,
        calibration_session_id=calibration_session_id,
    )

    def _updated(p):
        if p.id == winner_id:
            return replace(p, rating=update.winner_new_rating, wins=p.wins + 1)
        if p.id == loser_id:
            return replace(p, rating=update.loser_new_rating, losses=p.losses + 1)
        return p

    new_state = replace(
        state,
        players=tuple(_updated(p) for p in state.players),
        matches=(record,) + state.matches,
    )
    logger.info(
        "%s match: %s beat %s %d-%d (%+d)",
        context, winner.name, loser.name, winner_score, loser_score, update.delta,
    )
    event = MatchRecordedEvent(
        record=record,
        winner_name=winner.name,
        loser_name=loser.name,
        winner_new_rating=update.winner_new_rating,
        loser_new_rating=update.loser_new_rating,
    )
    return new_state, [event]


# ------------------------------------------------------------------ #
# Tournaments                                                          #
# ------------------------------------------------------------------ #

def start_tournament(
    state: AppState,
    name: str,
    player_ids: Sequence[str],
    seeding: Seeding = "ranked",
    *,
    rng: random.Random | None = None,
) -> Result:
    """Generate a bracket for the given roster players and store it newest-first."""
    entrants = [state.player(pid) for pid in player_ids]
    tournament = generate_bracket(entrants, seeding, name=name.strip(), rng=rng)
    names = state.player_names()
    event = TournamentStartEvent(
        tournament_id=tournament.id,
        name=tournament.name,
        participant_names=[names[pid] for pid in seed_order(tournament)],
        bracket_size=tournament.bracket_size,
        bye_count=tournament.bracket_size - len(entrants),
    )
    return replace(state, tournaments=(tournament,) + state.tournaments), [event]


def record_tournament_match(
    state: AppState,
    tournament_id: str,
    bracket: BracketName,
    round_index: int,
    matchup_index: int,
    player1_score: int,
    player2_score: int,
    winner_id: str,
    *,
    rating_config: RatingConfig | None = None,
) -> Result:
    """Advance the bracket with a decided matchup, then apply the rating update."""
    tournament = state.tournament(tournament_id)
    matchup = get_matchup(tournament, bracket, round_index, matchup_index)
    loser_id = matchup.player2_id if winner_id == matchup.player1_id else matchup.player1_id
    scores = (player1_score, player2_score)

    match bracket:
        case "winners":
            advanced = advance_winners_bracket(
                tournament, round_index, matchup_index, winner_id, loser_id, scores=scores
            )
        case "losers":
            advanced = advance_losers_bracket(
                tournament, round_index, matchup_index, winner_id, scores=scores
            )
        case _:
            advanced = advance_grand_final(tournament, winner_id, scores=scores)

    state, events = record_match(
        state,
        matchup.player1_id,
        matchup.player2_id,
        player1_score,
        player2_score,
        winner_id,
        context="tournament",
        tournament_id=tournament.id,
        rating_config=rating_config,
    )
    state = _replace_tournament(state, advanced)

    if advanced.status == "completed" and tournament.status != "completed":
        champion_id = champion(advanced)
        events.append(
            TournamentCompleteEvent(
                tournament_id=advanced.id,
                name=advanced.name,
                champion_name=state.player_names().get(champion_id, _REMOVED),
            )
        )
    return state, events


def delete_tournament(state: AppState, tournament_id: str) -> AppState:
    state.tournament(tournament_id)
    return replace(state, tournaments=tuple(t for t in state.tournaments if t.id != tournament_id))


# ------------------------------------------------------------------ #
# Calibration                                                          #
# ------------------------------------------------------------------ #

def start_calibration(
    state: AppState,
    player_ids: Sequence[str],
    total_rounds: int,
    *,
    rng: random.Random | None = None,
) -> Result:
    players = [state.player(pid) for pid in player_ids]
    session = create_calibration_session(players, total_rounds, rng=rng)
    new_state = replace(state, calibration_sessions=(session,) + state.calibration_sessions)
    return new_state, [_round_start_event(new_state, session)]


def record_calibration_match(
    state: AppState,
    session_id: str,
    matchup_id: str,
    player1_score: int,
    player2_score: int,
    winner_id: str,
    *,
    rng: random.Random | None = None,
    rating_config: RatingConfig | None = None,
) -> Result:
    """Rate a calibration result, then pair the next round with the updated ratings."""
    session = state.calibration_session(session_id)
    current = session.active_round
    if current is None:
        raise AlreadyDecidedError(f"Calibration session {session_id} is already completed.")
    matchup = next((m for m in current.matchups if m.id == matchup_id), None)
    if matchup is None:
        raise InvalidIndexError(f"No matchup {matchup_id!r} in the current calibration round.")

    state, events = record_match(
        state,
        matchup.player1_id,
        matchup.player2_id,
        player1_score,
        player2_score,
        winner_id,
        context="calibration",
        calibration_session_id=session_id,
        rating_config=rating_config,
    )
    updated = record_calibration_result(
        session,
        matchup_id,
        winner_id,
        (player1_score, player2_score),
        players=state.players,
        rng=rng,
    )
    state = _replace_session(state, updated)

    if updated.status == "completed":
        events.append(_complete_event(state, updated))
    elif updated.current_round != session.current_round:
        events.append(_round_start_event(state, updated))
    return state, events


def delete_calibration_session(state: AppState, session_id: str) -> AppState:
    state.calibration_session(session_id)
    return replace(
        state,
        calibration_sessions=tuple(s for s in state.calibration_sessions if s.id != session_id),
    )


# ------------------------------------------------------------------ #
# Internal helpers                                                     #
# ------------------------------------------------------------------ #

def _replace_tournament(state: AppState, tournament: Tournament) -> AppState:
    return replace(
        state,
        tournaments=tuple(tournament if t.id == tournament.id else t for t in state.tournaments),
    )


def _replace_session(state: AppState, session: CalibrationSession) -> AppState:
    return replace(
        state,
        calibration_sessions=tuple(
            session if s.id == session.id else s for s in state.calibration_sessions
        ),
    )


def _round_start_event(state: AppState, session: CalibrationSession) -> CalibrationRoundStartEvent:
    names = state.player_names()
    rnd = session.rounds[session.current_round - 1]
    return CalibrationRoundStartEvent(
        session_id=session.id,
        round_number=rnd.round_number,
        total_rounds=session.total_rounds,
        pairings=[
            (names.get(m.player1_id, _REMOVED), names.get(m.player2_id, _REMOVED))
            for m in rnd.matchups
        ],
        bye_name=names.get(rnd.bye_player_id, _REMOVED) if rnd.bye_player_id else None,
    )


def _complete_event(state: AppState, session: CalibrationSession) -> CalibrationCompleteEvent:
    session_players = [p for p in state.players if p.id in session.starting_ratings]
    changes = rating_changes(session, session_players)
    results = [
        (p.name, p.rating - changes[p.id], p.rating)
        for p in sorted(session_players, key=lambda p: -p.rating)
    ]
    return CalibrationCompleteEvent(session_id=session.id, results=results)
