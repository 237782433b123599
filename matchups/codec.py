"""
Plain-record codec for the aggregate state.

Converts every snapshot type to JSON-compatible dicts and back without
loss.  Field presence matters: an empty slot is encoded as null, which is
distinct from an assigned player id.  Records written before a field
existed decode with an empty/None default (e.g. state without
`calibration_sessions`, matchups without `scores`).

Malformed input raises ValueError.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from matchups.calibration import CalibrationMatchup, CalibrationRound, CalibrationSession
from matchups.models import AppState, MatchRecord, Player
from matchups.tournaments.base import EMPTY, Assigned, Matchup, Slot, Tournament, slot_player

Record = dict[str, Any]


# ------------------------------------------------------------------ #
# Encoding                                                             #
# ------------------------------------------------------------------ #

def player_to_dict(p: Player) -> Record:
    return {
        "id": p.id,
        "name": p.name,
        "rating": p.rating,
        "wins": p.wins,
        "losses": p.losses,
        "created_at": p.created_at.isoformat(),
    }


def match_to_dict(m: MatchRecord) -> Record:
    return {
        "id": m.id,
        "player1_id": m.player1_id,
        "player2_id": m.player2_id,
        "player1_score": m.player1_score,
        "player2_score": m.player2_score,
        "winner_id": m.winner_id,
        "rating_change": m.rating_change,
        "context": m.context,
        "tournament_id": m.tournament_id,
        "calibration_session_id": m.calibration_session_id,
        "timestamp": m.timestamp.isoformat(),
    }


def matchup_to_dict(m: Matchup) -> Record:
    return {
        "id": m.id,
        "player1_id": slot_player(m.slot1),
        "player2_id": slot_player(m.slot2),
        "winner_id": m.winner_id,
        "scores": list(m.scores) if m.scores is not None else None,
        "is_bye": m.is_bye,
    }


def tournament_to_dict(t: Tournament) -> Record:
    return {
        "id": t.id,
        "name": t.name,
        "status": t.status,
        "player_ids": list(t.player_ids),
        "winners_rounds": [[matchup_to_dict(m) for m in rnd] for rnd in t.winners_rounds],
        "losers_rounds": [[matchup_to_dict(m) for m in rnd] for rnd in t.losers_rounds],
        "grand_final": matchup_to_dict(t.grand_final) if t.grand_final is not None else None,
        "created_at": t.created_at.isoformat(),
    }


def session_to_dict(s: CalibrationSession) -> Record:
    return {
        "id": s.id,
        "player_ids": list(s.player_ids),
        "total_rounds": s.total_rounds,
        "current_round": s.current_round,
        "rounds": [
            {
                "round_number": r.round_number,
                "matchups": [
                    {
                        "id": m.id,
                        "player1_id": m.player1_id,
                        "player2_id": m.player2_id,
                        "winner_id": m.winner_id,
                        "scores": list(m.scores) if m.scores is not None else None,
                    }
                    for m in r.matchups
                ],
                "bye_player_id": r.bye_player_id,
                "completed": r.completed,
            }
            for r in s.rounds
        ],
        "status": s.status,
        "starting_ratings": dict(s.starting_ratings),
        "created_at": s.created_at.isoformat(),
    }


def state_to_dict(state: AppState) -> Record:
    return {
        "players": [player_to_dict(p) for p in state.players],
        "matches": [match_to_dict(m) for m in state.matches],
        "tournaments": [tournament_to_dict(t) for t in state.tournaments],
        "calibration_sessions": [session_to_dict(s) for s in state.calibration_sessions],
    }


def dumps(state: AppState) -> str:
    return json.dumps(state_to_dict(state), indent=2)


# ------------------------------------------------------------------ #
# Decoding                                                             #
# ------------------------------------------------------------------ #

def state_from_dict(raw: Record) -> AppState:
    if not isinstance(raw, dict):
        raise ValueError(f"State record must be an object, got {type(raw).__name__}")
    try:
        return AppState(
            players=tuple(player_from_dict(p) for p in raw["players"]),
            matches=tuple(match_from_dict(m) for m in raw["matches"]),
            tournaments=tuple(tournament_from_dict(t) for t in raw["tournaments"]),
            calibration_sessions=tuple(
                session_from_dict(s) for s in raw.get("calibration_sessions") or []
            ),
        )
    except (AttributeError, KeyError, TypeError) as exc:
        raise ValueError(f"Invalid state record: {exc!r}") from exc


def loads(text: str) -> AppState:
    return state_from_dict(json.loads(text))


def player_from_dict(raw: Record) -> Player:
    return Player(
        id=raw["id"],
        name=raw["name"],
        rating=int(raw["rating"]),
        wins=int(raw.get("wins", 0)),
        losses=int(raw.get("losses", 0)),
        created_at=_parse_time(raw.get("created_at")),
    )


def match_from_dict(raw: Record) -> MatchRecord:
    return MatchRecord(
        id=raw["id"],
        player1_id=raw["player1_id"],
        player2_id=raw["player2_id"],
        player1_score=raw["player1_score"],
        player2_score=raw["player2_score"],
        winner_id=raw["winner_id"],
        rating_change=raw["rating_change"],
        context=raw.get("context", "ranked"),
        tournament_id=raw.get("tournament_id"),
        calibration_session_id=raw.get("calibration_session_id"),
        timestamp=_parse_time(raw.get("timestamp")),
    )


def matchup_from_dict(raw: Record) -> Matchup:
    return Matchup(
        id=raw["id"],
        slot1=_slot(raw.get("player1_id")),
        slot2=_slot(raw.get("player2_id")),
        winner_id=raw.get("winner_id"),
        scores=_scores(raw.get("scores")),
        is_bye=bool(raw.get("is_bye", False)),
    )


def tournament_from_dict(raw: Record) -> Tournament:
    grand_final = raw.get("grand_final")
    return Tournament(
        id=raw["id"],
        name=raw.get("name", ""),
        status=raw.get("status", "in_progress"),
        player_ids=tuple(raw["player_ids"]),
        winners_rounds=tuple(
            tuple(matchup_from_dict(m) for m in rnd) for rnd in raw["winners_rounds"]
        ),
        losers_rounds=tuple(
            tuple(matchup_from_dict(m) for m in rnd) for rnd in raw.get("losers_rounds") or []
        ),
        grand_final=matchup_from_dict(grand_final) if grand_final is not None else None,
        created_at=_parse_time(raw.get("created_at")),
    )


def session_from_dict(raw: Record) -> CalibrationSession:
    return CalibrationSession(
        id=raw["id"],
        player_ids=tuple(raw["player_ids"]),
        total_rounds=int(raw["total_rounds"]),
        current_round=int(raw["current_round"]),
        rounds=tuple(
            CalibrationRound(
                round_number=int(r["round_number"]),
                matchups=tuple(
                    CalibrationMatchup(
                        id=m["id"],
                        player1_id=m["player1_id"],
                        player2_id=m["player2_id"],
                        winner_id=m.get("winner_id"),
                        scores=_scores(m.get("scores")),
                    )
                    for m in r["matchups"]
                ),
                bye_player_id=r.get("bye_player_id"),
                completed=bool(r.get("completed", False)),
            )
            for r in raw["rounds"]
        ),
        status=raw.get("status", "in_progress"),
        starting_ratings={pid: int(v) for pid, v in raw.get("starting_ratings", {}).items()},
        created_at=_parse_time(raw.get("created_at")),
    )


def _slot(player_id: str | None) -> Slot:
    return EMPTY if player_id is None else Assigned(player_id)


def _scores(raw: list | None) -> tuple[int, int] | None:
    if raw is None:
        return None
    if len(raw) != 2:
        raise ValueError(f"scores must hold exactly two values, got {raw!r}")
    return (raw[0], raw[1])


def _parse_time(raw: str | None) -> datetime:
    return datetime.fromisoformat(raw) if raw else datetime.now()
