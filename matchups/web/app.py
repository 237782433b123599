"""
FastAPI application — the JSON API backend.

Exposes:
  GET    /api/state                         Whole state as plain records
  GET    /api/leaderboard                   Players sorted by rating
  POST   /api/players                       Add a player
  DELETE /api/players/{player_id}           Remove a player
  POST   /api/matches                       Record a ranked match
  POST   /api/tournaments                   Create a double-elimination bracket
  GET    /api/tournaments/{tournament_id}   Bracket plus playable matchups
  POST   /api/tournaments/{id}/matches      Record a bracket result
  DELETE /api/tournaments/{tournament_id}   Delete a tournament
  POST   /api/calibration                   Start a calibration session
  POST   /api/calibration/{id}/matches      Record a calibration result
  DELETE /api/calibration/{session_id}      Delete a calibration session
  POST   /api/reset                         Reset ratings and clear history
  POST   /api/clear                         Delete all players and records

Every mutating route runs under one lock: read the current snapshot, apply
the recorder, store the result.  Engine errors map to 400, unknown ids to 404.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import logging.handlers
import random
from contextlib import contextmanager

from fastapi import FastAPI, HTTPException

from matchups.codec import player_to_dict, state_to_dict, tournament_to_dict
from matchups.config import Config, load_config
from matchups.errors import EngineError
from matchups.events import RecorderEvent
from matchups.models import AppState
from matchups.recorder import (
    delete_calibration_session,
    delete_tournament,
    record_calibration_match,
    record_match,
    record_tournament_match,
    start_calibration,
    start_tournament,
)
from matchups.roster import add_player, clear_state, leaderboard, remove_player, reset_ratings
from matchups.store import load_state, save_state
from matchups.tournaments.bracket import matchup_label, playable_matchups

try:
    config = load_config()
except FileNotFoundError:
    config = Config()

# --------------------------------------------------------------------------- #
# Logging                                                                      #
# --------------------------------------------------------------------------- #

_LOG_FILE = config.log_dir_path / "matchups.log"
_LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    handlers=[
        logging.StreamHandler(),                                   # server console
        logging.handlers.RotatingFileHandler(
            _LOG_FILE, maxBytes=2 * 1024 * 1024, backupCount=3,  # 2 MB × 3 files
            encoding="utf-8",
        ),
    ],
)
logger = logging.getLogger("matchups")

state: AppState = load_state(config.state_path)
_state_lock = asyncio.Lock()
_rng = random.Random()

app = FastAPI(title="Matchups")


# --------------------------------------------------------------------------- #
# Helpers                                                                      #
# --------------------------------------------------------------------------- #

@contextmanager
def _engine_errors():
    """Translate recorder/engine exceptions into HTTP errors."""
    try:
        yield
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Not found: {exc.args[0] if exc.args else exc}") from exc
    except (EngineError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _require(payload: dict, key: str):
    value = payload.get(key)
    if value is None or value == "":
        raise HTTPException(status_code=400, detail=f"{key} is required")
    return value


def _int_field(payload: dict, key: str) -> int:
    try:
        return int(_require(payload, key))
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"{key} must be an integer") from exc


def _event_to_dict(event: RecorderEvent) -> dict:
    return {"type": type(event).__name__, **dataclasses.asdict(event)}


def _commit(new_state: AppState) -> None:
    global state
    state = new_state
    save_state(new_state, config.state_path)


def _tournament_view(tournament_id: str) -> dict:
    tournament = state.tournament(tournament_id)
    return {
        **tournament_to_dict(tournament),
        "playable": [
            {
                "bracket": bracket,
                "round_index": ri,
                "matchup_index": mi,
                "label": matchup_label(bracket, ri, mi),
                "matchup_id": m.id,
                "player1_id": m.player1_id,
                "player2_id": m.player2_id,
            }
            for bracket, ri, mi, m in playable_matchups(tournament)
        ],
    }


# --------------------------------------------------------------------------- #
# Read                                                                         #
# --------------------------------------------------------------------------- #

@app.get("/api/state")
def get_state():
    return state_to_dict(state)


@app.get("/api/leaderboard")
def get_leaderboard():
    return [player_to_dict(p) for p in leaderboard(state.players)]


@app.get("/api/tournaments/{tournament_id}")
def get_tournament(tournament_id: str):
    with _engine_errors():
        return _tournament_view(tournament_id)


# --------------------------------------------------------------------------- #
# Roster                                                                       #
# --------------------------------------------------------------------------- #

@app.post("/api/players")
async def create_player(payload: dict):
    name = str(_require(payload, "name"))
    rating = _int_field(payload, "rating") if "rating" in payload else config.rating.initial_rating
    async with _state_lock:
        with _engine_errors():
            new_state, player = add_player(state, name, rating)
        _commit(new_state)
    return player_to_dict(player)


@app.delete("/api/players/{player_id}")
async def delete_player(player_id: str):
    async with _state_lock:
        with _engine_errors():
            new_state = remove_player(state, player_id)
        _commit(new_state)
    return {"ok": True}


@app.post("/api/reset")
async def reset(payload: dict):
    rating = _int_field(payload, "rating") if "rating" in payload else config.rating.initial_rating
    async with _state_lock:
        _commit(reset_ratings(state, rating))
    return {"ok": True}


@app.post("/api/clear")
async def clear():
    async with _state_lock:
        _commit(clear_state())
    return {"ok": True}


# --------------------------------------------------------------------------- #
# Matches                                                                      #
# --------------------------------------------------------------------------- #

@app.post("/api/matches")
async def create_match(payload: dict):
    player1_id = _require(payload, "player1_id")
    player2_id = _require(payload, "player2_id")
    s1 = _int_field(payload, "player1_score")
    s2 = _int_field(payload, "player2_score")
    winner_id = _require(payload, "winner_id")
    async with _state_lock:
        with _engine_errors():
            new_state, events = record_match(
                state, player1_id, player2_id, s1, s2, winner_id,
                rating_config=config.rating,
            )
        _commit(new_state)
    return {"events": [_event_to_dict(e) for e in events]}


# --------------------------------------------------------------------------- #
# Tournaments                                                                  #
# --------------------------------------------------------------------------- #

@app.post("/api/tournaments")
async def create_tournament(payload: dict):
    player_ids = _require(payload, "player_ids")
    if not isinstance(player_ids, list):
        raise HTTPException(status_code=400, detail="player_ids must be a list")
    seeding = payload.get("seeding") or config.tournament.seeding
    if seeding not in ("ranked", "random"):
        raise HTTPException(status_code=400, detail=f"Unknown seeding: {seeding}")
    async with _state_lock:
        with _engine_errors():
            new_state, events = start_tournament(
                state, str(payload.get("name", "")), player_ids, seeding, rng=_rng
            )
        _commit(new_state)
    return {
        "tournament_id": new_state.tournaments[0].id,
        "events": [_event_to_dict(e) for e in events],
    }


@app.post("/api/tournaments/{tournament_id}/matches")
async def create_tournament_match(tournament_id: str, payload: dict):
    bracket = _require(payload, "bracket")
    if bracket not in ("winners", "losers", "grand_final"):
        raise HTTPException(status_code=400, detail=f"Unknown bracket: {bracket}")
    round_index = _int_field(payload, "round_index") if bracket != "grand_final" else 0
    matchup_index = _int_field(payload, "matchup_index") if bracket != "grand_final" else 0
    s1 = _int_field(payload, "player1_score")
    s2 = _int_field(payload, "player2_score")
    winner_id = _require(payload, "winner_id")
    async with _state_lock:
        with _engine_errors():
            new_state, events = record_tournament_match(
                state, tournament_id, bracket, round_index, matchup_index, s1, s2, winner_id,
                rating_config=config.rating,
            )
        _commit(new_state)
        view = _tournament_view(tournament_id)
    return {"tournament": view, "events": [_event_to_dict(e) for e in events]}


@app.delete("/api/tournaments/{tournament_id}")
async def remove_tournament(tournament_id: str):
    async with _state_lock:
        with _engine_errors():
            new_state = delete_tournament(state, tournament_id)
        _commit(new_state)
    return {"ok": True}


# --------------------------------------------------------------------------- #
# Calibration                                                                  #
# --------------------------------------------------------------------------- #

@app.post("/api/calibration")
async def create_calibration(payload: dict):
    player_ids = _require(payload, "player_ids")
    if not isinstance(player_ids, list):
        raise HTTPException(status_code=400, detail="player_ids must be a list")
    rounds = _int_field(payload, "rounds") if "rounds" in payload else config.calibration.default_rounds
    async with _state_lock:
        with _engine_errors():
            new_state, events = start_calibration(state, player_ids, rounds, rng=_rng)
        _commit(new_state)
    return {
        "session_id": new_state.calibration_sessions[0].id,
        "events": [_event_to_dict(e) for e in events],
    }


@app.post("/api/calibration/{session_id}/matches")
async def create_calibration_match(session_id: str, payload: dict):
    matchup_id = _require(payload, "matchup_id")
    s1 = _int_field(payload, "player1_score")
    s2 = _int_field(payload, "player2_score")
    winner_id = _require(payload, "winner_id")
    async with _state_lock:
        with _engine_errors():
            new_state, events = record_calibration_match(
                state, session_id, matchup_id, s1, s2, winner_id,
                rng=_rng, rating_config=config.rating,
            )
        _commit(new_state)
    return {"events": [_event_to_dict(e) for e in events]}


@app.delete("/api/calibration/{session_id}")
async def remove_calibration(session_id: str):
    async with _state_lock:
        with _engine_errors():
            new_state = delete_calibration_session(state, session_id)
        _commit(new_state)
    return {"ok": True}
