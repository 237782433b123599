"""
Recorder event dataclasses — the shared language between the match recorder
and any consumer (CLI display, web backend, tests).

All events are frozen and reference players by id plus a display name, so a
consumer can render them without looking anything up.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from matchups.models import MatchRecord


@dataclass(frozen=True)
class MatchRecordedEvent:
    """Fired after a decided match has updated both players' ratings."""

    record: MatchRecord
    winner_name: str
    loser_name: str
    winner_new_rating: int
    loser_new_rating: int


@dataclass(frozen=True)
class TournamentStartEvent:
    """Fired once when a bracket is generated."""

    tournament_id: str
    name: str
    participant_names: list[str]        # in seed order
    bracket_size: int
    bye_count: int
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class TournamentCompleteEvent:
    """Fired once the grand final is decided."""

    tournament_id: str
    name: str
    champion_name: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class CalibrationRoundStartEvent:
    """Fired whenever a calibration round is paired (including round 1)."""

    session_id: str
    round_number: int
    total_rounds: int
    # Each pairing: (player1_name, player2_name)
    pairings: list[tuple[str, str]]
    bye_name: str | None = None


@dataclass(frozen=True)
class CalibrationCompleteEvent:
    """Fired after the last planned calibration round is decided."""

    session_id: str
    # (player_name, starting_rating, final_rating), best final rating first
    results: list[tuple[str, int, int]]
    timestamp: datetime = field(default_factory=datetime.now)


# Union type for type-safe pattern matching in consumers
RecorderEvent = (
    MatchRecordedEvent
    | TournamentStartEvent
    | TournamentCompleteEvent
    | CalibrationRoundStartEvent
    | CalibrationCompleteEvent
)
