"""
Roster-level value types shared by every engine and collaborator.

Players are owned by the roster (AppState.players) and referenced by id
everywhere else; tournaments and calibration sessions never embed them.
All types are frozen so a snapshot can be handed to any consumer without
defensive copies.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from matchups.calibration import CalibrationSession
    from matchups.tournaments.base import Tournament


INITIAL_RATING = 1200

MatchContext = Literal["ranked", "tournament", "calibration"]


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Player:
    """A rostered player.  `rating` starts at 1200 unless configured otherwise."""

    id: str
    name: str
    rating: int = INITIAL_RATING
    wins: int = 0
    losses: int = 0
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def games_played(self) -> int:
        return self.wins + self.losses


@dataclass(frozen=True)
class MatchRecord:
    """One decided match, as stored in the match history."""

    id: str
    player1_id: str
    player2_id: str
    player1_score: int
    player2_score: int
    winner_id: str
    rating_change: int                     # points the winner gained
    context: MatchContext = "ranked"
    tournament_id: str | None = None
    calibration_session_id: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def loser_id(self) -> str:
        return self.player2_id if self.winner_id == self.player1_id else self.player1_id


@dataclass(frozen=True)
class AppState:
    """
    The aggregate caller-held state.

    Matches and tournaments are kept newest-first.  The engines never hold a
    reference to this object; the caller serialises read-modify-write cycles.
    """

    players: tuple[Player, ...] = ()
    matches: tuple[MatchRecord, ...] = ()
    tournaments: tuple[Tournament, ...] = ()
    calibration_sessions: tuple[CalibrationSession, ...] = ()

    def player(self, player_id: str) -> Player:
        for p in self.players:
            if p.id == player_id:
                return p
        raise KeyError(f"Unknown player id: {player_id!r}")

    def tournament(self, tournament_id: str) -> Tournament:
        for t in self.tournaments:
            if t.id == tournament_id:
                return t
        raise KeyError(f"Unknown tournament id: {tournament_id!r}")

    def calibration_session(self, session_id: str) -> CalibrationSession:
        for s in self.calibration_sessions:
            if s.id == session_id:
                return s
        raise KeyError(f"Unknown calibration session id: {session_id!r}")

    def player_names(self) -> dict[str, str]:
        return {p.id: p.name for p in self.players}
