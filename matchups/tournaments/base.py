"""
Tournament abstractions — slots, matchups, rounds and the Tournament value.

Everything here is frozen.  The bracket engine never mutates a Tournament;
each advance builds a new snapshot and returns it, so two snapshots never
share a mutated substructure.

A matchup slot is a small tagged variant rather than a nullable id:

    Empty            — no player assigned yet
    Assigned(id)     — a player occupies the slot

Consumers pattern-match on it (`match slot: case Assigned(player_id=pid):`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from matchups.config import Seeding

TournamentStatus = Literal["in_progress", "completed"]
BracketName = Literal["winners", "losers", "grand_final"]

__all__ = [
    "Assigned",
    "BracketName",
    "EMPTY",
    "Empty",
    "Matchup",
    "Round",
    "Seeding",
    "Slot",
    "Tournament",
    "TournamentStatus",
]


@dataclass(frozen=True)
class Empty:
    """A slot with no player assigned yet."""

    def __repr__(self) -> str:
        return "EMPTY"


@dataclass(frozen=True)
class Assigned:
    """A slot occupied by a player."""

    player_id: str


Slot = Empty | Assigned

EMPTY = Empty()


def slot_player(slot: Slot) -> str | None:
    """Return the occupant's id, or None for an empty slot."""
    match slot:
        case Assigned(player_id=pid):
            return pid
        case Empty():
            return None


@dataclass(frozen=True)
class Matchup:
    """
    One pairing inside a bracket round.

    `is_bye` is fixed at creation.  A bye matchup is never played: it is
    resolved automatically as soon as its sole occupant is known.
    """

    id: str
    slot1: Slot = EMPTY
    slot2: Slot = EMPTY
    winner_id: str | None = None
    scores: tuple[int, int] | None = None   # (slot1 score, slot2 score)
    is_bye: bool = False

    @property
    def player1_id(self) -> str | None:
        return slot_player(self.slot1)

    @property
    def player2_id(self) -> str | None:
        return slot_player(self.slot2)

    @property
    def occupants(self) -> tuple[str, ...]:
        return tuple(pid for pid in (self.player1_id, self.player2_id) if pid is not None)

    @property
    def is_ready(self) -> bool:
        """Both slots are filled."""
        return isinstance(self.slot1, Assigned) and isinstance(self.slot2, Assigned)

    @property
    def is_decided(self) -> bool:
        return self.winner_id is not None

    @property
    def is_playable(self) -> bool:
        return self.is_ready and not self.is_decided and not self.is_bye


Round = tuple[Matchup, ...]


@dataclass(frozen=True)
class Tournament:
    """A double-elimination tournament snapshot."""

    id: str
    name: str
    player_ids: tuple[str, ...]
    winners_rounds: tuple[Round, ...]
    losers_rounds: tuple[Round, ...]
    grand_final: Matchup | None
    status: TournamentStatus = "in_progress"
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def bracket_size(self) -> int:
        return len(self.winners_rounds[0]) * 2 if self.winners_rounds else 0

    def all_matchups(self) -> list[Matchup]:
        matchups = [m for rnd in self.winners_rounds for m in rnd]
        matchups += [m for rnd in self.losers_rounds for m in rnd]
        if self.grand_final is not None:
            matchups.append(self.grand_final)
        return matchups
