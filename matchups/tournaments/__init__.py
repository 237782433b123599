"""
Tournament package.

generate_bracket() is the single entry point for creating a tournament;
the advance_* functions move it forward one decided matchup at a time.
"""

from __future__ import annotations

from matchups.tournaments.base import (
    EMPTY,
    Assigned,
    BracketName,
    Empty,
    Matchup,
    Round,
    Seeding,
    Slot,
    Tournament,
    TournamentStatus,
)
from matchups.tournaments.bracket import (
    advance_grand_final,
    advance_losers_bracket,
    advance_winners_bracket,
    champion,
    generate_bracket,
    get_matchup,
    is_tournament_complete,
    matchup_label,
    next_power_of_two,
    playable_matchups,
    seed_order,
)

__all__ = [
    # Base types
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
    # Engine
    "advance_grand_final",
    "advance_losers_bracket",
    "advance_winners_bracket",
    "champion",
    "generate_bracket",
    "get_matchup",
    "is_tournament_complete",
    "matchup_label",
    "next_power_of_two",
    "playable_matchups",
    "seed_order",
]
