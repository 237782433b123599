"""Roster operations: add, rename, remove players, reset ratings and clear all data."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from matchups.models import INITIAL_RATING, AppState, Player, new_id

logger = logging.getLogger(__name__)


def add_player(state: AppState, name: str, rating: int = INITIAL_RATING) -> tuple[AppState, Player]:
    """Append a new player and return it alongside the updated state."""
    name = name.strip()
    if not name:
        raise ValueError("Player name must not be empty.")
    player = Player(id=new_id(), name=name, rating=rating)
    logger.info("Added player %s (%s)", player.name, player.id)
    return replace(state, players=state.players + (player,)), player


def rename_player(state: AppState, player_id: str, name: str) -> AppState:
    name = name.strip()
    if not name:
        raise ValueError("Player name must not be empty.")
    player = state.player(player_id)
    return _replace_player(state, replace(player, name=name))


def remove_player(state: AppState, player_id: str) -> AppState:
    """
    Drop a player from the roster.

    Match history, tournaments and sessions keep referring to the id; views
    render an unknown id as a removed player.
    """
    state.player(player_id)
    logger.info("Removed player %s", player_id)
    return replace(state, players=tuple(p for p in state.players if p.id != player_id))


def reset_ratings(state: AppState, rating: int = INITIAL_RATING) -> AppState:
    """Reset every rating and win/loss tally and clear the match history."""
    players = tuple(replace(p, rating=rating, wins=0, losses=0) for p in state.players)
    logger.info("Reset ratings for %d players", len(players))
    return replace(state, players=players, matches=())


def clear_state() -> AppState:
    """A fresh empty state: no players, history, tournaments or sessions."""
    logger.info("Cleared all stored data")
    return AppState()


def leaderboard(players: Iterable[Player]) -> list[Player]:
    """Players sorted by rating descending, then by name."""
    return sorted(players, key=lambda p: (-p.rating, p.name.lower()))


def _replace_player(state: AppState, updated: Player) -> AppState:
    return replace(
        state,
        players=tuple(updated if p.id == updated.id else p for p in state.players),
    )
