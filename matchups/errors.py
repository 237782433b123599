"""
Engine error kinds.

These are contract violations by the caller, not transient faults: the
engines never retry and never swallow them.  Callers (CLI, web backend)
decide how to surface them.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for every error raised by the progression engines."""


class InvalidIndexError(EngineError, IndexError):
    """A round or matchup index (or matchup id) does not exist."""


class NotReadyError(EngineError):
    """The matchup does not have both slots filled yet."""


class AlreadyDecidedError(EngineError):
    """The matchup (or session) already has a result."""


class UnknownParticipantError(EngineError):
    """A declared winner/loser is not one of the matchup's occupants."""


class InsufficientPlayersError(EngineError, ValueError):
    """Fewer than 2 entrants were given to a bracket or pairing operation."""
