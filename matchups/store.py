"""Local JSON state store.

Persists the whole AppState as one JSON file.  A missing file is a fresh
install; an unreadable one is logged and treated as empty rather than
blocking startup.
"""

from __future__ import annotations

import logging
from pathlib import Path

from matchups.codec import dumps, loads
from matchups.models import AppState

logger = logging.getLogger(__name__)

_STATE_PATH = Path("matchups_state.json")


def load_state(path: str | Path | None = None) -> AppState:
    state_path = Path(path) if path is not None else _STATE_PATH
    if not state_path.exists():
        return AppState()
    try:
        return loads(state_path.read_text(encoding="utf-8"))
    except ValueError as exc:
        logger.warning("Ignoring unreadable state file %s: %s", state_path, exc)
        return AppState()


def save_state(state: AppState, path: str | Path | None = None) -> None:
    state_path = Path(path) if path is not None else _STATE_PATH
    state_path.parent.mkdir(parents=True, exist_ok=True)
    state_path.write_text(dumps(state), encoding="utf-8")
