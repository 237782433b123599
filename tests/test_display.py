"""
Smoke tests for the rich CLI rendering — output goes to a recording
console so the rendered text can be inspected.
"""

import random
import unittest
from unittest.mock import patch

from rich.console import Console

from matchups.cli import display
from matchups.events import TournamentCompleteEvent
from matchups.models import AppState, Player
from matchups.recorder import start_tournament


class DisplayTests(unittest.TestCase):
    def setUp(self) -> None:
        self.console = Console(record=True, width=140)
        patcher = patch.object(display, "console", self.console)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_bracket_shows_labels_names_and_byes(self) -> None:
        state = AppState(players=tuple(Player(id=f"p{i}", name=f"Player {i}") for i in range(3)))
        state, _ = start_tournament(state, "Cup", ["p0", "p1", "p2"], rng=random.Random(0))
        display.render_bracket(state.tournaments[0], state.player_names())
        text = self.console.export_text()
        self.assertIn("WB R1-M1", text)
        self.assertIn("LB R2-M1", text)
        self.assertIn("GF", text)
        self.assertIn("(bye)", text)
        self.assertIn("ready", text)

    def test_champion_panel(self) -> None:
        display.display_event(TournamentCompleteEvent(tournament_id="t", name="Cup", champion_name="Ada"))
        self.assertIn("Ada", self.console.export_text())

    def test_leaderboard(self) -> None:
        display.render_leaderboard([Player(id="a", name="Ada", rating=1300), Player(id="b", name="Bo")])
        text = self.console.export_text()
        self.assertLess(text.index("Ada"), text.index("Bo"))
