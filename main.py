"""
Matchups — interactive CLI entry point.

Usage:
    uv run python main.py

Wires together:
    config → state store → menu → recorder → CLI display → state store

Each action replaces the in-memory AppState with the recorder's result and
writes it back to disk before the next prompt.
"""

from __future__ import annotations

import logging
import logging.handlers
import random
import sys
from pathlib import Path

from rich.prompt import IntPrompt, Prompt

from matchups.cli.display import (
    console,
    display_event,
    render_bracket,
    render_calibration_round,
    render_leaderboard,
    render_match_history,
)
from matchups.cli.selector import (
    prompt_result,
    select_player,
    select_players,
    select_seeding,
    select_two_players,
)
from matchups.config import Config, load_config
from matchups.errors import EngineError
from matchups.models import AppState
from matchups.recorder import (
    record_calibration_match,
    record_match,
    record_tournament_match,
    start_calibration,
    start_tournament,
)
from matchups.roster import add_player, clear_state, remove_player, rename_player, reset_ratings
from matchups.store import load_state, save_state
from matchups.tournaments.bracket import matchup_label, playable_matchups

logger = logging.getLogger("matchups")

_MENU = [
    ("Leaderboard", "leaderboard"),
    ("Add player", "add_player"),
    ("Rename / remove player", "edit_player"),
    ("Record ranked match", "ranked"),
    ("Match history", "history"),
    ("New tournament", "new_tournament"),
    ("Play tournament match", "tournament_match"),
    ("View tournament", "view_tournament"),
    ("Start calibration", "new_calibration"),
    ("Play calibration match", "calibration_match"),
    ("Reset all ratings", "reset"),
    ("Clear all data", "clear"),
]


def _setup_logging(log_dir: Path) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        handlers=[
            logging.handlers.RotatingFileHandler(
                log_dir / "matchups.log", maxBytes=2 * 1024 * 1024, backupCount=3,
                encoding="utf-8",
            ),
        ],
    )


def _load_config() -> Config:
    try:
        return load_config(Path("config.yaml"))
    except FileNotFoundError:
        return Config()
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        sys.exit(1)


class App:
    """Holds the current snapshot and applies one menu action at a time."""

    def __init__(self, config: Config, state: AppState) -> None:
        self.config = config
        self.state = state
        self.rng = random.Random()

    def run(self) -> None:
        while True:
            console.print()
            console.rule("[bold]Matchups[/]", style="bright_blue")
            for i, (label, _) in enumerate(_MENU, 1):
                console.print(f"  [dim]{i:>2}.[/] {label}")
            console.print("  [dim] 0.[/] Quit")
            choice = IntPrompt.ask(
                "Select", choices=[str(i) for i in range(len(_MENU) + 1)], show_choices=False
            )
            if choice == 0:
                return
            action = getattr(self, f"_do_{_MENU[choice - 1][1]}")
            try:
                action()
            except (EngineError, KeyError, ValueError) as exc:
                console.print(f"[red]Error:[/] {exc}")

    def _commit(self, state: AppState, events=()) -> None:
        self.state = state
        save_state(state, self.config.state_path)
        for event in events:
            display_event(event)

    # ------------------------------------------------------------------ #
    # Roster                                                               #
    # ------------------------------------------------------------------ #

    def _do_leaderboard(self) -> None:
        render_leaderboard(self.state.players)

    def _do_add_player(self) -> None:
        name = Prompt.ask("  Name")
        rating = IntPrompt.ask("  Starting rating", default=self.config.rating.initial_rating)
        state, player = add_player(self.state, name, rating)
        self._commit(state)
        console.print(f"  [green]✓[/] Added [bold]{player.name}[/] ({player.rating})")

    def _do_edit_player(self) -> None:
        player_id = select_player(self.state.players)
        player = self.state.player(player_id)
        new_name = Prompt.ask(f"  New name for {player.name} (blank to remove)", default="")
        if new_name.strip():
            self._commit(rename_player(self.state, player_id, new_name))
        elif Prompt.ask(f"  Remove {player.name}?", choices=["y", "n"], default="n") == "y":
            self._commit(remove_player(self.state, player_id))

    def _do_reset(self) -> None:
        if Prompt.ask("  Reset every rating and clear history?", choices=["y", "n"], default="n") == "y":
            self._commit(reset_ratings(self.state, self.config.rating.initial_rating))
            console.print("  [green]✓[/] Ratings reset.")

    def _do_clear(self) -> None:
        if Prompt.ask(
            "  Delete every player, match, tournament and session?", choices=["y", "n"], default="n"
        ) == "y":
            self._commit(clear_state())
            console.print("  [green]✓[/] All data cleared.")

    # ------------------------------------------------------------------ #
    # Ranked                                                               #
    # ------------------------------------------------------------------ #

    def _do_ranked(self) -> None:
        p1, p2 = select_two_players(self.state.players)
        names = self.state.player_names()
        s1, s2, winner = prompt_result(names[p1], names[p2])
        state, events = record_match(
            self.state, p1, p2, s1, s2, p1 if winner == 1 else p2,
            rating_config=self.config.rating,
        )
        self._commit(state, events)

    def _do_history(self) -> None:
        render_match_history(self.state.matches, self.state.player_names())

    # ------------------------------------------------------------------ #
    # Tournaments                                                          #
    # ------------------------------------------------------------------ #

    def _do_new_tournament(self) -> None:
        name = Prompt.ask("  Tournament name", default="")
        player_ids = select_players(self.state.players)
        seeding = select_seeding(self.config.tournament.seeding)
        state, events = start_tournament(self.state, name, player_ids, seeding, rng=self.rng)
        self._commit(state, events)

    def _pick_tournament(self, in_progress_only: bool):
        tournaments = [
            t for t in self.state.tournaments
            if not in_progress_only or t.status == "in_progress"
        ]
        if not tournaments:
            raise ValueError("No tournaments available.")
        for i, t in enumerate(tournaments, 1):
            console.print(f"  [dim]{i:>2}.[/] {t.name or t.id[:8]}  [dim]({t.status})[/]")
        choice = IntPrompt.ask(
            "  Tournament", choices=[str(i) for i in range(1, len(tournaments) + 1)], default=1
        )
        return tournaments[choice - 1]

    def _do_view_tournament(self) -> None:
        render_bracket(self._pick_tournament(in_progress_only=False), self.state.player_names())

    def _do_tournament_match(self) -> None:
        tournament = self._pick_tournament(in_progress_only=True)
        names = self.state.player_names()
        render_bracket(tournament, names)
        playable = playable_matchups(tournament)
        console.print()
        for i, (bracket, ri, mi, m) in enumerate(playable, 1):
            console.print(
                f"  [dim]{i:>2}.[/] {matchup_label(bracket, ri, mi):<10} "
                f"{names.get(m.player1_id, '?')} vs {names.get(m.player2_id, '?')}"
            )
        choice = IntPrompt.ask("  Match", choices=[str(i) for i in range(1, len(playable) + 1)])
        bracket, ri, mi, m = playable[choice - 1]
        s1, s2, winner = prompt_result(names.get(m.player1_id, "?"), names.get(m.player2_id, "?"))
        state, events = record_tournament_match(
            self.state, tournament.id, bracket, ri, mi, s1, s2,
            m.player1_id if winner == 1 else m.player2_id,
            rating_config=self.config.rating,
        )
        self._commit(state, events)

    # ------------------------------------------------------------------ #
    # Calibration                                                          #
    # ------------------------------------------------------------------ #

    def _do_new_calibration(self) -> None:
        player_ids = select_players(self.state.players)
        rounds = IntPrompt.ask("  Rounds", default=self.config.calibration.default_rounds)
        state, events = start_calibration(self.state, player_ids, rounds, rng=self.rng)
        self._commit(state, events)

    def _do_calibration_match(self) -> None:
        sessions = [s for s in self.state.calibration_sessions if s.status == "in_progress"]
        if not sessions:
            raise ValueError("No calibration session in progress.")
        session = sessions[0]
        names = self.state.player_names()
        render_calibration_round(session, names)
        pending = [m for m in session.active_round.matchups if not m.is_decided]
        choice = IntPrompt.ask("  Match", choices=[str(i) for i in range(1, len(pending) + 1)])
        m = pending[choice - 1]
        s1, s2, winner = prompt_result(names.get(m.player1_id, "?"), names.get(m.player2_id, "?"))
        state, events = record_calibration_match(
            self.state, session.id, m.id, s1, s2,
            m.player1_id if winner == 1 else m.player2_id,
            rng=self.rng,
            rating_config=self.config.rating,
        )
        self._commit(state, events)


def main() -> None:
    config = _load_config()
    _setup_logging(config.log_dir_path)
    state = load_state(config.state_path)
    logger.info("Loaded %d players from %s", len(state.players), config.state_path)
    try:
        App(config, state).run()
    except KeyboardInterrupt:
        console.print("\n[yellow]Bye.[/]")


if __name__ == "__main__":
    main()
