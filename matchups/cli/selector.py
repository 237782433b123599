"""
Interactive selection prompts.

Players are picked one at a time from a numbered roster table until the
user is done (minimum 2); match results are entered as two scores plus
the winner.
"""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from matchups.config import Seeding
from matchups.models import Player
from matchups.roster import leaderboard

console = Console(legacy_windows=False)


def select_players(players: Sequence[Player], minimum: int = 2) -> list[str]:
    """
    Display the roster and let the user pick an arbitrary number of players
    (at least `minimum`).  Returns their ids in selection order.
    """
    entries = leaderboard(players)
    if len(entries) < minimum:
        raise ValueError(f"Need at least {minimum} players on the roster.")

    _print_roster_table(entries)
    console.print(
        "\n  Enter a number to add a player.  "
        f"Press [bold]Enter[/] with no input when you're done (minimum {minimum}).\n"
    )

    choices = [str(i) for i in range(1, len(entries) + 1)]
    selected: list[str] = []

    while True:
        prompt = f"  Add player #{len(selected) + 1}"
        if len(selected) >= minimum:
            prompt += " (or Enter to finish)"

        raw = Prompt.ask(prompt, default="", show_default=False).strip()
        if raw == "":
            if len(selected) < minimum:
                console.print(f"  [red]Need at least {minimum} players.[/]")
                continue
            break
        if raw not in choices:
            console.print(f"  [red]Invalid choice. Enter a number between 1 and {len(entries)}.[/]")
            continue

        player = entries[int(raw) - 1]
        if player.id in selected:
            console.print(f"  [yellow]{player.name} is already in.[/]")
            continue
        selected.append(player.id)
        console.print(f"  [green]✓[/] Added [bold]{player.name}[/] ({player.rating})")
        if len(selected) == len(entries):
            break

    return selected


def select_player(players: Sequence[Player]) -> str:
    entries = leaderboard(players)
    if not entries:
        raise ValueError("The roster is empty.")
    _print_roster_table(entries)
    choice = IntPrompt.ask(
        "\n  Player", choices=[str(i) for i in range(1, len(entries) + 1)], show_choices=False
    )
    return entries[choice - 1].id


def select_two_players(players: Sequence[Player]) -> tuple[str, str]:
    """Prompt for two distinct players for a ranked match."""
    entries = leaderboard(players)
    if len(entries) < 2:
        raise ValueError("Need at least 2 players on the roster.")
    _print_roster_table(entries)
    choices = [str(i) for i in range(1, len(entries) + 1)]
    first = IntPrompt.ask("\n  Player 1", choices=choices, show_choices=False)
    while True:
        second = IntPrompt.ask("  Player 2", choices=choices, show_choices=False)
        if second != first:
            break
        console.print("  [red]Pick two different players.[/]")
    return entries[first - 1].id, entries[second - 1].id


def select_seeding(default: Seeding = "ranked") -> Seeding:
    console.print("\n[bold]Seeding:[/]")
    console.print("  1. Ranked by rating  [dim](ties shuffled)[/]")
    console.print("  2. Fully random")
    choice = IntPrompt.ask("Select", choices=["1", "2"], default=1 if default == "ranked" else 2)
    return "ranked" if choice == 1 else "random"


def prompt_result(player1_name: str, player2_name: str) -> tuple[int, int, int]:
    """
    Ask for both scores and the winner.

    Returns (player1_score, player2_score, winner) where winner is 1 or 2.
    The winner defaults to whoever scored more.
    """
    console.print(f"\n  [bold]{player1_name}[/]  vs  [bold]{player2_name}[/]")
    s1 = IntPrompt.ask(f"  {player1_name} score")
    s2 = IntPrompt.ask(f"  {player2_name} score")
    default = 2 if s2 > s1 else 1
    winner = IntPrompt.ask(
        f"  Winner (1 = {player1_name}, 2 = {player2_name})",
        choices=["1", "2"],
        default=default,
    )
    return s1, s2, winner


# --------------------------------------------------------------------------- #
# Helpers                                                                      #
# --------------------------------------------------------------------------- #

def _print_roster_table(entries: Sequence[Player]) -> None:
    table = Table(
        title="Roster",
        show_header=True,
        header_style="bold",
        border_style="dim",
        show_lines=False,
    )
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("Name", min_width=20)
    table.add_column("Rating", justify="right", width=7)
    table.add_column("W-L", style="dim", justify="center", width=7)

    for i, p in enumerate(entries, 1):
        table.add_row(str(i), p.name, str(p.rating), f"{p.wins}-{p.losses}")

    console.print()
    console.print(table)
