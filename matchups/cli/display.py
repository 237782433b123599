"""
Rich-based CLI rendering.

This is the ONLY place where terminal output happens.  Recorder events are
dispatched through display_event(); the render_* functions draw the
leaderboard, a bracket and a calibration round on demand.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from matchups.calibration import CalibrationSession
from matchups.events import (
    CalibrationCompleteEvent,
    CalibrationRoundStartEvent,
    MatchRecordedEvent,
    RecorderEvent,
    TournamentCompleteEvent,
    TournamentStartEvent,
)
from matchups.models import MatchRecord, Player
from matchups.roster import leaderboard
from matchups.tournaments.base import BracketName, Matchup, Round, Tournament
from matchups.tournaments.bracket import matchup_label

console = Console(legacy_windows=False)


def display_event(event: RecorderEvent) -> None:
    """Dispatch a recorder event to the appropriate display function."""
    match event:
        case MatchRecordedEvent():
            _match_recorded(event)
        case TournamentStartEvent():
            _tournament_start(event)
        case TournamentCompleteEvent():
            _tournament_complete(event)
        case CalibrationRoundStartEvent():
            _calibration_round_start(event)
        case CalibrationCompleteEvent():
            _calibration_complete(event)


# --------------------------------------------------------------------------- #
# Event display                                                                #
# --------------------------------------------------------------------------- #

def _match_recorded(event: MatchRecordedEvent) -> None:
    r = event.record
    console.print(
        f"  [green]✓[/] [bold]{event.winner_name}[/] beat [bold]{event.loser_name}[/] "
        f"[dim]({r.player1_score}-{r.player2_score})[/]  "
        f"[green]+{r.rating_change}[/]  "
        f"[dim]→ {event.winner_new_rating} / {event.loser_new_rating}[/]"
    )


def _tournament_start(event: TournamentStartEvent) -> None:
    names = "  •  ".join(event.participant_names)
    byes = f"  •  {event.bye_count} bye(s) to the top seeds" if event.bye_count else ""
    console.print()
    console.print(
        Panel(
            f"[bold]{event.name or 'Tournament'}[/]  [dim](double elimination)[/]\n\n"
            f"[dim]Seeds ({len(event.participant_names)}):[/]\n{names}\n\n"
            f"[dim]Bracket of {event.bracket_size}{byes}  •  "
            f"{event.timestamp.strftime('%Y-%m-%d %H:%M:%S')}[/]",
            title="[bold green] Tournament Created [/]",
            border_style="green",
            expand=False,
        )
    )


def _tournament_complete(event: TournamentCompleteEvent) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold yellow]★  {event.champion_name}[/]\n\n"
            f"[dim]{event.name}  •  {event.timestamp.strftime('%Y-%m-%d %H:%M:%S')}[/]",
            title="[bold green] Tournament Champion [/]",
            border_style="yellow",
            expand=False,
        )
    )


def _calibration_round_start(event: CalibrationRoundStartEvent) -> None:
    console.print()
    console.rule(
        f"[bold]Calibration round {event.round_number} of {event.total_rounds}[/]",
        style="bright_blue",
    )
    table = Table(show_header=True, header_style="bold", border_style="dim", show_lines=False)
    table.add_column("Match", style="dim", width=6)
    table.add_column("Player 1", min_width=20)
    table.add_column("", width=3, justify="center")
    table.add_column("Player 2", min_width=20)
    for i, (p1, p2) in enumerate(event.pairings, 1):
        table.add_row(str(i), f"[bold]{p1}[/]", "vs", f"[bold]{p2}[/]")
    if event.bye_name:
        table.add_row("-", f"[bold]{event.bye_name}[/]", "→", "[dim]BYE[/]")
    console.print(table)


def _calibration_complete(event: CalibrationCompleteEvent) -> None:
    table = Table(
        title="Calibration Results",
        show_header=True,
        header_style="bold",
        border_style="dim",
    )
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("Name", min_width=20)
    table.add_column("Start", justify="right", width=6)
    table.add_column("Final", justify="right", width=6)
    table.add_column("Δ", justify="right", width=6)
    for i, (name, start, final) in enumerate(event.results, 1):
        change = final - start
        colour = "green" if change > 0 else "red" if change < 0 else "dim"
        table.add_row(str(i), name, str(start), f"[bold]{final}[/]", f"[{colour}]{change:+d}[/]")
    console.print()
    console.print(table)


# --------------------------------------------------------------------------- #
# On-demand views                                                              #
# --------------------------------------------------------------------------- #

def render_leaderboard(players: Iterable[Player]) -> None:
    table = Table(title="Leaderboard", show_header=True, header_style="bold", border_style="dim")
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("Name", min_width=20)
    table.add_column("Rating", justify="right", width=7)
    table.add_column("W", justify="center", width=4)
    table.add_column("L", justify="center", width=4)
    for i, p in enumerate(leaderboard(players), 1):
        table.add_row(str(i), p.name, f"[bold]{p.rating}[/]", str(p.wins), str(p.losses))
    console.print()
    console.print(table)


def render_match_history(matches: Iterable[MatchRecord], names: Mapping[str, str], limit: int = 20) -> None:
    table = Table(title="Recent Matches", show_header=True, header_style="bold", border_style="dim")
    table.add_column("When", style="dim", width=16)
    table.add_column("Context", style="dim", width=11)
    table.add_column("Winner", min_width=16)
    table.add_column("Loser", min_width=16)
    table.add_column("Score", justify="center", width=7)
    table.add_column("Δ", justify="right", width=5)
    for m in list(matches)[:limit]:
        table.add_row(
            m.timestamp.strftime("%Y-%m-%d %H:%M"),
            m.context,
            names.get(m.winner_id, "?"),
            names.get(m.loser_id, "?"),
            f"{m.player1_score}-{m.player2_score}",
            f"+{m.rating_change}",
        )
    console.print()
    console.print(table)


def render_bracket(tournament: Tournament, names: Mapping[str, str]) -> None:
    status = "[green]Completed[/]" if tournament.status == "completed" else "[bright_blue]In progress[/]"
    console.print()
    console.rule(f"[bold]{tournament.name or 'Tournament'}[/]  {status}", style="bright_blue")
    _render_rounds("Winners Bracket", "winners", tournament.winners_rounds, names)
    _render_rounds("Losers Bracket", "losers", tournament.losers_rounds, names)
    if tournament.grand_final is not None:
        table = _matchup_table("Grand Final")
        _add_matchup_row(table, "grand_final", 0, 0, tournament.grand_final, names)
        console.print(table)


def render_calibration_round(session: CalibrationSession, names: Mapping[str, str]) -> None:
    current = session.active_round
    if current is None:
        console.print("  [green]Calibration session completed.[/]")
        return
    table = Table(
        title=f"Round {current.round_number} of {session.total_rounds}",
        show_header=True,
        header_style="bold",
        border_style="dim",
    )
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("Player 1", min_width=18)
    table.add_column("Player 2", min_width=18)
    table.add_column("Result", min_width=18)
    for i, m in enumerate(current.matchups, 1):
        result = f"[green]{names.get(m.winner_id, '?')}[/]" if m.winner_id else "[dim]pending[/]"
        table.add_row(str(i), names.get(m.player1_id, "?"), names.get(m.player2_id, "?"), result)
    if current.bye_player_id:
        table.add_row("-", names.get(current.bye_player_id, "?"), "[dim]BYE[/]", "")
    console.print()
    console.print(table)


# --------------------------------------------------------------------------- #
# Helpers                                                                      #
# --------------------------------------------------------------------------- #

def _render_rounds(title: str, bracket: BracketName, rounds: tuple[Round, ...], names: Mapping[str, str]) -> None:
    if not rounds:
        return
    table = _matchup_table(title)
    for ri, rnd in enumerate(rounds):
        for mi, m in enumerate(rnd):
            _add_matchup_row(table, bracket, ri, mi, m, names)
    console.print(table)


def _matchup_table(title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold", border_style="dim", show_lines=False)
    table.add_column("Match", style="dim", width=10)
    table.add_column("Player 1", min_width=18)
    table.add_column("", width=3, justify="center")
    table.add_column("Player 2", min_width=18)
    table.add_column("Result", min_width=14)
    return table


def _add_matchup_row(
    table: Table,
    bracket: BracketName,
    round_index: int,
    matchup_index: int,
    m: Matchup,
    names: Mapping[str, str],
) -> None:
    p1 = names.get(m.player1_id, "?") if m.player1_id else "[dim]TBD[/]"
    p2 = names.get(m.player2_id, "?") if m.player2_id else "[dim]TBD[/]"
    if m.is_bye:
        if m.winner_id:
            result = f"[dim]{names.get(m.winner_id, '?')} (bye)[/]"
        else:
            result = "[dim]bye[/]"
    elif m.winner_id:
        score = f" {m.scores[0]}-{m.scores[1]}" if m.scores else ""
        result = f"[green]{names.get(m.winner_id, '?')}[/][dim]{score}[/]"
    elif m.is_ready:
        result = "[bold yellow]ready[/]"
    else:
        result = ""
    table.add_row(matchup_label(bracket, round_index, matchup_index), p1, "vs", p2, result)
