"""
Typer CLI for the study coach.

Commands:
    coach db init            - Create ledger tables
    coach report day         - Confirmations and study minutes for one day
    coach report week        - Per-task done/miss over the last N days
    coach leaderboard        - Points leaderboard
    coach cards due USER     - Flashcards due by the end of a day

Usage:
    coach --help
    coach report day --date 2026-10-19 --user U123
    coach report week --days 14
"""

from __future__ import annotations

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from coach.core.clock import LocalClock, parse_day
from coach.core.errors import CoachError
from coach.core.logging_config import configure_logging
from coach.core.types import CANONICAL_TASKS
from coach.ledger.store import LedgerStore
from coach.reports.aggregation import ReportService
from coach.srs.service import FlashcardService
from config import get_settings

app = typer.Typer(help="study-coach CLI: ledger reports, leaderboard and flashcards")
console = Console()


class CLIContext:
    """Lazily opened ledger shared by the commands of one invocation."""

    def __init__(self):
        self.settings = get_settings()
        self._store: LedgerStore | None = None

    @property
    def store(self) -> LedgerStore:
        if self._store is None:
            clock = LocalClock(self.settings.timezone)
            self._store = LedgerStore.from_url(self.settings.database_url, clock=clock)
        return self._store

    @property
    def reports(self) -> ReportService:
        return ReportService(self.store, max_days=self.settings.weekly_max_days)

    @property
    def flashcards(self) -> FlashcardService:
        return FlashcardService(
            self.store,
            page_size=self.settings.due_cards_page_size,
            recent_max=self.settings.recent_cards_max,
        )


def get_context() -> CLIContext:
    return CLIContext()


@app.callback()
def main_callback(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")) -> None:
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_file)


# ========================================
# Database Commands
# ========================================

db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """
    Create ledger tables if they don't exist.

    Safe to run multiple times (idempotent).
    """
    logger.info("Initializing database tables...")
    try:
        store = get_context().store
    except CoachError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)
    rprint(f"[green]✓[/green] Database initialized at {store.engine.url}")


# ========================================
# Report Commands
# ========================================

report_app = typer.Typer(help="Daily and weekly rollups")
app.add_typer(report_app, name="report")


@report_app.command("day")
def report_day(
    date: str = typer.Option(None, "--date", "-d", help="YYYY-MM-DD (default: today)"),
    user: str = typer.Option(None, "--user", "-u", help="Restrict to one user id"),
) -> None:
    """Per-task done/miss counts and study minutes for one day."""
    ctx = get_context()
    try:
        day = parse_day(date, ctx.store.clock)
    except CoachError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    confirmations = ctx.reports.confirmations_for_day(day, user)
    sessions = ctx.reports.sessions_for_day(day, user)

    table = Table(title=f"Progress {confirmations['date']}")
    table.add_column("Task", style="cyan")
    table.add_column("Done", justify="right", style="green")
    table.add_column("Miss", justify="right", style="red")
    for task in CANONICAL_TASKS:
        counts = confirmations["byTask"].get(task.value, {})
        table.add_row(task.value, str(counts.get("done", 0)), str(counts.get("miss", 0)))
    console.print(table)
    rprint(f"Confirmations: [bold]{confirmations['count']}[/bold]")
    rprint(f"Study minutes: [bold]{sessions['totalMinutes']}[/bold] ({sessions['count']} sessions)")


@report_app.command("week")
def report_week(
    days: int = typer.Option(7, "--days", "-n", help="Window length (1-31)"),
    user: str = typer.Option(None, "--user", "-u", help="Restrict to one user id"),
) -> None:
    """Done counts per task for each of the last N days."""
    week = get_context().reports.weekly(days, user)

    table = Table(title=f"Last {len(week['dates'])} days")
    table.add_column("Date", style="cyan")
    for task in CANONICAL_TASKS:
        table.add_column(task.value, justify="right")
    table.add_column("Total", justify="right", style="bold")
    table.add_column("Minutes", justify="right")
    for index, day in enumerate(week["dates"]):
        done = [str(week["perTask"][task.value][index]["done"]) for task in CANONICAL_TASKS]
        table.add_row(day, *done, str(week["totalCount"][index]), str(week["totalMinutes"][index]))
    console.print(table)


# ========================================
# Leaderboard
# ========================================


@app.command("leaderboard")
def leaderboard(limit: int = typer.Option(20, "--limit", "-l", help="Rows to show")) -> None:
    """Users ranked by points, then streak."""
    rows = get_context().reports.leaderboard()[:limit]
    if not rows:
        rprint("[yellow]No accounts yet[/yellow]")
        return

    table = Table(title="Leaderboard")
    table.add_column("#", justify="right")
    table.add_column("User", style="cyan")
    table.add_column("Points", justify="right", style="green")
    table.add_column("Streak", justify="right", style="yellow")
    for rank, row in enumerate(rows, start=1):
        table.add_row(str(rank), row["displayName"] or row["userId"], str(row["points"]), str(row["streak"]))
    console.print(table)


# ========================================
# Flashcards
# ========================================

cards_app = typer.Typer(help="Flashcards")
app.add_typer(cards_app, name="cards")


@cards_app.command("due")
def cards_due(
    user: str = typer.Argument(..., help="User id"),
    date: str = typer.Option(None, "--date", "-d", help="YYYY-MM-DD (default: today)"),
) -> None:
    """Cards due by the end of a day, soonest first."""
    ctx = get_context()
    try:
        day = parse_day(date, ctx.store.clock)
    except CoachError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    cards = ctx.flashcards.due_cards(user, day)
    if not cards:
        rprint(f"[green]Nothing due for {user} on {day.isoformat()}[/green]")
        return

    table = Table(title=f"Due cards {day.isoformat()} ({len(cards)})")
    table.add_column("ID", justify="right")
    table.add_column("Front", style="cyan")
    table.add_column("Back")
    table.add_column("Due", style="dim")
    for card in cards:
        table.add_row(str(card["id"]), card["front"], card["back"] or "", card["dueDate"] or "-")
    console.print(table)


if __name__ == "__main__":
    app()
