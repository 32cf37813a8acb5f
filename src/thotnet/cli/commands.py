"""Operator CLI.

Commands:
- init-db: create the SQLite schema
- seed-badges: write the badge catalogue
- serve: run the API with uvicorn
- issue-token: create a bearer token for a user
- generate-course: generate a course from the terminal
- recalc-levels: recompute every level from total XP
- leaderboard: print the XP leaderboard
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from thotnet.config.app_config import load_app_config
from thotnet.core import badge_awards, course_generator, gamification
from thotnet.core.course_generator import GenerationRequest
from thotnet.db import auth_repository, profiles_repository
from thotnet.db.database import Database
from thotnet.errors import ThotNetError
from thotnet.events.bus import EventBus
from thotnet.llm.chain import ProviderChain
from thotnet.logging_setup import configure_logging

app = typer.Typer(
    name="thotnet",
    help="ThotNet backend: AI news, generated courses and gamification.",
    no_args_is_help=True,
)

console = Console()


def _open_db(db_path: str | None) -> Database:
    """Database from --db or the configured path, schema ensured."""
    db = Database(db_path or load_app_config().database.path)
    db.init_schema()
    return db


# =============================================================================
# DATABASE
# =============================================================================


@app.command(name="init-db")
def init_db(
    db_path: str | None = typer.Option(None, "--db", help="SQLite file (default: from config)"),
) -> None:
    """Create the database schema (idempotent)."""
    configure_logging()
    db = _open_db(db_path)
    console.print(f"[green]✓ Schema ready[/green] [dim]{db.path}[/dim]")


@app.command(name="seed-badges")
def seed_badges(
    db_path: str | None = typer.Option(None, "--db", help="SQLite file (default: from config)"),
) -> None:
    """Insert or refresh the badge catalogue."""
    configure_logging()
    count = badge_awards.seed_badges(_open_db(db_path))
    console.print(f"[green]✓ {count} badges seeded[/green]")


@app.command(name="recalc-levels")
def recalc_levels(
    db_path: str | None = typer.Option(None, "--db", help="SQLite file (default: from config)"),
) -> None:
    """Recompute every profile's level from its total XP."""
    configure_logging()
    changed = gamification.recalculate_levels(_open_db(db_path))
    console.print(f"[green]✓ {changed} profiles updated[/green]")


# =============================================================================
# SERVER AND AUTH
# =============================================================================


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
    log_level: str = typer.Option("INFO", "--log-level", help="Minimum log level"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    configure_logging(level=log_level, json_logs=json_logs)
    console.print(f"[bold]ThotNet API[/bold] on http://{host}:{port}  [dim](docs at /docs)[/dim]")
    uvicorn.run(
        "thotnet.web.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
    )


@app.command(name="issue-token")
def issue_token(
    user_id: str = typer.Argument(..., help="User ID (profile is created if missing)"),
    display_name: str | None = typer.Option(None, "--name", "-n", help="Display name for a new profile"),
    days: int = typer.Option(auth_repository.DEFAULT_SESSION_DAYS, "--days", help="Token lifetime in days"),
    db_path: str | None = typer.Option(None, "--db", help="SQLite file (default: from config)"),
) -> None:
    """Print a bearer token for USER_ID."""
    configure_logging(level="WARNING")
    db = _open_db(db_path)
    profiles_repository.ensure_profile(db, user_id, display_name=display_name)
    token = auth_repository.create_session(db, user_id, ttl_days=days)
    console.print(f"[green]✓ Token for {user_id}[/green] [dim](valid {days} days)[/dim]")
    console.print(token, markup=False, highlight=False)


# =============================================================================
# COURSES AND LEADERBOARD
# =============================================================================


@app.command(name="generate-course")
def generate_course(
    topic: str = typer.Argument(..., help="Course topic"),
    difficulty: str = typer.Option("beginner", "--difficulty", "-d", help="beginner, intermediate, advanced"),
    duration: str = typer.Option("medium", "--duration", help="short, medium, long"),
    locale: str = typer.Option("en", "--locale", "-l", help="en or es"),
    advanced: bool = typer.Option(False, "--advanced", help="Outline first, then one call per module"),
    user_id: str | None = typer.Option(None, "--user", "-u", help="Record the course as created by this user"),
    db_path: str | None = typer.Option(None, "--db", help="SQLite file (default: from config)"),
) -> None:
    """Generate and store a course with the configured LLM providers."""
    configure_logging()
    if difficulty not in ("beginner", "intermediate", "advanced"):
        console.print(f"[red]✗ Unknown difficulty: {difficulty}[/red]")
        raise typer.Exit(code=1)
    if duration not in course_generator.MODULE_RANGES:
        console.print(f"[red]✗ Unknown duration: {duration}[/red]")
        raise typer.Exit(code=1)

    config = load_app_config()
    db = _open_db(db_path)
    llm = ProviderChain.from_config(config)
    if not llm.providers:
        console.print("[red]✗ No LLM provider configured (check API key env vars)[/red]")
        raise typer.Exit(code=1)

    if user_id:
        profiles_repository.ensure_profile(db, user_id)

    request = GenerationRequest(topic=topic, difficulty=difficulty, duration=duration, locale=locale)
    pipeline = course_generator.generate_advanced_course if advanced else course_generator.generate_simple_course

    with console.status(f"Generating course on '{topic}'..."):
        try:
            course = pipeline(
                db,
                EventBus(),
                llm,
                request,
                user_id=user_id,
                timeout_seconds=config.generation.timeout_seconds,
            )
        except ThotNetError as e:
            console.print(f"[red]✗ {e.message}[/red]")
            raise typer.Exit(code=1)

    console.print(f"[green]✓ {course.title}[/green]")
    console.print(f"  [dim]course_id:[/dim] {course.course_id}")
    console.print(f"  [dim]category:[/dim]  {course.category}")
    console.print(f"  [dim]modules:[/dim]   {course.modules_count}")
    console.print(f"  [dim]time:[/dim]      {course.generation_time_ms} ms")


@app.command()
def leaderboard(
    period: str = typer.Option("all", "--period", help="all, week, month"),
    limit: int = typer.Option(10, "--limit", "-n", help="Rows to show (1-100)"),
    db_path: str | None = typer.Option(None, "--db", help="SQLite file (default: from config)"),
) -> None:
    """Show the XP leaderboard."""
    configure_logging(level="WARNING")
    if period not in ("all", "week", "month"):
        console.print(f"[red]✗ Unknown period: {period}[/red]")
        raise typer.Exit(code=1)

    rows = profiles_repository.get_leaderboard(_open_db(db_path), period=period, limit=max(1, min(100, limit)))
    if not rows:
        console.print("[yellow]No ranked users yet[/yellow]")
        return

    table = Table(title=f"Leaderboard ({period})")
    table.add_column("#", justify="right")
    table.add_column("User")
    table.add_column("XP", justify="right")
    table.add_column("Level", justify="right")
    table.add_column("Streak", justify="right")
    for row in rows:
        table.add_row(
            str(row.rank),
            row.display_name or row.user_id,
            str(row.xp),
            str(row.level),
            str(row.streak_days),
        )
    console.print(table)


if __name__ == "__main__":
    app()
