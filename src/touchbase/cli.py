from __future__ import annotations

from dotenv import load_dotenv

load_dotenv()

from datetime import datetime

import typer
from rich.console import Console
from rich.table import Table

from touchbase.cadence import badge_text, classify, label_for, midnight
from touchbase.config import configure_logging
from touchbase.db import from_db, get_db, init_db
from touchbase.filters import DateRangeError, PresetStatus, parse_status, preset_range
from touchbase.services.contacts import recalculate_all

app = typer.Typer(help="TouchBase — follow-up reminders for your contacts")
console = Console()

_DEFAULT_SECTIONS = (PresetStatus.OVERDUE, PresetStatus.DUE_TODAY, PresetStatus.DUE_THIS_WEEK)

_SEED_TEAM = [("Erad", "erad@example.com"), ("Karl", "karl@example.com")]
_SEED_COMPANIES = [
    ("TrimedX", "Healthcare", "https://trimedx.com"),
    ("Accel", "Venture Capital", "https://accel.com"),
]


@app.callback()
def main(log_level: str = typer.Option(None, help="Log level (default TOUCHBASE_LOG_LEVEL or INFO)")) -> None:
    configure_logging(log_level)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """Start the TouchBase web server."""
    import uvicorn

    uvicorn.run("touchbase.web:create_app", host=host, port=port, reload=reload, factory=True)


@app.command()
def remind(
    status: str = typer.Option(
        None, help="Only show one bucket: OVERDUE, DUE_TODAY, DUE_THIS_WEEK, UPCOMING, NO_REMINDER"
    ),
) -> None:
    """Show contacts whose follow-up is overdue, due today or due this week."""
    try:
        wanted = parse_status(status)
    except DateRangeError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2)

    init_db()
    now = datetime.now()
    today = midnight(now)
    sections = (wanted,) if wanted else _DEFAULT_SECTIONS

    shown = 0
    with get_db() as db:
        for section in sections:
            sql, params = preset_range(section, today).to_sql("next_reminder_date")
            rows = db.execute(
                f"""SELECT name, email, cadence, last_touch_date, next_reminder_date
                    FROM contacts WHERE {sql}
                    ORDER BY next_reminder_date, name""",
                params,
            ).fetchall()
            if not rows:
                continue
            shown += len(rows)
            table = Table(title=section.value.replace("_", " ").title())
            table.add_column("Contact", style="cyan")
            table.add_column("Email", style="dim")
            table.add_column("Cadence", style="magenta")
            table.add_column("Last Touch", style="white")
            table.add_column("Next Reminder", style="yellow")
            table.add_column("Status")
            for r in rows:
                reminder = from_db(r["next_reminder_date"])
                table.add_row(
                    r["name"],
                    r["email"],
                    label_for(r["cadence"]),
                    (r["last_touch_date"] or "")[:10],
                    (r["next_reminder_date"] or "—")[:10],
                    badge_text(classify(reminder, now)),
                )
            console.print(table)

    if not shown:
        console.print("[green]All clear! Nobody needs a follow-up.[/green]")


@app.command()
def recalculate() -> None:
    """Re-derive reminders from last touch date and cadence (manual overrides are kept)."""
    init_db()
    with get_db(immediate=True) as db:
        changed = recalculate_all(db)
    console.print(f"Recalculated reminders: [bold]{changed}[/bold] contact(s) changed.")


@app.command()
def seed() -> None:
    """Add demo team members and companies."""
    init_db()
    with get_db() as db:
        for name, email in _SEED_TEAM:
            db.execute(
                "INSERT OR IGNORE INTO team_members (name, email) VALUES (?, ?)", (name, email)
            )
        for name, industry, website in _SEED_COMPANIES:
            if not db.execute("SELECT 1 FROM companies WHERE name = ?", (name,)).fetchone():
                db.execute(
                    "INSERT INTO companies (name, industry, website) VALUES (?, ?, ?)",
                    (name, industry, website),
                )
    console.print("[green]Database seeded.[/green]")
