"""
CLI utility helpers -- settings, store construction and output formatting.
"""

from __future__ import annotations

import json
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from wellwisher.core.errors import WellWisherError
from wellwisher.core.orm import create_wellwisher_engine
from wellwisher.core.settings import WellWisherSettings, load_settings
from wellwisher.core.store import SqlEventStore

console = Console()
err_console = Console(stderr=True)


# ── Settings / store helpers ─────────────────────────────────────────────


def settings_from_options(**overrides: Any) -> WellWisherSettings:
    """Load settings, applying only the options the user actually passed."""
    try:
        return load_settings(**{k: v for k, v in overrides.items() if v is not None})
    except WellWisherError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {escape(exc.message)}")
        raise typer.Exit(code=2) from exc


def open_store(settings: WellWisherSettings) -> SqlEventStore:
    """Open the event store named by ``settings.database_url``, creating tables."""
    engine = create_wellwisher_engine(settings.database_url)
    return SqlEventStore(engine, create_schema=True)


def fail(exc: WellWisherError) -> NoReturn:
    err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {escape(exc.message)}")
    raise typer.Exit(code=1) from exc


# ── Output helpers ───────────────────────────────────────────────────────


def print_rows(rows: list[dict[str, Any]], *, as_json: bool = False, title: str = "") -> None:
    """Render a list of dicts as a Rich table, or JSON."""
    if as_json:
        console.print_json(json.dumps(rows, default=str))
        return
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*("" if v is None else str(v) for v in row.values()))
    console.print(table)
