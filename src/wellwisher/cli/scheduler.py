"""
CLI: ``wellwisher run`` and ``wellwisher plan`` -- scheduler process commands.
"""

from __future__ import annotations

import signal
import threading

import typer
from rich.markup import escape

from wellwisher.cli.utils import console, fail, open_store, print_rows, settings_from_options
from wellwisher.core.errors import WellWisherError
from wellwisher.core.logging import configure_logging, get_logger
from wellwisher.core.timestamps import utc_now


def run(
    database_url: str | None = typer.Option(None, "--database-url", "-d", help="SQLAlchemy URL"),
    backend: str | None = typer.Option(None, "--backend", "-b", help="thread or apscheduler"),
    notifications: str | None = typer.Option(None, "--notifications", "-n", help="smtp or log"),
    json_logs: bool | None = typer.Option(None, "--json-logs/--console-logs"),
    duration: float = typer.Option(0.0, "--duration", help="Stop after N seconds (0 = until signalled)"),
) -> None:
    """Bootstrap the scheduler from storage and run until SIGINT/SIGTERM.

    Example::

        wellwisher run --database-url sqlite:///events.db
        WELLWISHER_NOTIFICATION_BACKEND=smtp wellwisher run
    """
    from wellwisher.notifications import create_sender
    from wellwisher.scheduling import TaskScheduler, bootstrap, create_timer_backend

    settings = settings_from_options(
        database_url=database_url,
        timer_backend=backend,
        notification_backend=notifications,
        json_logs=json_logs,
    )
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    logger = get_logger("wellwisher.cli")

    try:
        store = open_store(settings)
        scheduler = TaskScheduler(
            store,
            create_sender(settings),
            backend=create_timer_backend(settings),
            settings=settings,
        )
    except WellWisherError as exc:
        fail(exc)
    except ImportError as exc:
        # apscheduler backend selected without the extra installed
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc

    report = bootstrap(scheduler, store)
    console.print(
        f"[bold green]wellwisher scheduler[/bold green] "
        f"(backend={settings.timer_backend}, reminders={report.reminders}, purges={report.purges})"
    )
    if not report.ok:
        console.print(
            f"[yellow]{len(report.failures)} task(s) skipped, "
            f"{len(report.storage_errors)} storage error(s); see log[/yellow]"
        )

    stop_requested = threading.Event()

    def _request_stop(signum, _frame) -> None:
        logger.info("shutdown_requested", signal=signal.Signals(signum).name)
        stop_requested.set()

    previous = {sig: signal.signal(sig, _request_stop) for sig in (signal.SIGINT, signal.SIGTERM)}
    scheduler.start()
    try:
        stop_requested.wait(timeout=duration or None)
    finally:
        scheduler.stop()
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    console.print("[yellow]Scheduler stopped[/yellow]")


def plan(
    database_url: str | None = typer.Option(None, "--database-url", "-d", help="SQLAlchemy URL"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the next firing instant of every task storage implies, without scheduling."""
    from wellwisher.scheduling import resolve_purge, resolve_reminder

    settings = settings_from_options(database_url=database_url)
    try:
        store = open_store(settings)
        events = store.list_all_events()
    except WellWisherError as exc:
        fail(exc)

    now = utc_now()
    rows = []
    for event in events:
        try:
            rule = resolve_reminder(
                event.message_date,
                settings.timezone,
                hour=settings.reminder_hour,
                minute=settings.reminder_minute,
            )
            rows.append({"task": "reminder", "event_id": event.id, "name": event.name,
                         "fire_at": rule.first_fire(now).isoformat(), "rule": rule.describe()})
        except WellWisherError as exc:
            rows.append({"task": "reminder", "event_id": event.id, "name": event.name,
                         "fire_at": None, "rule": f"unresolvable: {exc.message}"})
        if event.is_archived:
            fire_at = resolve_purge(event.archived_at, settings.purge_after_days)
            rows.append({"task": "purge", "event_id": event.id, "name": event.name,
                         "fire_at": fire_at.isoformat(),
                         "rule": "overdue, fires at startup" if fire_at <= now else "once"})

    rows.sort(key=lambda r: r["fire_at"] or "")
    print_rows(rows, as_json=json_out, title="Planned tasks")
