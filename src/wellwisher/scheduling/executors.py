"""Task executors - what runs when a reminder or purge timer fires.

Manifesto:
    A timer was armed against a snapshot of the event that may be days or
    months old.  Executors therefore re-read the event first and only act
    on what storage says now.  They never raise and never retry: the
    outcome is reported as an ``ExecutionResult`` and logged, with a
    ``retryable`` flag telling an operator whether the failure was transient.

    send_reminder(store, sender, event_id)
      ├── get_event()        missing   → SKIPPED_MISSING
      ├── is_archived        archived  → SKIPPED_ARCHIVED
      └── send_invitation()  ok → SENT, failure/raise → FAILED

    purge_event(store, event_id)
      ├── get_event()        missing      → SKIPPED_MISSING
      ├── not is_archived    unarchived   → SKIPPED_NOT_ARCHIVED
      └── hard_delete_event()  → PURGED (or SKIPPED_MISSING if it vanished)

Fetch-then-act is best-effort.  An archive state change landing between the
fetch and the delete is not detected; storage atomicity covers only the
individual calls.

Tags:
    wellwisher, scheduling, executors, reminders, purge

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from wellwisher.core.errors import NotificationError, is_retryable
from wellwisher.core.logging import get_logger
from wellwisher.core.store import EventStore
from wellwisher.core.timestamps import utc_now
from wellwisher.notifications.protocol import InvitationSender

logger = get_logger(__name__)


class ExecutionOutcome(str, Enum):
    SENT = "sent"
    PURGED = "purged"
    SKIPPED_MISSING = "skipped_missing"
    SKIPPED_ARCHIVED = "skipped_archived"
    SKIPPED_NOT_ARCHIVED = "skipped_not_archived"
    FAILED = "failed"

    @property
    def skipped(self) -> bool:
        return self.value.startswith("skipped")


@dataclass
class ExecutionResult:
    """What a single firing did."""

    kind: str
    event_id: str
    outcome: ExecutionOutcome
    error: str | None = None
    retryable: bool = False
    finished_at: datetime = field(default_factory=utc_now)

    @property
    def ok(self) -> bool:
        return self.outcome is not ExecutionOutcome.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "event_id": self.event_id,
            "outcome": self.outcome.value,
            "error": self.error,
            "retryable": self.retryable,
            "finished_at": self.finished_at.isoformat(),
        }


def send_reminder(store: EventStore, sender: InvitationSender, event_id: str) -> ExecutionResult:
    """Send the annual invitation for *event_id* if the event is still live."""
    log = logger.bind(task="reminder", event_id=event_id)
    try:
        event = store.get_event(event_id)
        if event is None:
            log.info("reminder_skipped", reason="missing")
            return ExecutionResult("reminder", event_id, ExecutionOutcome.SKIPPED_MISSING)
        if event.is_archived:
            log.info("reminder_skipped", reason="archived")
            return ExecutionResult("reminder", event_id, ExecutionOutcome.SKIPPED_ARCHIVED)

        delivery = sender.send_invitation(event)
        if not delivery.success:
            error = delivery.error or NotificationError(delivery.message or "delivery failed")
            retryable = is_retryable(error)
            log.error("reminder_failed", sender=delivery.sender_name, error=str(error), retryable=retryable)
            return ExecutionResult(
                "reminder", event_id, ExecutionOutcome.FAILED, error=str(error), retryable=retryable
            )

        log.info("reminder_sent", sender=delivery.sender_name, recipients=delivery.recipients)
        return ExecutionResult("reminder", event_id, ExecutionOutcome.SENT)
    except Exception as exc:
        log.exception("reminder_failed", error=str(exc), retryable=is_retryable(exc))
        return ExecutionResult(
            "reminder", event_id, ExecutionOutcome.FAILED, error=str(exc), retryable=is_retryable(exc)
        )


def purge_event(store: EventStore, event_id: str) -> ExecutionResult:
    """Hard-delete *event_id* if it exists and is still archived."""
    log = logger.bind(task="purge", event_id=event_id)
    try:
        event = store.get_event(event_id)
        if event is None:
            log.info("purge_skipped", reason="missing")
            return ExecutionResult("purge", event_id, ExecutionOutcome.SKIPPED_MISSING)
        if not event.is_archived:
            log.info("purge_skipped", reason="not_archived")
            return ExecutionResult("purge", event_id, ExecutionOutcome.SKIPPED_NOT_ARCHIVED)

        if not store.hard_delete_event(event_id):
            log.info("purge_skipped", reason="deleted_concurrently")
            return ExecutionResult("purge", event_id, ExecutionOutcome.SKIPPED_MISSING)

        log.info("event_purged", archived_at=event.archived_at.isoformat() if event.archived_at else None)
        return ExecutionResult("purge", event_id, ExecutionOutcome.PURGED)
    except Exception as exc:
        log.exception("purge_failed", error=str(exc), retryable=is_retryable(exc))
        return ExecutionResult(
            "purge", event_id, ExecutionOutcome.FAILED, error=str(exc), retryable=is_retryable(exc)
        )
