"""Notification collaborator contract.

The scheduler only needs one operation from the outside world when a
reminder fires: deliver the invitation for an event and report whether it
worked.  Senders report failure through ``DeliveryResult`` rather than by
raising, but the executor treats a raised exception the same way.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from wellwisher.core.models import Event
from wellwisher.core.timestamps import utc_now


@dataclass
class DeliveryResult:
    """Result of an invitation delivery attempt."""

    sender_name: str
    success: bool
    recipients: int = 0
    message: str | None = None
    error: Exception | None = None
    delivered_at: datetime = field(default_factory=utc_now)

    @classmethod
    def ok(cls, sender_name: str, recipients: int = 0, message: str | None = None) -> DeliveryResult:
        return cls(sender_name=sender_name, success=True, recipients=recipients, message=message)

    @classmethod
    def fail(cls, sender_name: str, error: Exception) -> DeliveryResult:
        return cls(sender_name=sender_name, success=False, error=error, message=str(error))

    def to_dict(self) -> dict[str, Any]:
        return {
            "sender": self.sender_name,
            "success": self.success,
            "recipients": self.recipients,
            "message": self.message,
            "delivered_at": self.delivered_at.isoformat(),
        }


@runtime_checkable
class InvitationSender(Protocol):
    """
    Protocol for invitation senders.

    Implementations must provide:
    - name: Unique sender identifier
    - send_invitation(): Deliver the invitation for an event
    """

    @property
    def name(self) -> str:
        """Unique sender name."""
        ...

    def send_invitation(self, event: Event) -> DeliveryResult:
        """Deliver the invitation for *event* to all of its invitees."""
        ...
