"""Log-only invitation sender for development."""

from __future__ import annotations

from wellwisher.core.logging import get_logger
from wellwisher.core.models import Event
from wellwisher.notifications.protocol import DeliveryResult

logger = get_logger(__name__)


class LogInvitationSender:
    """Writes the invitation to the structured log instead of sending it."""

    def __init__(self, name: str = "log"):
        self._name = name
        self.sent: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    def send_invitation(self, event: Event) -> DeliveryResult:
        logger.info(
            "invitation_logged",
            event_id=event.id,
            event_name=event.name,
            recipients=list(event.invitees),
        )
        self.sent.append(event.id)
        return DeliveryResult.ok(self._name, recipients=len(event.invitees))
