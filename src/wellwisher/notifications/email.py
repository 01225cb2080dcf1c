"""Email (SMTP) invitation sender."""

from __future__ import annotations

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from wellwisher.core.errors import NotificationError
from wellwisher.core.logging import get_logger
from wellwisher.core.models import Event
from wellwisher.notifications.protocol import DeliveryResult

logger = get_logger(__name__)


class SmtpInvitationSender:
    """
    Invitation sender using SMTP.

    One message per event; invitees are addressed as BCC so they do not see
    each other's addresses.
    """

    def __init__(
        self,
        smtp_host: str,
        from_address: str,
        *,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        use_tls: bool = True,
        timeout: float = 30.0,
        name: str = "smtp",
    ):
        self._name = name
        self._smtp_host = smtp_host
        self._smtp_port = smtp_port
        self._smtp_user = smtp_user
        self._smtp_password = smtp_password
        self._from_address = from_address
        self._use_tls = use_tls
        self._timeout = timeout

    @property
    def name(self) -> str:
        return self._name

    def _build_message(self, event: Event) -> str:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = f"You're invited: {event.name}"
        msg["From"] = self._from_address
        msg["To"] = self._from_address

        when = event.event_time if event.event_time and not event.all_day else "All day"
        text = f"""
{event.name}

Date: {event.event_date.date().isoformat()}
Time: {when}

{event.message or ""}
"""
        msg.attach(MIMEText(text, "plain"))
        return msg.as_string()

    def send_invitation(self, event: Event) -> DeliveryResult:
        """Send the invitation for *event* via SMTP."""
        if not event.invitees:
            logger.info("invitation_no_recipients", event_id=event.id)
            return DeliveryResult.ok(self._name, recipients=0, message="no invitees")

        try:
            server = smtplib.SMTP(self._smtp_host, self._smtp_port, timeout=self._timeout)
            try:
                if self._use_tls:
                    server.starttls()
                if self._smtp_user and self._smtp_password:
                    server.login(self._smtp_user, self._smtp_password)
                server.sendmail(self._from_address, list(event.invitees), self._build_message(event))
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            error = NotificationError(f"SMTP delivery failed: {e}", cause=e).with_context(
                event_id=event.id
            )
            return DeliveryResult.fail(self._name, error)

        return DeliveryResult.ok(self._name, recipients=len(event.invitees))
