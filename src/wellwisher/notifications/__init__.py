"""Invitation delivery: protocol, SMTP sender and a log-only sender."""

from __future__ import annotations

from wellwisher.core.settings import WellWisherSettings
from wellwisher.notifications.console import LogInvitationSender
from wellwisher.notifications.email import SmtpInvitationSender
from wellwisher.notifications.protocol import DeliveryResult, InvitationSender


def create_sender(settings: WellWisherSettings) -> InvitationSender:
    """Build the sender selected by ``settings.notification_backend``."""
    if settings.notification_backend == "smtp":
        return SmtpInvitationSender(
            smtp_host=settings.smtp_host,
            from_address=settings.mail_from,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )
    return LogInvitationSender()


__all__ = [
    "DeliveryResult",
    "InvitationSender",
    "LogInvitationSender",
    "SmtpInvitationSender",
    "create_sender",
]
