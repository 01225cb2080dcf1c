"""
WellWisher - annual event invitations with a deferred reminder and purge scheduler.

Subpackages:
- wellwisher.core: Errors, logging, settings, event model and storage
- wellwisher.notifications: Invitation senders (SMTP, log)
- wellwisher.scheduling: Reminder/purge scheduler
- wellwisher.events: Event CRUD service wired to the scheduler hooks
- wellwisher.cli: Command-line interface
"""

__version__ = "0.1.0"
