"""Event CRUD service."""

from wellwisher.events.service import EventService

__all__ = ["EventService"]
