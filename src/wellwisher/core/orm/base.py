"""Declarative base and type-map for wellwisher ORM models.

Uses SQLAlchemy 2.0 ``DeclarativeBase`` with a ``type_annotation_map``
that maps Python built-in types to portable SA column types.
"""

from __future__ import annotations

import datetime

from sqlalchemy import JSON, DateTime, Integer, Text
from sqlalchemy.orm import DeclarativeBase


class WellWisherBase(DeclarativeBase):
    """Shared declarative base for every wellwisher table.

    * ``str``   → ``Text``
    * ``int``   → ``Integer``
    * ``bool``  → ``Integer``  (SQLite has no native BOOLEAN)
    * ``datetime.datetime`` → ``DateTime``
    * ``list``  → ``JSON``
    """

    type_annotation_map = {
        str: Text,
        int: Integer,
        bool: Integer,
        datetime.datetime: DateTime,
        dict: JSON,
        list: JSON,
    }

