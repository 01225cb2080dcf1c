"""Tests for the Event model."""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import UTC, datetime

import pytest


class TestArchiveInvariant:
    def test_archived_requires_timestamp(self, make_event):
        with pytest.raises(ValueError, match="no archived_at"):
            make_event(is_archived=True)

    def test_timestamp_requires_archived(self, make_event):
        with pytest.raises(ValueError, match="not archived"):
            make_event(archived_at=datetime(2024, 1, 1, tzinfo=UTC))

    def test_archive_stamps_utc(self, make_event):
        archived = make_event().archive(datetime(2024, 1, 1))
        assert archived.is_archived
        assert archived.archived_at == datetime(2024, 1, 1, tzinfo=UTC)

    def test_archive_defaults_to_now(self, make_event):
        assert make_event().archive().archived_at is not None

    def test_archive_returns_copy(self, make_event):
        event = make_event()
        event.archive()
        assert not event.is_archived

    def test_unarchive_clears(self, make_event):
        restored = make_event().archive().unarchive()
        assert not restored.is_archived
        assert restored.archived_at is None

    def test_frozen(self, make_event):
        with pytest.raises(FrozenInstanceError):
            make_event().name = "changed"


class TestHashing:
    def test_invitees_stored_as_tuple(self, make_event):
        assert make_event().invitees == ("a@example.com", "b@example.com")

    def test_hashable(self, make_event):
        event = make_event(id="evt-1")
        assert hash(event) == hash(make_event(id="evt-1"))
        assert len({event, make_event(id="evt-1"), make_event(id="evt-2")}) == 2

    def test_archived_copy_hashable(self, make_event):
        archived = make_event().archive(datetime(2024, 1, 1, tzinfo=UTC))
        assert archived in {archived}


class TestSerialization:
    def test_to_dict(self, make_event):
        d = make_event(id="evt-1").archive(datetime(2024, 1, 1, tzinfo=UTC)).to_dict()

        assert d["id"] == "evt-1"
        assert d["message_date"] == "2024-06-10T00:00:00+00:00"
        assert d["is_archived"] is True
        assert d["archived_at"] == "2024-01-01T00:00:00+00:00"
        assert d["invitees"] == ["a@example.com", "b@example.com"]

    def test_live_event_has_no_archive_stamp(self, make_event):
        assert make_event().to_dict()["archived_at"] is None
