"""
Unit tests for event mapping and hour batch ordering
"""

import logging
import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError
from ingestion.transformers.event_mapper import EventMapper, build_hour_batch
from schemas.events import NormalizedEvent


UTC = timezone.utc
HOUR = datetime(2013, 1, 1, tzinfo=UTC)


class TestEventMapper:
    """Test record to event mapping"""

    def test_maps_documented_example(self):
        mapper = EventMapper()
        record = {
            "created_at": "2013-01-01T00:00:00Z",
            "actor": "alice",
            "type": "PushEvent",
            "repository": {"language": "Go", "forks": 3}
        }

        event = mapper.map(record, 1)

        assert event.actor == "alice"
        assert event.timestamp == datetime(2013, 1, 1, tzinfo=UTC)
        assert event.attributes == {"action": "PushEvent", "language": "Go", "forks": 3}
        assert mapper.dropped == 0

    def test_copies_repository_fields_verbatim(self):
        record = {
            "created_at": "2013-01-01T00:00:00Z",
            "actor": "bob",
            "type": "WatchEvent",
            "repository": {
                "language": None,
                "forks": 7,
                "watchers": "12",
                "stargazers": 12.0,
                "size": 2048,
                "owner": "someone"
            }
        }

        event = EventMapper().map(record)

        assert event.attributes == {
            "action": "WatchEvent",
            "language": None,
            "forks": 7,
            "watchers": "12",
            "stargazers": 12.0,
            "size": 2048,
        }

    def test_absent_fields_are_omitted(self):
        event = EventMapper().map({"created_at": "2013-01-01T00:00:00Z", "actor": "carol"})

        assert event.attributes == {}

    def test_non_object_repository_is_ignored(self):
        record = {"created_at": "2013-01-01T00:00:00Z", "actor": "carol", "repository": "carol/repo"}

        assert EventMapper().map(record).attributes == {}

    def test_nested_actor_login(self):
        record = {"created_at": "2015-01-01T15:00:00Z", "actor": {"id": 1, "login": "dave"}, "type": "IssuesEvent"}

        event = EventMapper().map(record)

        assert event.actor == "dave"

    @pytest.mark.parametrize("record", [
        {"actor": "alice"},
        {"created_at": None, "actor": "alice"},
        {"created_at": 1356998400, "actor": "alice"},
    ])
    def test_missing_timestamp_is_dropped(self, record):
        mapper = EventMapper()

        assert mapper.map(record) is None
        assert mapper.dropped == 1

    @pytest.mark.parametrize("created_at", ["", "2013-01-01", "2013-01-01 00:00:00", "garbage"])
    def test_invalid_timestamp_is_dropped(self, created_at):
        assert EventMapper().map({"created_at": created_at, "actor": "alice"}) is None

    @pytest.mark.parametrize("actor", [None, "", 42, {"id": 1}, {"login": ""}, ["alice"]])
    def test_missing_actor_is_dropped(self, actor):
        record = {"created_at": "2013-01-01T00:00:00Z", "type": "PushEvent"}
        if actor is not None:
            record["actor"] = actor

        assert EventMapper().map(record) is None

    def test_drops_are_logged_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="ingestion.transformers.event_mapper"):
            EventMapper().map({"created_at": "2013-01-01T00:00:00Z"}, 17)

        assert "[L17] Actor required" in caplog.text
        assert all(r.levelno == logging.DEBUG for r in caplog.records)


class TestBuildHourBatch:
    """Test per-hour ordering"""

    def _event(self, actor, seconds):
        return NormalizedEvent(actor=actor, timestamp=HOUR + timedelta(seconds=seconds))

    def test_sorted_by_timestamp(self):
        events = [self._event("a", 30), self._event("b", 10), self._event("c", 20)]

        batch = build_hour_batch(HOUR, "http://archive.test/2013-01-01-0.json.gz", events)

        assert [e.actor for e in batch.events] == ["b", "c", "a"]

    def test_sort_is_stable(self):
        events = [
            self._event("first", 5),
            self._event("early", 1),
            self._event("second", 5),
            self._event("third", 5),
        ]

        batch = build_hour_batch(HOUR, "url", events)

        assert [e.actor for e in batch.events] == ["early", "first", "second", "third"]

    def test_mixed_offsets_compare_as_instants(self):
        pacific = timezone(timedelta(hours=-8))
        events = [
            NormalizedEvent(actor="utc", timestamp=datetime(2013, 1, 1, 8, 30, tzinfo=UTC)),
            NormalizedEvent(actor="pst", timestamp=datetime(2013, 1, 1, 0, 15, tzinfo=pacific)),
        ]

        batch = build_hour_batch(HOUR, "url", events)

        assert [e.actor for e in batch.events] == ["pst", "utc"]

    def test_carries_statistics(self):
        batch = build_hour_batch(HOUR, "url", [], records_read=3, records_dropped=2, decode_errors=1)

        assert len(batch) == 0
        assert (batch.records_read, batch.records_dropped, batch.decode_errors) == (3, 2, 1)


class TestNormalizedEvent:
    """Schema validation"""

    def test_rejects_empty_actor(self):
        with pytest.raises(ValidationError):
            NormalizedEvent(actor="", timestamp=HOUR)

    def test_rejects_naive_timestamp(self):
        with pytest.raises(ValidationError):
            NormalizedEvent(actor="alice", timestamp=datetime(2013, 1, 1))

    def test_rejects_unknown_attributes(self):
        with pytest.raises(ValidationError):
            NormalizedEvent(actor="alice", timestamp=HOUR, attributes={"company": "GitHub"})
