"""
Unit tests for the Sky loader
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock
from contextlib import asynccontextmanager
from core.exceptions import DeliveryError, SkyError
from ingestion.loaders.sky_loader import SkyLoader
from schemas.events import HourBatch, NormalizedEvent


HOUR = datetime(2013, 1, 1, tzinfo=timezone.utc)


def make_batch(count: int) -> HourBatch:
    return HourBatch(
        hour=HOUR,
        url="http://archive.test/2013-01-01-0.json.gz",
        events=[
            NormalizedEvent(actor=f"user{i}", timestamp=HOUR + timedelta(seconds=i), attributes={"action": "PushEvent"})
            for i in range(count)
        ]
    )


def mock_table(stream):
    table = Mock()
    table.name = "gharchive"

    @asynccontextmanager
    async def open_stream():
        yield stream
        await stream.flush()

    table.stream = open_stream
    return table


class TestSkyLoader:
    """Test batch delivery"""

    @pytest.mark.asyncio
    async def test_streams_every_event_in_order(self):
        added = []
        stream = Mock()
        stream.add_event = Mock(side_effect=lambda *args: added.append(args))
        stream.__len__ = Mock(side_effect=lambda: len(added))
        stream.flush = AsyncMock(return_value=3)

        loader = SkyLoader(mock_table(stream))
        result = await loader.load(make_batch(3))

        assert result == 3
        assert [a[0] for a in added] == ["user0", "user1", "user2"]
        stream.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_batch_sends_nothing(self):
        table = Mock()
        loader = SkyLoader(table)

        assert await loader.load(make_batch(0)) == 0
        table.stream.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejected_event_is_skipped(self, caplog):
        added = []

        def add_event(actor, timestamp, data):
            if actor == "user1":
                raise SkyError("Event could not be serialized")
            added.append(actor)

        stream = Mock()
        stream.add_event = Mock(side_effect=add_event)
        stream.__len__ = Mock(side_effect=lambda: len(added))
        stream.flush = AsyncMock(return_value=2)

        result = await SkyLoader(mock_table(stream)).load(make_batch(3))

        assert result == 2
        assert "[L2] Unable to add event" in caplog.text

    @pytest.mark.asyncio
    async def test_failed_flush_raises_delivery_error(self):
        stream = Mock()
        stream.__len__ = Mock(return_value=1)
        stream.flush = AsyncMock(side_effect=SkyError("Sky returned 500"))

        with pytest.raises(DeliveryError) as exc_info:
            await SkyLoader(mock_table(stream)).load(make_batch(1))

        assert exc_info.value.context["table_name"] == "gharchive"
        assert exc_info.value.context["events"] == 1

    @pytest.mark.asyncio
    async def test_single_inserts(self):
        table = Mock()
        table.name = "gharchive"
        table.add_event = AsyncMock(side_effect=[None, SkyError("Sky returned 400"), None])

        result = await SkyLoader(table, use_stream=False).load(make_batch(3))

        assert result == 2
        assert table.add_event.await_count == 3
