"""
Deliver hour batches into a Sky table
"""

import logging

from core.exceptions import DeliveryError, SkyError
from core.sky_client import SkyTable
from schemas.events import HourBatch

logger = logging.getLogger(__name__)


class SkyLoader:
    """
    Write normalized events to Sky.

    By default each batch is sent as one stream session. With
    use_stream disabled every event is inserted with its own request.
    Events that Sky rejects individually are logged and skipped.
    """

    def __init__(self, table: SkyTable, use_stream: bool = True):
        self.table = table
        self.use_stream = use_stream

    async def load(self, batch: HourBatch) -> int:
        """
        Deliver one batch.

        Returns:
            Number of events accepted

        Raises:
            DeliveryError: If the batch as a whole could not be written
        """
        if not batch.events:
            return 0

        try:
            if self.use_stream:
                loaded = await self._stream(batch)
            else:
                loaded = await self._insert(batch)
        except SkyError as e:
            raise DeliveryError(
                "Failed to deliver hour batch",
                context={
                    "table_name": self.table.name,
                    "hour": batch.hour.isoformat(),
                    "events": len(batch.events)
                },
                original_exception=e
            )

        logger.info(f"Loaded {loaded} events for {batch.hour.isoformat()} into {self.table.name}")
        return loaded

    async def _stream(self, batch: HourBatch) -> int:
        async with self.table.stream() as stream:
            for i, event in enumerate(batch.events, 1):
                try:
                    stream.add_event(event.actor, event.timestamp, event.attributes)
                except SkyError as e:
                    logger.warning(f"[L{i}] Unable to add event: {e.message}")
            loaded = len(stream)
        return loaded

    async def _insert(self, batch: HourBatch) -> int:
        loaded = 0
        for i, event in enumerate(batch.events, 1):
            try:
                await self.table.add_event(event.actor, event.timestamp, event.attributes)
                loaded += 1
            except SkyError as e:
                logger.warning(f"[L{i}] Unable to add event: {e.message}")
        return loaded
