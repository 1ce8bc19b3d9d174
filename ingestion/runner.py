"""
Import Runner - Orchestrates the hourly archive pipeline.

For every hour in the requested range the runner fetches the archive,
decodes and maps its records, sorts them into an HourBatch, and hands
the batch to the loader. Failures are contained at the level they occur:
- a malformed record is dropped
- an unreachable or corrupt archive skips the hour
- a batch Sky refuses is logged
Nothing short of a setup failure stops the run.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import asyncio
import logging

from core.config import ImportConfig
from core.exceptions import DeliveryError, ExtractionError
from ingestion.extractors.archive_extractor import ArchiveExtractor
from ingestion.extractors.decoders import RecordDecoder
from ingestion.loaders.sky_loader import SkyLoader
from ingestion.transformers.event_mapper import EventMapper, build_hour_batch
from schemas.events import HourBatch, NormalizedEvent

logger = logging.getLogger(__name__)


class ImportRunner:
    """
    Hourly import orchestrator.

    Two shapes are supported:
    - sequential: each batch is delivered before the next hour is fetched
    - pipelined: batches go through a bounded queue to a single delivery
      worker, so fetching overlaps with writing the previous hour

    With one producer and one consumer, batches reach Sky in the order
    the hours were requested in both shapes.
    """

    def __init__(self, extractor: ArchiveExtractor, loader: SkyLoader, config: ImportConfig):
        self.extractor = extractor
        self.loader = loader
        self.config = config
        self.stats: Dict[str, int] = {}
        self._reset_stats()

    def _reset_stats(self):
        self.stats = {
            "hours_requested": 0,
            "hours_imported": 0,
            "hours_failed": 0,
            "batches_failed": 0,
            "records_read": 0,
            "records_dropped": 0,
            "decode_errors": 0,
            "events_loaded": 0,
        }

    async def run(self, hours: Iterable[datetime]) -> Dict[str, Any]:
        """
        Import every hour in order.

        Returns:
            Dictionary with run statistics:
            - status: "success" or "partial_success"
            - hours_requested / hours_imported / hours_failed
            - batches_failed: batches Sky did not accept
            - records_read / records_dropped / decode_errors
            - events_loaded
        """
        self._reset_stats()

        if self.config.sequential:
            await self._run_sequential(hours)
        else:
            await self._run_pipelined(hours)

        failed = self.stats["hours_failed"] + self.stats["batches_failed"]
        result: Dict[str, Any] = {"status": "success" if failed == 0 else "partial_success"}
        result.update(self.stats)

        logger.info(
            f"Import completed: {result['status']} - "
            f"Hours: {self.stats['hours_imported']}/{self.stats['hours_requested']}, "
            f"Events: {self.stats['events_loaded']}, "
            f"Dropped: {self.stats['records_dropped']}, "
            f"Decode errors: {self.stats['decode_errors']}"
        )
        return result

    async def _run_sequential(self, hours: Iterable[datetime]):
        for hour in hours:
            batch = await self.import_hour(hour)
            if batch is not None:
                await self._deliver(batch)

    async def _run_pipelined(self, hours: Iterable[datetime]):
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.config.queue_size)
        worker = asyncio.create_task(self._consume(queue))

        try:
            for hour in hours:
                batch = await self.import_hour(hour)
                if batch is not None:
                    await queue.put(batch)
            # Sentinel: no more batches
            await queue.put(None)
            await worker
        finally:
            if not worker.done():
                worker.cancel()

    async def _consume(self, queue: asyncio.Queue):
        while True:
            batch = await queue.get()
            try:
                if batch is None:
                    return
                await self._deliver(batch)
            finally:
                queue.task_done()

    async def import_hour(self, hour: datetime) -> Optional[HourBatch]:
        """
        Fetch, decode, map and sort one hour.

        Returns:
            The hour's batch, or None if the archive could not be read
        """
        self.stats["hours_requested"] += 1
        url = self.extractor.url_for(hour)
        decoder = RecordDecoder(mode=self.config.decode_mode, url=url)
        mapper = EventMapper()
        events: List[NormalizedEvent] = []

        try:
            async with self.extractor.open(hour) as blocks:
                async for line_number, record in decoder.decode(blocks):
                    event = mapper.map(record, line_number)
                    if event is not None:
                        events.append(event)

        except ExtractionError as e:
            self.stats["hours_failed"] += 1
            logger.error(
                f"Invalid file: {e.message} ({url})",
                extra={"error_context": e.to_dict()}
            )
            return None

        batch = build_hour_batch(
            hour,
            url,
            events,
            records_read=decoder.records_read,
            records_dropped=mapper.dropped,
            decode_errors=len(decoder.errors)
        )

        self.stats["hours_imported"] += 1
        self.stats["records_read"] += batch.records_read
        self.stats["records_dropped"] += batch.records_dropped
        self.stats["decode_errors"] += batch.decode_errors

        logger.info(
            f"Decoded {batch.records_read} records for {hour.isoformat()}: "
            f"{len(batch.events)} events, {batch.records_dropped} dropped, "
            f"{batch.decode_errors} malformed"
        )
        return batch

    async def _deliver(self, batch: HourBatch):
        try:
            self.stats["events_loaded"] += await self.loader.load(batch)
        except DeliveryError as e:
            self.stats["batches_failed"] += 1
            logger.error(
                f"Delivery failed for {batch.hour.isoformat()}: {e.message}",
                extra={"error_context": e.to_dict()}
            )
        except Exception:
            # Keep the delivery worker alive for the remaining hours
            self.stats["batches_failed"] += 1
            logger.exception(f"Unexpected error delivering {batch.hour.isoformat()}")
