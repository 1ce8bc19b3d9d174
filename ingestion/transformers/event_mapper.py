"""
Map raw archive records into normalized Sky events
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from ingestion.hours import parse_rfc3339
from schemas.events import HourBatch, NormalizedEvent

logger = logging.getLogger(__name__)

# Repository sub-fields copied verbatim into event attributes
REPOSITORY_FIELDS = ("language", "forks", "watchers", "stargazers", "size")


class EventMapper:
    """
    Extract the fixed event projection from archive records.

    Records without a usable timestamp or actor are dropped. Dropping is
    an expected outcome and is only reported at debug level.

    Attributes:
        dropped: Number of records dropped so far
    """

    def __init__(self):
        self.dropped = 0

    def map(self, record: Dict[str, Any], line_number: int = 0) -> Optional[NormalizedEvent]:
        """
        Map one raw record.

        Args:
            record: Decoded archive record
            line_number: Record number within the hour, for diagnostics

        Returns:
            NormalizedEvent, or None when the record was dropped
        """
        timestamp_str = record.get("created_at")
        if not isinstance(timestamp_str, str):
            return self._drop(line_number, "Timestamp required.")

        try:
            timestamp = parse_rfc3339(timestamp_str)
        except ValueError as e:
            return self._drop(line_number, f"Invalid timestamp: {timestamp_str} ({e})")

        actor = self._actor(record.get("actor"))
        if not actor:
            return self._drop(line_number, "Actor required")

        attributes: Dict[str, Any] = {}
        if "type" in record:
            attributes["action"] = record["type"]

        repository = record.get("repository")
        if isinstance(repository, dict):
            for field in REPOSITORY_FIELDS:
                if field in repository:
                    attributes[field] = repository[field]

        return NormalizedEvent(actor=actor, timestamp=timestamp, attributes=attributes)

    @staticmethod
    def _actor(value: Any) -> Optional[str]:
        """Accept a flat username, or the login of a nested actor object"""
        if isinstance(value, dict):
            value = value.get("login")
        if isinstance(value, str) and value:
            return value
        return None

    def _drop(self, line_number: int, reason: str) -> None:
        self.dropped += 1
        logger.debug(f"[L{line_number}] {reason}")
        return None


def build_hour_batch(
    hour: datetime,
    url: str,
    events: List[NormalizedEvent],
    records_read: int = 0,
    records_dropped: int = 0,
    decode_errors: int = 0
) -> HourBatch:
    """
    Collect an hour's events into a batch ordered by timestamp.

    Sky favours appends in time order, so each hour is sorted before
    delivery. The sort is stable: events sharing a timestamp keep their
    archive order. Hours are not reordered relative to each other.
    """
    return HourBatch(
        hour=hour,
        url=url,
        events=sorted(events, key=lambda event: event.timestamp),
        records_read=records_read,
        records_dropped=records_dropped,
        decode_errors=decode_errors
    )
