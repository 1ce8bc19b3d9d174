"""
Pydantic schemas for data validation.

Schemas:
    events: NormalizedEvent and HourBatch

Usage:
    from schemas.events import NormalizedEvent, HourBatch

Example:
    event = NormalizedEvent(
        actor="alice",
        timestamp=datetime(2013, 1, 1, tzinfo=timezone.utc),
        attributes={"action": "PushEvent", "forks": 3}
    )
"""

__all__ = [
    "NormalizedEvent",
    "HourBatch",
]
