"""
Pydantic schemas for normalized archive events and hour batches
"""

from pydantic import BaseModel, Field, validator
from typing import Any, Dict, List
from datetime import datetime


ATTRIBUTE_NAMES = ("action", "language", "forks", "watchers", "stargazers", "size")


class NormalizedEvent(BaseModel):
    """
    One archive record reduced to what is written to Sky.

    Ensures:
    - The actor is a non-empty string
    - The timestamp is timezone-aware
    - Only known attribute names are present
    """

    actor: str = Field(..., min_length=1)
    timestamp: datetime
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @validator("timestamp")
    def require_timezone(cls, v):
        if v.tzinfo is None:
            raise ValueError("timestamp must carry a UTC offset")
        return v

    @validator("attributes")
    def known_attributes(cls, v):
        unknown = set(v) - set(ATTRIBUTE_NAMES)
        if unknown:
            raise ValueError(f"unknown attributes: {sorted(unknown)}")
        return v


class HourBatch(BaseModel):
    """Events from one hourly archive, sorted by timestamp"""

    hour: datetime
    url: str
    events: List[NormalizedEvent] = Field(default_factory=list)

    # Decode statistics
    records_read: int = 0
    records_dropped: int = 0
    decode_errors: int = 0

    def __len__(self) -> int:
        return len(self.events)
