"""
Hour range expansion and RFC 3339 timestamp parsing
"""

from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional, Sequence
import re

from core.exceptions import InvalidRangeError

ONE_HOUR = timedelta(hours=1)

_RFC3339 = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))$"
)


def parse_rfc3339(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp into a timezone-aware datetime.

    Fractional seconds beyond microsecond precision are truncated.

    Raises:
        ValueError: If the value is not a valid RFC 3339 timestamp
    """
    match = _RFC3339.match(value)
    if match is None:
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")

    year, month, day, hour, minute, second = (int(g) for g in match.group(1, 2, 3, 4, 5, 6))
    fraction = match.group(7) or ""
    microsecond = int(fraction[:6].ljust(6, "0")) if fraction else 0

    if match.group(8):
        tz = timezone.utc
    else:
        offset = timedelta(hours=int(match.group(10)), minutes=int(match.group(11)))
        if match.group(9) == "-":
            offset = -offset
        tz = timezone(offset)

    return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tz)


class HourRange:
    """
    Hourly instants from start through end, inclusive.

    Iteration is lazy and can be repeated. The number of hours is
    floor_hours(end - start) + 1, each one hour after the previous,
    starting exactly at start.
    """

    def __init__(self, start: datetime, end: Optional[datetime] = None):
        end = start if end is None else end
        if end < start:
            raise InvalidRangeError(
                "End date is before start date",
                context={"start": start.isoformat(), "end": end.isoformat()}
            )
        self.start = start
        self.end = end

    def __len__(self) -> int:
        return (self.end - self.start) // ONE_HOUR + 1

    def __iter__(self) -> Iterator[datetime]:
        for i in range(len(self)):
            yield self.start + i * ONE_HOUR

    def __repr__(self) -> str:
        return f"HourRange({self.start.isoformat()}, {self.end.isoformat()}, hours={len(self)})"


def expand_hours(start: datetime, end: Optional[datetime] = None) -> HourRange:
    return HourRange(start, end)


def parse_range(args: Sequence[str]) -> HourRange:
    """
    Build an hour range from START_DATE and optional END_DATE strings.

    Raises:
        InvalidRangeError: If no dates were given, a date does not parse,
            or the end precedes the start
    """
    if not args:
        raise InvalidRangeError("START_DATE is required")

    try:
        start = parse_rfc3339(args[0])
    except ValueError as e:
        raise InvalidRangeError(
            f"Invalid start date: {args[0]}",
            context={"value": args[0]},
            original_exception=e
        )

    end = None
    if len(args) > 1:
        try:
            end = parse_rfc3339(args[1])
        except ValueError as e:
            raise InvalidRangeError(
                f"Invalid end date: {args[1]}",
                context={"value": args[1]},
                original_exception=e
            )

    return HourRange(start, end)
