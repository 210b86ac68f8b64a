"""Point and field value types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from fractions import Fraction
from typing import Union


class Precision(str, Enum):
    """Timestamp precision accepted by the write endpoint."""
    NANOSECONDS = "n"
    MICROSECONDS = "u"
    MILLISECONDS = "ms"
    SECONDS = "s"
    MINUTES = "m"
    HOURS = "h"

    @property
    def multiplier(self) -> float:
        """Factor applied to epoch seconds to reach this precision."""
        return _MULTIPLIERS[self]


_MULTIPLIERS = {
    Precision.NANOSECONDS: 1_000_000_000,
    Precision.MICROSECONDS: 1_000_000,
    Precision.MILLISECONDS: 1000,
    Precision.SECONDS: 1,
    Precision.MINUTES: 1.0 / 60,
    Precision.HOURS: 1.0 / 3600,
}

# Exact units per second, for datetime inputs
_RATIOS = {
    Precision.NANOSECONDS: Fraction(1_000_000_000),
    Precision.MICROSECONDS: Fraction(1_000_000),
    Precision.MILLISECONDS: Fraction(1000),
    Precision.SECONDS: Fraction(1),
    Precision.MINUTES: Fraction(1, 60),
    Precision.HOURS: Fraction(1, 3600),
}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class CoercionType(str, Enum):
    """Scalar types a field value can be coerced to."""
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    BOOLEAN = "boolean"


@dataclass(frozen=True, slots=True)
class TagList:
    """A list of bare tag names carried in a record (e.g. ["tagged", "prod"])."""
    names: tuple[str, ...]

    def __str__(self) -> str:
        return ",".join(self.names)


Scalar = Union[str, int, float, bool]
FieldValue = Union[Scalar, TagList, None]


@dataclass(slots=True)
class Point:
    """
    One metric observation ready for the wire.

    fields and tags never share a key once classified.
    """
    measurement: str
    database_key: str
    timestamp: int | str
    precision: Precision
    fields: dict[str, FieldValue] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)

    def copy(self) -> Point:
        """Shallow copy with independent field and tag maps."""
        return Point(
            measurement=self.measurement,
            database_key=self.database_key,
            timestamp=self.timestamp,
            precision=self.precision,
            fields=dict(self.fields),
            tags=dict(self.tags),
        )


def timestamp_at_precision(timestamp: float | datetime, precision: Precision) -> int:
    """Convert an epoch timestamp (seconds with fraction) to an integer in `precision`."""
    if isinstance(timestamp, datetime):
        # Integer arithmetic keeps sub-microsecond units exact
        if timestamp.tzinfo is None:
            timestamp = timestamp.astimezone()
        delta = timestamp - _EPOCH
        micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
        return int(Fraction(micros, 1_000_000) * _RATIOS[precision])
    return int(float(timestamp) * precision.multiplier)
