"""Line protocol encoder.

    measurement[,tag=value...] field=value[,field=value...] timestamp

The measurement escapes space and comma. Tag keys, tag values and field
keys also escape '='. String field values are double quoted with inner
quotes escaped; backslashes are written as they are.
"""

from __future__ import annotations

import logging
import math

from ..errors import EncodingError
from ..points.types import FieldValue, Point
from .base import PointEncoder


_MEASUREMENT_ESCAPES = str.maketrans({" ": "\\ ", ",": "\\,"})
_KEY_ESCAPES = str.maketrans({" ": "\\ ", ",": "\\,", "=": "\\="})


def escape_measurement(name: str) -> str:
    return name.translate(_MEASUREMENT_ESCAPES)


def escape_key(key: str) -> str:
    """Escape a tag key, tag value or field key."""
    return key.translate(_KEY_ESCAPES)


def format_field_value(value: FieldValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise EncodingError(f"Cannot write non-finite float {value!r}")
        return repr(value)
    return '"' + str(value).replace('"', '\\"') + '"'


def point_to_line(point: Point) -> str:
    if not point.fields:
        raise EncodingError(f"Point {point.measurement!r} has no fields")

    head = escape_measurement(point.measurement)
    if point.tags:
        head += "," + ",".join(
            f"{escape_key(k)}={escape_key(str(v))}" for k, v in point.tags.items()
        )

    fields = ",".join(
        f"{escape_key(k)}={format_field_value(v)}" for k, v in point.fields.items()
    )
    return f"{head} {fields} {point.timestamp}"


class LineProtocolEncoder(PointEncoder):
    """
    One line per point, joined with newlines, in arrival order.

    A point that cannot be written (no fields, non-finite float) is
    logged and left out; the rest of the batch is still encoded.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def encode(self, points: list[Point], database_key: str | None = None) -> str:
        lines = []
        for point in points:
            try:
                lines.append(point_to_line(point))
            except EncodingError as e:
                self.logger.warning(f"Skipping point for {database_key!r}: {e}")
        return "\n".join(lines)
