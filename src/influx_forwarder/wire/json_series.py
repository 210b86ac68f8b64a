"""Legacy JSON series encoder.

Produces the pre-line-protocol batch body:

    [{"name": "cpu", "columns": ["value", "host", "time"], "points": [[0.64, "a", 1422568543702]]}]
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from ..errors import EncodingError
from ..points.types import FieldValue, Point, TagList
from .base import PointEncoder


TIME_COLUMN = "time"


def point_to_series(point: Point) -> dict[str, Any]:
    """
    One-point series object.

    The format has no tags, so tags follow the fields as ordinary columns,
    and the timestamp is the last column.
    """
    if not point.fields:
        raise EncodingError(f"Point {point.measurement!r} has no fields")

    columns = [*point.fields, *point.tags, TIME_COLUMN]
    values = [
        *(_json_value(v) for v in point.fields.values()),
        *point.tags.values(),
        point.timestamp,
    ]
    return {"name": point.measurement, "columns": columns, "points": [values]}


def _json_value(value: FieldValue) -> Any:
    if isinstance(value, TagList):
        return str(value)
    if isinstance(value, float) and not math.isfinite(value):
        raise EncodingError(f"Cannot write non-finite float {value!r}")
    return value


class JsonSeriesEncoder(PointEncoder):
    """
    Merges points into series objects by name.

    A point joins an earlier series only when its name and its column
    list (order included) match the first series seen under that name.
    Otherwise it becomes a separate series object.
    """

    content_type = "application/json"

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def encode(self, points: list[Point], database_key: str | None = None) -> str:
        collection = self.collect(points, database_key)
        if not collection:
            return ""
        return json.dumps(collection, default=str)

    def collect(self, points: list[Point], database_key: str | None = None) -> list[dict]:
        seen: dict[str, dict[str, Any]] = {}
        collection: list[dict[str, Any]] = []

        for point in points:
            try:
                series = point_to_series(point)
            except EncodingError as e:
                self.logger.warning(f"Skipping point for {database_key!r}: {e}")
                continue
            name = series["name"]
            existing = seen.get(name)

            if existing is None:
                seen[name] = series
                collection.append(series)
            elif existing["columns"] == series["columns"]:
                existing["points"].extend(series["points"])
            else:
                self.logger.warning(
                    f"Series {name!r} for {database_key!r} has been seen but columns are "
                    f"different or in a different order. Adding to batch but not under "
                    f"existing series. Existing columns: {existing['columns']}, "
                    f"point columns: {series['columns']}"
                )
                collection.append(series)

        return collection
