"""Build points from records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..records import Record, Renderer, render
from .types import FieldValue, Point, Precision, TagList, timestamp_at_precision

if TYPE_CHECKING:
    from ..config import PointConfig


TIME_FIELD = "time"


class PointBuilder:
    """
    Turns one record into an unclassified Point.

    The measurement and database name are rendered from their templates;
    the candidate fields come either from the whole record or from the
    configured data_points templates.
    """

    def __init__(
        self,
        config: PointConfig,
        database: str,
        precision: Precision,
        renderer: Renderer = render,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.database = database
        self.precision = precision
        self.renderer = renderer
        self.logger = logger or logging.getLogger(__name__)

    def build(self, record: Record) -> Point:
        timestamp: int | str = timestamp_at_precision(record.timestamp, self.precision)
        fields = self._candidate_fields(record)

        if TIME_FIELD in fields:
            override = fields.pop(TIME_FIELD)
            if override is None or override == "":
                self.logger.debug("Empty time override ignored. Using event timestamp")
            elif self.config.allow_time_override:
                timestamp = override
            else:
                self.logger.warning(
                    "Cannot override value of time without 'allow_time_override'. "
                    "Using event timestamp"
                )

        return Point(
            measurement=str(self.renderer(self.config.measurement, record)),
            database_key=str(self.renderer(self.database, record)),
            timestamp=timestamp,
            precision=self.precision,
            fields=fields,
        )

    def _candidate_fields(self, record: Record) -> dict[str, FieldValue]:
        if self.config.use_event_fields_for_data_points:
            items = record.fields.items()
        else:
            items = (
                (str(self.renderer(k, record)), self.renderer(v, record))
                for k, v in self.config.data_points.items()
            )
        return {key: _to_field_value(value) for key, value in items}


def _to_field_value(value: Any) -> FieldValue:
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return TagList(tuple(value))
    if value is None or isinstance(value, (str, int, float, bool, TagList)):
        return value
    return str(value)
