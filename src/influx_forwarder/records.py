"""Input records and %{field} template rendering."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping


# %{name} or %{[outer][inner]}
_REFERENCE = re.compile(r"%\{([^}]+)\}")


@dataclass(frozen=True)
class Record:
    """
    A structured event received from the upstream source.

    timestamp is epoch seconds (with fraction) or an aware datetime.
    """
    fields: Mapping[str, Any] = field(default_factory=dict)
    timestamp: float | datetime = field(default_factory=time.time)

    @property
    def epoch_seconds(self) -> float:
        if isinstance(self.timestamp, datetime):
            return self.timestamp.timestamp()
        return float(self.timestamp)

    def get(self, reference: str) -> Any:
        """Look up a field by name or by [outer][inner] path."""
        if reference.startswith("["):
            value: Any = self.fields
            for segment in re.findall(r"\[([^\]]+)\]", reference):
                if not isinstance(value, Mapping):
                    return None
                value = value.get(segment)
            return value
        return self.fields.get(reference)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], timestamp_field: str = "@timestamp") -> Record:
        """Build a record from a decoded event, reading the timestamp from timestamp_field."""
        raw = data.get(timestamp_field)
        if raw is None:
            return cls(fields=dict(data))
        return cls(fields=dict(data), timestamp=_parse_timestamp(raw))


def _parse_timestamp(raw: Any) -> float | datetime:
    if isinstance(raw, (int, float)):
        return float(raw)
    text = str(raw)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


Renderer = Callable[[Any, Record], Any]


def render(template: Any, record: Record) -> Any:
    """
    Render a %{field} template against a record.

    Non-string templates pass through unchanged. A reference to a missing
    field is left as written; list values are joined with commas.
    """
    if not isinstance(template, str) or "%{" not in template:
        return template

    def substitute(match: re.Match) -> str:
        value = record.get(match.group(1))
        if value is None:
            return match.group(0)
        if isinstance(value, (list, tuple)):
            return ",".join(str(v) for v in value)
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    return _REFERENCE.sub(substitute, template)
