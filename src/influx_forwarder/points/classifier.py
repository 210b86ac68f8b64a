"""Split point fields into fields and tags, with type coercion."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .types import CoercionType, FieldValue, TagList

if TYPE_CHECKING:
    from ..config import PointConfig


TAGS_FIELD = "tags"

_TRUE_STRINGS = {"true", "t", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "f", "no", "n", "0"}


@dataclass(frozen=True, slots=True)
class CoercionResult:
    """Outcome of converting one value. On failure value is the original."""
    value: FieldValue
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class Classification:
    """Fields and tags of a classified point, plus any coercion errors."""
    fields: dict[str, FieldValue] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


def coerce(value: FieldValue, value_type: CoercionType | str) -> CoercionResult:
    """
    Convert a field value to the requested scalar type.

    Never raises; a failed conversion returns the original value with an error.
    """
    try:
        value_type = CoercionType(value_type)
    except ValueError:
        return CoercionResult(value, f"Don't know how to convert to {value_type}")

    try:
        if value_type is CoercionType.INTEGER:
            return CoercionResult(_to_int(value))
        if value_type is CoercionType.FLOAT:
            if isinstance(value, (TagList, type(None))):
                raise TypeError(f"cannot convert {type(value).__name__} to float")
            return CoercionResult(float(value))
        if value_type is CoercionType.BOOLEAN:
            return CoercionResult(_to_bool(value))
        return CoercionResult(_to_str(value))
    except (TypeError, ValueError, OverflowError) as e:
        return CoercionResult(value, f"Cannot convert {value!r} to {value_type.value}: {e}")


def _to_int(value: FieldValue) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return int(float(text))
    raise TypeError(f"cannot convert {type(value).__name__} to integer")


def _to_bool(value: FieldValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    raise TypeError(f"cannot convert {type(value).__name__} to boolean")


def _to_str(value: FieldValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


class FieldClassifier:
    """
    Applies exclusion, coercion, tag extraction and empty-value pruning.

    The steps always run in that order: an excluded field is never coerced,
    and a field sent as a tag is coerced under its field name before it moves.
    Classifying an already classified pair again changes nothing.
    """

    def __init__(self, config: PointConfig, logger: logging.Logger | None = None) -> None:
        self.exclude_fields = list(config.exclude_fields)
        self.send_as_tags = list(config.send_as_tags)
        self.coerce_values = dict(config.coerce_values)
        self.type_prefixes = {
            value_type: tuple(prefixes)
            for value_type, prefixes in config.data_points_type_prefixes.items()
        }
        self.logger = logger or logging.getLogger(__name__)

    def classify(
        self,
        fields: dict[str, FieldValue],
        tags: dict[str, str] | None = None,
    ) -> Classification:
        result = Classification(fields=dict(fields), tags=dict(tags or {}))

        for name in self.exclude_fields:
            result.fields.pop(name, None)

        self._coerce(result)
        self._extract_tags(result)

        result.fields = {k: v for k, v in result.fields.items() if not _is_empty(v)}
        result.tags = {k: v for k, v in result.tags.items() if not _is_empty(v)}
        return result

    def target_type(self, name: str) -> str | None:
        """Coercion type for a field; an explicit rule beats a prefix match."""
        explicit = self.coerce_values.get(name)
        if explicit is not None:
            return explicit
        for value_type, prefixes in self.type_prefixes.items():
            if name.startswith(prefixes):
                return value_type
        return None

    def _coerce(self, result: Classification) -> None:
        for name, value in result.fields.items():
            value_type = self.target_type(name)
            if value_type is None:
                continue

            self.logger.debug(
                f"Converting column {name} to type {value_type}: Current value: {value!r}"
            )
            coerced = coerce(value, value_type)
            if coerced.ok:
                result.fields[name] = coerced.value
            else:
                self.logger.error(f"Coercion failed for column {name}: {coerced.error}")
                result.errors.append(coerced.error)

    def _extract_tags(self, result: Classification) -> None:
        for name in self.send_as_tags:
            if name in result.fields:
                result.tags[name] = _to_str(result.fields.pop(name))

        tag_list = result.fields.get(TAGS_FIELD)
        if isinstance(tag_list, TagList):
            del result.fields[TAGS_FIELD]
            for tag in tag_list.names:
                result.tags[tag] = "true"

        for name, value in result.fields.items():
            if isinstance(value, TagList):
                result.fields[name] = str(value)

        # A tag wins over a field of the same name
        for name in result.tags:
            result.fields.pop(name, None)


def _is_empty(value: FieldValue) -> bool:
    return value is None or value == ""
