"""Tests for field classification and coercion."""

import pytest

from influx_forwarder.config import PointConfig
from influx_forwarder.points.classifier import FieldClassifier, coerce
from influx_forwarder.points.types import CoercionType, TagList


def _classifier(**options) -> FieldClassifier:
    options.setdefault("exclude_fields", [])
    options.setdefault("send_as_tags", [])
    return FieldClassifier(PointConfig(**options))


class TestCoerce:
    @pytest.mark.parametrize(
        "value, value_type, expected",
        [
            ("1", CoercionType.INTEGER, 1),
            ("2.7", CoercionType.INTEGER, 2),
            (3.9, CoercionType.INTEGER, 3),
            ("2.0", CoercionType.FLOAT, 2.0),
            (4, CoercionType.FLOAT, 4.0),
            ("TRUE", CoercionType.BOOLEAN, True),
            ("no", CoercionType.BOOLEAN, False),
            (12, CoercionType.STRING, "12"),
            (False, CoercionType.STRING, "false"),
        ],
    )
    def test_conversions(self, value, value_type, expected):
        result = coerce(value, value_type)
        assert result.ok
        assert result.value == expected
        assert type(result.value) is type(expected)

    def test_failure_keeps_value(self):
        result = coerce("abc", "integer")
        assert not result.ok
        assert result.value == "abc"
        assert "abc" in result.error

    def test_unknown_type(self):
        result = coerce("1", "decimal")
        assert not result.ok
        assert result.value == "1"

    def test_tag_list_cannot_become_float(self):
        tags = TagList(("a",))
        result = coerce(tags, "float")
        assert not result.ok
        assert result.value is tags


class TestFieldClassifier:
    def test_exclusion(self):
        result = _classifier(exclude_fields=["@version", "type"]).classify(
            {"@version": "1", "type": "generator", "foo": "1"}
        )
        assert result.fields == {"foo": "1"}

    def test_excluded_field_is_never_coerced(self):
        classifier = _classifier(exclude_fields=["foo"], coerce_values={"foo": "integer"})
        result = classifier.classify({"foo": "not a number", "bar": "1"})

        assert result.fields == {"bar": "1"}
        assert result.errors == []

    def test_explicit_coercion(self):
        classifier = _classifier(coerce_values={"foo": "integer", "bar": "float"})
        result = classifier.classify({"foo": "1", "bar": "2.0", "baz": "x"})
        assert result.fields == {"foo": 1, "bar": 2.0, "baz": "x"}

    def test_prefix_coercion(self):
        classifier = _classifier(
            data_points_type_prefixes={"integer": ["count_"], "float": ["ratio_"]}
        )
        result = classifier.classify({"count_hits": "7", "ratio_ok": "0.5", "name": "x"})
        assert result.fields == {"count_hits": 7, "ratio_ok": 0.5, "name": "x"}

    def test_explicit_rule_overrides_prefix(self):
        classifier = _classifier(
            data_points_type_prefixes={"integer": ["count_"]},
            coerce_values={"count_label": "string"},
        )
        result = classifier.classify({"count_label": "007", "count_n": "3"})
        assert result.fields == {"count_label": "007", "count_n": 3}

    def test_failed_coercion_reported_and_value_kept(self):
        classifier = _classifier(coerce_values={"foo": "integer", "bar": "float"})
        result = classifier.classify({"foo": "abc", "bar": "1.5"})

        assert result.fields == {"foo": "abc", "bar": 1.5}
        assert len(result.errors) == 1

    def test_send_as_tags(self):
        result = _classifier(send_as_tags=["bar", "baz", "qux"]).classify(
            {"foo": "1", "bar": "2", "baz": "3"}
        )
        assert result.fields == {"foo": "1"}
        assert result.tags == {"bar": "2", "baz": "3"}

    def test_tag_is_coerced_before_the_move(self):
        classifier = _classifier(send_as_tags=["bar"], coerce_values={"bar": "integer"})
        result = classifier.classify({"foo": 1, "bar": "2.0"})
        assert result.tags == {"bar": "2"}

    def test_tag_list(self):
        result = _classifier().classify({"foo": "1", "tags": TagList(("tagged", "prod"))})
        assert result.fields == {"foo": "1"}
        assert result.tags == {"tagged": "true", "prod": "true"}

    def test_other_tag_lists_are_flattened(self):
        result = _classifier().classify({"roles": TagList(("a", "b"))})
        assert result.fields == {"roles": "a,b"}

    def test_empty_values_pruned(self):
        result = _classifier(send_as_tags=["region"]).classify(
            {"foo": "1", "empty": "", "missing": None, "region": ""}
        )
        assert result.fields == {"foo": "1"}
        assert result.tags == {}

    def test_fields_and_tags_disjoint(self):
        result = _classifier().classify({"prod": 1, "tags": TagList(("prod",))})
        assert result.tags == {"prod": "true"}
        assert "prod" not in result.fields

    def test_classification_is_idempotent(self):
        classifier = _classifier(
            exclude_fields=["type"],
            send_as_tags=["host"],
            coerce_values={"foo": "integer", "bad": "float"},
            data_points_type_prefixes={"float": ["ratio_"]},
        )
        first = classifier.classify(
            {
                "type": "x",
                "host": "web-1",
                "foo": "1",
                "bad": "nope",
                "ratio_a": "0.25",
                "empty": "",
                "tags": TagList(("t1",)),
            }
        )
        second = classifier.classify(first.fields, first.tags)

        assert second.fields == first.fields
        assert second.tags == first.tags
