"""Tests for records, templates and point building."""

import logging
from datetime import datetime, timezone

import pytest

from influx_forwarder.config import PointConfig
from influx_forwarder.points.builder import PointBuilder
from influx_forwarder.points.types import Precision, TagList, timestamp_at_precision
from influx_forwarder.records import Record, render


class TestTimestampAtPrecision:
    @pytest.mark.parametrize(
        "precision, expected",
        [
            (Precision.HOURS, 2),
            (Precision.MINUTES, 120),
            (Precision.SECONDS, 7200),
            (Precision.MILLISECONDS, 7_200_500),
            (Precision.MICROSECONDS, 7_200_500_000),
            (Precision.NANOSECONDS, 7_200_500_000_000),
        ],
    )
    def test_conversion_truncates(self, precision, expected):
        assert timestamp_at_precision(7200.5, precision) == expected

    def test_accepts_datetime(self):
        ts = datetime(2015, 1, 1, tzinfo=timezone.utc)
        assert timestamp_at_precision(ts, Precision.SECONDS) == 1420070400

    def test_datetime_nanoseconds_exact(self):
        ts = datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)
        assert timestamp_at_precision(ts, Precision.NANOSECONDS) == 1_704_067_200_123_456_000
        assert timestamp_at_precision(ts, Precision.MINUTES) == 28_401_120


class TestRender:
    def test_simple_reference(self):
        record = Record({"host": "web-1"})
        assert render("cpu.%{host}", record) == "cpu.web-1"

    def test_nested_reference(self):
        record = Record({"metadata": {"database": "db1"}})
        assert render("%{[metadata][database]}", record) == "db1"

    def test_missing_reference_left_as_written(self):
        assert render("%{nope}", Record({})) == "%{nope}"

    def test_list_joined_with_commas(self):
        assert render("%{tags}", Record({"tags": ["a", "b"]})) == "a,b"

    def test_non_string_passes_through(self):
        assert render(42, Record({})) == 42


class TestRecord:
    def test_from_dict_iso_timestamp(self):
        record = Record.from_dict({"@timestamp": "2015-01-01T00:00:00Z", "value": 1})
        assert record.epoch_seconds == 1420070400.0

    def test_from_dict_epoch_timestamp(self):
        record = Record.from_dict({"@timestamp": 12.5})
        assert record.epoch_seconds == 12.5


def _builder(**options) -> PointBuilder:
    return PointBuilder(
        PointConfig(**options),
        database="statistics",
        precision=Precision.MILLISECONDS,
    )


class TestPointBuilder:
    def test_static_data_points_rendered(self):
        builder = _builder(data_points={"%{name}": "%{value}", "constant": 5})
        point = builder.build(Record({"name": "load", "value": "0.5"}, timestamp=2.0))

        assert point.measurement == "logstash"
        assert point.database_key == "statistics"
        assert point.fields == {"load": "0.5", "constant": 5}
        assert point.timestamp == 2000

    def test_event_fields_as_data_points(self):
        builder = _builder(use_event_fields_for_data_points=True, measurement="%{kind}")
        point = builder.build(Record({"kind": "m1", "foo": 1}, timestamp=1.0))

        assert point.measurement == "m1"
        assert point.fields == {"kind": "m1", "foo": 1}

    def test_database_template(self):
        builder = PointBuilder(
            PointConfig(use_event_fields_for_data_points=True),
            database="%{bar}",
            precision=Precision.SECONDS,
        )
        point = builder.build(Record({"bar": "db1", "foo": "1"}))
        assert point.database_key == "db1"

    def test_string_list_becomes_tag_list(self):
        builder = _builder(use_event_fields_for_data_points=True)
        point = builder.build(Record({"tags": ["tagged", "prod"], "foo": "1"}))
        assert point.fields["tags"] == TagList(("tagged", "prod"))

    def test_time_override_allowed(self):
        builder = _builder(use_event_fields_for_data_points=True, allow_time_override=True)
        point = builder.build(Record({"foo": "1", "time": "3"}, timestamp=10.0))

        assert point.timestamp == "3"
        assert "time" not in point.fields

    def test_time_override_refused(self, caplog):
        builder = _builder(use_event_fields_for_data_points=True)
        with caplog.at_level(logging.WARNING):
            point = builder.build(Record({"foo": "1", "time": "3"}, timestamp=10.0))

        assert point.timestamp == 10000
        assert "time" not in point.fields
        assert "allow_time_override" in caplog.text

    @pytest.mark.parametrize("override", [None, ""])
    def test_empty_time_override_keeps_event_timestamp(self, override):
        builder = _builder(use_event_fields_for_data_points=True, allow_time_override=True)
        point = builder.build(Record({"foo": "1", "time": override}, timestamp=10.0))

        assert point.timestamp == 10000
        assert "time" not in point.fields
