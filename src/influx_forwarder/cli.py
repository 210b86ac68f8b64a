#!/usr/bin/env python3
"""
CLI tool for forwarding JSON-lines records to InfluxDB.

Usage:
    influx-forwarder forward --config forwarder.yaml --input events.jsonl
    influx-forwarder encode --config forwarder.yaml < events.jsonl
    tail -f events.jsonl | python -m influx_forwarder.cli forward -c forwarder.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import IO, Iterator

import yaml

from .config import Config
from .errors import ConfigError
from .output import InfluxOutput
from .records import Record


logger = logging.getLogger(__name__)


def read_records(stream: IO[str], timestamp_field: str) -> Iterator[Record]:
    """Yield one record per non-empty JSON line; bad lines are logged and skipped."""
    for lineno, line in enumerate(stream, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping line {lineno}: invalid JSON ({e})")
            continue
        if not isinstance(data, dict):
            logger.warning(f"Skipping line {lineno}: expected a JSON object")
            continue
        try:
            yield Record.from_dict(data, timestamp_field=timestamp_field)
        except ValueError as e:
            logger.warning(f"Skipping line {lineno}: bad timestamp ({e})")


async def cmd_forward(args, config: Config) -> int:
    """Forward records to the configured endpoint."""
    stream = open(args.input, "r", encoding="utf-8") if args.input else sys.stdin
    try:
        async with InfluxOutput(config) as output:
            for record in read_records(stream, args.timestamp_field):
                await output.receive(record)
            stats = output.stats
    finally:
        if args.input:
            stream.close()

    print(json.dumps(stats, indent=2, default=str), file=sys.stderr)
    return 0


async def cmd_encode(args, config: Config) -> int:
    """Print the payload each destination would receive, without sending."""
    output = InfluxOutput(config)
    batches: dict[str, list] = {}

    stream = open(args.input, "r", encoding="utf-8") if args.input else sys.stdin
    try:
        for record in read_records(stream, args.timestamp_field):
            try:
                point = output.to_point(record)
            except Exception as e:
                logger.error(f"Failed to process record: {e}")
                continue
            if point.fields:
                batches.setdefault(point.database_key, []).append(point)
    finally:
        if args.input:
            stream.close()

    for database_key, points in batches.items():
        print(f"# {database_key}")
        print(output.encoder.encode(points, database_key))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Forward structured records to an InfluxDB write endpoint",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("forward", "Buffer records and write them to the endpoint"),
        ("encode", "Print encoded payloads instead of sending them"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("-c", "--config", required=True, help="YAML or JSON config file")
        sub.add_argument("-i", "--input", help="JSON-lines input file (default: stdin)")
        sub.add_argument(
            "--timestamp-field",
            default="@timestamp",
            help="Record field holding the event time (default: @timestamp)",
        )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if args.config.endswith(".json"):
            config = Config.from_json(args.config)
        else:
            config = Config.from_yaml(args.config)
        config.validate()
    except (OSError, TypeError, ValueError, yaml.YAMLError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    commands = {
        "forward": cmd_forward,
        "encode": cmd_encode,
    }
    return asyncio.run(commands[args.command](args, config))


if __name__ == "__main__":
    sys.exit(main())
