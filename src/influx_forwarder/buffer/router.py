"""Destination routing."""

from __future__ import annotations

from ..points.types import Point


def route(point: Point) -> str:
    """Destination key for a point: its already rendered database name."""
    return point.database_key
