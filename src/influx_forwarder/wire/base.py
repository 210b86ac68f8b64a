"""Base encoder interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..points.types import Point


class PointEncoder(ABC):
    """
    Abstract base class for wire encoders.

    Encoders are pure: they turn one destination's batch into a request
    body and do no I/O.
    """

    # Content-Type header sent with the encoded body
    content_type: str = "text/plain; charset=utf-8"

    @abstractmethod
    def encode(self, points: list[Point], database_key: str | None = None) -> str:
        """
        Serialize a batch of points bound for one destination.

        Returns an empty string when no point in the batch can be written.
        """
        ...
