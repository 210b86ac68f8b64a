"""Wire encoders - batch serialization for the write endpoint."""

from .base import PointEncoder
from .json_series import JsonSeriesEncoder
from .line_protocol import LineProtocolEncoder

__all__ = [
    "PointEncoder",
    "JsonSeriesEncoder",
    "LineProtocolEncoder",
    "encoder_for",
]


def encoder_for(protocol: str) -> PointEncoder:
    """Encoder for a configured protocol: "line" or "json"."""
    if protocol == "json":
        return JsonSeriesEncoder()
    return LineProtocolEncoder()
