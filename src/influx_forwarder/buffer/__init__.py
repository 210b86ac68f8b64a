"""Buffering - per-destination batches flushed by size or idle time."""

from .engine import BatchSink, BufferEngine
from .router import route

__all__ = [
    "BatchSink",
    "BufferEngine",
    "route",
]
