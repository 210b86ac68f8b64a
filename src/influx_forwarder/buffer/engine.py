"""Per-destination buffering with size and idle-time flushes."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from ..points.types import Point
from .router import route


logger = logging.getLogger(__name__)


# Receives (destination key, batch, final flag)
BatchSink = Callable[[str, list[Point], bool], Awaitable[None]]


@dataclass
class _Destination:
    """Pending batch and flush bookkeeping for one destination key."""
    key: str
    last_flush: float
    points: list[Point] = field(default_factory=list)

    # Guards points; never held across a suspension point
    batch_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    # Serializes flushes so they never overlap and stay in FIFO order
    flush_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def take(self, now: float) -> list[Point]:
        """Swap the pending batch for a fresh one (caller must hold batch_lock)."""
        batch = self.points
        self.points = []
        self.last_flush = now
        return batch


@dataclass
class BufferEngine:
    """
    Buffers points per destination and flushes them in batches.

    A destination's batch is flushed when it reaches flush_size (on the
    enqueueing call, which waits for the flush) or when it has been idle
    for idle_flush_time (from the timer loop). Each destination flushes
    independently of the others, so a slow database never delays points
    bound for another one.
    """
    flush_size: int = 100
    idle_flush_time: float = 1.0

    # Sink: receives each batch, exceptions are logged and the batch dropped
    sink: BatchSink | None = None

    router: Callable[[Point], str] = route

    # Timer resolution, defaults to half the idle flush time
    check_interval: float | None = None

    clock: Callable[[], float] = time.monotonic
    logger: logging.Logger = field(default_factory=lambda: logger)

    # Internal state
    _destinations: dict[str, _Destination] = field(default_factory=dict, init=False)
    _stats: dict = field(default_factory=dict, init=False)
    _running: bool = field(default=False, init=False)
    _inflight: set[asyncio.Task] = field(default_factory=set, init=False)

    def __post_init__(self):
        self._stats = {
            "batches_flushed": 0,
            "points_flushed": 0,
            "points_rejected": 0,
            "flush_errors": 0,
        }

    async def enqueue(self, point: Point) -> bool:
        """
        Add a point to its destination's batch.

        Returns False if the point was rejected (it has no fields).
        """
        if not point.fields:
            self.logger.warning(
                f"Dropping point for {point.measurement!r}: no fields left after classification"
            )
            self._stats["points_rejected"] += 1
            return False

        dest = self._destination(self.router(point))
        async with dest.batch_lock:
            dest.points.append(point.copy())
            if len(dest.points) < self.flush_size:
                return True
            batch = dest.take(self.clock())

        await self._flush_batch(dest, batch, final=False)
        return True

    async def flush_idle(self) -> None:
        """Flush every non-empty destination idle for at least idle_flush_time."""
        await self._flush_many(final=False, force=False)

    async def flush_all(self, final: bool = False) -> None:
        """Flush every non-empty destination regardless of age."""
        await self._flush_many(final=final, force=True)

    async def teardown(self) -> None:
        """Stop the timer loop, wait for running flushes, then flush everything as final."""
        self._running = False
        if self._inflight:
            await asyncio.gather(*list(self._inflight))
        await self.flush_all(final=True)
        self.logger.info(f"Buffer engine torn down. Stats: {self.stats}")

    async def timer_loop(self) -> None:
        """
        Background loop that flushes idle destinations.

        Keeps slow streams moving: a handful of points never waits much
        longer than idle_flush_time. Each flush runs as its own task, so a
        slow destination never holds up the next tick for the others.
        """
        self._running = True
        interval = self.check_interval or self.idle_flush_time / 2
        self.logger.info(
            f"Idle flush timer started (idle_flush_time={self.idle_flush_time}s, "
            f"interval={interval}s)"
        )

        while self._running:
            try:
                await asyncio.sleep(interval)
                self.spawn_idle_flushes()
            except asyncio.CancelledError:
                self.logger.info("Idle flush timer cancelled")
                break
            except Exception as e:
                self.logger.error(f"Idle flush timer error: {e}")

    def spawn_idle_flushes(self) -> list[asyncio.Task]:
        """
        Start an idle flush task for every destination not already flushing.

        Tasks are tracked until done; teardown waits for them.
        """
        tasks = []
        now = self.clock()
        for dest in list(self._destinations.values()):
            if dest.flush_lock.locked() or not dest.points:
                continue
            if now - dest.last_flush < self.idle_flush_time:
                continue
            task = asyncio.create_task(self._flush_destination(dest, final=False, force=False))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            tasks.append(task)
        return tasks

    async def _flush_many(self, final: bool, force: bool) -> None:
        destinations = list(self._destinations.values())
        if destinations:
            await asyncio.gather(
                *(self._flush_destination(dest, final, force) for dest in destinations)
            )

    async def _flush_destination(self, dest: _Destination, final: bool, force: bool) -> None:
        async with dest.batch_lock:
            if not dest.points:
                return
            now = self.clock()
            if not force and now - dest.last_flush < self.idle_flush_time:
                return
            batch = dest.take(now)

        await self._flush_batch(dest, batch, final)

    async def _flush_batch(self, dest: _Destination, batch: list[Point], final: bool) -> None:
        async with dest.flush_lock:
            if self.sink is None:
                self.logger.warning(f"No sink configured, discarding {len(batch)} points")
                return

            try:
                await self.sink(dest.key, batch, final)
                self._stats["batches_flushed"] += 1
                self._stats["points_flushed"] += len(batch)
            except Exception as e:
                self.logger.error(f"Failed to flush batch for {dest.key!r}: {e}")
                self._stats["flush_errors"] += 1

    def _destination(self, key: str) -> _Destination:
        dest = self._destinations.get(key)
        if dest is None:
            dest = _Destination(key=key, last_flush=self.clock())
            self._destinations[key] = dest
        return dest

    def pending(self, key: str) -> int:
        """Points waiting for the given destination."""
        dest = self._destinations.get(key)
        return len(dest.points) if dest else 0

    @property
    def destinations(self) -> list[str]:
        return list(self._destinations)

    @property
    def buffer_size(self) -> int:
        """Points waiting across all destinations."""
        return sum(len(dest.points) for dest in self._destinations.values())

    @property
    def stats(self) -> dict:
        return {
            **self._stats,
            "buffer_size": self.buffer_size,
            "destinations": len(self._destinations),
        }
