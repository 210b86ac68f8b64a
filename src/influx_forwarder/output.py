"""InfluxDB output - wires records through points, buffering and delivery."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

import httpx

from .buffer.engine import BufferEngine
from .config import Config
from .delivery.client import DeliveryClient
from .delivery.retry import RetryPolicy
from .points.builder import PointBuilder
from .points.classifier import FieldClassifier
from .points.types import Point
from .records import Record, Renderer, render
from .wire import encoder_for


class InfluxOutput:
    """
    Output stage that forwards records to an InfluxDB-style endpoint.

    receive() never raises: a record that cannot become a point is logged
    and dropped, and delivery failures only show up in the logs and stats.

    Usage:
        output = InfluxOutput(Config.from_yaml("forwarder.yaml"))
        await output.start()
        await output.receive(Record({"value": 1.5, "host": "web-1"}))
        await output.teardown()
    """

    def __init__(
        self,
        config: Config,
        renderer: Renderer = render,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config.validate()
        self.logger = logger or logging.getLogger(__name__)

        self.builder = PointBuilder(
            config.point,
            database=config.connection.db,
            precision=config.precision,
            renderer=renderer,
            logger=logger,
        )
        self.classifier = FieldClassifier(config.point, logger=logger)
        self.encoder = encoder_for(config.connection.protocol)
        self.delivery = DeliveryClient(
            config.connection,
            retry=RetryPolicy.from_config(config.retry),
            client=client,
            sleep=sleep,
            logger=logger,
        )
        self.engine = BufferEngine(
            flush_size=config.buffer.flush_size,
            idle_flush_time=config.buffer.idle_flush_time,
            sink=self._write_batch,
            clock=clock,
            logger=self.logger,
        )

        self._timer_task: asyncio.Task | None = None
        self._stats = {
            "received": 0,
            "dropped": 0,
            "coercion_errors": 0,
        }

    async def start(self) -> None:
        """Open the HTTP client and start the idle flush timer."""
        await self.delivery.start()
        if self._timer_task is None:
            self._timer_task = asyncio.create_task(self.engine.timer_loop())
        self.logger.info(
            f"Influx output started ({self.config.connection.protocol} protocol, "
            f"{self.config.connection.base_url})"
        )

    async def receive(self, record: Record) -> None:
        """Turn a record into a point and buffer it."""
        self._stats["received"] += 1
        self.logger.debug(f"Received record: {dict(record.fields)}")

        try:
            point = self.to_point(record)
            accepted = await self.engine.enqueue(point)
        except Exception as e:
            self.logger.error(f"Failed to process record: {e}")
            self._stats["dropped"] += 1
            return

        if not accepted:
            self._stats["dropped"] += 1

    def to_point(self, record: Record) -> Point:
        """Build and classify the point for a record."""
        point = self.builder.build(record)
        classified = self.classifier.classify(point.fields, point.tags)
        point.fields = classified.fields
        point.tags = classified.tags
        self._stats["coercion_errors"] += len(classified.errors)
        return point

    async def flush(self) -> None:
        """Flush every pending batch now."""
        await self.engine.flush_all()

    async def teardown(self) -> None:
        """Flush everything (without retries) and release resources."""
        if self._timer_task is not None:
            self._timer_task.cancel()
            await asyncio.gather(self._timer_task, return_exceptions=True)
            self._timer_task = None

        await self.engine.teardown()
        await self.delivery.stop()
        self.logger.info(f"Influx output stopped. Stats: {self.stats}")

    async def _write_batch(self, database_key: str, points: list[Point], final: bool) -> None:
        payload = self.encoder.encode(points, database_key)
        if not payload:
            self.logger.warning(f"Nothing to write for {database_key!r} in {len(points)} points")
            return

        self.logger.debug(
            f"Flushing {len(points)} points to {database_key!r} - Teardown? {final}"
        )
        await self.delivery.deliver(
            payload,
            database_key,
            final=final,
            content_type=self.encoder.content_type,
        )

    async def __aenter__(self) -> InfluxOutput:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.teardown()

    @property
    def stats(self) -> dict:
        return {
            **self._stats,
            "buffer": self.engine.stats,
            "delivery": self.delivery.stats,
        }
