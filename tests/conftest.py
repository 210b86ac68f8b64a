"""Shared test fixtures for the influx forwarder tests."""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from influx_forwarder.config import Config
from influx_forwarder.output import InfluxOutput
from influx_forwarder.points.types import Point, Precision


# =============================================================================
# Fake endpoint
# =============================================================================

class RecordingServer:
    """
    Handler for httpx.MockTransport that records every write.

    Responses come from `responses` in order (the last one repeats); an
    exception instance in the list is raised instead, to simulate network
    failures.
    """

    def __init__(self, responses: list | None = None):
        self.responses = list(responses or [204])
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.responses)) - 1
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, int):
            return httpx.Response(response)
        return response

    @property
    def bodies(self) -> list[str]:
        return [r.content.decode("utf-8") for r in self.requests]

    def by_database(self) -> dict[str, str]:
        return {r.url.params["db"]: r.content.decode("utf-8") for r in self.requests}


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def server() -> RecordingServer:
    return RecordingServer()


@pytest.fixture
def make_server() -> Callable[[list], RecordingServer]:
    """Factory for a recording server with scripted responses."""
    return RecordingServer


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_output(server, sleeper) -> Callable[..., InfluxOutput]:
    """Factory for outputs wired to the recording server (flat plugin options)."""

    def factory(**options) -> InfluxOutput:
        options.setdefault("host", "localhost")
        client = httpx.AsyncClient(transport=httpx.MockTransport(server))
        return InfluxOutput(Config.from_flat(options), client=client, sleep=sleeper)

    return factory


# =============================================================================
# Points
# =============================================================================

@pytest.fixture
def make_point() -> Callable[..., Point]:
    def factory(
        measurement: str = "cpu",
        database_key: str = "statistics",
        timestamp: int | str = 1,
        fields: dict | None = None,
        tags: dict | None = None,
    ) -> Point:
        return Point(
            measurement=measurement,
            database_key=database_key,
            timestamp=timestamp,
            precision=Precision.MILLISECONDS,
            fields={"value": 1} if fields is None else fields,
            tags=tags or {},
        )

    return factory
