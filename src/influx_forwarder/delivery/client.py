"""HTTP delivery of encoded batches to the write endpoint."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable
from urllib.parse import quote

import httpx

from .retry import RetryPolicy

if TYPE_CHECKING:
    from ..config import ConnectionConfig


class DeliveryOutcome(str, Enum):
    """Outcome of one delivery."""
    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"  # connection reset, EOF, timeout
    AUTH_FAILURE = "auth_failure"            # 401 / 403
    REJECTED = "rejected"                    # any other non-2xx


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Result of delivering one payload to one destination."""
    outcome: DeliveryOutcome
    database_key: str
    status_code: int | None = None
    attempts: int = 1
    body: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is DeliveryOutcome.SUCCESS


def read_body(status_code: int) -> bool:
    """Responses with status 1xx, 204 or 304 carry no body."""
    return not (status_code in (204, 304) or 100 <= status_code <= 199)


class DeliveryClient:
    """
    Writes encoded payloads to one InfluxDB-style endpoint.

    The destination key (database name) is substituted into the request
    for every call, so one client serves every destination. Only
    transient network failures are retried; authentication failures and
    other error responses are logged and the payload dropped.

    Config (ConnectionConfig):
        host, port, ssl: Endpoint location
        protocol: line (/write) | json (/db/<db>/series)
        retention_policy, time_precision: Sent as query parameters
        user, password, auth_method: none | params (u/p query) | basic
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        config: ConnectionConfig,
        retry: RetryPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.retry = retry or RetryPolicy()
        self.logger = logger or logging.getLogger(__name__)
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self._stats = {outcome.value: 0 for outcome in DeliveryOutcome}
        self._stats["retries"] = 0

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
            self._owns_client = True

    async def stop(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def endpoint(self, database_key: str) -> tuple[str, dict[str, str]]:
        """URL and query parameters for a write to `database_key`."""
        cfg = self.config
        if cfg.protocol == "json":
            url = f"{cfg.base_url}/db/{quote(database_key, safe='')}/series"
            params = {"time_precision": cfg.time_precision}
        else:
            url = f"{cfg.base_url}/write"
            params = {"db": database_key, "precision": cfg.time_precision}
            if cfg.retention_policy:
                params["rp"] = cfg.retention_policy

        if cfg.effective_auth_method == "params":
            params["u"] = cfg.user or ""
            params["p"] = cfg.password or ""
        return url, params

    def _auth(self) -> httpx.BasicAuth | None:
        if self.config.effective_auth_method == "basic":
            return httpx.BasicAuth(self.config.user or "", self.config.password or "")
        return None

    async def deliver(
        self,
        payload: str,
        database_key: str,
        final: bool = False,
        content_type: str = "text/plain; charset=utf-8",
    ) -> DeliveryResult:
        """
        Write one payload, retrying transient failures per the retry policy.

        A final (teardown) delivery is attempted once so shutdown is never
        held open by an unreachable endpoint.
        """
        if self._client is None:
            await self.start()

        policy = RetryPolicy.never() if final else self.retry
        attempts = 0
        while True:
            attempts += 1
            result = await self._attempt(payload, database_key, content_type, attempts)
            if result.outcome is not DeliveryOutcome.TRANSIENT_FAILURE:
                break
            if not policy.allows(attempts - 1):
                break

            delay = policy.delay(attempts)
            self.logger.warning(
                f"Transient failure writing to {database_key!r} on {self.config.host}:"
                f"{self.config.port} ({result.error}); retry {attempts} in {delay:.2f}s"
            )
            self._stats["retries"] += 1
            await self._sleep(delay)

        self._stats[result.outcome.value] += 1
        self._log_result(result, payload)
        return result

    async def _attempt(
        self,
        payload: str,
        database_key: str,
        content_type: str,
        attempt: int,
    ) -> DeliveryResult:
        url, params = self.endpoint(database_key)
        try:
            async with self._client.stream(
                "POST",
                url,
                params=params,
                content=payload.encode("utf-8"),
                headers={"Content-Type": content_type},
                auth=self._auth(),
            ) as response:
                body = None
                if read_body(response.status_code):
                    # Consume the body so the connection can be reused
                    body = (await response.aread()).decode("utf-8", errors="replace")
                status = response.status_code
        except httpx.TransportError as e:
            return DeliveryResult(
                outcome=DeliveryOutcome.TRANSIENT_FAILURE,
                database_key=database_key,
                attempts=attempt,
                error=f"{type(e).__name__}: {e}",
            )

        if 200 <= status <= 299:
            outcome = DeliveryOutcome.SUCCESS
        elif status in (401, 403):
            outcome = DeliveryOutcome.AUTH_FAILURE
        else:
            outcome = DeliveryOutcome.REJECTED

        return DeliveryResult(
            outcome=outcome,
            database_key=database_key,
            status_code=status,
            attempts=attempt,
            body=body,
        )

    def _log_result(self, result: DeliveryResult, payload: str) -> None:
        where = f"{self.config.host}:{self.config.port}"
        if result.outcome is DeliveryOutcome.SUCCESS:
            self.logger.debug(
                f"Wrote to {result.database_key!r} on {where}: status {result.status_code}"
            )
        elif result.outcome is DeliveryOutcome.TRANSIENT_FAILURE:
            self.logger.warning(
                f"Giving up writing to {result.database_key!r} on {where} after "
                f"{result.attempts} attempt(s): {result.error}"
            )
        elif result.outcome is DeliveryOutcome.AUTH_FAILURE:
            self.logger.error(
                f"Authentication failed writing to {result.database_key!r} on {where}: "
                f"status {result.status_code}, response body: {result.body!r}"
            )
        else:
            self.logger.error(
                f"Error writing to {result.database_key!r} on {where}: "
                f"status {result.status_code}, response body: {result.body!r}, "
                f"request body: {payload!r}"
            )

    @property
    def stats(self) -> dict:
        return dict(self._stats)
