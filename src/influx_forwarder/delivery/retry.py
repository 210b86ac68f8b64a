"""Exponential backoff policy for transient delivery failures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import RetryConfig


# Keeps 2 ** n inside float range when retrying forever
_MAX_EXPONENT = 32


@dataclass(frozen=True)
class RetryPolicy:
    """
    How often, and how long apart, a transient failure is retried.

    max_retries counts retries after the first attempt:
    0 never retries, a negative value retries forever.
    """
    initial_delay: float = 1.0
    max_delay: float = 30.0
    max_retries: int = 3

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        return cls(
            initial_delay=config.initial_delay,
            max_delay=config.max_delay,
            max_retries=config.max_retries,
        )

    @classmethod
    def never(cls) -> RetryPolicy:
        return cls(max_retries=0)

    def allows(self, retries_done: int) -> bool:
        """Whether another retry may follow `retries_done` retries."""
        if self.max_retries < 0:
            return True
        return retries_done < self.max_retries

    def delay(self, retry_number: int) -> float:
        """Seconds to wait before retry number `retry_number` (1-based)."""
        exponent = min(max(retry_number - 1, 0), _MAX_EXPONENT)
        return min(self.max_delay, self.initial_delay * (2 ** exponent))
