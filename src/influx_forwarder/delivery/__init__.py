"""Delivery - HTTP writes with bounded retry."""

from .client import DeliveryClient, DeliveryOutcome, DeliveryResult, read_body
from .retry import RetryPolicy

__all__ = [
    "DeliveryClient",
    "DeliveryOutcome",
    "DeliveryResult",
    "RetryPolicy",
    "read_body",
]
