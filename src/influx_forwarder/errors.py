"""Exception types shared across the forwarder."""

from __future__ import annotations


class ForwarderError(Exception):
    """Base exception for forwarder errors."""
    pass


class ConfigError(ForwarderError):
    """Raised at startup when the configuration cannot be used."""
    pass


class EncodingError(ForwarderError):
    """Raised when a point cannot be represented in the wire format."""
    pass
