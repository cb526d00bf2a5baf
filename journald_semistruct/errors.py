from __future__ import annotations


class DriverError(Exception):
    """Base class for errors raised by the journald-semistruct driver."""


class ConfigurationError(DriverError, ValueError):
    """Invalid log options or session description. Raised before any line is processed."""


class SinkUnavailableError(DriverError, RuntimeError):
    """The sink cannot accept records, so no session is created."""


class ForwardingError(DriverError, RuntimeError):
    """The sink failed to record one line."""
