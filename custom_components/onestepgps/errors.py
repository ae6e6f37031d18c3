"""
Exception types raised by the OneStep GPS integration.

NetworkError and DecodeError both mean "the fetch failed" to callers;
PersistenceError never leaves the preference store.
"""
from __future__ import annotations


class OneStepGpsError(Exception):
    """Base class for all integration errors."""


class NetworkError(OneStepGpsError):
    """Transport failure: DNS, connection, timeout or a non-2xx response."""

    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class DecodeError(OneStepGpsError):
    """Response body is not the expected fleet envelope."""


class PersistenceError(OneStepGpsError):
    """Stored preference blob could not be read or has the wrong shape."""
