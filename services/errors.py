"""Error taxonomy for the aggregate read path."""

from __future__ import annotations


class SkatewayError(Exception):
    """Base exception for read-path failures."""


class StoreUnavailableError(SkatewayError):
    """The aggregate store could not answer (timeout, connectivity, auth)."""

    def __init__(self, message: str, *, location: str | None = None) -> None:
        self.location = location
        super().__init__(message)


class InvalidLocationError(SkatewayError, ValueError):
    """A caller asked for a location outside the known set."""

    def __init__(self, location: str) -> None:
        self.location = location
        super().__init__(f"Unknown location {location!r}.")
