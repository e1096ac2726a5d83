"""boltview error types."""

from typing import Iterable


class BoltviewError(Exception):
    """Base class for all boltview failures."""


class NotFound(BoltviewError):
    """Raised when a bucket path or key does not resolve.

    Attributes:
        path: The logical bucket path that was looked up.
        key: The key that was missing, or None for a bucket miss.
        available: Bucket names present where resolution stopped.
    """

    def __init__(
        self,
        path: str,
        key: str | None = None,
        available: Iterable[str] = (),
    ) -> None:
        self.path = path
        self.key = key
        self.available = tuple(available)
        if key is None:
            message = f"bucket not found: {path}"
        else:
            message = f"key not found: {key} (bucket {path})"
        super().__init__(message)


class DecodeError(BoltviewError, ValueError):
    """Raised when bytes do not match an expected fixed layout."""


class StoreUnavailable(BoltviewError):
    """Raised when the underlying store cannot be opened for reading."""


class ConfigError(BoltviewError):
    """Raised for invalid runtime configuration."""
