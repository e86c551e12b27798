"""Errors raised by stream registry operations."""

from __future__ import annotations

from .frame import StreamKey

__all__ = [
    "RegistryError",
    "StreamNotFoundError",
    "StreamAlreadyPublishingError",
    "PublisherMismatchError",
    "StreamNotActiveError",
]


class RegistryError(Exception):
    """Base class for registry errors."""


class _KeyedRegistryError(RegistryError):
    _prefix = ""

    def __init__(self, key: StreamKey) -> None:
        self.key = key
        super().__init__(f"{self._prefix}: {key}")


class StreamNotFoundError(_KeyedRegistryError):
    """The requested stream does not exist."""

    _prefix = "Stream not found"


class StreamAlreadyPublishingError(_KeyedRegistryError):
    """The stream already has an active publisher."""

    _prefix = "Stream already has a publisher"


class PublisherMismatchError(RegistryError):
    """The session is not the stream's publisher."""

    def __init__(self) -> None:
        super().__init__("Publisher ID mismatch")


class StreamNotActiveError(_KeyedRegistryError):
    """The stream exists but has no publisher to play from."""

    _prefix = "Stream not active"