"""Storage interfaces shared by every backend adapter."""

from __future__ import annotations

from typing import Protocol


class StorageError(RuntimeError):
    """Base error for storage adapters."""


class WriteError(StorageError):
    """A backend rejected a write (permissions, missing bucket, network, bad URI)."""

    def __init__(self, destination: str, message: str) -> None:
        super().__init__(f"Failed to write {destination}: {message}")
        self.destination = destination


class UnsupportedSchemeError(StorageError):
    """No adapter is registered for the destination's storage scheme."""


class ObjectWriter(Protocol):
    def write(self, uri: str, data: bytes) -> None: ...

    def ensure_parent(self, uri: str) -> None: ...
