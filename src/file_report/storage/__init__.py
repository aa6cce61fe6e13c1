"""Storage adapters and the scheme router."""

from file_report.storage.base import (
    ObjectWriter,
    StorageError,
    UnsupportedSchemeError,
    WriteError,
)
from file_report.storage.router import StorageRouter, build_router

__all__ = [
    "ObjectWriter",
    "StorageError",
    "StorageRouter",
    "UnsupportedSchemeError",
    "WriteError",
    "build_router",
]
