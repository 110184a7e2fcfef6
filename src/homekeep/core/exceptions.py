# src/homekeep/core/exceptions.py

from __future__ import annotations


class HomekeepError(Exception):
    """Base class for errors raised by homekeep."""


class StorageUnavailableError(HomekeepError):
    """The underlying key-value store could not complete a get/set/remove."""

    def __init__(self, operation: str, key: str) -> None:
        super().__init__(f"storage {operation} failed for key {key!r}")
        self.operation = operation
        self.key = key
