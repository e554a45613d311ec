"""Capabilities the results cache needs from a storage backend."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol


class StorageError(Exception):
    """Backend-level failure (I/O, bad attribute, closed store)."""


class StorageBackend(Protocol):
    """Attribute-keyed blob storage with write-then-commit semantics."""

    def read_attribute(self, key: str, attr: str) -> bytes | None: ...

    def all_keys(self, attr: str) -> set[str]: ...

    def all_values(self, attr: str) -> Mapping[str, bytes | None]: ...

    def write(self, key: str, attr: str, value: bytes) -> bool:
        """Create ``attr`` for ``key``. False if it already exists."""
        ...

    def update(self, key: str, attr: str, value: bytes) -> bool:
        """Replace ``attr`` for ``key``. False if there is nothing to replace."""
        ...

    def delete(self, key: str) -> None:
        """Remove every attribute stored for ``key``."""
        ...

    def commit(self) -> None: ...

    def close(self) -> None: ...
