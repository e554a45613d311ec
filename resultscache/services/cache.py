"""Results cache: store opaque results under generated keys with TTL sweeping."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

from resultscache.errors import ErrorKind, ResultsCacheError
from resultscache.services.keys import generate_key, new_token
from resultscache.storage.backend import StorageBackend

log = logging.getLogger(__name__)

RESULTS_ATTR = "results"
TTL_ATTR = "ttl"
REQUIRED_ATTRS = frozenset({RESULTS_ATTR, TTL_ATTR})

BYTE_ENCODING = "utf-8"

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def encode_timestamp(when: datetime) -> bytes:
    """ISO-8601 UTC text with a trailing Z, e.g. 2020-05-01T03:04:05.123456Z."""
    when = when.astimezone(timezone.utc)
    return when.strftime("%Y-%m-%dT%H:%M:%S.%fZ").encode(BYTE_ENCODING)


def decode_timestamp(raw: bytes) -> datetime:
    text = raw.decode(BYTE_ENCODING).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    when = datetime.fromisoformat(text)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when


def _expiry_cutoff(now: datetime, grace: timedelta) -> datetime | None:
    """Markers stamped strictly before the cutoff have expired.

    None means nothing can expire (the grace reaches past the earliest
    representable time).
    """
    try:
        return now - grace
    except OverflowError:
        if grace > timedelta(0):
            return None
        return datetime.max.replace(tzinfo=timezone.utc)


class ResultsCache:
    """Stores results in a blob store under generated keys.

    Every operation raises ``ResultsCacheError`` (kind ``CACHE_CLOSED``)
    once the cache is closed, and wraps backend errors as kind
    ``STORAGE_FAILURE``.

    Not thread safe: the closed check and the backend call that follows are
    not atomic, so a cache instance must have a single owner at a time.
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        clock: Callable[[], datetime] = _utcnow,
        token_factory: Callable[[], str] = new_token,
    ) -> None:
        self._backend: StorageBackend | None = backend
        self._clock = clock
        self._token_factory = token_factory

    @property
    def closed(self) -> bool:
        return self._backend is None

    def _open_backend(self) -> StorageBackend:
        if self._backend is None:
            raise ResultsCacheError.closed()
        return self._backend

    @staticmethod
    def _call(fn: Callable[..., T], *args: Any) -> T:
        try:
            return fn(*args)
        except Exception as exc:
            log.debug("Backend call %s failed: %s", getattr(fn, "__name__", fn), exc)
            raise ResultsCacheError.storage(exc) from exc

    def get(self, key: str) -> bytes | None:
        """Return the stored result, or None if there is none for ``key``."""
        backend = self._open_backend()
        return self._call(backend.read_attribute, key, RESULTS_ATTR)

    def put(self, result: bytes) -> str:
        """Store ``result`` and return its key.

        Returns an empty string if the backend refused the write; nothing is
        committed in that case.
        """
        backend = self._open_backend()
        ids = self._call(backend.all_keys, RESULTS_ATTR)
        key = generate_key(ids, self._token_factory)

        if not self._call(backend.write, key, RESULTS_ATTR, result):
            log.warning("Backend refused to store result under %s", key)
            return ""

        self._call(backend.commit)
        log.debug("Stored %d byte result under %s", len(result), key)
        return key

    def add_time_to_live(self, key: str) -> None:
        """Arm a TTL marker for ``key``, stamped with the current time."""
        backend = self._open_backend()
        self._call(backend.write, key, TTL_ATTR, self._ttl_value())
        self._call(backend.commit)
        log.debug("Added TTL marker for %s", key)

    def update_time_to_live(self, key: str) -> None:
        """Re-arm the existing TTL marker for ``key``."""
        backend = self._open_backend()
        self._call(backend.update, key, TTL_ATTR, self._ttl_value())
        self._call(backend.commit)
        log.debug("Updated TTL marker for %s", key)

    def process_time_to_live(self, grace: timedelta) -> list[str]:
        """Delete every entry whose TTL marker is older than ``grace``.

        Each deletion is committed on its own, so an aborted sweep keeps the
        deletions made before the failure. Returns the deleted keys.
        """
        backend = self._open_backend()
        now = self._clock()
        cutoff = _expiry_cutoff(now, grace)
        markers = self._call(backend.all_values, TTL_ATTR)

        deleted: list[str] = []
        for key, value in markers.items():
            if value is None:
                continue
            try:
                stamped = decode_timestamp(value)
            except ValueError as exc:
                raise ResultsCacheError(
                    f"Invalid TTL marker for '{key}': {exc}",
                    ErrorKind.STORAGE_FAILURE,
                    exc,
                ) from exc

            if cutoff is not None and stamped < cutoff:
                self._call(backend.delete, key)
                self._call(backend.commit)
                deleted.append(key)
                log.debug("Expired %s (stamped %s)", key, stamped.isoformat())

        log.info("TTL sweep removed %d of %d entries", len(deleted), len(markers))
        return deleted

    def close(self) -> None:
        """Close the backend. Safe to call more than once."""
        if self._backend is None:
            return
        self._call(self._backend.close)
        self._backend = None
        log.info("Results cache closed")

    def __enter__(self) -> ResultsCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ttl_value(self) -> bytes:
        return encode_timestamp(self._clock())
