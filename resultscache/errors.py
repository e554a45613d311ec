"""Error type raised by the results cache."""

from __future__ import annotations

from enum import Enum

CLOSED_MESSAGE = "Results cache has been closed"


class ErrorKind(str, Enum):
    CACHE_CLOSED = "cache_closed"
    STORAGE_FAILURE = "storage_failure"


class ResultsCacheError(Exception):
    """Raised when a cache operation fails.

    ``kind`` tells a closed cache apart from a failing backend; ``cause`` is
    the backend error, if any.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @classmethod
    def closed(cls) -> ResultsCacheError:
        return cls(CLOSED_MESSAGE, ErrorKind.CACHE_CLOSED)

    @classmethod
    def storage(cls, cause: BaseException) -> ResultsCacheError:
        return cls(str(cause), ErrorKind.STORAGE_FAILURE, cause)
