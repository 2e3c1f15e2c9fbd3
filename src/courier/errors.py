"""Exception hierarchy and error taxonomy for courier.

Runtime HTTP outcomes are never raised by the executor. They are returned as
``Failure(HttpError)`` values whose ``kind`` tells callers what went wrong.
``ConfigurationError`` is the one error raised eagerly, for misuse.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

    import httpx


class CourierError(Exception):
    """Base exception for all courier errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(CourierError):
    """Request, policy, or client configuration is invalid."""


class ErrorGroup(Enum):
    """Coarse grouping of error kinds."""

    SERVER = "server"
    NETWORK = "network"
    CLIENT = "client"


class ErrorKind(Enum):
    """Every terminal failure a request can produce."""

    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INTERNAL_SERVER = "internal_server"
    SERVER = "server"
    TIMEOUT = "timeout"
    ABORT = "abort"
    CONNECTION = "connection"
    PARSE_BODY = "parse_body"
    VALIDATION = "validation"
    CLIENT = "client"

    @property
    def group(self) -> ErrorGroup:
        """Group this kind belongs to."""
        return _KIND_GROUPS[self]

    @property
    def retryable(self) -> bool:
        """Whether the executor may resolve this kind by attempting again."""
        return self in _RETRYABLE_KINDS


_KIND_GROUPS: dict[ErrorKind, ErrorGroup] = {
    ErrorKind.BAD_REQUEST: ErrorGroup.SERVER,
    ErrorKind.UNAUTHORIZED: ErrorGroup.SERVER,
    ErrorKind.FORBIDDEN: ErrorGroup.SERVER,
    ErrorKind.NOT_FOUND: ErrorGroup.SERVER,
    ErrorKind.INTERNAL_SERVER: ErrorGroup.SERVER,
    ErrorKind.SERVER: ErrorGroup.SERVER,
    ErrorKind.TIMEOUT: ErrorGroup.NETWORK,
    ErrorKind.ABORT: ErrorGroup.NETWORK,
    ErrorKind.CONNECTION: ErrorGroup.NETWORK,
    ErrorKind.PARSE_BODY: ErrorGroup.CLIENT,
    ErrorKind.VALIDATION: ErrorGroup.CLIENT,
    ErrorKind.CLIENT: ErrorGroup.CLIENT,
}

# Aborts are never retried.
_RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset(
    {ErrorKind.TIMEOUT, ErrorKind.CONNECTION}
)

STATUS_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    500: ErrorKind.INTERNAL_SERVER,
}


class HttpError(CourierError):
    """A classified request failure.

    Instances are built once at classification time and treated as immutable
    values. ``response`` is set for the server group, ``cause`` whenever a
    raised exception was classified, ``issues`` for validation failures and
    ``reason`` for aborts.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        cause: BaseException | None = None,
        response: httpx.Response | None = None,
        issues: tuple[dict[str, Any], ...] = (),
        reason: Any = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.kind = kind
        self.message = message
        self.cause = cause
        self.response = response
        self.issues = issues
        self.reason = reason
        if cause is not None:
            self.__cause__ = cause

    @property
    def group(self) -> ErrorGroup:
        """Group of this error's kind."""
        return self.kind.group

    @property
    def status_code(self) -> int | None:
        """HTTP status of the attached response, if any."""
        if self.response is None:
            return None
        return self.response.status_code

    def __repr__(self) -> str:
        return f"HttpError(kind={self.kind.name}, message={self.message!r})"


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
