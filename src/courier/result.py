"""Result type returned by every terminal courier operation.

Failures are a predictable part of the data flow: callers branch on ``ok``
instead of wrapping requests in broad try/except blocks.
"""

from __future__ import annotations

import dataclasses
import typing

from courier.errors import HttpError


@dataclasses.dataclass(frozen=True, slots=True)
class Success[T]:
    """A request that completed and produced ``data``."""

    data: T

    @property
    def ok(self) -> typing.Literal[True]:
        return True

    def unwrap(self) -> T:
        """Return the data."""
        return self.data

    def map[U](self, fn: typing.Callable[[T], U]) -> Success[U]:
        """Transform the data, keeping the success tag."""
        return Success(fn(self.data))


@dataclasses.dataclass(frozen=True, slots=True)
class Failure:
    """A request that ended in a classified error."""

    error: HttpError

    @property
    def ok(self) -> typing.Literal[False]:
        return False

    def unwrap(self) -> typing.NoReturn:
        """Raise the contained error."""
        raise self.error

    def map(self, fn: typing.Callable[[typing.Any], typing.Any]) -> Failure:  # noqa: ARG002
        """Failures pass through unchanged."""
        return self


type Result[T] = Success[T] | Failure
