"""Cooperative cancellation tokens and their composition.

A token fires at most once. Firing is synchronous: every listener registered
at that moment runs before ``cancel()`` returns, and any coroutine blocked in
``wait()`` is released on the next loop iteration.

``merge()`` derives a token from several sources. The derived token fires
with the reason of whichever source fires first and records that source as
its ``origin`` so callers can tell *who* cancelled, not just *that* something
did. When two sources fire in the same instant the winner is whichever
listener runs first; that ordering is not guaranteed.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    Listener = Callable[["CancellationToken"], None]

log = logging.getLogger(__name__)


def _noop() -> None:
    return None


class CancellationToken:
    """One-shot cancellation signal carrying an optional reason."""

    __slots__ = ("_cancelled", "_event", "_listeners", "_origin", "_reason", "_subscriptions")

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: Any = None
        self._origin: CancellationToken | None = None
        self._listeners: list[Listener] = []
        self._event: asyncio.Event | None = None
        # Unsubscribe handles this token holds on other tokens (merged tokens only).
        self._subscriptions: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Any:
        return self._reason

    @property
    def origin(self) -> CancellationToken | None:
        """The token that actually fired: ``self``, or a merged source."""
        return self._origin

    def cancel(self, reason: Any = None) -> None:
        """Fire the token. Later calls are no-ops."""
        self._fire(reason, self)

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* and return a callable that removes it.

        A listener added to an already fired token runs immediately.
        """
        if self._cancelled:
            listener(self)
            return _noop
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    async def wait(self) -> None:
        """Suspend until the token fires."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def close(self) -> None:
        """Release subscriptions held on source tokens.

        Safe to call repeatedly. A closed merged token that has not fired
        will no longer fire from its sources.
        """
        subscriptions, self._subscriptions = self._subscriptions, []
        for unsubscribe in subscriptions:
            unsubscribe()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _fire(self, reason: Any, origin: CancellationToken) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        self._origin = origin
        listeners, self._listeners = self._listeners, []
        self.close()
        if self._event is not None:
            self._event.set()
        for listener in listeners:
            listener(self)

    def __repr__(self) -> str:
        state = f"cancelled, reason={self._reason!r}" if self._cancelled else "pending"
        return f"<CancellationToken {state}>"


class CancellationController:
    """Owner of a token; the handle callers keep to cancel a request."""

    __slots__ = ("token",)

    def __init__(self) -> None:
        self.token = CancellationToken()

    def cancel(self, reason: Any = None) -> None:
        self.token.cancel(reason)

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled


def merge(sources: Iterable[CancellationToken]) -> CancellationToken:
    """Combine *sources* into one token that fires when any source fires.

    The result carries the first firing source's reason and origin. If a
    source has already fired, the result is returned fired. Every
    subscription is released as soon as the result fires, or when the
    caller ``close()``s it.
    """
    sources = tuple(sources)
    merged = CancellationToken()

    for source in sources:
        if source.cancelled:
            merged._fire(source.reason, source.origin or source)  # noqa: SLF001
            return merged

    def on_source_cancelled(source: CancellationToken) -> None:
        merged._fire(source.reason, source.origin or source)  # noqa: SLF001

    for source in sources:
        merged._subscriptions.append(source.add_listener(on_source_cancelled))  # noqa: SLF001

    log.debug("Merged %d cancellation source(s)", len(sources))
    return merged
