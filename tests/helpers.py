"""Test helpers (small, reusable transport doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off transports as coverage expands.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import time
from typing import TYPE_CHECKING, Any

import httpx

from courier.cancellation import CancellationToken
from courier.request import RequestDescriptor
from courier.transport import RequestAbortedError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

URL = "https://api.example.com/x"


def make_request(
    method: str = "GET",
    url: str = URL,
    *,
    signal: CancellationToken | None = None,
    headers: tuple[tuple[str, str], ...] = (),
    content: bytes | None = None,
) -> RequestDescriptor:
    return RequestDescriptor(
        method=method, url=httpx.URL(url), headers=headers, content=content, signal=signal
    )


def connect_error(message: str = "Failed to connect") -> httpx.ConnectError:
    return httpx.ConnectError(message)


@dataclass
class ScriptedTransport:
    """Transport that returns a scripted sequence of responses/exceptions.

    Records every call (time, request, token) for assertions. Once the
    script is exhausted every call returns ``200 OK``.
    """

    script: list[httpx.Response | BaseException] = field(default_factory=list)
    calls: int = 0
    call_times: list[float] = field(default_factory=list)
    requests: list[RequestDescriptor] = field(default_factory=list)
    tokens: list[CancellationToken] = field(default_factory=list)

    def then(self, *items: httpx.Response | BaseException) -> ScriptedTransport:
        self.script.extend(items)
        return self

    async def __call__(
        self, request: RequestDescriptor, token: CancellationToken
    ) -> httpx.Response:
        self.calls += 1
        self.call_times.append(time.monotonic())
        self.requests.append(request)
        self.tokens.append(token)
        if not self.script:
            return httpx.Response(200, text="ok")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def gaps(self) -> list[float]:
        """Seconds elapsed between consecutive calls."""
        return [b - a for a, b in zip(self.call_times, self.call_times[1:], strict=False)]


@dataclass
class HangingTransport:
    """Transport that never resolves; counts how often it was cancelled."""

    calls: int = 0
    cancelled: int = 0
    started: asyncio.Event = field(default_factory=asyncio.Event)

    async def __call__(
        self, request: RequestDescriptor, token: CancellationToken
    ) -> httpx.Response:
        _ = request, token
        self.calls += 1
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        raise AssertionError("unreachable")  # pragma: no cover


@dataclass
class CooperativeTransport:
    """Transport that watches its token and reports the abort itself."""

    calls: int = 0

    async def __call__(
        self, request: RequestDescriptor, token: CancellationToken
    ) -> httpx.Response:
        _ = request
        self.calls += 1
        await token.wait()
        raise RequestAbortedError(token.reason)


def json_response(payload: Any, status: int = 200) -> httpx.Response:
    return httpx.Response(status, json=payload)


class BrokenStream(httpx.AsyncByteStream):
    """Response body whose connection drops before any bytes arrive."""

    async def __aiter__(self) -> AsyncIterator[bytes]:
        raise httpx.ReadError("connection reset while reading body")
        yield b""  # pragma: no cover


class StalledStream(httpx.AsyncByteStream):
    """Response body that never delivers a byte."""

    async def __aiter__(self) -> AsyncIterator[bytes]:
        await asyncio.Event().wait()
        yield b""  # pragma: no cover


@dataclass
class StubbornTransport:
    """Transport that swallows cancellation until ``release`` is set."""

    ignored: int = 0
    release: asyncio.Event = field(default_factory=asyncio.Event)
    finished: asyncio.Event = field(default_factory=asyncio.Event)
    responses: list[httpx.Response] = field(default_factory=list)

    async def __call__(
        self, request: RequestDescriptor, token: CancellationToken
    ) -> httpx.Response:
        _ = request, token
        while not self.release.is_set():
            try:
                await self.release.wait()
            except asyncio.CancelledError:
                self.ignored += 1
        response = httpx.Response(200, text="late")
        self.responses.append(response)
        self.finished.set()
        return response
