"""Transport protocol and the default httpx-backed implementation.

A transport performs exactly one physical attempt. It returns the response
for any status code and raises on network failure; interpreting status codes,
timeouts and retries is the executor's job.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, Self, runtime_checkable

import httpx

if TYPE_CHECKING:
    from types import TracebackType

    from courier.cancellation import CancellationToken
    from courier.request import RequestDescriptor

log = logging.getLogger(__name__)


class RequestAbortedError(Exception):
    """Raised by cooperative transports that observed their token firing."""

    def __init__(self, reason: Any = None) -> None:
        super().__init__(str(reason) if reason is not None else "Request aborted")
        self.reason = reason


@runtime_checkable
class Transport(Protocol):
    """Minimal transport protocol: send one request, return its response."""

    async def __call__(
        self, request: RequestDescriptor, token: CancellationToken
    ) -> httpx.Response:
        """Send *request*; *token* fires if the attempt should be abandoned."""
        ...


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``.

    Responses are returned unread (``stream=True``) so body decoders decide
    how to consume them. The client's own timeouts are disabled unless a
    client is passed in: the executor enforces the per-attempt timeout.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, **client_kwargs: Any) -> None:
        if client is not None and client_kwargs:
            raise TypeError("Pass either an AsyncClient or client keyword arguments, not both")
        self._owns_client = client is None
        if client is None:
            client_kwargs.setdefault("timeout", None)
            client = httpx.AsyncClient(**client_kwargs)
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def __call__(
        self, request: RequestDescriptor, token: CancellationToken
    ) -> httpx.Response:
        if token.cancelled:
            raise RequestAbortedError(token.reason)
        http_request = request.to_httpx(self._client)
        log.debug("Sending %s %s", request.method, request.url)
        return await self._client.send(
            http_request, stream=True, follow_redirects=request.follow_redirects
        )

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
