"""Client facade: default options plus per-method builder factories."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
from typing import TYPE_CHECKING, ClassVar, Self

import httpx

from courier.builder import RequestBuilder, RequestOptions
from courier.errors import ConfigurationError
from courier.retry import RetryPolicy
from courier.transport import HttpxTransport
from courier.urls import PathSegment, build_path, resolve_url

if TYPE_CHECKING:
    from types import TracebackType

    from courier.transport import Transport

log = logging.getLogger(__name__)

HeadersInit = Mapping[str, str] | Callable[[httpx.Headers], None]


class Http:
    """Entry point for building requests against an optional base URL.

    Options given here become the defaults of every builder the client
    creates; builders may override them per request.

    Example:
        async with Http(base_url="https://api.example.com/", retries=2) as http:
            result = await http.get("users", 42).json(User)
            if result.ok:
                print(result.data.name)
    """

    shared: ClassVar[Http]

    def __init__(
        self,
        *,
        base_url: str | httpx.URL | None = None,
        headers: HeadersInit | None = None,
        retries: int | None = None,
        retry_delay: float | None = None,
        timeout: float | None = None,
        follow_redirects: bool = True,
        transport: Transport | None = None,
    ) -> None:
        if headers is not None and not (isinstance(headers, Mapping) or callable(headers)):
            raise ConfigurationError(
                "headers must be a mapping or a callable",
                hint="Pass headers={'accept': 'application/json'} or a function "
                "that mutates httpx.Headers.",
            )
        # Validate eagerly so misconfiguration surfaces at construction.
        RetryPolicy.resolve(retries=retries, retry_delay=retry_delay, timeout=timeout)

        self._base_url = base_url
        self._headers = headers
        self._retries = retries
        self._retry_delay = retry_delay
        self._timeout = timeout
        self._follow_redirects = follow_redirects
        self._transport = transport
        self._owns_transport = transport is None

    @property
    def base_url(self) -> str | httpx.URL | None:
        return self._base_url

    @property
    def transport(self) -> Transport:
        """The transport builders use; created lazily when not supplied."""
        if self._transport is None:
            log.debug("Creating default httpx transport")
            self._transport = HttpxTransport()
        return self._transport

    def _build(self, method: str, segments: tuple[PathSegment, ...]) -> RequestBuilder:
        url = resolve_url(build_path(segments), self._base_url)
        headers: tuple[tuple[str, str], ...] = ()
        hook = None
        if isinstance(self._headers, Mapping):
            headers = tuple((str(k), str(v)) for k, v in self._headers.items())
        elif self._headers is not None:
            hook = self._headers
        options = RequestOptions(
            headers=headers,
            retries=self._retries,
            retry_delay=self._retry_delay,
            timeout=self._timeout,
            follow_redirects=self._follow_redirects,
            header_hook=hook,
        )
        return RequestBuilder(method, url, transport=self.transport, options=options)

    def get(self, *segments: PathSegment) -> RequestBuilder:
        return self._build("GET", segments)

    def post(self, *segments: PathSegment) -> RequestBuilder:
        return self._build("POST", segments)

    def put(self, *segments: PathSegment) -> RequestBuilder:
        return self._build("PUT", segments)

    def patch(self, *segments: PathSegment) -> RequestBuilder:
        return self._build("PATCH", segments)

    def delete(self, *segments: PathSegment) -> RequestBuilder:
        return self._build("DELETE", segments)

    async def aclose(self) -> None:
        """Close the transport if this client created it."""
        if not self._owns_transport:
            return
        transport, self._transport = self._transport, None
        if isinstance(transport, HttpxTransport):
            await transport.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


Http.shared = Http()
