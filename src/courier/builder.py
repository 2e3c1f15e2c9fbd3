"""Fluent request builder.

Builders are immutable values: every setter returns a new builder and leaves
the receiver untouched, so a partially configured builder can be shared and
specialised freely. ``build()`` snapshots the descriptor and retry policy;
nothing done to a builder afterwards affects a request already issued.

Example:
    result = await (
        http.post("users")
        .header("Authorization", f"Bearer {token}")
        .body({"name": "Ada"})
        .retries(2)
        .json(User)
    )
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
import json
from typing import TYPE_CHECKING, Any, Self

import httpx
from pydantic import BaseModel

from courier.cancellation import CancellationController, CancellationToken
from courier.constants import (
    BODYLESS_METHODS,
    FORM_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    TEXT_CONTENT_TYPE,
)
from courier.decode import ResponseBuilder
from courier.errors import ConfigurationError
from courier.request import RequestDescriptor
from courier.retry import RetryPolicy

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from courier.decode import JSONValue
    from courier.result import Result
    from courier.transport import Transport

HeaderHook = Callable[[httpx.Headers], None]


@dataclass(frozen=True)
class RequestOptions:
    """Everything a builder accumulates besides method, URL and transport."""

    headers: tuple[tuple[str, str], ...] = ()
    content: bytes | None = None
    signal: CancellationToken | None = None
    retries: int | None = None
    retry_delay: float | None = None
    timeout: float | None = None
    follow_redirects: bool = True
    #: Called with a copy of the headers just before the descriptor is built.
    header_hook: HeaderHook | None = None


class RequestBuilder:
    """Accumulates request configuration and executes it."""

    __slots__ = ("_method", "_options", "_transport", "_url")

    def __init__(
        self,
        method: str,
        url: httpx.URL | str,
        *,
        transport: Transport,
        options: RequestOptions | None = None,
    ) -> None:
        self._method = method.upper()
        self._url = httpx.URL(url)
        self._transport = transport
        self._options = options or RequestOptions()

    @property
    def method(self) -> str:
        return self._method

    @property
    def url(self) -> httpx.URL:
        return self._url

    @property
    def options(self) -> RequestOptions:
        return self._options

    def _with(self, *, url: httpx.URL | None = None, **changes: Any) -> Self:
        return type(self)(
            self._method,
            url if url is not None else self._url,
            transport=self._transport,
            options=replace(self._options, **changes) if changes else self._options,
        )

    # --- Headers & query -------------------------------------------------

    def header(self, name: str, value: str | int, append: bool = False) -> Self:
        """Set header *name*, or add another value when *append* is true."""
        return self._with(headers=_set_header(self._options.headers, name, str(value), append))

    def param(self, name: str, value: str | int, append: bool = False) -> Self:
        """Set query parameter *name*, or add another value when *append* is true."""
        val = str(value)
        url = self._url.copy_add_param(name, val) if append else self._url.copy_set_param(name, val)
        return self._with(url=url)

    # --- Body --------------------------------------------------------------

    def body(self, value: bytes | bytearray | str | httpx.QueryParams | BaseModel | JSONValue) -> Self:
        """Set the request body and the headers that describe it.

        - ``bytes``: sent as-is with ``content-length``.
        - ``str``: UTF-8 encoded; ``text/plain`` unless a content type is set.
        - ``httpx.QueryParams``: url-encoded form.
        - Pydantic models and JSON values: serialised to JSON;
          ``application/json`` unless a content type is set.

        Raises:
            ConfigurationError: For methods that do not take a body.
        """
        if self._method in BODYLESS_METHODS:
            raise ConfigurationError(
                f"{self._method} requests cannot have a body",
                hint="Use query parameters via .param(), or POST/PUT/PATCH.",
            )
        headers = self._options.headers
        if isinstance(value, (bytes, bytearray, memoryview)):
            content = bytes(value)
        elif isinstance(value, httpx.QueryParams):
            content = str(value).encode("utf-8")
            headers = _set_header(headers, "content-type", FORM_CONTENT_TYPE)
        elif isinstance(value, str):
            content = value.encode("utf-8")
            if not _has_header(headers, "content-type"):
                headers = _set_header(headers, "content-type", TEXT_CONTENT_TYPE)
        else:
            if isinstance(value, BaseModel):
                text = value.model_dump_json()
            else:
                text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
            content = text.encode("utf-8")
            if not _has_header(headers, "content-type"):
                headers = _set_header(headers, "content-type", JSON_CONTENT_TYPE)
        headers = _set_header(headers, "content-length", str(len(content)))
        return self._with(headers=headers, content=content)

    # --- Execution policy ------------------------------------------------

    def signal(self, value: CancellationController | CancellationToken) -> Self:
        """Attach a caller cancellation; firing it aborts the request without retry."""
        token = value.token if isinstance(value, CancellationController) else value
        return self._with(signal=token)

    def retries(self, value: int) -> Self:
        return self._with(retries=value)

    def retry_delay(self, value: float) -> Self:
        """Base backoff in milliseconds; retry *n* waits ``value * 2**n``."""
        return self._with(retry_delay=value)

    def timeout(self, value: float) -> Self:
        """Per-attempt timeout in milliseconds."""
        return self._with(timeout=value)

    def follow_redirects(self, value: bool = True) -> Self:
        return self._with(follow_redirects=value)

    # --- Snapshots ---------------------------------------------------------

    def policy(self) -> RetryPolicy:
        """Resolve the retry policy, filling process defaults."""
        opts = self._options
        return RetryPolicy.resolve(
            retries=opts.retries, retry_delay=opts.retry_delay, timeout=opts.timeout
        )

    def to_request(self) -> RequestDescriptor:
        """Freeze the current configuration into a request descriptor."""
        opts = self._options
        headers = opts.headers
        if opts.header_hook is not None:
            header_map = httpx.Headers(list(headers))
            opts.header_hook(header_map)
            headers = tuple(header_map.multi_items())
        return RequestDescriptor(
            method=self._method,
            url=self._url,
            headers=headers,
            content=opts.content,
            signal=opts.signal,
            follow_redirects=opts.follow_redirects,
        )

    def build(self) -> ResponseBuilder:
        return ResponseBuilder(self.to_request(), self.policy(), self._transport)

    # --- Terminal shortcuts ------------------------------------------------

    async def response(self) -> Result[httpx.Response]:
        return await self.build().response()

    async def text(self) -> Result[str]:
        return await self.build().text()

    async def bytes(self) -> Result[bytes]:
        return await self.build().bytes()

    async def form(self) -> Result[httpx.QueryParams]:
        return await self.build().form()

    async def stream(self) -> Result[AsyncIterator[bytes]]:
        return await self.build().stream()

    async def json(self, schema: Any) -> Result[Any]:
        return await self.build().json(schema)

    async def unsafe_json(self) -> Result[JSONValue]:
        return await self.build().unsafe_json()

    def __repr__(self) -> str:
        return f"<RequestBuilder {self._method} {self._url}>"


def _has_header(headers: tuple[tuple[str, str], ...], name: str) -> bool:
    key = name.lower()
    return any(k.lower() == key for k, _ in headers)


def _set_header(
    headers: tuple[tuple[str, str], ...], name: str, value: str, append: bool = False
) -> tuple[tuple[str, str], ...]:
    if append:
        return (*headers, (name, value))
    key = name.lower()
    return (*((k, v) for k, v in headers if k.lower() != key), (name, value))
