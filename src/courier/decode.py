"""Response decoding: turn a successful execution into a typed body.

Every operation returns a ``Result``. Decoding happens once, after the
executor has finished; a decode or validation failure never triggers a retry.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from courier.errors import ErrorKind, HttpError
from courier.executor import execute
from courier.result import Failure, Result, Success

if TYPE_CHECKING:
    from courier.request import RequestDescriptor
    from courier.retry import RetryPolicy
    from courier.transport import Transport

log = logging.getLogger(__name__)

type JSONValue = str | int | float | bool | None | dict[str, JSONValue] | list[JSONValue]

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class ResponseBuilder:
    """Executes a frozen request and decodes its response body.

    The descriptor and policy are snapshots taken when the builder was
    created; changing the originating ``RequestBuilder`` afterwards has no
    effect on requests issued from here.
    """

    def __init__(
        self, request: RequestDescriptor, policy: RetryPolicy, transport: Transport
    ) -> None:
        self._request = request
        self._policy = policy
        self._transport = transport

    @property
    def request(self) -> RequestDescriptor:
        return self._request

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def response(self) -> Result[httpx.Response]:
        """Execute the request and return the raw response."""
        return await execute(self._request, self._policy, transport=self._transport)

    async def text(self) -> Result[str]:
        """Execute the request and return the body decoded as text."""
        return await self._handle(_read_text, "Failed to parse body as text")

    async def bytes(self) -> Result[bytes]:
        """Execute the request and return the raw body bytes."""
        return await self._handle(_read_bytes, "Failed to parse body as bytes")

    async def form(self) -> Result[httpx.QueryParams]:
        """Execute the request and parse an url-encoded form body."""
        return await self._handle(_read_form, "Failed to parse body as form data")

    async def stream(self) -> Result[AsyncIterator[bytes]]:
        """Execute the request and return the body as an async byte iterator.

        The response stays open until the iterator is exhausted. An empty
        body yields nothing.
        """
        result = await self.response()
        if isinstance(result, Failure):
            return result
        return Success(result.data.aiter_bytes())

    async def unsafe_json(self) -> Result[JSONValue]:
        """Execute the request and return the parsed JSON body without validation."""
        return await self._handle(_read_json, "Failed to parse body as json")

    async def json(self, schema: Any) -> Result[Any]:
        """Execute the request, parse JSON and validate it against *schema*.

        Args:
            schema: A Pydantic model, any type ``TypeAdapter`` accepts, or a
                ready ``TypeAdapter``.

        Returns:
            ``Success`` with the validated value, or ``Failure`` whose error
            kind is ``VALIDATION`` and whose ``issues`` list each problem.
        """
        result = await self.unsafe_json()
        if isinstance(result, Failure):
            return result
        adapter = schema if isinstance(schema, TypeAdapter) else TypeAdapter(schema)
        try:
            return Success(adapter.validate_python(result.data))
        except PydanticValidationError as exc:
            log.debug("Response failed schema validation: %s", exc)
            return Failure(
                HttpError(
                    ErrorKind.VALIDATION,
                    str(exc),
                    cause=exc,
                    issues=tuple(exc.errors()),
                )
            )

    async def _handle[T](
        self,
        parse: Callable[[httpx.Response], Awaitable[T]],
        message: str,
    ) -> Result[T]:
        result = await self.response()
        if isinstance(result, Failure):
            return result
        try:
            return Success(await parse(result.data))
        except Exception as exc:
            log.debug("%s: %s", message, exc, exc_info=True)
            return Failure(HttpError(ErrorKind.PARSE_BODY, message, cause=exc))


async def _read_bytes(response: httpx.Response) -> bytes:
    return await response.aread()


async def _read_text(response: httpx.Response) -> str:
    await response.aread()
    return response.text


async def _read_json(response: httpx.Response) -> JSONValue:
    await response.aread()
    return response.json()


async def _read_form(response: httpx.Response) -> httpx.QueryParams:
    content_type = response.headers.get("content-type", _FORM_CONTENT_TYPE)
    if not content_type.lower().startswith(_FORM_CONTENT_TYPE):
        raise ValueError(f"Unsupported form content type: {content_type}")
    await response.aread()
    pairs = parse_qsl(response.text, keep_blank_values=True, strict_parsing=bool(response.text))
    return httpx.QueryParams(pairs)
