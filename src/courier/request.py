"""Request descriptor: the fully resolved input to the executor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from courier.errors import ConfigurationError

if TYPE_CHECKING:
    from courier.cancellation import CancellationToken

HttpMethod = str

_METHODS: frozenset[str] = frozenset(
    {"GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"}
)


@dataclass(frozen=True)
class RequestDescriptor:
    """Normalized request ready for execution.

    Headers are an ordered multimap of ``(name, value)`` pairs so repeated
    headers such as ``Set-Cookie`` survive intact. The executor never
    mutates a descriptor; retries resend the same one.
    """

    method: HttpMethod
    url: httpx.URL
    headers: tuple[tuple[str, str], ...] = ()
    content: bytes | None = None
    signal: CancellationToken | None = None
    follow_redirects: bool = True

    def __post_init__(self) -> None:
        """Validate shapes early for clear errors."""
        if self.method not in _METHODS:
            raise ConfigurationError(
                f"Unsupported HTTP method: {self.method!r}",
                hint=f"Use one of: {', '.join(sorted(_METHODS))}",
            )
        if not isinstance(self.url, httpx.URL):
            object.__setattr__(self, "url", httpx.URL(self.url))
        if not self.url.is_absolute_url:
            raise ConfigurationError(
                f"Request URL must be absolute, got {str(self.url)!r}",
                hint="Configure base_url on the client or pass a full URL.",
            )

    def header_map(self) -> httpx.Headers:
        """Return headers as a fresh ``httpx.Headers`` multimap."""
        return httpx.Headers(list(self.headers))

    def to_httpx(self, client: httpx.AsyncClient | None = None) -> httpx.Request:
        """Build the ``httpx.Request`` for one physical attempt."""
        if client is not None:
            return client.build_request(
                self.method, self.url, headers=self.header_map(), content=self.content
            )
        return httpx.Request(
            self.method, self.url, headers=self.header_map(), content=self.content
        )
