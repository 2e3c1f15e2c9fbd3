"""URL path assembly."""

from __future__ import annotations

from collections.abc import Iterable

import httpx

from courier.errors import ConfigurationError

PathSegment = str | int


def build_path(segments: Iterable[PathSegment]) -> str:
    """Join path segments with ``/``.

    Numbers are stringified. Strings are trimmed, empty ones dropped, and a
    single leading and trailing slash removed from each.
    """
    pathname: list[str] = []
    for seg in segments:
        if isinstance(seg, int) and not isinstance(seg, bool):
            pathname.append(str(seg))
            continue
        seg = str(seg).strip()
        if not seg:
            continue
        seg = seg.removeprefix("/").removesuffix("/")
        pathname.append(seg)
    return "/".join(pathname)


def resolve_url(path: str, base_url: str | httpx.URL | None = None) -> httpx.URL:
    """Resolve *path* against *base_url* with browser ``new URL(path, base)`` rules.

    Raises:
        ConfigurationError: If the result is not an absolute URL.
    """
    if base_url is None:
        url = httpx.URL(path)
    else:
        base = httpx.URL(base_url)
        if not base.is_absolute_url:
            raise ConfigurationError(
                f"base_url must be absolute, got {str(base_url)!r}",
                hint="Use a full URL such as 'https://api.example.com/'.",
            )
        url = base.join(path)
    if not url.is_absolute_url:
        raise ConfigurationError(
            f"Cannot build an absolute URL from {path!r}",
            hint="Pass a full URL or configure base_url on the client.",
        )
    return url
