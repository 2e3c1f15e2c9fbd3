"""Retry policy and exponential backoff.

Design goals:
- Explicit state (policy snapshot + attempt counter owned by the executor)
- Retry decisions come from classified error kinds, never substring matching
- Pure ``base * 2**attempt`` spacing: no jitter, no cap. Callers bound the
  total wait through ``retries``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from courier.constants import (
    DEFAULT_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_TIMEOUT_MS,
)
from courier.errors import ConfigurationError


@dataclass(frozen=True)
class RetryPolicy:
    """Per-request retry, backoff and timeout settings (milliseconds)."""

    retries: int = DEFAULT_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY_MS
    timeout: float = DEFAULT_TIMEOUT_MS

    def __post_init__(self) -> None:
        """Validate invariants to keep retry behavior predictable."""
        if isinstance(self.retries, bool) or not isinstance(self.retries, int):
            raise ConfigurationError(
                f"retries must be an integer, got {type(self.retries).__name__}",
                hint="Pass retries=3 to allow three additional attempts.",
            )
        if self.retries < 0:
            raise ConfigurationError(
                f"retries must be ≥ 0, got {self.retries}",
                hint="Use retries=0 to disable retrying.",
            )
        if self.retry_delay < 0:
            raise ConfigurationError(
                f"retry_delay must be ≥ 0 ms, got {self.retry_delay}",
                hint="retry_delay is the base backoff in milliseconds.",
            )
        if self.timeout <= 0:
            raise ConfigurationError(
                f"timeout must be > 0 ms, got {self.timeout}",
                hint="timeout is the per-attempt limit in milliseconds.",
            )

    @classmethod
    def resolve(
        cls,
        *,
        retries: int | None = None,
        retry_delay: float | None = None,
        timeout: float | None = None,
    ) -> RetryPolicy:
        """Build a policy, substituting process defaults for unset fields."""
        return cls(
            retries=DEFAULT_RETRIES if retries is None else retries,
            retry_delay=DEFAULT_RETRY_DELAY_MS if retry_delay is None else retry_delay,
            timeout=DEFAULT_TIMEOUT_MS if timeout is None else timeout,
        )


def backoff_delay_ms(attempt: int, base_delay_ms: float) -> float:
    """Delay before retry number ``attempt + 1``; ``attempt`` starts at 0."""
    return base_delay_ms * 2**attempt


async def delay_for(attempt: int, base_delay_ms: float) -> None:
    """Suspend the calling task for ``base_delay_ms * 2**attempt`` milliseconds."""
    delay_ms = backoff_delay_ms(attempt, base_delay_ms)
    if delay_ms > 0:
        await asyncio.sleep(delay_ms / 1000)
