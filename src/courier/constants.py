"""Process-wide defaults for request execution. Read-only."""

from __future__ import annotations

from typing import Final

# ==============================================================================
# Retry & Timeout Defaults (milliseconds)
# ==============================================================================

DEFAULT_RETRIES: Final[int] = 0
DEFAULT_RETRY_DELAY_MS: Final[int] = 500
DEFAULT_TIMEOUT_MS: Final[int] = 10_000

# Reason attached to the synthetic cancellation fired by the per-attempt timer.
TIMEOUT_MESSAGE: Final[str] = "Request timed out"

# ==============================================================================
# Request Bodies
# ==============================================================================

TEXT_CONTENT_TYPE: Final[str] = "text/plain;charset=UTF-8"
JSON_CONTENT_TYPE: Final[str] = "application/json;charset=utf-8"
FORM_CONTENT_TYPE: Final[str] = "application/x-www-form-urlencoded;charset=UTF-8"

# Methods whose builders reject a request body.
BODYLESS_METHODS: Final[frozenset[str]] = frozenset({"GET", "DELETE"})

# ==============================================================================
# Attempt Cleanup
# ==============================================================================

# How long an abandoned attempt may take to honour cancellation before the
# executor stops waiting for it.
ABANDON_GRACE_MS: Final[int] = 100
