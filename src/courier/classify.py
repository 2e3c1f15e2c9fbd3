"""Map transport outcomes onto the ``ErrorKind`` taxonomy.

An outcome is one of three things: a response with a non-success status, a
cancellation token that fired, or an exception raised by the transport.
Rules apply in priority order:

1. Non-2xx response: dedicated kinds for 400/401/403/404/500, ``SERVER``
   for anything else. The response is attached.
2. Cancellation whose origin is the per-attempt timeout token: ``TIMEOUT``.
3. Any other cancellation, or a transport-reported abort: ``ABORT``.
4. Connection-style failure anywhere in the exception chain: ``CONNECTION``.
5. Everything else: ``CLIENT``.

Whether a kind is retried is decided by ``ErrorKind.retryable`` and the
remaining budget, not here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from courier.cancellation import CancellationToken
from courier.constants import TIMEOUT_MESSAGE
from courier.errors import STATUS_KINDS, ErrorKind, HttpError, _walk_exception_chain
from courier.transport import RequestAbortedError

if TYPE_CHECKING:
    Outcome = httpx.Response | CancellationToken | BaseException

_CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    httpx.NetworkError,
    httpx.ConnectTimeout,
    ConnectionError,
)


def classify(
    outcome: Outcome,
    *,
    token: CancellationToken | None = None,
    timeout_token: CancellationToken | None = None,
) -> HttpError:
    """Classify one failed attempt.

    Args:
        outcome: The non-success response, fired token, or raised exception.
        token: The attempt's merged token, consulted when the transport
            reports an abort itself.
        timeout_token: The attempt's synthetic timeout token. Cancellations
            originating here are timeouts; all others are aborts.

    Returns:
        The classified error.
    """
    if isinstance(outcome, httpx.Response):
        return classify_status(outcome)
    if isinstance(outcome, CancellationToken):
        return classify_cancellation(outcome, timeout_token=timeout_token)
    return classify_exception(outcome, token=token, timeout_token=timeout_token)


def classify_status(response: httpx.Response) -> HttpError:
    """Classify a response whose status is outside the success range."""
    if response.is_success:
        raise ValueError(f"Cannot classify successful response ({response.status_code})")
    kind = STATUS_KINDS.get(response.status_code, ErrorKind.SERVER)
    message = f"Server responded with status {response.status_code} {response.reason_phrase}"
    return HttpError(kind, message.rstrip(), response=response)


def classify_cancellation(
    token: CancellationToken, *, timeout_token: CancellationToken | None = None
) -> HttpError:
    """Classify a fired token by where the cancellation came from."""
    if timeout_token is not None and token.origin is timeout_token:
        return HttpError(ErrorKind.TIMEOUT, TIMEOUT_MESSAGE, reason=token.reason)
    reason = token.reason
    message = str(reason) if reason is not None else "Request aborted"
    return HttpError(ErrorKind.ABORT, message, reason=reason)


def classify_exception(
    exc: BaseException,
    *,
    token: CancellationToken | None = None,
    timeout_token: CancellationToken | None = None,
) -> HttpError:
    """Classify an exception raised by the transport."""
    chain = tuple(_walk_exception_chain(exc))

    if any(isinstance(e, RequestAbortedError) for e in chain):
        if token is not None and token.cancelled:
            return classify_cancellation(token, timeout_token=timeout_token)
        aborted = next(e for e in chain if isinstance(e, RequestAbortedError))
        return HttpError(ErrorKind.ABORT, str(aborted), reason=aborted.reason, cause=exc)

    if any(isinstance(e, _CONNECTION_ERRORS) for e in chain):
        return HttpError(ErrorKind.CONNECTION, str(exc) or "Failed to connect", cause=exc)

    return HttpError(ErrorKind.CLIENT, "Unknown error", cause=exc)
