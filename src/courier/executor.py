"""Request executor: attempts, timeouts, retries.

One logical request is a sequential chain of physical attempts:

    Attempting -> Success | Retrying | TerminalFailure
    Retrying   -> Attempting

Each attempt owns a fresh timeout token merged with the caller's token, and
a timer that fires the timeout token. The timer is disarmed and the merged
token closed on every exit path, including cancellation of the calling task.
At most ``policy.retries + 1`` attempts are made; retrying is invisible to
the caller except as latency. A caller cancellation ends the request at once,
also while it is backing off between attempts.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from courier.cancellation import CancellationToken, merge
from courier.classify import classify, classify_cancellation
from courier.constants import ABANDON_GRACE_MS, TIMEOUT_MESSAGE
from courier.result import Failure, Result, Success
from courier.retry import RetryPolicy, backoff_delay_ms, delay_for

if TYPE_CHECKING:
    import httpx

    from courier.request import RequestDescriptor
    from courier.transport import Transport

log = logging.getLogger(__name__)

# Cleanup tasks for abandoned attempts; referenced until they finish.
_background: set[asyncio.Future[None]] = set()


async def execute(
    request: RequestDescriptor,
    policy: RetryPolicy | None = None,
    *,
    transport: Transport,
) -> Result[httpx.Response]:
    """Execute *request* under *policy* and classify the terminal outcome.

    Args:
        request: The resolved request. Never mutated.
        policy: Retry/backoff/timeout snapshot. Defaults to process defaults.
        transport: Performs one physical attempt.

    Returns:
        ``Success(response)`` for a 2xx response, otherwise
        ``Failure(HttpError)``. Exceptions raised by the transport are
        classified, never propagated. Cancelling the calling task still
        raises ``asyncio.CancelledError`` after cleanup.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        log.debug(
            "Attempt %d/%d: %s %s",
            attempt + 1,
            policy.retries + 1,
            request.method,
            request.url,
        )
        result = await _attempt(request, policy, transport)
        if isinstance(result, Success):
            return result

        error = result.error
        if error.kind.retryable and attempt < policy.retries:
            log.debug(
                "Retrying %s %s after %s in %.0f ms",
                request.method,
                request.url,
                error.kind.name,
                backoff_delay_ms(attempt, policy.retry_delay),
            )
            if not await _backoff(attempt, policy, request.signal):
                log.debug("Request %s %s aborted during backoff", request.method, request.url)
                return Failure(classify_cancellation(request.signal))
            attempt += 1
            continue

        log.debug(
            "Request %s %s failed after %d attempt(s): %s",
            request.method,
            request.url,
            attempt + 1,
            error.kind.name,
        )
        return result


async def _backoff(
    attempt: int, policy: RetryPolicy, signal: CancellationToken | None
) -> bool:
    """Wait out the backoff for *attempt*; False if *signal* fired first."""
    if signal is None:
        await delay_for(attempt, policy.retry_delay)
        return True
    sleep = asyncio.ensure_future(delay_for(attempt, policy.retry_delay))
    waiter = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({sleep, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        sleep.cancel()
        waiter.cancel()
    return not signal.cancelled


async def _attempt(
    request: RequestDescriptor, policy: RetryPolicy, transport: Transport
) -> Result[httpx.Response]:
    timeout_token = CancellationToken()
    sources = [timeout_token] if request.signal is None else [request.signal, timeout_token]
    token = merge(sources)
    if token.cancelled:
        token.close()
        return Failure(classify(token, timeout_token=timeout_token))

    loop = asyncio.get_running_loop()
    timer = loop.call_later(policy.timeout / 1000, timeout_token.cancel, TIMEOUT_MESSAGE)
    send = asyncio.ensure_future(transport(request, token))
    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({send, waiter}, return_when=asyncio.FIRST_COMPLETED)
        if not send.done():
            send.cancel()
            await _abandon(send)
            return Failure(classify(token, timeout_token=timeout_token))

        exc = send.exception()
        if exc is None:
            response = send.result()
            if response.is_success:
                return Success(response)
            # The status decides the outcome; the body is best effort.
            await _read_error_body(response, waiter)
            return Failure(classify(response))
        if not isinstance(exc, Exception):
            raise exc
        return Failure(classify(exc, token=token, timeout_token=timeout_token))
    finally:
        timer.cancel()
        token.close()
        waiter.cancel()
        if not send.done():
            send.cancel()


async def _read_error_body(response: httpx.Response, waiter: asyncio.Future[None]) -> None:
    """Read a non-success body until it completes, fails, or the attempt's token fires."""
    if waiter.done():
        return
    read = asyncio.ensure_future(response.aread())
    try:
        await asyncio.wait({read, waiter}, return_when=asyncio.FIRST_COMPLETED)
        if not read.done():
            read.cancel()
            await asyncio.wait({read}, timeout=ABANDON_GRACE_MS / 1000)
            log.debug("Stopped reading %d response body", response.status_code)
        if read.done() and not read.cancelled() and read.exception() is not None:
            log.debug(
                "Reading %d response body failed: %r", response.status_code, read.exception()
            )
    finally:
        if not read.done():
            read.cancel()


async def _abandon(task: asyncio.Future[httpx.Response]) -> None:
    """Give a cancelled attempt a short grace period, then stop waiting for it."""
    await asyncio.wait({task}, timeout=ABANDON_GRACE_MS / 1000)
    if task.done():
        await _release(task)
        return
    log.warning("Transport ignored cancellation; abandoning attempt in the background")
    task.add_done_callback(_release_later)


def _release_later(task: asyncio.Future[httpx.Response]) -> None:
    cleanup = asyncio.ensure_future(_release(task))
    _background.add(cleanup)
    cleanup.add_done_callback(_background.discard)


async def _release(task: asyncio.Future[httpx.Response]) -> None:
    """Retrieve the outcome of an abandoned attempt so nothing leaks."""
    if task.cancelled():
        return
    if task.exception() is not None:
        log.debug("Abandoned attempt raised: %r", task.exception())
        return
    await task.result().aclose()
