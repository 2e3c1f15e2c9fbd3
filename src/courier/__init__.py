"""courier: fluent async HTTP requests with typed results.

Public API:
    - Http: client with default options; get/post/put/patch/delete builders
    - get(), post(), put(), patch(), delete(): builders on the shared client
    - execute(): run a RequestDescriptor under a RetryPolicy
    - Result (Success | Failure) and the HttpError/ErrorKind taxonomy
    - CancellationController / CancellationToken / merge()
"""

from __future__ import annotations

import logging

from courier.builder import RequestBuilder, RequestOptions
from courier.cancellation import CancellationController, CancellationToken, merge
from courier.client import Http
from courier.constants import (
    DEFAULT_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_TIMEOUT_MS,
    TIMEOUT_MESSAGE,
)
from courier.decode import ResponseBuilder
from courier.errors import (
    ConfigurationError,
    CourierError,
    ErrorGroup,
    ErrorKind,
    HttpError,
)
from courier.executor import execute
from courier.request import RequestDescriptor
from courier.result import Failure, Result, Success
from courier.retry import RetryPolicy
from courier.transport import HttpxTransport, RequestAbortedError, Transport
from courier.urls import PathSegment

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("courier-http")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("courier").addHandler(logging.NullHandler())


def get(*segments: PathSegment) -> RequestBuilder:
    """GET builder on the shared client."""
    return Http.shared.get(*segments)


def post(*segments: PathSegment) -> RequestBuilder:
    """POST builder on the shared client."""
    return Http.shared.post(*segments)


def put(*segments: PathSegment) -> RequestBuilder:
    """PUT builder on the shared client."""
    return Http.shared.put(*segments)


def patch(*segments: PathSegment) -> RequestBuilder:
    """PATCH builder on the shared client."""
    return Http.shared.patch(*segments)


def delete(*segments: PathSegment) -> RequestBuilder:
    """DELETE builder on the shared client."""
    return Http.shared.delete(*segments)


__all__ = [
    "DEFAULT_RETRIES",
    "DEFAULT_RETRY_DELAY_MS",
    "DEFAULT_TIMEOUT_MS",
    "TIMEOUT_MESSAGE",
    "CancellationController",
    "CancellationToken",
    "ConfigurationError",
    "CourierError",
    "ErrorGroup",
    "ErrorKind",
    "Failure",
    "Http",
    "HttpError",
    "HttpxTransport",
    "RequestAbortedError",
    "RequestBuilder",
    "RequestDescriptor",
    "RequestOptions",
    "ResponseBuilder",
    "Result",
    "RetryPolicy",
    "Success",
    "Transport",
    "__version__",
    "delete",
    "execute",
    "get",
    "merge",
    "patch",
    "post",
    "put",
]
