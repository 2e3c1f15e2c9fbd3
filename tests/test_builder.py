"""Fluent builder: immutability, header and body encoding, snapshots."""

from __future__ import annotations

import json

import httpx
from pydantic import BaseModel
import pytest

from courier.builder import RequestBuilder
from courier.cancellation import CancellationController, CancellationToken
from courier.errors import ConfigurationError
from courier.result import Success
from courier.retry import RetryPolicy
from tests.helpers import URL, ScriptedTransport

pytestmark = pytest.mark.unit


class User(BaseModel):
    name: str
    age: int


def _get(transport: ScriptedTransport) -> RequestBuilder:
    return RequestBuilder("GET", URL, transport=transport)


def _post(transport: ScriptedTransport) -> RequestBuilder:
    return RequestBuilder("POST", URL, transport=transport)


def test_setters_return_new_builders(scripted: ScriptedTransport) -> None:
    base = _get(scripted)

    derived = base.header("x-a", "1").param("q", "v").retries(2)

    assert derived is not base
    assert base.options.headers == ()
    assert base.options.retries is None
    assert "q" not in base.url.params
    assert derived.options.retries == 2
    assert derived.url.params["q"] == "v"


def test_header_replaces_case_insensitively_unless_appending(
    scripted: ScriptedTransport,
) -> None:
    builder = (
        _get(scripted)
        .header("Accept", "text/plain")
        .header("accept", "application/json")
        .header("X-Tag", "a")
        .header("X-Tag", "b", append=True)
    )

    request = builder.to_request()

    assert request.header_map().get_list("accept") == ["application/json"]
    assert request.header_map().get_list("x-tag") == ["a", "b"]


def test_header_accepts_numbers(scripted: ScriptedTransport) -> None:
    request = _get(scripted).header("X-Count", 3).to_request()
    assert request.header_map()["x-count"] == "3"


def test_param_set_and_append(scripted: ScriptedTransport) -> None:
    builder = _get(scripted).param("page", 1).param("page", 2).param("tag", "a")
    builder = builder.param("tag", "b", append=True)

    assert builder.url.params.get_list("page") == ["2"]
    assert builder.url.params.get_list("tag") == ["a", "b"]


def test_json_body_sets_content_type_and_length(scripted: ScriptedTransport) -> None:
    request = _post(scripted).body({"name": "Ada", "tags": ["x"]}).to_request()
    headers = request.header_map()

    assert json.loads(request.content or b"") == {"name": "Ada", "tags": ["x"]}
    assert headers["content-type"].startswith("application/json")
    assert headers["content-length"] == str(len(request.content or b""))


def test_model_body_is_serialized_as_json(scripted: ScriptedTransport) -> None:
    request = _post(scripted).body(User(name="Ada", age=36)).to_request()

    assert json.loads(request.content or b"") == {"name": "Ada", "age": 36}
    assert request.header_map()["content-type"].startswith("application/json")


def test_text_body_is_utf8_with_text_content_type(scripted: ScriptedTransport) -> None:
    request = _post(scripted).body("héllo").to_request()
    headers = request.header_map()

    assert request.content == "héllo".encode()
    assert headers["content-type"].startswith("text/plain")
    assert headers["content-length"] == str(len("héllo".encode()))


def test_existing_content_type_is_kept(scripted: ScriptedTransport) -> None:
    request = _post(scripted).header("Content-Type", "text/csv").body("a,b").to_request()
    assert request.header_map().get_list("content-type") == ["text/csv"]


def test_form_body_is_urlencoded(scripted: ScriptedTransport) -> None:
    params = httpx.QueryParams({"a": "1", "b": "x y"})

    request = _post(scripted).body(params).to_request()

    assert httpx.QueryParams((request.content or b"").decode()) == params
    assert request.header_map()["content-type"].startswith(
        "application/x-www-form-urlencoded"
    )


def test_bytes_body_is_sent_as_is(scripted: ScriptedTransport) -> None:
    request = _post(scripted).body(bytearray(b"\x00\x01")).to_request()

    assert request.content == b"\x00\x01"
    assert "content-type" not in request.header_map()
    assert request.header_map()["content-length"] == "2"


@pytest.mark.parametrize("method", ["GET", "DELETE"])
def test_bodyless_methods_reject_body(scripted: ScriptedTransport, method: str) -> None:
    builder = RequestBuilder(method, URL, transport=scripted)

    with pytest.raises(ConfigurationError, match="cannot have a body") as exc:
        builder.body({"a": 1})
    assert exc.value.hint


def test_signal_accepts_controller_or_token(scripted: ScriptedTransport) -> None:
    controller = CancellationController()
    token = CancellationToken()

    assert _get(scripted).signal(controller).options.signal is controller.token
    assert _get(scripted).signal(token).to_request().signal is token


def test_policy_resolves_unset_fields_to_defaults(scripted: ScriptedTransport) -> None:
    policy = _get(scripted).retries(2).timeout(250).policy()
    assert policy == RetryPolicy(retries=2, retry_delay=500, timeout=250)


def test_invalid_policy_surfaces_on_build(scripted: ScriptedTransport) -> None:
    builder = _get(scripted).retries(-1)
    with pytest.raises(ConfigurationError, match="retries"):
        builder.build()


def test_header_hook_sees_accumulated_headers(scripted: ScriptedTransport) -> None:
    seen: list[str | None] = []

    def hook(headers: httpx.Headers) -> None:
        seen.append(headers.get("x-a"))
        headers["authorization"] = "Bearer t"

    builder = RequestBuilder("GET", URL, transport=scripted)
    builder = builder._with(header_hook=hook).header("X-A", "1")  # noqa: SLF001

    request = builder.to_request()

    assert seen == ["1"]
    assert request.header_map()["authorization"] == "Bearer t"
    assert builder.options.headers == (("X-A", "1"),)


@pytest.mark.asyncio
async def test_build_snapshot_ignores_later_changes(scripted: ScriptedTransport) -> None:
    builder = _get(scripted).header("X-A", "1").retries(1)
    snapshot = builder.build()

    builder.header("X-A", "2").retries(5)
    await snapshot.text()

    sent = scripted.requests[0]
    assert sent.header_map()["x-a"] == "1"
    assert snapshot.policy.retries == 1


@pytest.mark.asyncio
async def test_terminal_shortcuts_execute(scripted: ScriptedTransport) -> None:
    scripted.then(httpx.Response(200, json={"name": "Ada", "age": 36}))

    result = await _post(scripted).body({"q": 1}).json(User)

    assert result == Success(User(name="Ada", age=36))
    assert scripted.requests[0].method == "POST"
    assert scripted.requests[0].content == b'{"q":1}'


def test_descriptor_converts_to_httpx_request_keeping_repeated_headers(
    scripted: ScriptedTransport,
) -> None:
    descriptor = (
        _post(scripted)
        .header("X-Tag", "a")
        .header("X-Tag", "b", append=True)
        .body(b"payload")
        .to_request()
    )

    http_request = descriptor.to_httpx()

    assert http_request.method == "POST"
    assert http_request.headers.get_list("x-tag") == ["a", "b"]
    assert http_request.content == b"payload"
