# tests/acquisition/test_overpass_client.py
import asyncio

import httpx
import pytest

from src.acquisition.exceptions import (
    ConnectionError,
    FailureHint,
    InvalidResponseError,
    UpstreamError,
    UpstreamTimeoutError,
)
from src.acquisition.models import OverpassClientConfig, QueryRequest
from src.acquisition.overpass_client import OverpassClient

ENDPOINT = "https://overpass.example.org/api"


def run_fetch(handler, request, method="fetch"):
    async def go():
        config = OverpassClientConfig(endpoint=ENDPOINT)
        async with OverpassClient(config, transport=httpx.MockTransport(handler)) as client:
            return await getattr(client, method)(request)

    return asyncio.run(go())


def test_query_is_posted_as_plain_text_to_interpreter():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"elements": []})

    run_fetch(handler, QueryRequest.from_query("[out:json]; node(1); out;"))

    (request,) = seen
    assert request.method == "POST"
    assert str(request.url) == f"{ENDPOINT}/interpreter"
    assert request.headers["content-type"] == "text/plain"
    assert request.content == b"[out:json]; node(1); out;"


def test_url_is_fetched_with_get_and_no_body():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, content=b"<osm/>")

    url = "https://other.example.org/api/interpreter?data=node(1);out;"
    body = run_fetch(handler, QueryRequest.from_url(url), method="fetch_bytes")

    (request,) = seen
    assert request.method == "GET"
    assert request.url.host == "other.example.org"
    assert request.content == b""
    assert body == b"<osm/>"


def test_504_is_upstream_timeout():
    with pytest.raises(UpstreamTimeoutError) as exc_info:
        run_fetch(lambda r: httpx.Response(504), QueryRequest.from_query("x"))

    assert exc_info.value.status_code == 504
    assert exc_info.value.hint is FailureHint.RETRY_LATER
    assert "Try again later" in exc_info.value.user_message


@pytest.mark.parametrize("status", [400, 429, 500, 502, 503])
def test_other_statuses_are_upstream_errors(status):
    with pytest.raises(UpstreamError) as exc_info:
        run_fetch(lambda r: httpx.Response(status), QueryRequest.from_query("x"))

    assert exc_info.value.status_code == status
    assert not isinstance(exc_info.value, UpstreamTimeoutError)
    assert exc_info.value.hint is FailureHint.SWITCH_SERVER


def test_each_fetch_is_a_single_attempt():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    with pytest.raises(UpstreamError):
        run_fetch(handler, QueryRequest.from_query("x"))
    assert len(calls) == 1


def test_client_timeout_is_upstream_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(UpstreamTimeoutError) as exc_info:
        run_fetch(handler, QueryRequest.from_query("x"))

    assert exc_info.value.status_code is None
    assert exc_info.value.timeout_type == "read"


def test_connect_failure_is_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ConnectionError):
        run_fetch(handler, QueryRequest.from_query("x"))


def test_fetch_json_rejects_non_json():
    with pytest.raises(InvalidResponseError) as exc_info:
        run_fetch(
            lambda r: httpx.Response(200, text="<html>rate limited</html>"),
            QueryRequest.from_query("x"),
            method="fetch_json",
        )
    assert "rate limited" in exc_info.value.response_text


def test_fetch_json_rejects_non_object():
    with pytest.raises(InvalidResponseError):
        run_fetch(
            lambda r: httpx.Response(200, json=[1, 2, 3]),
            QueryRequest.from_query("x"),
            method="fetch_json",
        )


def test_fetch_outside_context_manager_fails():
    client = OverpassClient()
    with pytest.raises(RuntimeError):
        asyncio.run(client.fetch(QueryRequest.from_query("x")))
