import asyncio
import json
from unittest.mock import patch

import httpx
import pytest
from tenacity import wait_none

from analytics.config.proxy import ProxyConfig
from analytics.errors import (
    DeliveryError,
    InvalidCredentialError,
    NetworkConnectionError,
    RequestTimeoutError,
    ServerError,
    TooManyRequestsError,
)
from analytics.models import Batch, Identify
from analytics.transport import HttpTransport
from tests.resources import SECRET, make_track

ENDPOINT = "https://collector.example.com/v1/import"

_PATCH_META = patch(
    "analytics.transport.http.get_meta_http_headers",
    return_value={"User-Agent": "analytics-python/test"},
)


def make_batch(size=2):
    actions = [make_track(i) for i in range(size)]
    return Batch(sequence=1, actions=actions, reason="manual")


def make_transport(handler, **kwargs):
    kwargs.setdefault("max_attempts", 3)
    return HttpTransport(
        endpoint=ENDPOINT,
        retry_wait=wait_none(),
        http_transport=httpx.MockTransport(handler),
        **kwargs,
    )


def send(transport, batch):
    async def run():
        try:
            await transport.send(batch, SECRET)
        finally:
            await transport.close()

    asyncio.run(run())


@pytest.mark.unit
@_PATCH_META
class TestHttpTransport:
    def test_posts_batch_as_json(self, _mock_meta):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"success": True})

        batch = make_batch(2)
        send(make_transport(handler), batch)

        (request,) = requests
        assert str(request.url) == ENDPOINT
        assert request.method == "POST"
        assert request.headers["User-Agent"] == "analytics-python/test"
        assert request.headers["X-Idempotency-Key"]

        body = json.loads(request.content)
        assert body["secret"] == SECRET
        assert "sentAt" in body
        assert [item["messageId"] for item in body["batch"]] == [
            action.message_id for action in batch
        ]
        assert body["batch"][0]["userId"] == "user-0"
        assert body["batch"][0]["action"] == "track"

    def test_wire_format_omits_missing_fields(self, _mock_meta):
        requests = []

        def handler(request):
            requests.append(json.loads(request.content))
            return httpx.Response(200)

        identify = Identify.create(session_id="session-1", traits={"plan": "Premium"})
        send(make_transport(handler), Batch(sequence=1, actions=[identify], reason="manual"))

        (item,) = requests[0]["batch"]
        assert item["sessionId"] == "session-1"
        assert "userId" not in item
        assert "context" not in item
        assert item["traits"] == {"plan": "Premium"}

    def test_retries_server_errors_then_succeeds(self, _mock_meta):
        responses = iter([httpx.Response(503), httpx.Response(502), httpx.Response(200)])
        calls = []

        def handler(request):
            calls.append(request)
            return next(responses)

        send(make_transport(handler), make_batch())

        assert len(calls) == 3

    def test_idempotency_key_is_stable_across_retries(self, _mock_meta):
        keys = []
        responses = iter([httpx.Response(500), httpx.Response(200)])

        def handler(request):
            keys.append(request.headers["X-Idempotency-Key"])
            return next(responses)

        send(make_transport(handler), make_batch())

        assert len(keys) == 2
        assert keys[0] == keys[1]

    def test_gives_up_after_max_attempts(self, _mock_meta):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, json={"detail": "database unavailable"})

        with pytest.raises(ServerError) as exc_info:
            send(make_transport(handler, max_attempts=2), make_batch())

        assert len(calls) == 2
        assert exc_info.value.status_code == 500
        assert "database unavailable" in exc_info.value.message

    def test_rate_limit_is_retried(self, _mock_meta):
        responses = iter([httpx.Response(429, text="slow down"), httpx.Response(200)])

        send(make_transport(lambda request: next(responses)), make_batch())

    def test_rate_limit_error_after_retries(self, _mock_meta):
        with pytest.raises(TooManyRequestsError):
            send(
                make_transport(lambda request: httpx.Response(429), max_attempts=1),
                make_batch(),
            )

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_rejected_secret_is_not_retried(self, _mock_meta, status_code):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(status_code, json={"detail": "bad secret"})

        with pytest.raises(InvalidCredentialError) as exc_info:
            send(make_transport(handler), make_batch())

        assert len(calls) == 1
        assert exc_info.value.status_code == status_code

    def test_client_error_is_not_retried(self, _mock_meta):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, json={"message": "batch too large"})

        with pytest.raises(DeliveryError) as exc_info:
            send(make_transport(handler), make_batch())

        assert len(calls) == 1
        assert type(exc_info.value) is DeliveryError
        assert exc_info.value.status_code == 400
        assert "batch too large" in exc_info.value.message

    def test_connection_error_maps_to_network_error(self, _mock_meta):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkConnectionError) as exc_info:
            send(make_transport(handler), make_batch())

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_timeout_maps_to_request_timeout(self, _mock_meta):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(RequestTimeoutError):
            send(make_transport(handler), make_batch())

        assert len(calls) == 3

    def test_close_releases_client(self, _mock_meta):
        transport = make_transport(lambda request: httpx.Response(200))
        send(transport, make_batch())

        assert transport.http_client is None

    def test_proxy_is_passed_to_client(self, _mock_meta):
        transport = HttpTransport(
            endpoint=ENDPOINT,
            proxy=ProxyConfig(scheme="http", host="proxy.local", port=3128),
        )

        with patch("analytics.transport.http.httpx.AsyncClient") as client_cls:
            transport._get_client()

        assert client_cls.call_args.kwargs["proxy"] == "http://proxy.local:3128"
