"""Tests for gazeframe.client — Replicate API client over a mock transport."""

import json

import httpx
import pytest

from gazeframe.client import NEUTRAL_EXPRESSION, ExpressionEditorClient
from gazeframe.errors import EmptyOutputError, GenerationError, RateLimitError
from gazeframe.types import ParameterTriple

from conftest import WEBP_BYTES

IMAGE_URL = "https://replicate.delivery/out/0.webp"
TRIPLE = ParameterTriple(-5, 10, 7)


def make_client(handler, sleeps=None):
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return ExpressionEditorClient(
        api_token="r8_test",
        model_version="abc123",
        source_image="https://example.com/face.jpg",
        http_client=http,
        sleep=sleeps or (lambda s: None),
    )


class TestBuildInput:
    """Tests for the request payload."""

    def test_contains_triple_and_neutral_controls(self):
        client = make_client(lambda request: httpx.Response(500))
        data = client.build_input(TRIPLE)
        assert data["rotate_pitch"] == -5
        assert data["pupil_x"] == 10
        assert data["pupil_y"] == 7
        assert data["image"] == "https://example.com/face.jpg"
        assert data["output_format"] == "webp"
        assert data["output_quality"] == 95
        assert data["crop_factor"] == 2.5
        for key, value in NEUTRAL_EXPRESSION.items():
            assert data[key] == value


class TestRun:
    """Tests for ExpressionEditorClient.run()."""

    def test_sync_success(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["authorization"]
            seen["prefer"] = request.headers.get("prefer")
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"id": "p1", "status": "succeeded", "output": [IMAGE_URL]})

        client = make_client(handler)
        assert client.run(TRIPLE) == IMAGE_URL
        assert seen["auth"] == "Bearer r8_test"
        assert seen["prefer"] == "wait"
        assert seen["body"]["version"] == "abc123"
        assert seen["body"]["input"]["pupil_x"] == 10
        assert client.request_count == 1

    def test_polls_until_terminal(self, sleeps):
        polls = []

        def handler(request):
            if request.method == "POST":
                return httpx.Response(201, json={
                    "id": "p1",
                    "status": "starting",
                    "urls": {"get": "https://api.replicate.com/v1/predictions/p1"},
                })
            polls.append(request.url)
            if len(polls) < 2:
                return httpx.Response(200, json={
                    "id": "p1",
                    "status": "processing",
                    "urls": {"get": "https://api.replicate.com/v1/predictions/p1"},
                })
            return httpx.Response(200, json={"id": "p1", "status": "succeeded", "output": [IMAGE_URL]})

        client = make_client(handler, sleeps)
        assert client.run(TRIPLE) == IMAGE_URL
        assert len(polls) == 2
        assert sleeps.waits == [1.0, 1.0]

    def test_gives_up_on_stuck_prediction(self):
        """A prediction that never leaves 'processing' fails instead of polling forever."""
        now = [0.0]
        polls = []

        def handler(request):
            if request.method == "GET":
                polls.append(request.url)
            return httpx.Response(200, json={
                "id": "p1",
                "status": "processing",
                "urls": {"get": "https://api.replicate.com/v1/predictions/p1"},
            })

        def advance(seconds):
            now[0] += seconds

        client = ExpressionEditorClient(
            api_token="r8_test",
            model_version="abc123",
            source_image="https://example.com/face.jpg",
            prediction_timeout=5.0,
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
            sleep=advance,
            clock=lambda: now[0],
        )
        with pytest.raises(GenerationError, match="did not finish within 5s") as exc_info:
            client.run(TRIPLE)

        assert not isinstance(exc_info.value, RateLimitError)
        assert len(polls) == 5
        assert now[0] == 5.0

    def test_http_429_is_rate_limit(self):
        client = make_client(lambda request: httpx.Response(429, headers={"retry-after": "10"}))
        with pytest.raises(RateLimitError) as exc_info:
            client.run(TRIPLE)
        assert exc_info.value.status == 429
        assert exc_info.value.retryable is True

    def test_failed_prediction_with_429_is_rate_limit(self):
        client = make_client(lambda request: httpx.Response(201, json={
            "id": "p1", "status": "failed", "error": "Request failed with status 429",
        }))
        with pytest.raises(RateLimitError):
            client.run(TRIPLE)

    def test_server_error_is_not_retryable(self):
        client = make_client(lambda request: httpx.Response(500, text="oops"))
        with pytest.raises(GenerationError) as exc_info:
            client.run(TRIPLE)
        assert not isinstance(exc_info.value, RateLimitError)
        assert exc_info.value.status == 500

    def test_failed_prediction(self):
        client = make_client(lambda request: httpx.Response(201, json={
            "id": "p1", "status": "failed", "error": "CUDA out of memory",
        }))
        with pytest.raises(GenerationError, match="CUDA"):
            client.run(TRIPLE)

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused")

        client = make_client(handler)
        with pytest.raises(GenerationError, match="refused"):
            client.run(TRIPLE)

    @pytest.mark.parametrize("output", [[], None, "https://x/one.webp", [None], {"url": "x"}])
    def test_empty_or_non_list_output(self, output):
        client = make_client(lambda request: httpx.Response(201, json={
            "id": "p1", "status": "succeeded", "output": output,
        }))
        with pytest.raises(EmptyOutputError):
            client.run(TRIPLE)

    def test_invalid_json(self):
        client = make_client(lambda request: httpx.Response(201, text="not json"))
        with pytest.raises(GenerationError, match="invalid JSON"):
            client.run(TRIPLE)


class TestDownload:
    """Tests for ExpressionEditorClient.download()."""

    def test_returns_bytes(self):
        client = make_client(lambda request: httpx.Response(200, content=WEBP_BYTES))
        assert client.download(IMAGE_URL) == WEBP_BYTES

    def test_empty_body(self):
        client = make_client(lambda request: httpx.Response(200, content=b""))
        with pytest.raises(EmptyOutputError):
            client.download(IMAGE_URL)

    def test_rate_limited_download(self):
        client = make_client(lambda request: httpx.Response(429))
        with pytest.raises(RateLimitError):
            client.download(IMAGE_URL)

    def test_close_leaves_injected_client_open(self):
        http = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        client = ExpressionEditorClient("t", "v", "img", http_client=http)
        client.close()
        assert not http.is_closed
