"""
HTTP client for the Replicate expression-editor model.

Creates one prediction per parameter triple and downloads the resulting
image. Failures are classified into rate limits (retryable) and
everything else (not retryable).
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

from .errors import EmptyOutputError, GenerationError, RateLimitError
from .types import ParameterTriple

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("succeeded", "failed", "canceled")

# Expression controls held at neutral for every image
NEUTRAL_EXPRESSION: Dict[str, Any] = {
    "aaa": 0,
    "eee": 0,
    "woo": 0,
    "wink": 0,
    "blink": 0,
    "smile": 0,
    "eyebrow": 0,
    "rotate_yaw": 0,
    "rotate_roll": 0,
    "src_ratio": 1,
    "sample_ratio": 1,
}


def _is_rate_limit_message(message: str) -> bool:
    text = message.lower()
    return "429" in text or "rate limit" in text or "too many requests" in text


def _raise_for_status(response: httpx.Response, action: str) -> None:
    if response.status_code == 429:
        retry_after = response.headers.get("retry-after")
        detail = f" (retry after {retry_after}s)" if retry_after else ""
        raise RateLimitError(f"{action} rate limited{detail}", status=429)
    if response.is_error:
        raise GenerationError(
            f"{action} failed with HTTP {response.status_code}: {response.text[:200]}",
            status=response.status_code,
        )


def _decode(response: httpx.Response, action: str) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise GenerationError(f"{action} returned invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise GenerationError(f"{action} returned unexpected payload: {data!r}")
    return data


class ExpressionEditorClient:
    """
    Thin synchronous client for the Replicate predictions API.

    Usage:
        with ExpressionEditorClient(token, model_version, source_image) as client:
            url = client.run(ParameterTriple(0, 5, 0))
            data = client.download(url)
    """

    def __init__(
        self,
        api_token: str,
        model_version: str,
        source_image: str,
        base_url: str = "https://api.replicate.com/v1",
        output_format: str = "webp",
        output_quality: int = 95,
        crop_factor: float = 2.5,
        timeout: float = 120.0,
        poll_interval: float = 1.0,
        prediction_timeout: float = 300.0,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._model_version = model_version
        self._source_image = source_image
        self._base_url = base_url.rstrip("/")
        self._output_format = output_format
        self._output_quality = output_quality
        self._crop_factor = crop_factor
        self._poll_interval = poll_interval
        self._prediction_timeout = prediction_timeout
        self._sleep = sleep
        self._clock = clock
        self._headers = {
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        }
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout, follow_redirects=True)
        self.request_count = 0

    def __enter__(self) -> "ExpressionEditorClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def build_input(self, triple: ParameterTriple) -> Dict[str, Any]:
        """Full model input for one triple."""
        return {
            **NEUTRAL_EXPRESSION,
            "image": self._source_image,
            "crop_factor": self._crop_factor,
            "output_format": self._output_format,
            "output_quality": self._output_quality,
            **triple.to_input(),
        }

    def _request(self, method: str, url: str, action: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise GenerationError(f"{action} failed: {exc}") from exc
        _raise_for_status(response, action)
        return response

    def run(self, triple: ParameterTriple) -> str:
        """
        Create a prediction for triple and wait for it to finish.

        Returns:
            URL of the first output image

        Raises:
            RateLimitError: The service signalled a rate limit
            EmptyOutputError: The prediction succeeded without an image URL
            GenerationError: Any other failure, including a prediction still
                unfinished after prediction_timeout seconds
        """
        self.request_count += 1
        response = self._request(
            "POST",
            f"{self._base_url}/predictions",
            "Prediction",
            headers={**self._headers, "Prefer": "wait"},
            json={"version": self._model_version, "input": self.build_input(triple)},
        )
        prediction = _decode(response, "Prediction")
        deadline = self._clock() + self._prediction_timeout

        while prediction.get("status") not in TERMINAL_STATUSES:
            poll_url = (prediction.get("urls") or {}).get("get")
            if not poll_url:
                raise GenerationError(f"Prediction {prediction.get('id')} has no poll URL")
            if self._clock() >= deadline:
                raise GenerationError(
                    f"Prediction {prediction.get('id')} did not finish within "
                    f"{self._prediction_timeout:g}s (last status: {prediction.get('status')})"
                )
            self._sleep(self._poll_interval)
            prediction = _decode(
                self._request("GET", poll_url, "Prediction poll", headers=self._headers),
                "Prediction poll",
            )

        return self._extract_output(prediction)

    @staticmethod
    def _extract_output(prediction: Dict[str, Any]) -> str:
        status = prediction.get("status")
        if status != "succeeded":
            error = str(prediction.get("error") or status)
            if _is_rate_limit_message(error):
                raise RateLimitError(f"Prediction rate limited: {error}")
            raise GenerationError(f"Prediction {status}: {error}")

        output = prediction.get("output")
        if isinstance(output, list) and output and isinstance(output[0], str) and output[0]:
            return output[0]
        raise EmptyOutputError(f"Prediction succeeded without an image: {output!r}")

    def download(self, url: str) -> bytes:
        """Fetch an output image."""
        response = self._request("GET", url, "Download")
        if not response.content:
            raise EmptyOutputError(f"Downloaded image is empty: {url}")
        return response.content
