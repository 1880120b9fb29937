import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from config.settings import settings

from .errors import ConfigurationError, TransportError, UpstreamError
from .payload_builder import build_headers

logger = logging.getLogger(__name__)


def model_url(model_id: str, base_url: Optional[str] = None) -> str:
    base = (base_url or settings.INFERENCE_BASE_URL).rstrip("/")
    return f"{base}/models/{model_id}"


def make_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """
    One AsyncClient is shared by every request of a batch.
    `transport` lets tests swap the network for httpx.MockTransport.
    """
    return httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT, transport=transport)


def parse_error_message(response: httpx.Response) -> Optional[str]:
    """
    Pull `error` out of a JSON error body. Returns None when the body is not
    JSON or carries no usable message.
    """
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if not error:
        return None
    if isinstance(error, list):
        return "; ".join(str(e) for e in error)
    return str(error)


async def request_image(
    client: httpx.AsyncClient,
    model_id: str,
    payload: Dict[str, Any],
    api_key: Optional[str],
) -> Tuple[bytes, str]:
    """
    POST one generation request and return (image_bytes, media_type).

    Raises:
        ConfigurationError: no API key, nothing is sent
        UpstreamError: non-2xx, or a 2xx that is not an image
        TransportError: connection/timeout/protocol failure
    """
    if not api_key:
        raise ConfigurationError("HUGGINGFACE_API_KEY is not configured")

    url = model_url(model_id)
    logger.debug(f"[InferenceClient] POST {url} payload={payload}")

    try:
        r = await client.post(url, json=payload, headers=build_headers(api_key))
    except httpx.HTTPError as e:
        logger.error(f"[InferenceClient] Transport error calling {url}: {e!r}")
        raise TransportError(str(e) or e.__class__.__name__) from e

    body = r.content
    if not r.is_success:
        message = parse_error_message(r)
        logger.error(f"[InferenceClient] {url} returned {r.status_code}: {r.text[:500]}")
        raise UpstreamError(r.status_code, message)

    media_type = r.headers.get("content-type", "").split(";")[0].strip()
    if media_type == "application/json" or not body:
        # 2xx without an image is still a failure for this card
        message = parse_error_message(r) if body else None
        logger.error(f"[InferenceClient] {url} returned {r.status_code} without image data")
        raise UpstreamError(r.status_code, message or "Response did not contain image data")

    return body, media_type or "image/jpeg"


def describe_upstream_error(message: Optional[str]) -> str:
    """
    Friendlier text for the common Hugging Face failure modes.
    """
    text = message or ""
    if "loading" in text:
        return "Model is loading, please try again in a few seconds"
    if "permission" in text:
        return "Please check your API key and model permissions"
    if "timeout" in text:
        return "Request timed out, please try again"
    if "memory" in text:
        return "Model is out of memory, please try again later"
    return f"API error: {text or 'Unknown error'}"
