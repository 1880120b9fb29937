"""Tests for the single-request inference client."""

import json

import httpx
import pytest

from backend.errors import ConfigurationError, TransportError, UpstreamError
from backend.inference_client import describe_upstream_error, model_url, request_image
from backend.payload_builder import build_payload, get_model_params

MODEL = "black-forest-labs/FLUX.1-schnell"


@pytest.mark.asyncio
async def test_sends_expected_request(mock_client, png_bytes):
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, content=png_bytes, headers={"content-type": "image/png"})

    async with mock_client(handler) as client:
        image, media_type = await request_image(
            client, MODEL, build_payload("a cat", 512, 384), "hf_secret"
        )

    assert image == png_bytes
    assert media_type == "image/png"
    (req,) = seen
    assert req.method == "POST"
    assert str(req.url) == model_url(MODEL)
    assert req.url.path == f"/models/{MODEL}"
    assert req.headers["authorization"] == "Bearer hf_secret"
    assert req.headers["x-use-cache"] == "false"
    assert req.headers["content-type"] == "application/json"
    assert json.loads(req.content) == {
        "inputs": "a cat",
        "parameters": {"width": 512, "height": 384},
        "options": {"wait_for_model": True, "use_cache": False},
    }


@pytest.mark.asyncio
async def test_missing_key_sends_nothing(mock_client):
    calls = []

    async with mock_client(lambda r: calls.append(r) or httpx.Response(200)) as client:
        with pytest.raises(ConfigurationError):
            await request_image(client, MODEL, build_payload("a cat", 512, 512), None)
    assert calls == []


@pytest.mark.asyncio
async def test_upstream_json_error_message(mock_client):
    def handler(request):
        return httpx.Response(503, json={"error": "Model is currently loading"})

    async with mock_client(handler) as client:
        with pytest.raises(UpstreamError) as exc:
            await request_image(client, MODEL, build_payload("a cat", 512, 512), "k")
    assert exc.value.status_code == 503
    assert exc.value.message == "Model is currently loading"


@pytest.mark.asyncio
async def test_upstream_error_without_json_body(mock_client):
    def handler(request):
        return httpx.Response(502, text="<html>Bad gateway</html>")

    async with mock_client(handler) as client:
        with pytest.raises(UpstreamError) as exc:
            await request_image(client, MODEL, build_payload("a cat", 512, 512), "k")
    assert exc.value.message is None
    assert "502" in str(exc.value)


@pytest.mark.asyncio
async def test_json_success_body_is_not_an_image(mock_client):
    def handler(request):
        return httpx.Response(200, json={"error": ["bad input"]})

    async with mock_client(handler) as client:
        with pytest.raises(UpstreamError) as exc:
            await request_image(client, MODEL, build_payload("a cat", 512, 512), "k")
    assert exc.value.message == "bad input"


@pytest.mark.asyncio
async def test_transport_failure(mock_client):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with mock_client(handler) as client:
        with pytest.raises(TransportError):
            await request_image(client, MODEL, build_payload("a cat", 512, 512), "k")


@pytest.mark.parametrize(
    "upstream, expected",
    [
        ("Model x is currently loading", "Model is loading, please try again in a few seconds"),
        ("You don't have permission", "Please check your API key and model permissions"),
        ("Gateway timeout", "Request timed out, please try again"),
        ("CUDA out of memory", "Model is out of memory, please try again later"),
        ("Something else", "API error: Something else"),
        (None, "API error: Unknown error"),
    ],
)
def test_describe_upstream_error(upstream, expected):
    assert describe_upstream_error(upstream) == expected


def test_model_params_merge_under_dimensions():
    params = get_model_params("stabilityai/stable-diffusion-2-1")
    params["width"] = 1
    payload = build_payload("p", 640, 384, extra_params=params)
    assert payload["parameters"]["width"] == 640
    assert payload["parameters"]["scheduler"] == "DPMSolverMultistep"
    # presets are copied, not shared
    assert "width" not in get_model_params("stabilityai/stable-diffusion-2-1")
    assert get_model_params("unknown/model") == {}
