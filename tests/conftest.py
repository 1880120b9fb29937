"""Shared fixtures: a fake inference endpoint built on httpx.MockTransport."""

import asyncio
from io import BytesIO

import httpx
import pytest
from PIL import Image

from backend.model import GenerationRequest


def make_png(color=(200, 30, 30), size=(8, 8)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


PNG_BYTES = make_png()


def current_card_id() -> int:
    """Card id of the orchestrator task running the current request."""
    name = asyncio.current_task().get_name()  # card-<batch_id>-<id>
    return int(name.rsplit("-", 1)[1])


def current_batch_id() -> str:
    name = asyncio.current_task().get_name()
    return name[len("card-"):].rsplit("-", 1)[0]


def image_response(content: bytes = PNG_BYTES) -> httpx.Response:
    return httpx.Response(200, content=content, headers={"content-type": "image/png"})


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def gen_request():
    return GenerationRequest(
        prompt="A dragon sleeping on gold coins",
        model_id="black-forest-labs/FLUX.1-schnell",
        width=512,
        height=512,
    )


@pytest.fixture
def mock_client():
    """Factory: mock_client(handler) -> AsyncClient talking to `handler`."""

    def factory(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
