# backend/app.py

import json
import logging
from base64 import b64encode
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse

from config.settings import settings
from .dimensions import ASPECT_RATIOS, ensure_positive, snap_to_multiple
from .errors import (
    ConfigurationError,
    GenerationError,
    InvalidAspectRatio,
    InvalidDimensions,
    UpstreamError,
)
from .inference_client import describe_upstream_error, make_client, request_image
from .logging_config import setup_logging
from .model import (
    MAX_IMAGE_COUNT,
    MIN_IMAGE_COUNT,
    MODELS,
    BatchGenerateRequest,
    CardUpdate,
    ProxyGenerateRequest,
    ProxyGenerateResponse,
)
from .orchestrator import build_request, generate_batch
from .payload_builder import build_payload, get_model_params
from .utils import gen_batch_id

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Text-to-Image Batch Service")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.get("/api/models")
async def list_models():
    return {
        "models": [{"id": k, "label": v} for k, v in MODELS.items()],
        "counts": list(range(MIN_IMAGE_COUNT, MAX_IMAGE_COUNT + 1)),
        "aspect_ratios": [{"value": k, "label": v} for k, v in ASPECT_RATIOS.items()],
    }


@app.post("/api/generate-image", response_model=ProxyGenerateResponse)
async def generate_image(req: ProxyGenerateRequest):
    """
    Generate a single image server-side and return it as a data URL.
    Width/height are floored to the proxy granularity (64).
    """
    if not req.prompt:
        return _error(400, "Prompt is required")

    try:
        if not settings.HUGGINGFACE_API_KEY:
            raise ConfigurationError("HUGGINGFACE_API_KEY is not configured")

        model_id = req.model or settings.DEFAULT_MODEL
        width, height = ensure_positive(
            snap_to_multiple(req.width, settings.PROXY_DIMENSION_MULTIPLE),
            snap_to_multiple(req.height, settings.PROXY_DIMENSION_MULTIPLE),
        )
        params = get_model_params(model_id)
        logger.info(f"[API] Generating image: model={model_id} {width}x{height} prompt={req.prompt[:50]!r}")
        logger.debug(f"[API] Selected model parameters: {params}")

        payload = build_payload(req.prompt, width, height, extra_params=params)
        async with make_client() as client:
            try:
                image, media_type = await request_image(
                    client, model_id, payload, settings.HUGGINGFACE_API_KEY
                )
            except UpstreamError as e:
                raise UpstreamError(e.status_code, describe_upstream_error(e.message)) from e
    except GenerationError as e:
        logger.error(f"[API] Generation failed: {e}")
        return _error(500, f"Failed to generate image: {e}")

    logger.info(f"[API] Image ready ({len(image)} bytes, {media_type})")
    return ProxyGenerateResponse(imageUrl=f"data:image/jpeg;base64,{b64encode(image).decode('ascii')}")


async def _stream_updates(req: BatchGenerateRequest) -> AsyncIterator[bytes]:
    batch_id = req.batch_id or gen_batch_id()
    request = build_request(req.prompt, req.model, req.aspect_ratio)
    async with make_client() as client:
        updates = generate_batch(
            request,
            req.count,
            api_key=settings.HUGGINGFACE_API_KEY,
            client=client,
            batch_id=batch_id,
        )
        try:
            async for card in updates:
                line = CardUpdate(batch_id=batch_id, card=card.to_wire()).model_dump()
                yield (json.dumps(line) + "\n").encode("utf-8")
        finally:
            # client went away: stop the remaining requests
            await updates.aclose()


@app.post("/api/generate-batch")
async def generate_batch_route(req: BatchGenerateRequest):
    """
    Stream NDJSON card updates: first the Pending placeholders, then one
    line per card as it succeeds or fails.
    """
    try:
        build_request(req.prompt, req.model, req.aspect_ratio)
    except (InvalidAspectRatio, InvalidDimensions) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return StreamingResponse(_stream_updates(req), media_type="application/x-ndjson")
