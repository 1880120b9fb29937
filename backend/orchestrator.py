# backend/orchestrator.py

import asyncio
import logging
from typing import AsyncIterator, Dict, Optional

import httpx

from config.settings import settings

from .dimensions import compute_dimensions, ensure_positive
from .errors import (
    GENERIC_FAILURE_MESSAGE,
    MISSING_KEY_MESSAGE,
    GenerationError,
    TransportError,
    UpstreamError,
)
from .inference_client import make_client, request_image
from .model import (
    MAX_IMAGE_COUNT,
    MIN_IMAGE_COUNT,
    Batch,
    GenerationRequest,
    ImageCard,
)
from .payload_builder import build_payload
from .utils import gen_batch_id

logger = logging.getLogger(__name__)


def build_request(
    prompt: str,
    model_id: str,
    aspect_ratio: str,
    base_size: Optional[int] = None,
    multiple: Optional[int] = None,
) -> GenerationRequest:
    """
    Turn raw form input into a GenerationRequest. Dimensions use the form
    granularity unless `multiple` says otherwise.

    Raises InvalidAspectRatio / InvalidDimensions for unusable geometry and
    pydantic.ValidationError for a blank prompt or unknown model.
    """
    width, height = compute_dimensions(
        aspect_ratio,
        base_size or settings.BASE_SIZE,
        multiple or settings.FORM_DIMENSION_MULTIPLE,
    )
    ensure_positive(width, height)
    return GenerationRequest(prompt=prompt, model_id=model_id, width=width, height=height)


async def _run_card(
    client: httpx.AsyncClient,
    card: ImageCard,
    request: GenerationRequest,
    api_key: str,
) -> ImageCard:
    """Drive one card to a terminal status. Only CancelledError escapes."""
    payload = build_payload(request.prompt, request.width, request.height)
    try:
        image, media_type = await request_image(client, request.model_id, payload, api_key)
    except UpstreamError as e:
        logger.warning(f"[Orchestrator] Card {card.id} failed upstream ({e.status_code}): {e.message}")
        return card.fail(e.message or GENERIC_FAILURE_MESSAGE)
    except TransportError as e:
        logger.warning(f"[Orchestrator] Card {card.id} transport error: {e}")
        return card.fail(GENERIC_FAILURE_MESSAGE)
    except GenerationError as e:
        logger.warning(f"[Orchestrator] Card {card.id} failed: {e}")
        return card.fail(str(e))
    except Exception:
        logger.exception(f"[Orchestrator] Card {card.id} crashed")
        return card.fail(GENERIC_FAILURE_MESSAGE)

    logger.info(f"[Orchestrator] Card {card.id} succeeded ({len(image)} bytes, {media_type})")
    return card.succeed(image, media_type)


async def generate_batch(
    request: GenerationRequest,
    count: int,
    *,
    api_key: Optional[str],
    client: Optional[httpx.AsyncClient] = None,
    batch_id: Optional[str] = None,
) -> AsyncIterator[ImageCard]:
    """
    Issue `count` independent generation requests and yield card updates.

    The first `count` items are the Pending placeholders, in id order.
    After that each card is yielded once more when it reaches Succeeded or
    Failed, in whatever order the endpoint answers. Without an API key a
    single Failed card (id 0) is yielded and nothing is sent.

    Closing the generator early cancels the requests still in flight.
    """
    if not MIN_IMAGE_COUNT <= count <= MAX_IMAGE_COUNT:
        raise ValueError(f"count must be between {MIN_IMAGE_COUNT} and {MAX_IMAGE_COUNT}, got {count}")

    batch_id = batch_id or gen_batch_id()

    if not api_key:
        logger.error(f"[Orchestrator] Batch {batch_id}: {MISSING_KEY_MESSAGE}")
        yield ImageCard(id=0).fail(MISSING_KEY_MESSAGE)
        return

    batch = Batch.pending(batch_id, count)
    logger.info(
        f"[Orchestrator] Batch {batch_id}: {count} x {request.model_id} "
        f"{request.width}x{request.height}, prompt={request.prompt[:50]!r}"
    )
    for card in batch.cards:
        yield card.model_copy()

    owns_client = client is None
    if owns_client:
        client = make_client()

    tasks = [
        asyncio.create_task(_run_card(client, card, request, api_key), name=f"card-{batch_id}-{card.id}")
        for card in batch.cards
    ]
    try:
        for next_done in asyncio.as_completed(tasks):
            card = await next_done
            yield card.model_copy()
        logger.info(f"[Orchestrator] Batch {batch_id} finished")
    finally:
        unfinished = [t for t in tasks if not t.done()]
        for t in unfinished:
            t.cancel()
        if unfinished:
            logger.info(f"[Orchestrator] Batch {batch_id}: cancelled {len(unfinished)} in-flight request(s)")
            await asyncio.gather(*unfinished, return_exceptions=True)
        if owns_client:
            await client.aclose()


async def run_batch(
    request: GenerationRequest,
    count: int,
    *,
    api_key: Optional[str],
    client: Optional[httpx.AsyncClient] = None,
    batch_id: Optional[str] = None,
) -> Batch:
    """Drain generate_batch() and return the joined batch."""
    batch_id = batch_id or gen_batch_id()
    cards: Dict[int, ImageCard] = {}
    async for card in generate_batch(request, count, api_key=api_key, client=client, batch_id=batch_id):
        cards[card.id] = card
    return Batch(id=batch_id, cards=[cards[i] for i in sorted(cards)])
