"""Backend access and card bookkeeping for the Streamlit page."""

import base64
import json
import logging
import uuid
from io import BytesIO
from typing import Callable, Dict, Iterable, Iterator, List, Optional

import requests
from PIL import Image

from config.settings import settings

logger = logging.getLogger(__name__)

PENDING = "pending"
SUCCEEDED = "succeeded"
FAILED = "failed"

BACKEND_UNREACHABLE_MESSAGE = "Generation failed! Check console for details."
INTERRUPTED_MESSAGE = "Generation was interrupted, please generate again."


class BackendError(Exception):
    """The backend rejected the batch or could not be reached."""


def _error_detail(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return f"Backend returned {resp.status_code}"
    detail = None
    if isinstance(data, dict):
        detail = data.get("detail") or data.get("error")
    if isinstance(detail, list) and detail:
        # FastAPI validation errors
        return str(detail[0].get("msg", detail[0]))
    return str(detail or f"Backend returned {resp.status_code}")


def _parse_update(line: bytes) -> dict:
    try:
        update = json.loads(line)
        card = update["card"]
        if "id" not in card or "status" not in card:
            raise KeyError("card")
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"[Frontend] Malformed update from backend: {line[:200]!r}")
        raise BackendError(BACKEND_UNREACHABLE_MESSAGE) from e
    return update


def stream_batch(
    prompt: str,
    model: str,
    count: int,
    aspect_ratio: str,
    batch_id: str,
    backend_url: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> Iterator[dict]:
    """
    POST /api/generate-batch and yield each NDJSON update as a dict
    ({"batch_id": ..., "card": {...}}) as soon as it arrives.
    """
    url = f"{(backend_url or settings.BACKEND_URL).rstrip('/')}/api/generate-batch"
    payload = {
        "prompt": prompt,
        "model": model,
        "count": count,
        "aspect_ratio": aspect_ratio,
        "batch_id": batch_id,
    }
    http = session or requests
    try:
        with http.post(url, json=payload, stream=True, timeout=(10, settings.REQUEST_TIMEOUT)) as resp:
            if resp.status_code != 200:
                raise BackendError(_error_detail(resp))
            for line in resp.iter_lines():
                if not line:
                    continue
                yield _parse_update(line)
    except requests.RequestException as e:
        logger.error(f"[Frontend] Backend request failed: {e}")
        raise BackendError(BACKEND_UNREACHABLE_MESSAGE) from e


def decode_data_url(data_url: str) -> bytes:
    _, _, encoded = data_url.partition(",")
    return base64.b64decode(encoded)


def load_image(data: bytes) -> Image.Image:
    return Image.open(BytesIO(data)).convert("RGB")


class BatchView:
    """
    Card state for the batch on screen, keyed by card id.

    Only updates carrying the current batch id are applied, and a card that
    reached succeeded/failed is never put back to pending. Starting a new
    batch replaces the old one wholesale.
    """

    def __init__(self):
        self.batch_id: Optional[str] = None
        self.count = 0
        self.cards: Dict[int, dict] = {}

    def start(self, count: int) -> str:
        self.batch_id = str(uuid.uuid4())
        self.count = count
        self.cards = {}
        return self.batch_id

    def apply(self, update: dict) -> Optional[dict]:
        """Returns the applied card, or None if the update was ignored."""
        if update.get("batch_id") != self.batch_id:
            return None
        card = update["card"]
        if not 0 <= card["id"] < self.count:
            return None
        current = self.cards.get(card["id"])
        if current is not None and current["status"] != PENDING and card["status"] == PENDING:
            return None
        self.cards[card["id"]] = card
        return card

    def fail_pending(self, message: str, include_missing: bool = True) -> List[dict]:
        """
        Fail every slot that has not finished. With include_missing=False only
        cards the backend already announced are touched, so a batch that
        collapsed to a single card stays a single card.
        """
        failed = []
        for i in range(self.count):
            card = self.cards.get(i)
            if card is None and not include_missing:
                continue
            if card is None or card["status"] == PENDING:
                card = {"id": i, "status": FAILED, "image_url": None, "error_message": message}
                self.cards[i] = card
                failed.append(card)
        return failed

    def follow(self, updates: Iterable[dict], on_card: Callable[[dict], None]) -> None:
        """
        Apply a stream of updates, calling on_card for each card that changed.

        Whatever stops the stream (backend error, early end, or an exception
        from on_card such as a page rerun), no card is left pending afterwards.
        """
        try:
            for update in updates:
                card = self.apply(update)
                if card is not None:
                    on_card(card)
        except BackendError as e:
            for card in self.fail_pending(str(e)):
                on_card(card)
        else:
            for card in self.fail_pending(INTERRUPTED_MESSAGE, include_missing=False):
                on_card(card)
        finally:
            # state only: drawing here could raise again mid-rerun
            self.fail_pending(INTERRUPTED_MESSAGE, include_missing=False)
            close = getattr(updates, "close", None)
            if close is not None:
                # drops the HTTP stream so the backend cancels what is left
                close()

    def ordered(self) -> List[dict]:
        return [self.cards[i] for i in sorted(self.cards)]
