# backend/model.py
import base64
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config.settings import settings

from .dimensions import parse_ratio

# value -> label shown in the form
MODELS = {
    "black-forest-labs/FLUX.1-dev": "High Quality",
    "stabilityai/stable-diffusion-3.5-large": "Smart Design",
    "black-forest-labs/FLUX.1-schnell": "Fast Generation",
}

MIN_IMAGE_COUNT = 1
MAX_IMAGE_COUNT = 4


class CardStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CardStateError(RuntimeError):
    """Raised when a card that already finished is asked to transition again."""


class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    prompt: str
    model_id: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Prompt is required")
        return v

    @field_validator("model_id")
    @classmethod
    def _model_known(cls, v: str) -> str:
        if v not in MODELS:
            raise ValueError(f"Unknown model: {v!r}")
        return v


class ImageCard(BaseModel):
    id: int
    status: CardStatus = CardStatus.PENDING
    image: Optional[bytes] = None
    media_type: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not CardStatus.PENDING

    @property
    def data_url(self) -> Optional[str]:
        if self.image is None:
            return None
        encoded = base64.b64encode(self.image).decode("ascii")
        return f"data:{self.media_type or 'image/jpeg'};base64,{encoded}"

    def succeed(self, image: bytes, media_type: Optional[str] = None) -> "ImageCard":
        self._check_pending()
        self.status = CardStatus.SUCCEEDED
        self.image = image
        self.media_type = media_type
        return self

    def fail(self, message: str) -> "ImageCard":
        self._check_pending()
        self.status = CardStatus.FAILED
        self.error_message = message
        return self

    def _check_pending(self) -> None:
        if self.is_terminal:
            raise CardStateError(f"Card {self.id} already {self.status.value}")

    def to_wire(self) -> dict:
        """JSON-safe representation: the image travels as a data URL."""
        return {
            "id": self.id,
            "status": self.status.value,
            "image_url": self.data_url,
            "error_message": self.error_message,
        }


class Batch(BaseModel):
    id: str
    cards: List[ImageCard]

    @classmethod
    def pending(cls, batch_id: str, count: int) -> "Batch":
        return cls(id=batch_id, cards=[ImageCard(id=i) for i in range(count)])

    def apply(self, card: ImageCard) -> None:
        """Replace the slot with the same id. Terminal slots are never reverted."""
        current = self.cards[card.id]
        if current.is_terminal and not card.is_terminal:
            return
        self.cards[card.id] = card

    @property
    def done(self) -> bool:
        return all(c.is_terminal for c in self.cards)


# ---- HTTP payloads ----

class ProxyGenerateRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    prompt: Optional[str] = None
    width: int = settings.DEFAULT_PROXY_SIZE
    height: int = settings.DEFAULT_PROXY_SIZE
    model: Optional[str] = None


class ProxyGenerateResponse(BaseModel):
    imageUrl: str


class BatchGenerateRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    prompt: str
    model: str
    count: int = Field(default=1, ge=MIN_IMAGE_COUNT, le=MAX_IMAGE_COUNT)
    aspect_ratio: str = "1/1"
    # echoed on every update so the caller can drop lines from older batches
    batch_id: Optional[str] = None

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Prompt is required")
        return v

    @field_validator("model")
    @classmethod
    def _model_known(cls, v: str) -> str:
        if v not in MODELS:
            raise ValueError(f"Unknown model: {v!r}")
        return v

    @field_validator("aspect_ratio")
    @classmethod
    def _ratio_parses(cls, v: str) -> str:
        # any "W/H" works, ASPECT_RATIOS is only what the form offers
        parse_ratio(v)
        return v


class CardUpdate(BaseModel):
    batch_id: str
    card: dict
