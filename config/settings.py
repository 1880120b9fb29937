import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env (project root first, then config/)
BASE_DIR = Path(__file__).resolve().parent
load_dotenv(BASE_DIR.parent / ".env")
load_dotenv(BASE_DIR / ".env")


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return float(value)


class Settings:
    INFERENCE_BASE_URL: str = os.getenv(
        "INFERENCE_BASE_URL", "https://api-inference.huggingface.co"
    )

    HUGGINGFACE_API_KEY: str | None = os.getenv("HUGGINGFACE_API_KEY")

    DEFAULT_MODEL: str = "stabilityai/stable-diffusion-xl-base-1.0"

    BASE_SIZE: int = int(os.getenv("BASE_SIZE", "512"))

    # The form and the proxy route feed different backends: keep both.
    FORM_DIMENSION_MULTIPLE: int = 16
    PROXY_DIMENSION_MULTIPLE: int = 64
    DEFAULT_PROXY_SIZE: int = 768

    # None = no client-side timeout
    REQUEST_TIMEOUT: float | None = _optional_float("REQUEST_TIMEOUT")

    BACKEND_URL: str = os.getenv("BACKEND_URL", "http://127.0.0.1:8000")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
