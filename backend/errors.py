# backend/errors.py

GENERIC_FAILURE_MESSAGE = "Generation failed! Check console for details."
MISSING_KEY_MESSAGE = "API key is missing. Please check your .env file"


class GenerationError(Exception):
    """Base error for everything that can go wrong while generating images."""


class ConfigurationError(GenerationError):
    """The backend is not configured to talk to the inference endpoint."""


class ValidationError(GenerationError, ValueError):
    """User input that must be rejected before any request is issued."""


class InvalidAspectRatio(ValidationError):
    pass


class InvalidDimensions(ValidationError):
    pass


class UpstreamError(GenerationError):
    """
    The inference endpoint answered, but not with an image.
    `message` is the upstream `error` field when one could be parsed.
    """

    def __init__(self, status_code: int, message: str | None = None):
        self.status_code = status_code
        self.message = message
        super().__init__(message or f"Upstream returned HTTP {status_code}")


class TransportError(GenerationError):
    """The request never produced an HTTP response."""
