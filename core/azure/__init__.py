"""Azure services integration for the render studio."""

from .errors import (
    ContentBlockedError,
    GenerationError,
    GenerationTimeoutError,
    MissingInputError,
    NoContentError,
    NonImageResponseError,
    OperationError,
    TransportError,
)
from .config import AzureConfig
from .openai_service import AzureOpenAIService
from .video_service import AzureVideoService

__all__ = [
    "AzureConfig",
    "AzureOpenAIService",
    "AzureVideoService",
    "GenerationError",
    "MissingInputError",
    "ContentBlockedError",
    "NoContentError",
    "NonImageResponseError",
    "GenerationTimeoutError",
    "OperationError",
    "TransportError",
]
