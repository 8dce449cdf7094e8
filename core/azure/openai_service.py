"""Azure OpenAI service for image rendering, editing and generation."""

import base64
import binascii
import logging
from typing import List, Optional, Tuple

import openai
from openai import AsyncAzureOpenAI

from core.render.media import sniff_image_mime
from core.render.types import Artifact

from .config import AzureConfig
from .errors import (
    ContentBlockedError,
    GenerationError,
    NoContentError,
    NonImageResponseError,
    OperationError,
)

logger = logging.getLogger(__name__)

# (filename, bytes, mime type), as accepted by the openai SDK for uploads
ImageFile = Tuple[str, bytes, str]

BLOCKED_CODES = {"content_policy_violation", "moderation_blocked", "content_filter"}


class AzureOpenAIService:
    """Azure OpenAI service for image generation calls."""

    # Output sizes supported by the image deployment, keyed by aspect ratio
    ASPECT_SIZES = {
        "1:1": "1024x1024",
        "16:9": "1536x1024",
        "4:3": "1536x1024",
        "9:16": "1024x1536",
        "3:4": "1024x1536",
    }

    RESOLUTION_QUALITY = {
        "1080p": "medium",
        "2k": "high",
        "4k": "high",
    }

    def __init__(self, config: AzureConfig):
        self.config = config
        self._client: Optional[AsyncAzureOpenAI] = None

    @property
    def client(self) -> AsyncAzureOpenAI:
        """Get or create Azure OpenAI client."""
        if self._client is None:
            if not self.config.is_openai_configured():
                raise ValueError("Azure OpenAI is not configured. Set AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY.")

            self._client = AsyncAzureOpenAI(
                azure_endpoint=self.config.openai_endpoint,
                api_key=self.config.openai_api_key,
                api_version=self.config.openai_api_version,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    def size_for(self, aspect_ratio: str) -> str:
        return self.ASPECT_SIZES.get(aspect_ratio, "auto")

    def quality_for(self, resolution: str) -> str:
        return self.RESOLUTION_QUALITY.get(resolution, "auto")

    async def edit_image(
        self,
        images: List[ImageFile],
        prompt: str,
        size: str = "auto",
        quality: str = "auto",
        action: str = "Edit",
    ) -> Artifact:
        """
        Generate one image conditioned on input images and an instruction.

        Args:
            images: Input images in order (the first one is the primary image)
            prompt: Instruction text
            size: Output size, e.g. "1536x1024"
            quality: Output quality
            action: Label used in error messages ("Render", "Enhancement")

        Returns:
            Artifact holding the generated image

        Raises:
            GenerationError: Classified provider failure
        """
        try:
            response = await self.client.images.edit(
                model=self.config.image_deployment,
                image=images if len(images) > 1 else images[0],
                prompt=prompt,
                size=size,
                quality=quality,
                n=1,
            )
        except openai.APIError as e:
            logger.error(f"{action} request failed: {e}")
            raise self._classify(e, action) from e

        return self._to_artifacts(response, action)[0]

    async def generate_images(
        self,
        prompt: str,
        count: int = 1,
        size: str = "1024x1024",
        action: str = "Image generation",
    ) -> List[Artifact]:
        """
        Generate images from a text prompt.

        Args:
            prompt: Text description
            count: Number of images (1-4)
            size: Output size
            action: Label used in error messages

        Returns:
            Generated artifacts, in provider order
        """
        try:
            response = await self.client.images.generate(
                model=self.config.image_deployment,
                prompt=prompt,
                size=size,
                n=count,
            )
        except openai.APIError as e:
            logger.error(f"{action} request failed: {e}")
            raise self._classify(e, action) from e

        return self._to_artifacts(response, action)

    def _to_artifacts(self, response, action: str) -> List[Artifact]:
        """Decode image payloads from an images API response."""
        items = getattr(response, "data", None) or []
        if not items:
            raise NoContentError(
                f"{action} failed: the model did not return any content. "
                f"The request may have been blocked or the input was invalid."
            )

        artifacts = []
        for item in items:
            encoded = getattr(item, "b64_json", None)
            if not encoded:
                raise NonImageResponseError(
                    f"{action} failed: the model returned content but it was not a valid image."
                )

            try:
                data = base64.b64decode(encoded)
            except (binascii.Error, ValueError):
                raise NonImageResponseError(f"{action} failed: the image payload could not be decoded.")

            mime_type = sniff_image_mime(data)
            if mime_type is None:
                raise NonImageResponseError(
                    f"{action} failed: the model returned content but it was not a valid image."
                )

            artifacts.append(
                Artifact(
                    mime_type=mime_type,
                    data=data,
                    revised_prompt=getattr(item, "revised_prompt", None),
                )
            )

        return artifacts

    def _classify(self, error: openai.APIError, action: str) -> GenerationError:
        """Map an openai SDK error onto the generation error taxonomy."""
        code = str(getattr(error, "code", "") or "").lower()
        message = str(error)
        lowered = message.lower()

        if isinstance(error, openai.BadRequestError) and (
            code in BLOCKED_CODES or "content_policy" in lowered or "safety" in lowered
        ):
            reason = code or "content policy"
            return ContentBlockedError(
                f"{action} was blocked due to: {reason}. Please adjust your images or prompt."
            )

        if isinstance(error, openai.RateLimitError):
            return OperationError(f"{action} failed: rate limit exceeded", retryable=True)

        if isinstance(error, (openai.APIConnectionError, openai.APITimeoutError)):
            return OperationError(f"{action} failed: could not reach the service", retryable=True)

        if isinstance(error, openai.NotFoundError):
            return OperationError(
                f"{action} failed: deployment '{self.config.image_deployment}' was not found"
            )

        status = getattr(error, "status_code", None)
        if status is not None and status >= 500:
            return OperationError(f"{action} failed: {message}", retryable=True)

        return OperationError(f"{action} failed: {message}")
