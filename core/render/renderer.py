"""Generation gateway: plan render, edit, text-to-image and image-to-video."""

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, TypeVar

from core.azure.errors import GenerationError, OperationError

from .media import extension_for
from .prompt_builder import PromptBuilder
from .types import Artifact, ImageUpload, Settings, StyleReference

if TYPE_CHECKING:
    from core.azure.openai_service import AzureOpenAIService
    from core.azure.video_service import AzureVideoService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PlanRenderer:
    """Performs one generation call per request and returns its artifact."""

    # Retry delays in seconds (exponential backoff)
    RETRY_DELAYS = [2, 5, 10]

    MAX_IMAGES = 4

    def __init__(
        self,
        openai_service: "AzureOpenAIService",
        video_service: Optional["AzureVideoService"] = None,
        max_retries: int = 2,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        """
        Initialize the renderer.

        Args:
            openai_service: Azure OpenAI service for image calls
            video_service: Video generation service (animate is unavailable without it)
            max_retries: Maximum number of retries for retryable errors
            prompt_builder: Builds the plan render instruction
        """
        self.openai_service = openai_service
        self.video_service = video_service
        self.max_retries = max_retries
        self.prompt_builder = prompt_builder or PromptBuilder()

    async def render_plan(
        self,
        plan: ImageUpload,
        styles: List[StyleReference],
        settings: Settings,
    ) -> Artifact:
        """
        Render a 2D plan into a 3D visualization.

        Args:
            plan: Floor plan image
            styles: Ordered style references, sent after the plan
            settings: Render settings

        Returns:
            Artifact with the rendered image

        Raises:
            GenerationError: If rendering fails after all retries
        """
        prompt = self.prompt_builder.build_render_prompt(styles, settings)
        images = [(plan.filename or f"plan.{extension_for(plan.mime_type)}", plan.data, plan.mime_type)]
        images.extend(
            (style.filename or f"style-{index}.{extension_for(style.mime_type)}", style.image_bytes, style.mime_type)
            for index, style in enumerate(styles)
        )

        logger.info(f"Rendering plan {plan.filename} with {len(styles)} style references")
        logger.debug(f"Prompt: {prompt[:200]}...")

        return await self._with_retry(
            "render",
            lambda: self.openai_service.edit_image(
                images,
                prompt,
                size=self.openai_service.size_for(settings.aspect_ratio),
                quality=self.openai_service.quality_for(settings.resolution),
                action="Render",
            ),
        )

    async def edit_artifact(self, image: Artifact, instruction: str) -> Artifact:
        """
        Apply a natural-language edit to an image artifact.

        Args:
            image: Image to edit
            instruction: Edit instruction

        Returns:
            Artifact with the edited image
        """
        filename = f"render.{extension_for(image.mime_type)}"
        logger.info(f"Editing artifact {image.id}: {instruction[:80]}")

        return await self._with_retry(
            "edit",
            lambda: self.openai_service.edit_image(
                [(filename, image.data, image.mime_type)],
                instruction,
                action="Enhancement",
            ),
        )

    async def generate_images(self, prompt: str, count: int, aspect_ratio: str) -> List[Artifact]:
        """
        Generate standalone images from text.

        Args:
            prompt: Text description
            count: Number of images, 1 to 4
            aspect_ratio: Output aspect ratio

        Returns:
            Ordered list of artifacts
        """
        if not 1 <= count <= self.MAX_IMAGES:
            raise ValueError(f"Image count must be between 1 and {self.MAX_IMAGES}")

        return await self._with_retry(
            "generate_images",
            lambda: self.openai_service.generate_images(
                prompt,
                count=count,
                size=self.openai_service.size_for(aspect_ratio),
            ),
        )

    async def generate_video(
        self,
        image: ImageUpload,
        prompt: str,
        aspect_ratio: str,
        on_progress: Callable[[str], None],
    ) -> Artifact:
        """
        Animate an image into a short video.

        Polling is bounded by the video service; there is no retry on timeout.
        """
        if self.video_service is None:
            raise OperationError("Video generation is not configured.")

        return await self.video_service.generate_video(
            image.data,
            image.mime_type,
            prompt,
            aspect_ratio,
            on_progress,
        )

    async def _with_retry(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        """Execute a gateway call with retry logic for retryable errors."""
        for attempt in range(self.max_retries + 1):
            try:
                return await call()

            except GenerationError as e:
                logger.warning(
                    f"{operation} attempt {attempt + 1}/{self.max_retries + 1} failed: {e}"
                )

                if not e.retryable or attempt >= self.max_retries:
                    raise

                # Wait before retry with exponential backoff
                delay = self.RETRY_DELAYS[min(attempt, len(self.RETRY_DELAYS) - 1)]
                logger.info(f"Retrying in {delay} seconds...")
                await asyncio.sleep(delay)

        raise GenerationError(f"{operation} failed for unknown reason")
