"""Azure OpenAI video generation with bounded status polling."""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Optional

import aiohttp

from core.render.media import extension_for
from core.render.types import Artifact

from .config import AzureConfig
from .errors import GenerationTimeoutError, OperationError, TransportError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class AzureVideoService:
    """Animates a still image into a short clip via the video generation jobs API."""

    DEFAULT_POLL_INTERVAL = 10.0  # seconds
    DEFAULT_MAX_ATTEMPTS = 30  # 5 minutes at the default interval

    FAILED_STATUSES = {"failed", "cancelled"}
    DONE_STATUSES = {"succeeded"} | FAILED_STATUSES

    # Output dimensions (720p) per aspect ratio
    DIMENSIONS = {
        "16:9": (1280, 720),
        "9:16": (720, 1280),
    }

    def __init__(
        self,
        config: AzureConfig,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        """
        Initialize the video service.

        Args:
            config: Azure configuration
            poll_interval: Seconds between status checks
            max_attempts: Status checks before giving up
        """
        self.config = config
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"api-key": self.config.openai_api_key})
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def _url(self, path: str) -> str:
        base = self.config.openai_endpoint.rstrip("/")
        return f"{base}/openai/v1/video/generations{path}"

    @property
    def _params(self) -> Dict[str, str]:
        return {"api-version": self.config.video_api_version}

    async def generate_video(
        self,
        image_data: bytes,
        mime_type: str,
        prompt: str,
        aspect_ratio: str,
        on_progress: ProgressCallback,
    ) -> Artifact:
        """
        Generate a video from a source image.

        Args:
            image_data: Encoded source image
            mime_type: Source image MIME type
            prompt: Motion description
            aspect_ratio: "16:9" or "9:16"
            on_progress: Receives a status message at every step

        Returns:
            Artifact holding the MP4 payload

        Raises:
            GenerationTimeoutError: The job did not finish within max_attempts polls
            OperationError: The job failed or could not be submitted
            TransportError: The finished video could not be downloaded
        """
        on_progress("Starting video generation...")
        job = await self._create_job(image_data, mime_type, prompt, aspect_ratio)
        on_progress("Video job initiated. This may take a few minutes...")

        attempts = 0
        while not self._is_done(job) and attempts < self.max_attempts:
            await asyncio.sleep(self.poll_interval)
            on_progress(f"Checking status ({attempts + 1}/{self.max_attempts})...")
            job = await self._get_job(job["id"])
            attempts += 1

        if not self._is_done(job):
            raise GenerationTimeoutError("Video generation timed out.")

        if job.get("status") in self.FAILED_STATUSES:
            reason = job.get("failure_reason") or job.get("status")
            raise OperationError(f"Video generation failed: {reason}")

        generations = job.get("generations") or []
        if not generations or not generations[0].get("id"):
            raise TransportError("Video generation completed, but no download link was found.")

        on_progress("Fetching generated video...")
        data = await self._download(generations[0]["id"])
        return Artifact(mime_type="video/mp4", data=data, revised_prompt=prompt)

    def _is_done(self, job: Dict[str, Any]) -> bool:
        return job.get("status") in self.DONE_STATUSES

    async def _create_job(
        self,
        image_data: bytes,
        mime_type: str,
        prompt: str,
        aspect_ratio: str,
    ) -> Dict[str, Any]:
        """Submit the generation job."""
        width, height = self.DIMENSIONS.get(aspect_ratio, self.DIMENSIONS["16:9"])
        filename = f"source.{extension_for(mime_type)}"

        form = aiohttp.FormData()
        form.add_field("model", self.config.video_deployment)
        form.add_field("prompt", prompt)
        form.add_field("width", str(width))
        form.add_field("height", str(height))
        form.add_field("n_seconds", str(self.config.video_seconds))
        form.add_field("n_variants", "1")
        form.add_field(
            "inpaint_items",
            json.dumps([{"frame_index": 0, "type": "image", "file_name": filename}]),
        )
        form.add_field("files", image_data, filename=filename, content_type=mime_type)

        session = await self._get_session()
        try:
            async with session.post(self._url("/jobs"), params=self._params, data=form) as response:
                if response.status >= 400:
                    detail = await response.text()
                    raise OperationError(f"Video generation failed: {detail[:200]}")
                job = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Video job submission failed: {e}")
            raise OperationError(f"Video generation failed: {e}") from e

        logger.info(f"Submitted video job {job.get('id')}")
        return job

    async def _get_job(self, job_id: str) -> Dict[str, Any]:
        """Fetch the current job status."""
        session = await self._get_session()
        try:
            async with session.get(self._url(f"/jobs/{job_id}"), params=self._params) as response:
                if response.status >= 400:
                    detail = await response.text()
                    raise OperationError(f"Video generation failed: {detail[:200]}")
                return await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Video job {job_id} status check failed: {e}")
            raise OperationError(f"Video generation failed: {e}") from e

    async def _download(self, generation_id: str) -> bytes:
        """Download the finished clip."""
        session = await self._get_session()
        try:
            async with session.get(
                self._url(f"/{generation_id}/content/video"), params=self._params
            ) as response:
                if response.status != 200:
                    raise TransportError("Failed to download the generated video.")
                return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Video download failed for generation {generation_id}: {e}")
            raise TransportError("Failed to download the generated video.") from e
