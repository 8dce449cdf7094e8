"""Orchestration of generation calls against the studio state.

The controller is the only caller of the generation gateway. It owns the
current render view, the edit history and the batch queue, and serializes
their mutations around each suspension point:

- ``render`` / ``enhance`` run one call at a time (single generation)
- ``start_batch`` walks the queue strictly in order, one call in flight
- failures are recorded as a surfaced error (or a failed job) and the
  history and queue stay in their last known good state

There is no cancellation of in-flight calls. Removing a job or resetting
the session only discards the eventual result.
"""

import asyncio
import logging
from enum import Enum
from typing import List, Optional, Sequence

from core.azure.errors import GenerationError, MissingInputError

from .batch_queue import BatchQueue
from .history import EditHistory
from .renderer import PlanRenderer
from .types import VIDEO_ASPECT_RATIOS, Artifact, BatchJob, ImageUpload, Settings, StyleReference
from .workspace import RenderWorkspace

logger = logging.getLogger(__name__)


class StudioState(str, Enum):
    """Controller state."""

    IDLE = "idle"
    SINGLE_GENERATING = "single_generating"
    BATCH_RUNNING = "batch_running"


class RenderController:
    """Sequences render, edit, batch, image and video generation."""

    def __init__(
        self,
        renderer: PlanRenderer,
        workspace: Optional[RenderWorkspace] = None,
        history: Optional[EditHistory] = None,
        queue: Optional[BatchQueue] = None,
        progress_reset_delay: float = 2.0,
        media_progress_reset_delay: float = 3.0,
        batch_job_interval: float = 1.0,
    ):
        """
        Initialize the controller.

        Args:
            renderer: Generation gateway
            workspace: Live editing state; the batch reads its plan before every job
            history: Edit history (creates one if not provided)
            queue: Batch queue (creates one if not provided)
            progress_reset_delay: Seconds progress stays at 100 after render/enhance
            media_progress_reset_delay: Same, after image and video generation
            batch_job_interval: Pause between batch jobs
        """
        self.renderer = renderer
        self.workspace = workspace or RenderWorkspace()
        self.history = history or EditHistory()
        self.queue = queue or BatchQueue()
        self.progress_reset_delay = progress_reset_delay
        self.media_progress_reset_delay = media_progress_reset_delay
        self.batch_job_interval = batch_job_interval

        self.state = StudioState.IDLE
        self.status_message = ""
        self.progress = 0
        self.error: Optional[str] = None
        self.current_render: Optional[Artifact] = None
        self.image_results: List[Artifact] = []
        self.video_result: Optional[Artifact] = None

        # Bumped on reset so late completions from a discarded session are ignored
        self._session = 0
        self._reset_task: Optional[asyncio.Task] = None

    @property
    def is_busy(self) -> bool:
        return self.state != StudioState.IDLE

    @property
    def is_batch_running(self) -> bool:
        return self.state == StudioState.BATCH_RUNNING

    # ------------------------------------------------------------------
    # Single render workflow
    # ------------------------------------------------------------------

    async def render(
        self,
        plan: Optional[ImageUpload],
        styles: Sequence[StyleReference],
        settings: Settings,
    ) -> Optional[Artifact]:
        """
        Render the plan and make the result the base of a fresh history.

        Returns:
            The rendered artifact, or None if the call failed

        Raises:
            MissingInputError: No plan was provided (nothing is changed)
        """
        if plan is None:
            raise MissingInputError("Please upload a 2D plan first.")

        session = self._begin("Generating 3D render...", progress=10)
        try:
            self.progress = 30
            result = await self.renderer.render_plan(plan, list(styles), settings)
        except Exception as e:
            self._surface(session, "Render failed.", e, "An unknown error occurred during render.")
            return None
        else:
            if session != self._session:
                return None
            self.progress = 90
            self.history.reset()
            self.history.push(result)
            self.current_render = result
            self.status_message = "Render complete!"
            return result
        finally:
            self._end(session, self.progress_reset_delay, progress=100)

    async def enhance(self, prompt: str) -> Optional[Artifact]:
        """
        Apply an edit instruction to the current history artifact.

        Returns:
            The edited artifact, or None if the call failed

        Raises:
            MissingInputError: No current artifact or an empty prompt
        """
        target = self.history.current()
        if target is None or not prompt or not prompt.strip():
            raise MissingInputError("Please render an image and provide an enhancement prompt first.")

        session = self._begin("Enhancing image with AI...", progress=10)

        if not target.is_image:
            self.status_message = "Enhancement failed."
            self.error = "Could not determine the image type for enhancement."
            self._end(session, 0)
            return None

        try:
            self.progress = 30
            result = await self.renderer.edit_artifact(target, prompt.strip())
        except Exception as e:
            self._surface(session, "Enhancement failed.", e, "An unknown error occurred during enhancement.")
            return None
        else:
            if session != self._session:
                return None
            self.history.push(result)
            self.current_render = result
            self.status_message = "Enhancement complete!"
            self.progress = 90
            return result
        finally:
            self._end(session, self.progress_reset_delay, progress=100)

    def undo(self) -> bool:
        """Step back in the edit history and dismiss any surfaced error."""
        moved = self.history.undo()
        if moved:
            self.current_render = self.history.current()
            self.error = None
        return moved

    def redo(self) -> bool:
        """Step forward in the edit history and dismiss any surfaced error."""
        moved = self.history.redo()
        if moved:
            self.current_render = self.history.current()
            self.error = None
        return moved

    # ------------------------------------------------------------------
    # Batch workflow
    # ------------------------------------------------------------------

    def add_to_batch(
        self,
        settings: Optional[Settings] = None,
        styles: Optional[Sequence[StyleReference]] = None,
    ) -> BatchJob:
        """Queue a job with snapshots of the given (or current workspace) inputs."""
        if settings is None:
            settings = self.workspace.settings
        if styles is None:
            styles = self.workspace.styles
        return self.queue.enqueue(settings, list(styles))

    def remove_from_batch(self, job_id: str) -> bool:
        return self.queue.remove(job_id)

    def clear_batch(self) -> int:
        return self.queue.clear()

    async def start_batch(self) -> bool:
        """
        Process every queued job in order.

        Returns:
            False if the queue was empty or already running
        """
        session = self.begin_batch()
        if session is None:
            return False
        await self.run_batch(session)
        return True

    def begin_batch(self) -> Optional[int]:
        """
        Claim the queue for a batch run.

        The controller is batch_running once this returns; ``run_batch``
        may then be scheduled as a background task.

        Returns:
            The session token to pass to ``run_batch``, or None if the
            controller is busy or the queue is empty
        """
        if self.is_busy or not self.queue.start():
            return None

        self._cancel_progress_reset()
        self.state = StudioState.BATCH_RUNNING
        self.error = None
        self.history.reset()
        self.current_render = None
        return self._session

    async def run_batch(self, session: int) -> None:
        """
        Walk a claimed queue.

        Each completed result is shown as the current render without being
        added to the edit history. A single failed job does not stop the run;
        a missing plan aborts it.
        """
        try:
            while self.queue.is_running:
                job = self.queue.active_job
                if job is None:
                    break

                plan = self.workspace.plan
                if plan is None:
                    self.status_message = "Error: Plan file is missing. Stopping batch."
                    self.queue.abort("Plan file is missing.")
                    break

                await self._run_batch_job(session, job, plan)
                await asyncio.sleep(self.batch_job_interval)

                if session != self._session:
                    break
                if not self.queue.advance():
                    if session == self._session:
                        self.status_message = "Batch rendering complete!"
                    break
        finally:
            if session == self._session:
                self.state = StudioState.IDLE
                self._schedule_progress_reset(self.progress_reset_delay)

    async def _run_batch_job(self, session: int, job: BatchJob, plan: ImageUpload) -> None:
        index = self.queue.active_index
        total = len(self.queue)

        if not self.queue.mark_rendering(job.id):
            return

        self.status_message = f"Batch rendering job {index + 1} of {total}..."
        self.progress = 10

        try:
            self.progress = 30
            result = await self.renderer.render_plan(plan, job.style_references, job.settings)
        except Exception as e:
            if not isinstance(e, GenerationError):
                logger.exception(f"Unexpected error in batch job {job.id}")
            if self.queue.mark_failed(job.id, str(e)) and session == self._session:
                self.status_message = f"Job {index + 1} failed."
        else:
            if self.queue.mark_completed(job.id, result) and session == self._session:
                self.progress = 90
                self.current_render = result
        finally:
            if session == self._session:
                self.progress = 100

    # ------------------------------------------------------------------
    # Standalone generation
    # ------------------------------------------------------------------

    async def generate_images(
        self,
        prompt: str,
        count: int = 1,
        aspect_ratio: str = "1:1",
    ) -> List[Artifact]:
        """
        Generate standalone images from text.

        Raises:
            MissingInputError: Empty prompt
            ValueError: Count outside 1-4
        """
        if not prompt or not prompt.strip():
            raise MissingInputError("Please enter a prompt first.")
        if not 1 <= count <= PlanRenderer.MAX_IMAGES:
            raise ValueError(f"Image count must be between 1 and {PlanRenderer.MAX_IMAGES}")

        session = self._begin(f"Generating {count} image(s)...", progress=10)
        self.image_results = []
        try:
            results = await self.renderer.generate_images(prompt.strip(), count, aspect_ratio)
        except Exception as e:
            self._surface(
                session, "Image generation failed.", e,
                "An unknown error occurred during image generation.",
            )
            return []
        else:
            if session != self._session:
                return []
            self.image_results = list(results)
            self.status_message = "Image generation complete!"
            self.progress = 100
            return self.image_results
        finally:
            self._end(session, self.media_progress_reset_delay)

    async def animate(
        self,
        image: Optional[ImageUpload],
        prompt: str,
        aspect_ratio: str = "16:9",
    ) -> Optional[Artifact]:
        """
        Animate an image into a short video.

        Every progress message from the gateway becomes the status text and
        moves progress forward by 5, capped at 95.

        Raises:
            MissingInputError: No image to animate
            ValueError: Unsupported aspect ratio
        """
        session = self.begin_animation(image, aspect_ratio)
        return await self.run_animation(session, image, prompt, aspect_ratio)

    def begin_animation(self, image: Optional[ImageUpload], aspect_ratio: str) -> int:
        """Validate the request and mark the controller busy. Returns the session token."""
        if image is None:
            raise MissingInputError("Please upload an image to animate.")
        if aspect_ratio not in VIDEO_ASPECT_RATIOS:
            raise ValueError(f"Aspect ratio must be one of: {', '.join(VIDEO_ASPECT_RATIOS)}")

        session = self._begin("Initializing video generation...", progress=0)
        self.video_result = None
        return session

    async def run_animation(
        self,
        session: int,
        image: ImageUpload,
        prompt: str,
        aspect_ratio: str,
    ) -> Optional[Artifact]:
        """Run a video generation claimed by ``begin_animation``."""

        def on_progress(message: str) -> None:
            if session != self._session:
                return
            self.status_message = message
            self.progress = min(95, self.progress + 5)

        try:
            result = await self.renderer.generate_video(image, prompt, aspect_ratio, on_progress)
        except Exception as e:
            self._surface(session, None, e, "Unknown error")
            if session == self._session:
                self.status_message = f"Video generation failed: {self.error}"
            return None
        else:
            if session != self._session:
                return None
            self.video_result = result
            self.status_message = "Video generation complete!"
            self.progress = 100
            return result
        finally:
            self._end(session, self.media_progress_reset_delay)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def dismiss_error(self) -> None:
        self.error = None

    def reset_session(self) -> None:
        """Discard the render workflow: inputs, history, view and batch queue.

        In-flight calls keep running; their results are dropped.
        """
        self._session += 1
        self._cancel_progress_reset()

        if self.queue.is_running:
            self.queue.abort("Render session was reset.")
        self.queue.clear()

        self.history.reset()
        self.workspace.reset()
        self.current_render = None
        self.error = None
        self.status_message = ""
        self.progress = 0
        self.state = StudioState.IDLE
        logger.info("Render session reset")

    def snapshot(self) -> dict:
        """Observable studio state."""
        return {
            "state": self.state.value,
            "status_message": self.status_message,
            "progress": self.progress,
            "error": self.error,
            "current_render": self.current_render.to_dict() if self.current_render else None,
            "history": {
                "length": len(self.history),
                "current_index": self.history.current_index,
                "can_undo": self.history.can_undo,
                "can_redo": self.history.can_redo,
            },
            "batch": self.queue.to_dict(include_results=False),
            "image_results": [a.to_dict() for a in self.image_results],
            "video_result": self.video_result.to_dict() if self.video_result else None,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _begin(self, message: str, progress: int) -> int:
        if self.is_busy:
            raise RuntimeError("Another generation is in progress")
        self._cancel_progress_reset()
        self.state = StudioState.SINGLE_GENERATING
        self.status_message = message
        self.progress = progress
        self.error = None
        return self._session

    def _end(self, session: int, delay: float, progress: Optional[int] = None) -> None:
        if session != self._session:
            return
        if self.state != StudioState.BATCH_RUNNING:
            self.state = StudioState.IDLE
        if progress is not None:
            self.progress = progress
        self._schedule_progress_reset(delay)

    def _surface(self, session: int, status: Optional[str], error: Exception, fallback: str) -> None:
        """Record a failure as the surfaced error."""
        if isinstance(error, GenerationError):
            logger.error(f"Generation failed ({error.error_type}): {error}")
        else:
            logger.exception("Unexpected generation failure")

        if session != self._session:
            return
        if status is not None:
            self.status_message = status
        self.error = str(error) or fallback

    def _schedule_progress_reset(self, delay: float) -> None:
        self._cancel_progress_reset()
        if delay <= 0:
            self.progress = 0
            return
        self._reset_task = asyncio.get_running_loop().create_task(self._reset_progress_after(delay))

    async def _reset_progress_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self.progress = 0
        self._reset_task = None

    def _cancel_progress_reset(self) -> None:
        if self._reset_task is not None and not self._reset_task.done():
            self._reset_task.cancel()
        self._reset_task = None
