"""Render studio routes: plan upload, styles, settings, render, batch and media."""

import asyncio
import logging
import re
from pathlib import Path
from typing import List, Optional, Set

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, Field, field_validator

from core.azure.errors import MissingInputError
from core.render import (
    ASPECT_RATIOS,
    LIGHTING_PRESETS,
    RESOLUTIONS,
    VIDEO_ASPECT_RATIOS,
    PlanRenderer,
    PresetStore,
    RenderController,
    Settings,
    StudioConfig,
)
from core.render.media import extension_for, resolve_mime_type

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_UPLOAD_BYTES = 20 * 1024 * 1024

# Strong references to fire-and-forget generation tasks
_background_tasks: Set[asyncio.Task] = set()


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent path traversal and other security issues.

    - Removes path separators and parent directory references
    - Removes null bytes
    - Limits length
    - Keeps only the basename
    """
    # Remove null bytes
    filename = filename.replace("\x00", "")

    # Get only the basename (removes any path components)
    filename = Path(filename).name

    # Remove any remaining path traversal attempts
    filename = filename.replace("..", "").replace("/", "").replace("\\", "")

    # Remove any control characters
    filename = re.sub(r'[\x00-\x1f\x7f-\x9f]', '', filename)

    # Limit length
    if len(filename) > 255:
        # Preserve extension
        name, ext = Path(filename).stem, Path(filename).suffix
        filename = name[:255 - len(ext)] + ext

    # If filename is empty after sanitization, use a default
    if not filename or filename == ".":
        filename = "unknown_file"

    return filename


# ============================================================================
# Services (lazy loading)
# ============================================================================

_studio_config: Optional[StudioConfig] = None
_renderer: Optional[PlanRenderer] = None
_controller: Optional[RenderController] = None
_preset_store: Optional[PresetStore] = None


def get_studio_config() -> StudioConfig:
    """Get or load studio configuration."""
    global _studio_config
    if _studio_config is None:
        _studio_config = StudioConfig.from_env()
    return _studio_config


def get_renderer() -> Optional[PlanRenderer]:
    """Get or create the generation gateway, or None when Azure is not configured."""
    global _renderer
    if _renderer is None:
        try:
            from core.azure import AzureConfig, AzureOpenAIService, AzureVideoService

            config = AzureConfig.from_env()
            if config.is_openai_configured():
                studio_config = get_studio_config()
                video_service = None
                if config.is_video_configured():
                    video_service = AzureVideoService(
                        config,
                        poll_interval=studio_config.video_poll_interval,
                        max_attempts=studio_config.video_max_attempts,
                    )
                _renderer = PlanRenderer(
                    AzureOpenAIService(config),
                    video_service=video_service,
                    max_retries=studio_config.max_retries,
                )
        except Exception as e:
            logger.warning(f"Azure OpenAI not available: {e}")
    return _renderer


def get_controller() -> RenderController:
    """Get or create the studio controller."""
    global _controller
    if _controller is None:
        config = get_studio_config()
        _controller = RenderController(
            get_renderer(),
            progress_reset_delay=config.progress_reset_delay,
            media_progress_reset_delay=config.media_progress_reset_delay,
            batch_job_interval=config.batch_job_interval,
        )
    return _controller


def get_preset_store() -> PresetStore:
    """Get or create the preset store."""
    global _preset_store
    if _preset_store is None:
        _preset_store = PresetStore(get_studio_config().presets_path)
    return _preset_store


async def shutdown() -> None:
    """Close gateway connections."""
    if _renderer is None:
        return
    await _renderer.openai_service.close()
    if _renderer.video_service is not None:
        await _renderer.video_service.close()


# ============================================================================
# Request models
# ============================================================================


class SettingsRequest(BaseModel):
    """Render settings update."""

    resolution: str = "2k"
    aspect_ratio: str = "16:9"
    lighting_preset: str = "studio"
    lock_structure: bool = True
    denoising: float = Field(default=0.2, ge=0.0, le=1.0)

    @field_validator('resolution')
    @classmethod
    def resolution_must_be_known(cls, v: str) -> str:
        if v not in RESOLUTIONS:
            raise ValueError(f"Resolution must be one of: {', '.join(RESOLUTIONS)}")
        return v

    @field_validator('aspect_ratio')
    @classmethod
    def aspect_ratio_must_be_known(cls, v: str) -> str:
        if v not in ASPECT_RATIOS:
            raise ValueError(f"Aspect ratio must be one of: {', '.join(ASPECT_RATIOS)}")
        return v

    @field_validator('lighting_preset')
    @classmethod
    def lighting_must_be_known(cls, v: str) -> str:
        if v not in LIGHTING_PRESETS:
            raise ValueError(f"Lighting preset must be one of: {', '.join(LIGHTING_PRESETS)}")
        return v

    def to_settings(self) -> Settings:
        return Settings(
            resolution=self.resolution,
            aspect_ratio=self.aspect_ratio,
            lighting_preset=self.lighting_preset,
            lock_structure=self.lock_structure,
            denoising=self.denoising,
        )


class StyleWeightRequest(BaseModel):
    """Influence weight of one style reference."""

    weight: float = Field(ge=0.0, le=1.0)


class StyleMoveRequest(BaseModel):
    """Reorder a style reference."""

    from_index: int = Field(ge=0)
    to_index: int = Field(ge=0)


class EnhanceRequest(BaseModel):
    """Natural-language edit of the current render."""

    prompt: str

    @field_validator('prompt')
    @classmethod
    def prompt_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Prompt must not be empty')
        return v.strip()


class ImageGenerationRequest(BaseModel):
    """Standalone text-to-image request."""

    prompt: str
    count: int = Field(default=1, ge=1, le=PlanRenderer.MAX_IMAGES)
    aspect_ratio: str = "1:1"

    @field_validator('prompt')
    @classmethod
    def prompt_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Prompt must not be empty')
        return v.strip()

    @field_validator('aspect_ratio')
    @classmethod
    def aspect_ratio_must_be_known(cls, v: str) -> str:
        if v not in ASPECT_RATIOS:
            raise ValueError(f"Aspect ratio must be one of: {', '.join(ASPECT_RATIOS)}")
        return v


class AnimateRequest(BaseModel):
    """Image-to-video request."""

    prompt: str = ""
    aspect_ratio: str = "16:9"

    @field_validator('aspect_ratio')
    @classmethod
    def aspect_ratio_must_be_supported(cls, v: str) -> str:
        if v not in VIDEO_ASPECT_RATIOS:
            raise ValueError(f"Aspect ratio must be one of: {', '.join(VIDEO_ASPECT_RATIOS)}")
        return v


class PresetRequest(BaseModel):
    """Save the current settings and styles under a name."""

    name: str = Field(max_length=100)
    overwrite: bool = False

    @field_validator('name')
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Preset name must not be empty')
        return v.strip()


# ============================================================================
# Helpers
# ============================================================================


def _require_gateway(controller: RenderController) -> PlanRenderer:
    """Raise 503 when no generation gateway is configured."""
    if controller.renderer is None:
        raise HTTPException(
            status_code=503,
            detail="Azure OpenAI not configured. Set AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY.",
        )
    return controller.renderer


def _ensure_idle(controller: RenderController) -> None:
    """Reject an action while a batch runs or another generation is in flight."""
    if controller.is_batch_running:
        raise HTTPException(status_code=409, detail="A batch render is in progress")
    if controller.is_busy:
        raise HTTPException(status_code=409, detail="Another generation is in progress")


def _ensure_no_batch(controller: RenderController) -> None:
    if controller.is_batch_running:
        raise HTTPException(status_code=409, detail="A batch render is in progress")


async def _read_image(file: UploadFile) -> tuple:
    """Read an uploaded image as (filename, bytes, mime type)."""
    filename = sanitize_filename(file.filename or "unknown")
    content = await file.read()

    if not content:
        raise HTTPException(status_code=400, detail=f"File {filename} is empty")
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail=f"File {filename} is too large")

    mime_type = resolve_mime_type(content, file.content_type)
    if mime_type is None:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type for {filename}. Only image files are supported.",
        )
    return filename, content, mime_type


def _spawn(coro) -> asyncio.Task:
    task = asyncio.create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


# ============================================================================
# State
# ============================================================================


@router.get("/state")
async def get_state():
    """Get the observable studio state and the workspace inputs."""
    controller = get_controller()
    return {**controller.snapshot(), "workspace": controller.workspace.to_dict()}


@router.post("/error/dismiss")
async def dismiss_error():
    """Dismiss the surfaced error."""
    controller = get_controller()
    controller.dismiss_error()
    return controller.snapshot()


@router.post("/reset")
async def reset_session():
    """Discard the render workflow: inputs, history, view and batch queue."""
    controller = get_controller()
    controller.reset_session()
    return controller.snapshot()


@router.get("/status")
async def get_studio_status():
    """Check if the generation gateway is available."""
    renderer = get_controller().renderer
    available = renderer is not None
    config = renderer.openai_service.config if available else None
    return {
        "available": available,
        "video_available": available and renderer.video_service is not None,
        "provider": "azure_openai" if available else None,
        "models": {
            "image": config.image_deployment if config else None,
            "video": config.video_deployment if config and renderer.video_service else None,
        },
    }


# ============================================================================
# Inputs
# ============================================================================


@router.put("/plan")
async def upload_plan(file: UploadFile = File(...)):
    """Upload (or replace) the 2D plan."""
    filename, content, mime_type = await _read_image(file)
    upload = get_controller().workspace.set_plan(filename, content, mime_type)
    return upload.to_dict()


@router.delete("/plan")
async def remove_plan():
    """Remove the 2D plan."""
    if not get_controller().workspace.clear_plan():
        raise HTTPException(status_code=404, detail="No plan uploaded")
    return {"status": "deleted"}


@router.post("/styles")
async def upload_styles(files: List[UploadFile] = File(...)):
    """Append style reference images with full influence."""
    uploads = [await _read_image(f) for f in files]
    workspace = get_controller().workspace
    added = workspace.add_styles(uploads)
    logger.info(f"Added {len(added)} style references")
    return {"styles": [s.to_dict() for s in workspace.styles]}


@router.patch("/styles/{index}")
async def update_style_weight(index: int, request: StyleWeightRequest):
    """Set the influence weight of a style reference."""
    try:
        style = get_controller().workspace.set_style_weight(index, request.weight)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return style.to_dict()


@router.delete("/styles/{index}")
async def remove_style(index: int):
    """Remove a style reference."""
    workspace = get_controller().workspace
    try:
        workspace.remove_style(index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"styles": [s.to_dict() for s in workspace.styles]}


@router.post("/styles/move")
async def move_style(request: StyleMoveRequest):
    """Reorder a style reference."""
    workspace = get_controller().workspace
    try:
        workspace.move_style(request.from_index, request.to_index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"styles": [s.to_dict() for s in workspace.styles]}


@router.put("/settings")
async def update_settings(request: SettingsRequest):
    """Replace the render settings."""
    workspace = get_controller().workspace
    workspace.update_settings(request.to_settings())
    return workspace.settings.to_dict()


# ============================================================================
# Single render workflow
# ============================================================================


@router.post("/render")
async def render_plan():
    """Render the plan with the current styles and settings."""
    controller = get_controller()
    _ensure_idle(controller)
    _require_gateway(controller)

    workspace = controller.workspace
    try:
        await controller.render(workspace.plan, workspace.styles, workspace.settings)
    except MissingInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return controller.snapshot()


@router.post("/enhance")
async def enhance_render(request: EnhanceRequest):
    """Apply a natural-language edit to the current render."""
    controller = get_controller()
    _ensure_idle(controller)
    _require_gateway(controller)

    try:
        await controller.enhance(request.prompt)
    except MissingInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return controller.snapshot()


@router.post("/undo")
async def undo():
    """Step back in the edit history."""
    controller = get_controller()
    _ensure_idle(controller)
    if not controller.undo():
        raise HTTPException(status_code=400, detail="Nothing to undo")
    return controller.snapshot()


@router.post("/redo")
async def redo():
    """Step forward in the edit history."""
    controller = get_controller()
    _ensure_idle(controller)
    if not controller.redo():
        raise HTTPException(status_code=400, detail="Nothing to redo")
    return controller.snapshot()


@router.get("/download")
async def download(target: str = "render"):
    """Download the current render or the generated video."""
    controller = get_controller()
    if target == "render":
        artifact = controller.current_render
    elif target == "video":
        artifact = controller.video_result
    else:
        raise HTTPException(status_code=422, detail="Target must be 'render' or 'video'")

    if artifact is None:
        raise HTTPException(status_code=404, detail=f"No {target} available")

    filename = f"{target}-{artifact.id}.{extension_for(artifact.mime_type)}"
    return Response(
        content=artifact.data,
        media_type=artifact.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================================
# Batch workflow
# ============================================================================


@router.get("/batch")
async def get_batch():
    """Get the batch queue."""
    return get_controller().queue.to_dict()


@router.post("/batch")
async def add_batch_job():
    """Queue a job with the current settings and styles."""
    controller = get_controller()
    _ensure_no_batch(controller)
    job = controller.add_to_batch()
    return job.to_dict()


@router.delete("/batch/{job_id}")
async def remove_batch_job(job_id: str):
    """Remove a job; an in-flight job's result is discarded."""
    if not get_controller().remove_from_batch(job_id):
        raise HTTPException(status_code=404, detail="Batch job not found")
    return {"status": "deleted", "id": job_id}


@router.delete("/batch")
async def clear_batch():
    """Remove every job from an idle queue."""
    controller = get_controller()
    _ensure_no_batch(controller)
    count = controller.clear_batch()
    return {"status": "cleared", "count": count}


@router.post("/batch/start", status_code=202)
async def start_batch():
    """Start processing the queue in the background."""
    controller = get_controller()
    _ensure_idle(controller)
    _require_gateway(controller)

    if len(controller.queue) == 0:
        raise HTTPException(status_code=400, detail="Batch queue is empty")
    if controller.workspace.plan is None:
        raise HTTPException(status_code=400, detail="Please upload a 2D plan first.")

    session = controller.begin_batch()
    if session is None:
        raise HTTPException(status_code=409, detail="A batch render is in progress")

    _spawn(controller.run_batch(session))
    logger.info(f"Started batch over {len(controller.queue)} jobs")
    return {"status": "started", "total": len(controller.queue)}


# ============================================================================
# Standalone media
# ============================================================================


@router.post("/images")
async def generate_images(request: ImageGenerationRequest):
    """Generate standalone images from text."""
    controller = get_controller()
    _ensure_idle(controller)
    _require_gateway(controller)

    try:
        results = await controller.generate_images(request.prompt, request.count, request.aspect_ratio)
    except MissingInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "images": [a.to_dict() for a in results],
        "error": controller.error,
    }


@router.put("/animate/image")
async def upload_animate_image(file: UploadFile = File(...)):
    """Upload (or replace) the image to animate."""
    filename, content, mime_type = await _read_image(file)
    upload = get_controller().workspace.set_animate_image(filename, content, mime_type)
    return upload.to_dict()


@router.post("/animate", status_code=202)
async def animate(request: AnimateRequest):
    """Start animating the uploaded image in the background."""
    controller = get_controller()
    _ensure_idle(controller)
    renderer = _require_gateway(controller)

    if renderer.video_service is None:
        raise HTTPException(status_code=503, detail="Video generation not configured")

    image = controller.workspace.animate_image
    if image is None:
        raise HTTPException(status_code=400, detail="Please upload an image to animate.")

    session = controller.begin_animation(image, request.aspect_ratio)
    _spawn(controller.run_animation(session, image, request.prompt, request.aspect_ratio))
    return {"status": "started"}


# ============================================================================
# Presets
# ============================================================================


@router.get("/presets")
async def list_presets():
    """List saved presets."""
    return {
        "presets": [
            {
                "name": p.name,
                "settings": p.settings.to_dict(),
                "style_count": len(p.styles),
            }
            for p in get_preset_store().list()
        ]
    }


@router.post("/presets")
async def save_preset(request: PresetRequest):
    """Save the current settings and styles as a preset."""
    store = get_preset_store()
    if store.exists(request.name) and not request.overwrite:
        raise HTTPException(status_code=409, detail=f"Preset '{request.name}' already exists")

    workspace = get_controller().workspace
    preset = store.save(request.name, workspace.settings, list(workspace.styles))
    return {"name": preset.name, "settings": preset.settings.to_dict(), "style_count": len(preset.styles)}


@router.delete("/presets/{name}")
async def delete_preset(name: str):
    """Delete a preset."""
    if not get_preset_store().delete(name):
        raise HTTPException(status_code=404, detail="Preset not found")
    return {"status": "deleted", "name": name}


@router.post("/presets/{name}/load")
async def load_preset(name: str):
    """Replace the current settings and styles with a preset's."""
    preset = get_preset_store().get(name)
    if preset is None:
        raise HTTPException(status_code=404, detail="Preset not found")

    workspace = get_controller().workspace
    workspace.load_preset(preset)
    return workspace.to_dict()
