"""Render studio for AI-powered plan visualization.

This module provides:
- RenderController: Sequences render, enhance, batch, image and video generation
- EditHistory: Linear undo/redo over rendered artifacts
- BatchQueue: Ordered batch jobs with a single active index
- PlanRenderer: Generation gateway with retry on transient provider errors
- RenderWorkspace: Plan, style references, settings and their previews
- PromptBuilder: Constructs render instructions from styles and settings
- PresetStore: Named settings and style presets persisted as JSON

Example usage:
    from core.azure import AzureConfig, AzureOpenAIService
    from core.render import PlanRenderer, RenderController

    renderer = PlanRenderer(AzureOpenAIService(AzureConfig.from_env()))
    controller = RenderController(renderer)

    # Single render, then refine
    controller.workspace.set_plan("plan.png", plan_bytes, "image/png")
    await controller.render(controller.workspace.plan, controller.workspace.styles, controller.workspace.settings)
    await controller.enhance("Add warm evening light")
    controller.undo()

    # Batch render style variants
    controller.add_to_batch()
    await controller.start_batch()
"""

from .batch_queue import BatchQueue
from .config import StudioConfig
from .controller import RenderController, StudioState
from .history import EditHistory
from .presets import PresetStore
from .prompt_builder import PromptBuilder
from .renderer import PlanRenderer
from .types import (
    ASPECT_RATIOS,
    LIGHTING_PRESETS,
    RESOLUTIONS,
    VIDEO_ASPECT_RATIOS,
    Artifact,
    BatchJob,
    ImageUpload,
    JobStatus,
    Preset,
    Settings,
    StyleReference,
)
from .workspace import PreviewRegistry, RenderWorkspace

__all__ = [
    # Types
    "Artifact",
    "BatchJob",
    "ImageUpload",
    "JobStatus",
    "Preset",
    "Settings",
    "StyleReference",
    "RESOLUTIONS",
    "ASPECT_RATIOS",
    "VIDEO_ASPECT_RATIOS",
    "LIGHTING_PRESETS",
    # Engines
    "EditHistory",
    "BatchQueue",
    "RenderController",
    "StudioState",
    "PlanRenderer",
    # Support classes
    "RenderWorkspace",
    "PreviewRegistry",
    "PromptBuilder",
    "PresetStore",
    "StudioConfig",
]
