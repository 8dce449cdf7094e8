"""Live editing state: plan, style references, settings and their previews."""

import copy
import logging
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .types import ImageUpload, Preset, Settings, StyleReference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviewResource:
    """Locally created preview of an uploaded file."""

    url: str
    mime_type: str
    data: bytes


class PreviewRegistry:
    """Owns ``blob:`` preview handles created for uploaded files.

    Handles must be released when the slot holding the file is replaced or
    emptied. URLs the registry did not create (data URLs from presets) are
    never released.
    """

    PREFIX = "blob:"

    def __init__(self):
        self._resources: Dict[str, PreviewResource] = {}

    def __len__(self) -> int:
        return len(self._resources)

    def __contains__(self, url: str) -> bool:
        return url in self._resources

    def create(self, data: bytes, mime_type: str) -> str:
        """Create a preview handle for file bytes."""
        url = f"{self.PREFIX}{uuid.uuid4()}"
        self._resources[url] = PreviewResource(url=url, mime_type=mime_type, data=data)
        return url

    def get(self, url: str) -> Optional[PreviewResource]:
        return self._resources.get(url)

    def release(self, url: str) -> bool:
        """
        Release a preview handle.

        Returns:
            True if an owned handle was released, False otherwise
        """
        if not url.startswith(self.PREFIX):
            return False
        resource = self._resources.pop(url, None)
        if resource is None:
            logger.debug(f"Preview {url} already released")
            return False
        return True


class RenderWorkspace:
    """Holds the inputs of the render workflow."""

    def __init__(self, previews: Optional[PreviewRegistry] = None):
        self.previews = previews or PreviewRegistry()
        self.plan: Optional[ImageUpload] = None
        self.animate_image: Optional[ImageUpload] = None
        self.settings = Settings()
        self._styles: List[StyleReference] = []

    @property
    def styles(self) -> Tuple[StyleReference, ...]:
        return tuple(self._styles)

    def _upload(self, filename: str, data: bytes, mime_type: str) -> ImageUpload:
        return ImageUpload(
            filename=filename,
            data=data,
            mime_type=mime_type,
            preview_url=self.previews.create(data, mime_type),
        )

    def set_plan(self, filename: str, data: bytes, mime_type: str) -> ImageUpload:
        """Replace the plan, releasing the previous plan's preview."""
        upload = self._upload(filename, data, mime_type)
        if self.plan is not None:
            self.previews.release(self.plan.preview_url)
        self.plan = upload
        logger.info(f"Plan set to {filename} ({mime_type}, {len(data)} bytes)")
        return upload

    def clear_plan(self) -> bool:
        """Remove the plan, releasing its preview."""
        if self.plan is None:
            return False
        self.previews.release(self.plan.preview_url)
        self.plan = None
        return True

    def set_animate_image(self, filename: str, data: bytes, mime_type: str) -> ImageUpload:
        """Replace the image to animate, releasing the previous preview."""
        upload = self._upload(filename, data, mime_type)
        if self.animate_image is not None:
            self.previews.release(self.animate_image.preview_url)
        self.animate_image = upload
        return upload

    def add_styles(self, files: List[Tuple[str, bytes, str]]) -> List[StyleReference]:
        """
        Append uploaded style images with full influence.

        Args:
            files: (filename, bytes, mime type) per style image

        Returns:
            The new style references
        """
        added = [
            StyleReference(
                image_bytes=data,
                mime_type=mime_type,
                weight=1.0,
                filename=filename,
                preview_url=self.previews.create(data, mime_type),
            )
            for filename, data, mime_type in files
        ]
        self._styles.extend(added)
        return added

    def set_style_weight(self, index: int, weight: float) -> StyleReference:
        """Set the influence weight of one style reference."""
        if not 0.0 <= weight <= 1.0:
            raise ValueError("Style weight must be between 0 and 1")
        style = self._style_at(index)
        style.weight = weight
        return style

    def remove_style(self, index: int) -> StyleReference:
        """Remove a style reference, releasing its preview if the workspace owns it."""
        style = self._style_at(index)
        if not style.is_preset_derived:
            self.previews.release(style.preview_url)
        del self._styles[index]
        return style

    def move_style(self, from_index: int, to_index: int) -> None:
        """Reorder style references; weights travel with the reference."""
        style = self._style_at(from_index)
        if not 0 <= to_index < len(self._styles):
            raise IndexError(f"Style index {to_index} out of range")
        del self._styles[from_index]
        self._styles.insert(to_index, style)

    def update_settings(self, settings: Settings) -> None:
        self.settings = copy.deepcopy(settings)

    def load_preset(self, preset: Preset) -> None:
        """Replace settings and style references with a preset's."""
        self.settings = copy.deepcopy(preset.settings)
        self._release_styles()
        self._styles = [
            StyleReference(
                image_bytes=style.image_bytes,
                mime_type=style.mime_type,
                weight=style.effective_weight,
                filename=style.filename or f"preset-style-{index}",
                preview_url=f"data:{style.mime_type};base64,{style.base64_data}",
            )
            for index, style in enumerate(preset.styles)
        ]
        logger.info(f"Loaded preset {preset.name} with {len(self._styles)} styles")

    def reset(self) -> None:
        """Drop every input and release owned previews."""
        self.clear_plan()
        if self.animate_image is not None:
            self.previews.release(self.animate_image.preview_url)
            self.animate_image = None
        self._release_styles()
        self._styles = []

    def to_dict(self) -> dict:
        return {
            "plan": self.plan.to_dict() if self.plan else None,
            "animate_image": self.animate_image.to_dict() if self.animate_image else None,
            "styles": [s.to_dict() for s in self._styles],
            "settings": self.settings.to_dict(),
        }

    def _release_styles(self) -> None:
        for style in self._styles:
            if not style.is_preset_derived:
                self.previews.release(style.preview_url)

    def _style_at(self, index: int) -> StyleReference:
        if not 0 <= index < len(self._styles):
            raise IndexError(f"Style index {index} out of range")
        return self._styles[index]
