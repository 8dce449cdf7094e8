"""Data types for the render studio."""

import base64
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

DEFAULT_STYLE_WEIGHT = 1.0

RESOLUTIONS = ("1080p", "2k", "4k")
ASPECT_RATIOS = ("16:9", "9:16", "1:1", "4:3", "3:4")
VIDEO_ASPECT_RATIOS = ("16:9", "9:16")
LIGHTING_PRESETS = ("studio", "sunny", "night", "dramatic", "golden hour", "overcast")

_DATA_URL_RE = re.compile(r"^data:([^;,]+);base64,(.*)$", re.DOTALL)


def _new_id() -> str:
    return str(uuid.uuid4())[:8]


@dataclass(frozen=True)
class Artifact:
    """One successful generation result (image or video payload)."""

    mime_type: str
    data: bytes = field(repr=False)
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)
    revised_prompt: Optional[str] = None

    @property
    def kind(self) -> str:
        """"video" for video payloads, "image" otherwise."""
        return "video" if self.mime_type.startswith("video/") else "image"

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    @property
    def base64_data(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    @property
    def data_url(self) -> str:
        """Encode as a data URL."""
        return f"data:{self.mime_type};base64,{self.base64_data}"

    @classmethod
    def from_data_url(cls, url: str) -> "Artifact":
        """
        Parse an artifact from a data URL.

        Raises:
            ValueError: If the URL is not a base64 data URL
        """
        match = _DATA_URL_RE.match(url)
        if not match:
            raise ValueError("Not a base64 data URL")
        return cls(mime_type=match.group(1), data=base64.b64decode(match.group(2)))

    def to_dict(self, include_data: bool = True) -> dict:
        """Convert to dictionary for serialization."""
        data = {
            "id": self.id,
            "kind": self.kind,
            "mime_type": self.mime_type,
            "size_bytes": len(self.data),
            "created_at": self.created_at.isoformat(),
            "revised_prompt": self.revised_prompt,
        }
        if include_data:
            data["data_url"] = self.data_url
        return data


@dataclass
class ImageUpload:
    """An uploaded file held by the workspace (plan or animate source)."""

    filename: str
    data: bytes = field(repr=False)
    mime_type: str
    preview_url: str = ""

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "mime_type": self.mime_type,
            "size_bytes": len(self.data),
            "preview_url": self.preview_url,
        }


@dataclass
class StyleReference:
    """Auxiliary style image with an influence weight.

    ``weight`` may be left unset; it then reads as full influence (1.0).
    """

    image_bytes: bytes = field(repr=False)
    mime_type: str
    weight: Optional[float] = None
    filename: str = ""
    preview_url: str = ""

    @property
    def effective_weight(self) -> float:
        return DEFAULT_STYLE_WEIGHT if self.weight is None else self.weight

    @property
    def is_preset_derived(self) -> bool:
        """Preset styles carry a data URL preview instead of an owned handle."""
        return self.preview_url.startswith("data:")

    @property
    def base64_data(self) -> str:
        return base64.b64encode(self.image_bytes).decode("utf-8")

    def to_dict(self, include_data: bool = False) -> dict:
        data = {
            "filename": self.filename,
            "mime_type": self.mime_type,
            "weight": self.effective_weight,
            "preview_url": self.preview_url,
        }
        if include_data:
            data["base64"] = self.base64_data
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "StyleReference":
        """Create StyleReference from a persisted dictionary."""
        mime_type = data.get("mime_type", "image/png")
        encoded = data.get("base64", "")
        return cls(
            image_bytes=base64.b64decode(encoded),
            mime_type=mime_type,
            weight=data.get("weight", DEFAULT_STYLE_WEIGHT),
            filename=data.get("filename", ""),
            preview_url=f"data:{mime_type};base64,{encoded}",
        )


@dataclass
class Settings:
    """Render settings snapshot."""

    resolution: str = "2k"  # "1080p", "2k", "4k"
    aspect_ratio: str = "16:9"  # "16:9", "9:16", "1:1", "4:3", "3:4"
    lighting_preset: str = "studio"
    lock_structure: bool = True
    denoising: float = 0.2  # 0.0 - 1.0

    def __post_init__(self):
        if not 0.0 <= self.denoising <= 1.0:
            raise ValueError("Denoising strength must be between 0 and 1")

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "resolution": self.resolution,
            "aspect_ratio": self.aspect_ratio,
            "lighting_preset": self.lighting_preset,
            "lock_structure": self.lock_structure,
            "denoising": self.denoising,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        """Create Settings from dictionary."""
        return cls(
            resolution=data.get("resolution", "2k"),
            aspect_ratio=data.get("aspect_ratio", "16:9"),
            lighting_preset=data.get("lighting_preset", "studio"),
            lock_structure=data.get("lock_structure", True),
            denoising=data.get("denoising", 0.2),
        )


class JobStatus(str, Enum):
    """Batch job status."""

    QUEUED = "queued"
    RENDERING = "rendering"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class BatchJob:
    """One independently configured render in a batch queue."""

    settings: Settings
    style_references: List[StyleReference] = field(default_factory=list)
    id: str = field(default_factory=_new_id)
    status: JobStatus = JobStatus.QUEUED
    result: Optional[Artifact] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def is_finished(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)

    def to_dict(self, include_result: bool = True) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "status": self.status.value,
            "settings": self.settings.to_dict(),
            "style_references": [s.to_dict() for s in self.style_references],
            "result": self.result.to_dict(include_data=include_result) if self.result else None,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class Preset:
    """Named settings and style references."""

    name: str
    settings: Settings = field(default_factory=Settings)
    styles: List[StyleReference] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "settings": self.settings.to_dict(),
            "styles": [
                {
                    "filename": s.filename,
                    "mime_type": s.mime_type,
                    "weight": s.effective_weight,
                    "base64": s.base64_data,
                }
                for s in self.styles
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Preset":
        return cls(
            name=data.get("name", ""),
            settings=Settings.from_dict(data.get("settings", {})),
            styles=[StyleReference.from_dict(s) for s in data.get("styles", [])],
        )
