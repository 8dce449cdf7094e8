"""JSON-backed storage for render presets."""

import json
import logging
from pathlib import Path
from typing import List, Optional

from .types import Preset, Settings, StyleReference

logger = logging.getLogger(__name__)


class PresetStore:
    """Named settings and style presets persisted to a JSON file."""

    def __init__(self, path: Optional[str] = None):
        """
        Initialize the preset store.

        Args:
            path: JSON file location. Presets are kept in memory only when None.
        """
        self.path = Path(path) if path else None
        self._presets: List[Preset] = self._load()

    def _load(self) -> List[Preset]:
        if self.path is None or not self.path.exists():
            return []

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            return [Preset.from_dict(p) for p in data]
        except (json.JSONDecodeError, IOError, ValueError, TypeError) as e:
            logger.error(f"Error reading presets from {self.path}: {e}")
            return []

    def _save(self) -> None:
        if self.path is None:
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump([p.to_dict() for p in self._presets], f)
        except (IOError, TypeError) as e:
            logger.error(f"Error saving presets to {self.path}: {e}")

    def list(self) -> List[Preset]:
        return list(self._presets)

    def get(self, name: str) -> Optional[Preset]:
        """Get a preset by exact name."""
        return next((p for p in self._presets if p.name == name), None)

    def exists(self, name: str) -> bool:
        """Check for a preset with the same name, ignoring case."""
        return self._index_of(name) >= 0

    def save(self, name: str, settings: Settings, styles: List[StyleReference]) -> Preset:
        """
        Save a preset, overwriting one with the same name (ignoring case).

        Args:
            name: Preset name
            settings: Settings to store
            styles: Style references to store, weights resolved

        Returns:
            The stored preset
        """
        preset = Preset(
            name=name,
            settings=Settings.from_dict(settings.to_dict()),
            styles=[
                StyleReference(
                    image_bytes=style.image_bytes,
                    mime_type=style.mime_type,
                    weight=style.effective_weight,
                    filename=style.filename,
                )
                for style in styles
            ],
        )

        index = self._index_of(name)
        if index >= 0:
            self._presets[index] = preset
            logger.info(f"Overwrote preset {name}")
        else:
            self._presets.append(preset)
            logger.info(f"Saved preset {name}")

        self._save()
        return preset

    def delete(self, name: str) -> bool:
        """Delete a preset by exact name."""
        remaining = [p for p in self._presets if p.name != name]
        if len(remaining) == len(self._presets):
            return False
        self._presets = remaining
        self._save()
        return True

    def _index_of(self, name: str) -> int:
        lowered = name.lower()
        for index, preset in enumerate(self._presets):
            if preset.name.lower() == lowered:
                return index
        return -1
