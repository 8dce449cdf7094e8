"""Studio timing and storage configuration."""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class StudioConfig:
    """Render studio configuration."""

    # Seconds progress stays at 100% before returning to 0
    progress_reset_delay: float = 2.0
    media_progress_reset_delay: float = 3.0

    # Pause between batch jobs
    batch_job_interval: float = 1.0

    # Video status polling
    video_poll_interval: float = 10.0
    video_max_attempts: int = 30

    # Gateway retries for transient provider errors
    max_retries: int = 2

    presets_path: Optional[str] = "data/presets.json"

    @classmethod
    def from_env(cls) -> "StudioConfig":
        """Load configuration from environment variables."""
        return cls(
            progress_reset_delay=float(os.getenv("STUDIO_PROGRESS_RESET_DELAY", "2.0")),
            media_progress_reset_delay=float(os.getenv("STUDIO_MEDIA_PROGRESS_RESET_DELAY", "3.0")),
            batch_job_interval=float(os.getenv("STUDIO_BATCH_JOB_INTERVAL", "1.0")),
            video_poll_interval=float(os.getenv("STUDIO_VIDEO_POLL_INTERVAL", "10.0")),
            video_max_attempts=int(os.getenv("STUDIO_VIDEO_MAX_ATTEMPTS", "30")),
            max_retries=int(os.getenv("STUDIO_MAX_RETRIES", "2")),
            presets_path=os.getenv("STUDIO_PRESETS_PATH", "data/presets.json") or None,
        )
