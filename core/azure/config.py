"""Azure configuration management."""

import os
from dataclasses import dataclass


@dataclass
class AzureConfig:
    """Azure service configuration."""

    # Azure OpenAI
    openai_endpoint: str
    openai_api_key: str
    openai_api_version: str = "2025-04-01-preview"

    # Model deployments
    image_deployment: str = "gpt-image-1"  # Plan render, edit, text-to-image
    video_deployment: str = "sora"  # Image-to-video

    # Video generation REST API
    video_api_version: str = "preview"
    video_seconds: int = 5

    @classmethod
    def from_env(cls) -> "AzureConfig":
        """Load configuration from environment variables."""
        return cls(
            openai_endpoint=os.getenv("AZURE_OPENAI_ENDPOINT", ""),
            openai_api_key=os.getenv("AZURE_OPENAI_API_KEY", ""),
            openai_api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2025-04-01-preview"),
            image_deployment=os.getenv("AZURE_OPENAI_IMAGE_DEPLOYMENT", "gpt-image-1"),
            video_deployment=os.getenv("AZURE_OPENAI_VIDEO_DEPLOYMENT", "sora"),
            video_api_version=os.getenv("AZURE_OPENAI_VIDEO_API_VERSION", "preview"),
            video_seconds=int(os.getenv("AZURE_OPENAI_VIDEO_SECONDS", "5")),
        )

    def is_openai_configured(self) -> bool:
        """Check if Azure OpenAI is properly configured."""
        return bool(self.openai_endpoint and self.openai_api_key)

    def is_video_configured(self) -> bool:
        """Check if video generation can be used."""
        return self.is_openai_configured() and bool(self.video_deployment)
