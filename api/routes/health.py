"""Health check routes."""

from fastapi import APIRouter

from . import studio

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@router.get("/health/gateway")
async def gateway_status():
    """Check generation gateway availability."""
    renderer = studio.get_renderer()
    return {
        "gateway_available": renderer is not None,
        "video_available": renderer is not None and renderer.video_service is not None,
    }
