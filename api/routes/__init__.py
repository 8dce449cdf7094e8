"""API Routes"""

from . import health, studio

__all__ = ["health", "studio"]
