"""
FastAPI Dependencies for the Enhancer

The enhancer service is stateless, so one instance is shared by every
request.
"""

from src.engines.enhancer.services import ImageEnhancerService

_enhancer_service = ImageEnhancerService()


def get_enhancer_service() -> ImageEnhancerService:
    """Returns singleton enhancer service."""
    return _enhancer_service
