"""
Image Enhancer Engine

Fixed 3x3 sharpen transform with PNG/JPEG re-encoding.
"""

from src.engines.enhancer.processing import enhance, SHARPEN_KERNEL
from src.engines.enhancer.schemas import EnhancedImage, OutputFormat
from src.engines.enhancer.services import ImageEnhancerService

__all__ = ["enhance", "SHARPEN_KERNEL", "EnhancedImage", "OutputFormat", "ImageEnhancerService"]
