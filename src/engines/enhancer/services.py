"""
Image Enhancer Service

Async facade over the enhancement transform. The transform is CPU-bound,
so each call runs in a worker thread and the event loop keeps serving
other uploads meanwhile.
"""

import asyncio
import time
from typing import Optional

from src.core.exceptions import EnhancerBaseException
from src.core.logging import get_logger
from src.core.metrics import (
    track_enhance_latency,
    record_enhance_request,
    record_input_size,
)
from src.engines.enhancer import processing
from src.engines.enhancer.schemas import EnhancedImage

logger = get_logger(__name__)


class ImageEnhancerService:
    """Runs the sharpen transform off the event loop, with logging and metrics."""

    async def enhance(self, raw_bytes: bytes, filename: Optional[str]) -> EnhancedImage:
        """
        Enhance one uploaded image.

        Raises:
            InvalidImageError: input could not be decoded
            EncodeError: output could not be encoded
        """
        output_format = processing.resolve_output_format(filename)
        start_time = time.time()

        logger.info(
            "enhance_started",
            filename=filename,
            size_bytes=len(raw_bytes),
            output_format=output_format.value
        )
        record_input_size(len(raw_bytes))

        try:
            with track_enhance_latency():
                result = await asyncio.to_thread(processing.enhance, raw_bytes, filename)
        except Exception as e:
            record_enhance_request("error", output_format.value)
            log = logger.warning if isinstance(e, EnhancerBaseException) else logger.error
            log(
                "enhance_failed",
                filename=filename,
                error=e.message if isinstance(e, EnhancerBaseException) else str(e),
                error_type=type(e).__name__,
                duration_ms=int((time.time() - start_time) * 1000)
            )
            raise

        record_enhance_request("success", output_format.value)
        logger.info(
            "enhance_completed",
            filename=filename,
            output_format=result.output_format.value,
            width=result.width,
            height=result.height,
            output_bytes=len(result.content),
            duration_ms=int((time.time() - start_time) * 1000)
        )
        return result
