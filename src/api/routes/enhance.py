"""
Enhance Endpoint

POST /enhance - Upload an image (multipart field `file`) and receive the
sharpened image back as PNG or JPEG.
"""

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response

from src.api.dependencies import get_enhancer_service
from src.core.config import settings
from src.core.exceptions import UploadTooLargeError
from src.core.logging import get_logger, LogContext
from src.engines.enhancer.services import ImageEnhancerService

logger = get_logger(__name__)
router = APIRouter()


@router.post(
    "/enhance",
    response_class=Response,
    responses={
        200: {"content": {"image/png": {}, "image/jpeg": {}}, "description": "Enhanced image"},
        400: {"content": {"text/plain": {}}, "description": "Invalid image file"},
        413: {"content": {"text/plain": {}}, "description": "Upload too large"},
        500: {"content": {"text/plain": {}}, "description": "Error processing image"},
    },
)
async def enhance_image(
    file: UploadFile = File(...),
    enhancer: ImageEnhancerService = Depends(get_enhancer_service)
):
    """
    Sharpen an uploaded image.

    The output is PNG when the uploaded filename ends with `.png`
    (case-insensitive) and JPEG otherwise.
    """
    with LogContext(filename=file.filename):
        raw_bytes = await file.read()
        logger.info("upload_received", size_bytes=len(raw_bytes), content_type=file.content_type)

        if len(raw_bytes) > settings.MAX_IMAGE_SIZE_BYTES:
            raise UploadTooLargeError(len(raw_bytes), settings.MAX_IMAGE_SIZE_BYTES)

        result = await enhancer.enhance(raw_bytes, file.filename)

    return Response(content=result.content, media_type=result.media_type)
