"""
Image Enhancement Transform

Decode -> flatten onto an opaque RGB canvas -> 3x3 sharpen -> re-encode.

The transform is a pure, stateless function of the uploaded bytes and the
filename; every Pillow image and numpy buffer is allocated per call, so it
is safe to run concurrently from worker threads.
"""

import io
from typing import Optional

import cv2
import numpy as np
from PIL import Image

from src.core.exceptions import InvalidImageError, EncodeError
from src.core.logging import get_logger
from src.engines.enhancer.schemas import EnhancedImage, OutputFormat

logger = get_logger(__name__)

# Fixed sharpening kernel. Sums to 1, so flat regions are left untouched.
SHARPEN_KERNEL = np.array(
    [
        [0, -1, 0],
        [-1, 5, -1],
        [0, -1, 0],
    ],
    dtype=np.float32,
)

# Modes that always carry an alpha band
_ALPHA_MODES = ("RGBA", "LA", "PA", "RGBa", "La")

# Integer grayscale modes holding 16-bit samples
_SIXTEEN_BIT_MODES = ("I", "I;16", "I;16L", "I;16B", "I;16N")

# Pillow signals corrupt or unsupported input through several exception types
_DECODE_ERRORS = (OSError, ValueError, SyntaxError, EOFError, Image.DecompressionBombError)


def resolve_output_format(filename: Optional[str]) -> OutputFormat:
    """PNG iff the filename ends with `.png` (any case), JPEG otherwise."""
    if filename and filename.lower().endswith(".png"):
        return OutputFormat.PNG
    return OutputFormat.JPEG


def decode_image(raw_bytes: bytes) -> Image.Image:
    """
    Decode raw upload bytes into a Pillow image.

    Pixel data is loaded eagerly so truncated files fail here rather than
    later in the pipeline. Animated formats yield their first frame.

    Raises:
        InvalidImageError: empty, unrecognised, truncated or oversized input
    """
    if not raw_bytes:
        raise InvalidImageError(details={"reason": "empty upload"})

    try:
        image = Image.open(io.BytesIO(raw_bytes))
        image.load()
    except _DECODE_ERRORS as e:
        logger.warning("image_decode_failed", error=str(e), error_type=type(e).__name__)
        raise InvalidImageError(details={"reason": str(e)}) from e

    return image


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in _ALPHA_MODES or "transparency" in image.info


def _rescale_to_8bit(image: Image.Image) -> Image.Image:
    """Map 16-bit grayscale samples onto 0-255 (Pillow's own conversion clips)."""
    samples = np.clip(np.asarray(image).astype(np.int64), 0, 65535)
    gray = Image.fromarray((samples >> 8).astype(np.uint8))

    transparency = image.info.get("transparency")
    if isinstance(transparency, int):
        gray.info["transparency"] = min(max(transparency, 0), 65535) >> 8
    return gray


def flatten_to_rgb(image: Image.Image) -> np.ndarray:
    """
    Draw the image onto a new opaque RGB raster of the same size.

    Transparent pixels are composited over black, the initial value of a
    fresh RGB canvas. 16-bit grayscale is scaled down to 8 bits per sample.

    Returns:
        uint8 array of shape (height, width, 3)
    """
    if image.mode in _SIXTEEN_BIT_MODES:
        image = _rescale_to_8bit(image)

    if _has_alpha(image):
        canvas = Image.new("RGBA", image.size, (0, 0, 0, 255))
        canvas.alpha_composite(image.convert("RGBA"))
        flattened = canvas.convert("RGB")
    else:
        flattened = image.convert("RGB")

    return np.array(flattened, dtype=np.uint8)


def sharpen(raster: np.ndarray) -> np.ndarray:
    """
    Apply SHARPEN_KERNEL to an RGB raster.

    Channel sums are exact integers saturated to [0, 255]. Pixels on the
    outer border (first/last row and column) are copied unchanged.
    """
    height, width = raster.shape[:2]
    if height < 3 or width < 3:
        return raster.copy()

    # int16 holds the full kernel response range [-1020, 1275]
    response = cv2.filter2D(raster, cv2.CV_16S, SHARPEN_KERNEL, borderType=cv2.BORDER_REPLICATE)
    sharpened = np.clip(response, 0, 255).astype(np.uint8)

    sharpened[0, :] = raster[0, :]
    sharpened[-1, :] = raster[-1, :]
    sharpened[:, 0] = raster[:, 0]
    sharpened[:, -1] = raster[:, -1]

    return sharpened


def encode_image(raster: np.ndarray, output_format: OutputFormat) -> bytes:
    """
    Encode an RGB raster with the encoder's default settings.

    Raises:
        EncodeError: the encoder failed
    """
    buffer = io.BytesIO()
    try:
        Image.fromarray(raster).save(buffer, format=output_format.value)
    except (OSError, ValueError) as e:
        logger.error("image_encode_failed", output_format=output_format.value, error=str(e))
        raise EncodeError(details={"reason": str(e), "output_format": output_format.value}) from e

    return buffer.getvalue()


def enhance(raw_bytes: bytes, filename: Optional[str]) -> EnhancedImage:
    """
    Sharpen an uploaded image and re-encode it.

    Args:
        raw_bytes: Uploaded file content
        filename: Original filename, used only to pick PNG vs JPEG output

    Returns:
        EnhancedImage with the encoded bytes and output format

    Raises:
        InvalidImageError: input could not be decoded
        EncodeError: output could not be encoded
    """
    output_format = resolve_output_format(filename)

    with decode_image(raw_bytes) as image:
        logger.info(
            "enhancing_image",
            width=image.width,
            height=image.height,
            mode=image.mode,
            source_format=image.format,
            output_format=output_format.value
        )
        raster = flatten_to_rgb(image)

    sharpened = sharpen(raster)
    content = encode_image(sharpened, output_format)

    height, width = sharpened.shape[:2]
    return EnhancedImage(
        content=content,
        output_format=output_format,
        width=width,
        height=height
    )
