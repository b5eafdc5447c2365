from enum import Enum

from pydantic import BaseModel, Field


class OutputFormat(str, Enum):
    """Encoding family of the enhanced image (Pillow format names)."""
    PNG = "PNG"
    JPEG = "JPEG"

    @property
    def media_type(self) -> str:
        return "image/png" if self is OutputFormat.PNG else "image/jpeg"


class EnhancedImage(BaseModel):
    """Result of a single enhancement."""
    content: bytes = Field(..., description="Encoded image bytes")
    output_format: OutputFormat
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)

    @property
    def media_type(self) -> str:
        return self.output_format.media_type
