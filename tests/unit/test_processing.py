import io
from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image

from src.core.exceptions import InvalidImageError, EncodeError
from src.engines.enhancer.processing import (
    SHARPEN_KERNEL,
    decode_image,
    encode_image,
    enhance,
    flatten_to_rgb,
    resolve_output_format,
    sharpen,
)
from src.engines.enhancer.schemas import OutputFormat


def reference_sharpen(raster: np.ndarray) -> np.ndarray:
    """Straightforward numpy rendition of the kernel with untouched borders."""
    src = raster.astype(np.int32)
    out = raster.copy()
    response = (
        5 * src[1:-1, 1:-1]
        - src[:-2, 1:-1]
        - src[2:, 1:-1]
        - src[1:-1, :-2]
        - src[1:-1, 2:]
    )
    out[1:-1, 1:-1] = np.clip(response, 0, 255).astype(np.uint8)
    return out


def random_png(width: int, height: int, seed: int = 0) -> bytes:
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


def decode(content: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(content))
    image.load()
    return image


class TestResolveOutputFormat:

    @pytest.mark.parametrize("filename", ["test.png", "TEST.PNG", "photo.Png", "a.b.png"])
    def test_png_suffix_any_case(self, filename):
        assert resolve_output_format(filename) is OutputFormat.PNG

    @pytest.mark.parametrize(
        "filename",
        ["photo.jpg", "photo.jpeg", "anim.gif", "noext", "png", "archive.png.zip", "", None],
    )
    def test_everything_else_is_jpeg(self, filename):
        assert resolve_output_format(filename) is OutputFormat.JPEG

    def test_media_types(self):
        assert OutputFormat.PNG.media_type == "image/png"
        assert OutputFormat.JPEG.media_type == "image/jpeg"


class TestDecode:

    def test_empty_buffer(self):
        with pytest.raises(InvalidImageError) as exc_info:
            decode_image(b"")
        assert exc_info.value.code == 400

    def test_non_image_payload(self):
        with pytest.raises(InvalidImageError):
            decode_image(b"notanimage")

    def test_truncated_header(self, make_image_bytes):
        png = make_image_bytes(size=(32, 32))
        with pytest.raises(InvalidImageError):
            decode_image(png[:16])

    def test_truncated_pixel_data(self):
        png = random_png(64, 64)
        with pytest.raises(InvalidImageError):
            decode_image(png[: len(png) // 2])

    def test_valid_png(self, make_image_bytes):
        image = decode_image(make_image_bytes(size=(3, 4)))
        assert image.size == (3, 4)
        assert image.format == "PNG"


class TestFlatten:

    def test_rgb_passthrough(self, make_image_bytes):
        raster = flatten_to_rgb(decode_image(make_image_bytes(size=(4, 3), color=(1, 2, 3))))
        assert raster.shape == (3, 4, 3)
        assert raster.dtype == np.uint8
        assert (raster == [1, 2, 3]).all()

    def test_grayscale_becomes_rgb(self, make_image_bytes):
        raster = flatten_to_rgb(decode_image(make_image_bytes(mode="L", color=77)))
        assert raster.shape == (2, 2, 3)
        assert (raster == 77).all()

    def test_sixteen_bit_gray_png_is_rescaled(self):
        buffer = io.BytesIO()
        Image.fromarray(np.full((5, 5), 40000, dtype=np.uint16)).save(buffer, format="PNG")

        image = decode_image(buffer.getvalue())
        raster = flatten_to_rgb(image)

        assert image.mode in ("I", "I;16")
        assert raster.shape == (5, 5, 3)
        assert (raster == 40000 >> 8).all()

    def test_int32_gray_is_rescaled(self):
        image = Image.fromarray(np.full((3, 4), 65535, dtype=np.int32))
        image.putpixel((0, 0), 0)

        raster = flatten_to_rgb(image)

        assert tuple(raster[0, 0]) == (0, 0, 0)
        assert tuple(raster[2, 3]) == (255, 255, 255)

    def test_transparent_pixels_composite_over_black(self):
        image = Image.new("RGBA", (2, 2), (255, 0, 0, 255))
        image.putpixel((1, 1), (0, 255, 0, 0))

        raster = flatten_to_rgb(image)

        assert tuple(raster[0, 0]) == (255, 0, 0)
        assert tuple(raster[1, 1]) == (0, 0, 0)

    def test_palette_transparency_composites_over_black(self):
        image = Image.new("P", (2, 2), 0)
        image.putpalette([255, 255, 255, 40, 80, 120] + [0, 0, 0] * 254)
        image.putpixel((0, 0), 1)
        image.info["transparency"] = 0

        raster = flatten_to_rgb(image)

        assert tuple(raster[0, 0]) == (40, 80, 120)
        assert tuple(raster[1, 1]) == (0, 0, 0)


class TestSharpen:

    def test_kernel_constant(self):
        assert SHARPEN_KERNEL.tolist() == [[0, -1, 0], [-1, 5, -1], [0, -1, 0]]
        assert SHARPEN_KERNEL.sum() == 1

    def test_flat_field_unchanged(self):
        raster = np.full((5, 5, 3), (90, 30, 250), dtype=np.uint8)
        np.testing.assert_array_equal(sharpen(raster), raster)

    def test_matches_reference_kernel(self):
        rng = np.random.default_rng(42)
        raster = rng.integers(0, 256, size=(9, 11, 3), dtype=np.uint8)
        np.testing.assert_array_equal(sharpen(raster), reference_sharpen(raster))

    def test_edges_untouched(self):
        rng = np.random.default_rng(7)
        raster = rng.integers(0, 256, size=(6, 7, 3), dtype=np.uint8)

        result = sharpen(raster)

        np.testing.assert_array_equal(result[0, :], raster[0, :])
        np.testing.assert_array_equal(result[-1, :], raster[-1, :])
        np.testing.assert_array_equal(result[:, 0], raster[:, 0])
        np.testing.assert_array_equal(result[:, -1], raster[:, -1])

    def test_saturates(self):
        raster = np.zeros((3, 3, 3), dtype=np.uint8)
        raster[1, 1] = 255
        result = sharpen(raster)
        assert tuple(result[1, 1]) == (255, 255, 255)

        raster = np.full((3, 3, 3), 255, dtype=np.uint8)
        raster[1, 1] = 0
        result = sharpen(raster)
        assert tuple(result[1, 1]) == (0, 0, 0)

    @pytest.mark.parametrize("shape", [(1, 1, 3), (2, 5, 3), (5, 2, 3)])
    def test_small_rasters_are_all_edge(self, shape):
        rng = np.random.default_rng(3)
        raster = rng.integers(0, 256, size=shape, dtype=np.uint8)
        result = sharpen(raster)
        np.testing.assert_array_equal(result, raster)
        assert result is not raster


class TestEncode:

    def test_encoder_failure_raises_encode_error(self):
        raster = np.zeros((2, 2, 3), dtype=np.uint8)
        with patch.object(Image.Image, "save", side_effect=OSError("disk full")):
            with pytest.raises(EncodeError) as exc_info:
                encode_image(raster, OutputFormat.JPEG)
        assert exc_info.value.code == 500
        assert exc_info.value.details["output_format"] == "JPEG"

    def test_encodes_requested_format(self):
        raster = np.zeros((4, 4, 3), dtype=np.uint8)
        assert decode(encode_image(raster, OutputFormat.PNG)).format == "PNG"
        assert decode(encode_image(raster, OutputFormat.JPEG)).format == "JPEG"


class TestEnhance:

    def test_solid_2x2_png_keeps_colour(self, make_image_bytes):
        result = enhance(make_image_bytes(size=(2, 2), color=(10, 120, 200)), "test.png")

        assert result.output_format is OutputFormat.PNG
        assert result.media_type == "image/png"
        assert (result.width, result.height) == (2, 2)

        image = decode(result.content)
        assert image.format == "PNG"
        assert image.size == (2, 2)
        assert image.convert("RGB").getpixel((0, 0)) == (10, 120, 200)

    def test_png_output_matches_reference(self):
        raw = random_png(8, 6, seed=11)
        original = np.array(decode(raw).convert("RGB"))

        result = enhance(raw, "sample.png")

        np.testing.assert_array_equal(
            np.array(decode(result.content).convert("RGB")),
            reference_sharpen(original),
        )

    def test_jpeg_output_keeps_dimensions(self):
        result = enhance(random_png(17, 9), "photo.jpg")

        image = decode(result.content)
        assert result.media_type == "image/jpeg"
        assert image.format == "JPEG"
        assert image.size == (17, 9)

    def test_gif_input_yields_jpeg(self, make_image_bytes):
        result = enhance(make_image_bytes(size=(5, 4), fmt="GIF"), "anim.gif")
        image = decode(result.content)
        assert image.format == "JPEG"
        assert image.size == (5, 4)

    def test_png_is_deterministic(self):
        raw = random_png(12, 10, seed=5)
        assert enhance(raw, "a.png").content == enhance(raw, "a.png").content

    def test_jpeg_runs_keep_dimensions(self):
        raw = random_png(12, 10, seed=5)
        first = decode(enhance(raw, "a.jpg").content)
        second = decode(enhance(raw, "a.jpg").content)
        assert first.size == second.size == (12, 10)

    def test_invalid_input(self):
        with pytest.raises(InvalidImageError):
            enhance(b"notanimage", "bad.jpg")

    def test_output_has_no_alpha(self):
        buffer = io.BytesIO()
        Image.new("RGBA", (4, 4), (200, 100, 50, 0)).save(buffer, format="PNG")

        image = decode(enhance(buffer.getvalue(), "clear.png").content)

        assert image.mode == "RGB"
        assert image.getpixel((0, 0)) == (0, 0, 0)
