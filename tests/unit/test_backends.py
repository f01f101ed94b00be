"""Unit tests for the OpenCV and Pillow decode backends."""

import io

import pytest
from PIL import Image

from gallery_pipeline.core.backends import (
    OpenCVBackend,
    PillowBackend,
    is_heif_path,
)
from gallery_pipeline.core.exceptions import DecodeError, ImageProcessingError
from gallery_pipeline.core.models import OutputFormat
from gallery_pipeline.testing.fakes import create_test_image


def blue_at(backend, image, x, y) -> bool:
    """Whether the pixel at (x, y) is (roughly) pure blue, in either channel order."""
    if backend.name == "fast":
        b, g, r = (int(c) for c in image.pixels[y, x])
    else:
        r, g, b = image.pixels.getpixel((x, y))
    return b > 180 and r < 80 and g < 80


@pytest.fixture(params=[OpenCVBackend, PillowBackend], ids=["fast", "general"])
def backend(request):
    return request.param()


class TestCommonOperations:
    """Operations both backends implement with the same geometry."""

    def test_decode_dimensions(self, backend):
        """Test decoded dimensions match the source."""
        with backend.decode(create_test_image(300, 200)) as image:
            assert (image.width, image.height) == (300, 200)
            assert image.backend == backend.name

    def test_decode_ignores_embedded_orientation(self, backend):
        """Test the orientation tag is not applied during decode."""
        with backend.decode(create_test_image(300, 200, orientation=6)) as image:
            assert (image.width, image.height) == (300, 200)

    def test_decode_garbage_raises_decode_error(self, backend):
        """Test undecodable bytes raise DecodeError."""
        with pytest.raises(DecodeError):
            backend.decode(b"this is not an image at all")

    def test_orient_6_rotates_clockwise(self, backend):
        """Test orientation 6 swaps dimensions and rotates 90 degrees clockwise."""
        image = backend.decode(create_test_image(300, 200))

        rotated = backend.orient(image, 6)

        assert (rotated.width, rotated.height) == (200, 300)
        # The top-left block moves to the top-right corner
        assert blue_at(backend, rotated, 195, 4)
        assert not blue_at(backend, rotated, 4, 4)

    def test_orient_8_rotates_counter_clockwise(self, backend):
        """Test orientation 8 moves the top-left block to the bottom-left corner."""
        image = backend.decode(create_test_image(300, 200))

        rotated = backend.orient(image, 8)

        assert (rotated.width, rotated.height) == (200, 300)
        assert blue_at(backend, rotated, 4, 295)

    def test_orient_3_keeps_dimensions(self, backend):
        """Test a half turn keeps the dimensions."""
        image = backend.decode(create_test_image(300, 200))

        rotated = backend.orient(image, 3)

        assert (rotated.width, rotated.height) == (300, 200)
        assert blue_at(backend, rotated, 295, 195)

    @pytest.mark.parametrize("orientation", [None, 1, 2, 5])
    def test_orient_no_rotation_returns_same_image(self, backend, orientation):
        """Test non-rotating orientations return the input handle."""
        image = backend.decode(create_test_image(30, 20))

        assert backend.orient(image, orientation) is image

    def test_crop_square_center(self, backend):
        """Test the square crop uses the shorter edge."""
        image = backend.decode(create_test_image(300, 200))

        square = backend.crop_square_center(image)

        assert (square.width, square.height) == (200, 200)

    def test_resize_exact(self, backend):
        """Test resampling to exact dimensions."""
        image = backend.decode(create_test_image(300, 200))

        resized = backend.resize(image, 40, 40)

        assert (resized.width, resized.height) == (40, 40)

    def test_resize_longest_edge(self, backend):
        """Test aspect-preserving resize of a portrait image."""
        image = backend.decode(create_test_image(200, 300))

        resized = backend.resize_longest_edge(image, 120)

        assert (resized.width, resized.height) == (80, 120)

    @pytest.mark.parametrize(
        "fmt, expected_format",
        [(OutputFormat.JPEG, "JPEG"), (OutputFormat.PNG, "PNG"), (OutputFormat.WEBP, "WEBP")],
    )
    def test_encode_formats(self, backend, fmt, expected_format):
        """Test encoded bytes are valid rasters in the requested format."""
        image = backend.decode(create_test_image(64, 48))

        data = backend.encode(image, fmt, 85)

        with Image.open(io.BytesIO(data)) as encoded:
            assert encoded.format == expected_format
            assert encoded.size == (64, 48)

    def test_released_image_cannot_be_used(self, backend):
        """Test that pixel access after close is an error and close is idempotent."""
        image = backend.decode(create_test_image(30, 20))
        image.close()
        image.close()

        assert image.closed
        with pytest.raises(ImageProcessingError):
            backend.resize(image, 10, 10)


class TestOpenCVBackend:
    """OpenCV-specific behavior."""

    @pytest.mark.parametrize(
        "content_type, supported",
        [
            ("image/jpeg", True),
            ("image/png", True),
            ("image/webp", True),
            ("image/heic", False),
            ("image/heif", False),
            ("image/tiff", False),
        ],
    )
    def test_supports(self, content_type, supported):
        """Test the fast backend's narrow format support."""
        assert OpenCVBackend().supports(content_type) is supported

    def test_decode_png_drops_alpha(self):
        """Test transparent PNGs decode to three channels."""
        image = OpenCVBackend().decode(create_test_image(20, 10, fmt="PNG", mode="RGBA"))

        assert image.pixels.shape == (10, 20, 3)


class TestPillowBackend:
    """Pillow-specific behavior."""

    def test_supports_heif_only_when_enabled(self):
        """Test HEIF support follows the heif_enabled flag."""
        assert PillowBackend(heif_enabled=True).supports("image/heic")
        assert not PillowBackend(heif_enabled=False).supports("image/heic")
        assert not PillowBackend(heif_enabled=False).supports("image/heif")

    def test_supports_any_image_type(self):
        """Test the general backend accepts other image types."""
        backend = PillowBackend(heif_enabled=False)

        assert backend.supports("image/jpeg")
        assert backend.supports("image/tiff")
        assert not backend.supports("application/octet-stream")

    def test_decode_flattens_transparency_onto_white(self):
        """Test RGBA sources are normalized to RGB on white."""
        data = create_test_image(20, 20, fmt="PNG", mode="RGBA")

        image = PillowBackend().decode(data)

        assert image.pixels.mode == "RGB"
        # Half-transparent orange over white
        r, g, b = image.pixels.getpixel((15, 15))
        assert r > 200 and g > 140 and b > 120

    def test_decode_grayscale_to_rgb(self):
        """Test single-channel sources become RGB."""
        image = PillowBackend().decode(create_test_image(10, 10, fmt="PNG", mode="L"))

        assert image.pixels.mode == "RGB"

    def test_read_tags_dual_keyed_for_heif_paths(self, tmp_path):
        """Test HEIF file paths get both plain and prefixed tag keys."""
        path = tmp_path / "IMG_0001.heic"
        # Pillow identifies the content, not the name
        path.write_bytes(create_test_image(20, 20, model="iPhone 15 Pro"))

        tags = PillowBackend().read_tags(path)

        assert tags["Model"] == "iPhone 15 Pro"
        assert tags["exif:Model"] == "iPhone 15 Pro"

    def test_is_heif_path(self, tmp_path):
        """Test HEIF detection by file suffix."""
        assert is_heif_path(tmp_path / "a.HEIC")
        assert is_heif_path(tmp_path / "a.heif")
        assert not is_heif_path(tmp_path / "a.jpg")
