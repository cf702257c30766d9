"""
Unit tests for image ingestion and overlay rendering.
"""

import pytest
from PIL import Image

from screen_finder.imaging import (
    OverlayRenderer,
    buffer_from_image,
    buffer_to_image,
    load_buffer,
    save_buffer,
)
from screen_finder.matching import MatchResult, PixelBuffer, Rectangle, pack_argb

RED = pack_argb(255, 255, 0, 0)
GREY = pack_argb(255, 40, 80, 120)


class TestConversion:
    """Tests for Pillow <-> PixelBuffer conversion."""

    def test_from_rgb_image(self):
        image = Image.new("RGB", (3, 2), (10, 20, 30))
        buffer = buffer_from_image(image)

        assert buffer.size == (3, 2)
        assert buffer.get(2, 1) == pack_argb(255, 10, 20, 30)

    def test_from_rgba_image_keeps_alpha(self):
        image = Image.new("RGBA", (2, 2), (10, 20, 30, 0))
        assert buffer_from_image(image).get(0, 0) == pack_argb(0, 10, 20, 30)

    def test_to_image(self, solid):
        image = buffer_to_image(solid(4, 3))

        assert image.mode == "RGBA"
        assert image.size == (4, 3)
        assert image.getpixel((3, 2)) == (40, 80, 120, 255)


class TestFiles:
    """Tests for load_buffer/save_buffer."""

    def test_png_preserves_pixels(self, tmp_path, noise):
        buffer = noise(20, 10)
        path = save_buffer(buffer, tmp_path / "out.png")

        assert path.exists()
        assert load_buffer(path) == buffer

    def test_creates_parent_directories(self, tmp_path, solid):
        path = save_buffer(solid(2, 2), tmp_path / "nested" / "dir" / "out.png")
        assert path.exists()

    def test_jpeg_saved_as_rgb(self, tmp_path, solid):
        path = save_buffer(solid(8, 8), tmp_path / "out.jpg")
        with Image.open(path) as image:
            assert image.mode == "RGB"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_buffer(tmp_path / "missing.png")


class TestOverlayRenderer:
    """Tests for OverlayRenderer."""

    def test_default_color_is_red(self):
        assert OverlayRenderer().color == (255, 0, 0, 255)

    def test_rgb_tuple_color(self):
        assert OverlayRenderer(color=(0, 255, 0)).color == (0, 255, 0, 255)

    def test_invalid_thickness(self):
        with pytest.raises(ValueError):
            OverlayRenderer(thickness=0)

    def test_invalid_color(self):
        with pytest.raises(ValueError):
            OverlayRenderer(color="not-a-colour")

    def test_draw_outlines_rectangle(self, solid):
        buffer = solid(20, 20, GREY)

        OverlayRenderer().draw(buffer, Rectangle(5, 5, 5, 5))

        assert buffer.get(5, 5) == RED
        assert buffer.get(10, 7) == RED
        assert buffer.get(7, 10) == RED
        assert buffer.get(7, 7) == GREY
        assert buffer.get(0, 0) == GREY

    def test_draw_with_override_color(self, solid):
        buffer = solid(10, 10, GREY)
        OverlayRenderer().draw(buffer, Rectangle(1, 1, 4, 4), color="blue")
        assert buffer.get(1, 1) == pack_argb(255, 0, 0, 255)

    def test_thickness(self, solid):
        buffer = solid(20, 20, GREY)
        OverlayRenderer(thickness=2).draw(buffer, Rectangle(5, 5, 8, 8))

        assert buffer.get(6, 9) == RED
        assert buffer.get(7, 9) == GREY

    def test_draw_all(self, solid):
        buffer = solid(30, 30, GREY)
        results = [
            MatchResult(found=True, rect=Rectangle(1, 1, 4, 4)),
            MatchResult.not_found(),
            Rectangle(20, 20, 5, 5),
        ]

        count = OverlayRenderer().draw_all(buffer, results)

        assert count == 2
        assert buffer.get(1, 1) == RED
        assert buffer.get(20, 20) == RED
