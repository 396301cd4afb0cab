"""Tests for the two-pass framed-image compositor."""
import pytest
from PIL import Image, ImageColor

from framed_image_tool.compositor import frame_geometry, render_framed, supersample_factor
from framed_image_tool.config import NAVY, PINK
from framed_image_tool.models import CropRect, RasterSource, StyleConfig, full_crop, toggle_style


def assert_close(actual, expected, tol=2):
    assert all(abs(a - e) <= tol for a, e in zip(actual, expected)), f"{actual} != {expected}"


class TestFullFrame:
    """800x600 full-frame crop, radius 6, 1.5px border."""

    @pytest.fixture
    def rendered(self, make_source):
        source = make_source(800, 600, 'red')
        return render_framed(source, full_crop(800, 600), StyleConfig())

    def test_output_size_matches_crop(self, rendered):
        assert rendered.size == (800, 600)
        assert rendered.image.mode == 'RGBA'

    def test_corners_are_transparent(self, rendered):
        img = rendered.image
        for xy in [(0, 0), (799, 0), (0, 599), (799, 599)]:
            assert img.getpixel(xy)[3] == 0

    def test_centre_shows_source(self, rendered):
        assert rendered.image.getpixel((400, 300)) == (255, 0, 0, 255)

    def test_edges_carry_border_colour(self, rendered):
        navy = ImageColor.getrgb(NAVY)
        for xy in [(400, 0), (400, 599), (0, 300), (799, 300)]:
            px = rendered.image.getpixel(xy)
            assert_close(px[:3], navy)
            assert px[3] > 200

    def test_just_inside_border_is_source(self, rendered):
        assert rendered.image.getpixel((400, 3)) == (255, 0, 0, 255)


class TestCropping:

    def test_output_matches_crop_not_source(self, quadrant_source):
        rendered = render_framed(quadrant_source, CropRect(200, 0, 200, 150), StyleConfig())
        assert rendered.size == (200, 150)
        assert rendered.image.getpixel((100, 75)) == (0, 128, 0, 255)

    def test_stale_crop_is_normalized(self, quadrant_source):
        rendered = render_framed(quadrant_source, CropRect(350, 280, 500, 500), StyleConfig())
        assert rendered.size == (50, 24)

    def test_plain_rectangle_without_border_or_radius(self, quadrant_source):
        style = StyleConfig(border_width=0, corner_radius=0)
        crop = CropRect(150, 100, 100, 100)
        rendered = render_framed(quadrant_source, crop, style)
        expected = quadrant_source.image.crop(crop.as_box()).convert('RGBA')
        assert rendered.image.tobytes() == expected.tobytes()

    def test_border_follows_style(self, make_source):
        style = toggle_style(StyleConfig())
        rendered = render_framed(make_source(100, 100), full_crop(100, 100), style)
        assert_close(rendered.image.getpixel((50, 0))[:3], ImageColor.getrgb(PINK))

    def test_transparent_source_stays_transparent(self):
        source = RasterSource(Image.new('RGBA', (60, 60), (0, 0, 0, 0)))
        rendered = render_framed(source, full_crop(60, 60), StyleConfig())
        assert rendered.image.getpixel((30, 30))[3] == 0


class TestInputsUntouched:

    def test_source_and_crop_not_mutated(self, quadrant_source):
        before = quadrant_source.image.tobytes()
        crop = CropRect(10, 10, 100, 100)
        rendered = render_framed(quadrant_source, crop, StyleConfig())
        assert quadrant_source.image.tobytes() == before
        assert crop == CropRect(10, 10, 100, 100)
        assert rendered.image is not quadrant_source.image

    def test_taint_is_inherited(self, make_source):
        rendered = render_framed(make_source(50, 50, tainted=True), full_crop(50, 50), StyleConfig())
        assert rendered.tainted


class TestMissingInputs:

    def test_no_source(self):
        assert render_framed(None, CropRect(0, 0, 50, 50), StyleConfig()) is None

    def test_no_crop(self, make_source):
        assert render_framed(make_source(50, 50), None, StyleConfig()) is None


class TestGeometry:

    def test_radius_limited_by_inset_canvas(self):
        offset, radius = frame_geometry(24, 24, StyleConfig(corner_radius=100))
        assert offset == pytest.approx(0.75)
        assert radius == pytest.approx(11.25)

    def test_default_radius_kept_on_large_output(self):
        assert frame_geometry(800, 600, StyleConfig()) == (0.75, 6)

    @pytest.mark.parametrize("size, factor", [
        ((100, 100), 4),
        ((4000, 4000), 2),
        ((20000, 20000), 1),
    ])
    def test_supersample_factor_respects_budget(self, size, factor):
        assert supersample_factor(*size) == factor
