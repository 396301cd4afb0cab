"""Tests for the edge-drag resize algorithm."""
import pytest

from framed_image_tool.config import MIN_CROP_SIZE
from framed_image_tool.models import (
    CropRect, DragSession, EDGES, EDGE_BOTTOM, EDGE_LEFT, EDGE_RIGHT, EDGE_TOP,
)
from framed_image_tool.resize import resize_crop

IMG_W, IMG_H = 800, 600

# Pointer positions well inside, on, and far outside the image on both axes
POINTERS = [-10_000, -50, -1, 0, 0.4, 23.5, 100, 399.5, 400, 599, 600, 601, 799, 800, 850, 10_000]


def assert_valid(crop, img_w=IMG_W, img_h=IMG_H):
    assert crop.x >= 0 and crop.y >= 0
    assert crop.w >= MIN_CROP_SIZE and crop.h >= MIN_CROP_SIZE
    assert crop.x + crop.w <= img_w
    assert crop.y + crop.h <= img_h
    assert all(isinstance(v, int) for v in (crop.x, crop.y, crop.w, crop.h))


class TestScenarios:

    def test_left_drag_past_image_edge_clamps_to_zero(self):
        drag = DragSession(EDGE_LEFT, CropRect(100, 100, 300, 300))
        assert resize_crop(drag, -50, 0, IMG_W, IMG_H) == CropRect(0, 100, 400, 300)

    def test_right_drag_below_minimum_clamps_width(self):
        drag = DragSession(EDGE_RIGHT, CropRect(100, 100, 50, 50))
        crop = resize_crop(drag, 90, 0, IMG_W, IMG_H)
        assert crop.w == MIN_CROP_SIZE
        assert crop.x == 100

    def test_bottom_drag_past_image_clamps_to_height(self):
        drag = DragSession(EDGE_BOTTOM, CropRect(0, 100, 800, 200))
        assert resize_crop(drag, 0, 5000, IMG_W, IMG_H) == CropRect(0, 100, 800, 500)

    def test_top_drag_past_bottom_edge_keeps_minimum(self):
        drag = DragSession(EDGE_TOP, CropRect(0, 100, 800, 200))
        crop = resize_crop(drag, 0, 599, IMG_W, IMG_H)
        assert crop == CropRect(0, 300 - MIN_CROP_SIZE, 800, MIN_CROP_SIZE)

    def test_fractional_pointer_is_rounded(self):
        drag = DragSession(EDGE_RIGHT, CropRect(0, 0, 100, 100))
        crop = resize_crop(drag, 250.7, 0, IMG_W, IMG_H)
        assert crop.w == 251


class TestInvariants:

    @pytest.mark.parametrize("edge", EDGES)
    @pytest.mark.parametrize("start", [
        CropRect(0, 0, IMG_W, IMG_H),
        CropRect(100, 100, 300, 300),
        CropRect(100, 100, 50, 50),
        CropRect(IMG_W - MIN_CROP_SIZE, IMG_H - MIN_CROP_SIZE, MIN_CROP_SIZE, MIN_CROP_SIZE),
        CropRect(0, 0, MIN_CROP_SIZE, MIN_CROP_SIZE),
        CropRect(760, 0, 40, 600),
    ])
    def test_any_pointer_keeps_crop_valid(self, edge, start):
        drag = DragSession(edge, start)
        for px in POINTERS:
            for py in POINTERS:
                assert_valid(resize_crop(drag, px, py, IMG_W, IMG_H))

    @pytest.mark.parametrize("px", POINTERS)
    def test_right_drag_never_moves_x(self, px):
        start = CropRect(100, 100, 300, 300)
        assert resize_crop(DragSession(EDGE_RIGHT, start), px, 0, IMG_W, IMG_H).x == start.x

    @pytest.mark.parametrize("py", POINTERS)
    def test_bottom_drag_never_moves_y(self, py):
        start = CropRect(100, 100, 300, 300)
        assert resize_crop(DragSession(EDGE_BOTTOM, start), 0, py, IMG_W, IMG_H).y == start.y

    @pytest.mark.parametrize("start", [CropRect(100, 100, 300, 300), CropRect(100, 100, 301, 301)])
    @pytest.mark.parametrize("px", [0, 50, 100, 100.5, 150.5, 250, 376, 376.5])
    def test_left_drag_pins_right_edge(self, px, start):
        crop = resize_crop(DragSession(EDGE_LEFT, start), px, 0, IMG_W, IMG_H)
        assert crop.x + crop.w == start.x + start.w

    @pytest.mark.parametrize("start", [CropRect(100, 100, 300, 300), CropRect(100, 100, 301, 301)])
    @pytest.mark.parametrize("py", [0, 50, 100, 100.5, 150.5, 250, 376, 376.5])
    def test_top_drag_pins_bottom_edge(self, py, start):
        crop = resize_crop(DragSession(EDGE_TOP, start), 0, py, IMG_W, IMG_H)
        assert crop.y + crop.h == start.y + start.h

    def test_drag_only_changes_its_axis(self):
        start = CropRect(100, 100, 300, 300)
        crop = resize_crop(DragSession(EDGE_LEFT, start), 10, -999, IMG_W, IMG_H)
        assert (crop.y, crop.h) == (start.y, start.h)
        crop = resize_crop(DragSession(EDGE_TOP, start), -999, 10, IMG_W, IMG_H)
        assert (crop.x, crop.w) == (start.x, start.w)

    def test_result_depends_only_on_snapshot(self):
        drag = DragSession(EDGE_RIGHT, CropRect(100, 100, 300, 300))
        for px in (900, 50, 123.4, 700):
            resize_crop(drag, px, 0, IMG_W, IMG_H)
        assert resize_crop(drag, 500, 0, IMG_W, IMG_H) == CropRect(100, 100, 400, 300)
        assert drag.start == CropRect(100, 100, 300, 300)


def test_unknown_edge_rejected():
    with pytest.raises(ValueError):
        DragSession("corner", CropRect(0, 0, 100, 100))
