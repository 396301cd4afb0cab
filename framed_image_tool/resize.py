"""
Edge-drag resize algorithm for the crop rectangle.

Only one edge moves per gesture.  The opposite edge stays pinned, the
moving edge is clamped to the image and to ``MIN_CROP_SIZE`` from the pinned
edge, and the result then passes through ``normalize_crop`` as a final
safety clamp so the crop invariants hold for any pointer position.
"""

from framed_image_tool.config import MIN_CROP_SIZE
from framed_image_tool.geometry import clamp, normalize_crop
from framed_image_tool.models import (
    CropRect, DragSession, EDGE_BOTTOM, EDGE_LEFT, EDGE_RIGHT, EDGE_TOP,
)


def resize_crop(
    drag: DragSession, pointer_x: float, pointer_y: float, img_w: int, img_h: int,
) -> CropRect:
    """Return the crop produced by dragging ``drag.edge`` to the pointer.

    The pointer is in source-pixel coordinates and may lie outside the image.
    The computation always starts from ``drag.start``.  The pointer is
    rounded before the edge clamp so the pinned edge never shifts.
    """
    x0, y0, w0, h0 = drag.start.x, drag.start.y, drag.start.w, drag.start.h
    x, y, w, h = x0, y0, w0, h0

    if drag.edge == EDGE_LEFT:
        new_x = clamp(round(pointer_x), 0, x0 + w0 - MIN_CROP_SIZE)
        x = new_x
        w = x0 + w0 - new_x
    elif drag.edge == EDGE_RIGHT:
        new_right = clamp(round(pointer_x), x0 + MIN_CROP_SIZE, img_w)
        w = new_right - x0
    elif drag.edge == EDGE_TOP:
        new_y = clamp(round(pointer_y), 0, y0 + h0 - MIN_CROP_SIZE)
        y = new_y
        h = y0 + h0 - new_y
    elif drag.edge == EDGE_BOTTOM:
        new_bottom = clamp(round(pointer_y), y0 + MIN_CROP_SIZE, img_h)
        h = new_bottom - y0

    return normalize_crop(CropRect(x, y, w, h), img_w, img_h)
