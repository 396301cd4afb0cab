"""
Pure geometry helpers: clamping, crop normalization and rounded-rectangle
paths.

Paths are plain data (a start point plus line / quadratic segments) so the
compositor can rasterize them with Pillow and tests can inspect them
without a canvas.
"""

import logging
from dataclasses import dataclass

from framed_image_tool.config import CURVE_STEPS, MIN_CROP_SIZE
from framed_image_tool.models import CropRect

logger = logging.getLogger(__name__)

Point = tuple[float, float]

SEGMENT_LINE = "line"
SEGMENT_QUAD = "quad"


# =============================================================================
# Clamping
# =============================================================================
def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp *value* into ``[lo, hi]``.

    Reversed bounds are swapped rather than producing an inverted result.
    """
    if lo > hi:
        logger.debug("clamp called with reversed bounds (%s > %s); swapping", lo, hi)
        lo, hi = hi, lo
    return max(lo, min(value, hi))


def normalize_crop(crop: CropRect, img_w: int, img_h: int) -> CropRect:
    """Re-derive a valid crop for an image of ``img_w`` × ``img_h``.

    Applies the same rounding and clamping as the final stage of an edge
    drag, so a crop left stale by an image swap is corrected before use.
    Images smaller than ``MIN_CROP_SIZE`` get a crop spanning the whole axis.
    """
    x = int(clamp(int(round(crop.x)), 0, max(0, img_w - MIN_CROP_SIZE)))
    y = int(clamp(int(round(crop.y)), 0, max(0, img_h - MIN_CROP_SIZE)))
    w = int(clamp(int(round(crop.w)), min(MIN_CROP_SIZE, img_w - x), img_w - x))
    h = int(clamp(int(round(crop.h)), min(MIN_CROP_SIZE, img_h - y), img_h - y))
    return CropRect(x, y, w, h)


# =============================================================================
# Rounded-rectangle paths
# =============================================================================
@dataclass(frozen=True)
class PathSegment:
    kind: str
    end: Point
    control: Point | None = None


@dataclass(frozen=True)
class RoundedRectPath:
    """Closed path traced clockwise from the top edge."""
    start: Point
    segments: tuple[PathSegment, ...]
    radius: float

    @property
    def is_closed(self) -> bool:
        return bool(self.segments) and self.segments[-1].end == self.start

    @property
    def curve_count(self) -> int:
        return sum(1 for s in self.segments if s.kind == SEGMENT_QUAD)

    def scaled(self, factor: float) -> "RoundedRectPath":
        """Return the same path with every coordinate multiplied by *factor*."""
        def sp(p: Point | None) -> Point | None:
            return None if p is None else (p[0] * factor, p[1] * factor)

        return RoundedRectPath(
            start=sp(self.start),
            segments=tuple(PathSegment(s.kind, sp(s.end), sp(s.control)) for s in self.segments),
            radius=self.radius * factor,
        )

    def flatten(self, steps: int = CURVE_STEPS) -> list[Point]:
        """Approximate the path by a polygon, sampling each curve *steps* times."""
        points = [self.start]
        current = self.start
        for seg in self.segments:
            if seg.kind == SEGMENT_QUAD:
                (x0, y0), (cx, cy), (x1, y1) = current, seg.control, seg.end
                for i in range(1, steps + 1):
                    t = i / steps
                    mt = 1.0 - t
                    points.append((
                        mt * mt * x0 + 2 * mt * t * cx + t * t * x1,
                        mt * mt * y0 + 2 * mt * t * cy + t * t * y1,
                    ))
            else:
                points.append(seg.end)
            current = seg.end
        return points


def rounded_rect_path(x: float, y: float, w: float, h: float, radius: float) -> RoundedRectPath:
    """
    Build a closed ``w`` × ``h`` rectangle path at ``(x, y)`` with rounded corners.

    The path starts at the top edge and runs clockwise; each corner is one
    quadratic curve whose control point is the square corner.  ``radius`` is
    clamped to ``[0, min(w, h) / 2]`` so an oversized radius yields a capsule
    or ellipse-like outline instead of self-intersecting geometry.  With a
    radius of 0 the path is four straight edges.
    """
    w = max(0.0, w)
    h = max(0.0, h)
    r = clamp(radius, 0.0, min(w, h) / 2)
    right = x + w
    bottom = y + h

    start = (x + r, y)
    # (straight run end, corner control, corner end) per side, clockwise
    sides = [
        ((right - r, y), (right, y), (right, y + r)),
        ((right, bottom - r), (right, bottom), (right - r, bottom)),
        ((x + r, bottom), (x, bottom), (x, bottom - r)),
        ((x, y + r), (x, y), (x + r, y)),
    ]

    segments: list[PathSegment] = []
    current = start
    for line_end, control, corner_end in sides:
        if line_end != current:
            segments.append(PathSegment(SEGMENT_LINE, line_end))
            current = line_end
        if r > 0:
            segments.append(PathSegment(SEGMENT_QUAD, corner_end, control))
            current = corner_end

    return RoundedRectPath(start=start, segments=tuple(segments), radius=r)
