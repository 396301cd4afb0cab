"""
Framed-image compositor (Qt-free).

Produces the exported raster in two passes: the cropped source is clipped
through a rounded-rectangle mask, then a border of the same shape is
stroked on top, centred on the clip edge.  Masks are rasterized with
Pillow at a supersampled resolution and box-filtered down for smooth
corners.
"""

import logging

from PIL import Image, ImageChops, ImageColor, ImageDraw

from framed_image_tool.config import SUPERSAMPLE_MAX, SUPERSAMPLE_PIXEL_BUDGET
from framed_image_tool.geometry import RoundedRectPath, clamp, normalize_crop, rounded_rect_path
from framed_image_tool.models import CropRect, RasterSource, RenderedImage, StyleConfig

logger = logging.getLogger(__name__)


def supersample_factor(w: int, h: int) -> int:
    """Largest factor up to ``SUPERSAMPLE_MAX`` that keeps the mask under budget."""
    factor = SUPERSAMPLE_MAX
    while factor > 1 and (w * factor) * (h * factor) > SUPERSAMPLE_PIXEL_BUDGET:
        factor -= 1
    return factor


def rasterize_path(path: RoundedRectPath, size: tuple[int, int], factor: int = 1) -> Image.Image:
    """Fill *path* into an ``L`` mask of *size*, anti-aliased by supersampling."""
    w, h = size
    mask = Image.new("L", (w * factor, h * factor), 0)
    points = path.scaled(factor).flatten() if factor != 1 else path.flatten()
    if len(points) >= 3:
        ImageDraw.Draw(mask).polygon(points, fill=255)
    if factor == 1:
        return mask
    return mask.resize(size, Image.Resampling.BOX)


def frame_geometry(w: int, h: int, style: StyleConfig) -> tuple[float, float]:
    """Return ``(offset, radius)`` for a ``w`` × ``h`` output.

    The path is inset by half the border width, and the radius is limited to
    what the inset rectangle can hold.
    """
    bw = style.border_width
    offset = bw / 2
    radius = clamp(style.corner_radius, 0, (min(w, h) - bw) / 2)
    return offset, radius


def _stroke_mask(
    w: int, h: int, offset: float, radius: float, border_width: float, factor: int,
) -> Image.Image:
    """Mask of a stroke of *border_width* centred on the inset rounded path."""
    half = border_width / 2
    outer = rounded_rect_path(
        offset - half, offset - half,
        w - 2 * offset + border_width, h - 2 * offset + border_width,
        radius + half,
    )
    outer_mask = rasterize_path(outer, (w, h), factor)

    inner_w = w - 2 * offset - border_width
    inner_h = h - 2 * offset - border_width
    if inner_w <= 0 or inner_h <= 0:
        return outer_mask
    inner = rounded_rect_path(offset + half, offset + half, inner_w, inner_h, max(radius - half, 0))
    return ImageChops.subtract(outer_mask, rasterize_path(inner, (w, h), factor))


def render_framed(
    source: RasterSource | None,
    crop: CropRect | None,
    style: StyleConfig,
    supersample: int | None = None,
) -> RenderedImage | None:
    """
    Crop *source*, clip it to a rounded rectangle and stroke the border.

    Returns ``None`` when there is no image or no crop.  The output is a new
    RGBA image of exactly the normalized crop size; neither *source* nor
    *crop* is modified.
    """
    if source is None or crop is None:
        return None

    crop = normalize_crop(crop, source.width, source.height)
    w, h = crop.w, crop.h
    if w <= 0 or h <= 0:
        return None

    offset, radius = frame_geometry(w, h, style)
    factor = supersample if supersample is not None else supersample_factor(w, h)
    path = rounded_rect_path(offset, offset, w - style.border_width, h - style.border_width, radius)

    # Pass 1: clip the cropped region through the rounded mask
    region = source.image.crop(crop.as_box()).convert("RGBA")
    if region.size != (w, h):
        region = region.resize((w, h), Image.Resampling.LANCZOS)
    clip = rasterize_path(path, (w, h), factor)
    region.putalpha(ImageChops.multiply(region.getchannel("A"), clip))

    # Pass 2: stroke the same path on top
    out = region
    if style.border_width > 0:
        stroke = _stroke_mask(w, h, offset, radius, style.border_width, factor)
        rgb = ImageColor.getrgb(style.border_color)[:3]
        border = Image.new("RGBA", (w, h), rgb + (255,))
        border.putalpha(stroke)
        out = Image.alpha_composite(region, border)

    logger.debug(
        "Rendered %dx%d frame (radius %.2f, border %.2f %s, supersample %d)",
        w, h, radius, style.border_width, style.border_color, factor,
    )
    return RenderedImage(image=out, tainted=source.tainted)
