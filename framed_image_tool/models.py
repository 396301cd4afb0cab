"""
Data models shared by the editor session, the compositor and the exporter.

CropRect and DragSession describe the crop state; StyleConfig is the
border style handed explicitly to the compositor; RasterSource and
RenderedImage wrap Pillow images together with their provenance.
"""

from dataclasses import dataclass, replace

from PIL import Image

from framed_image_tool.config import (
    BORDER_COLORS, BORDER_WIDTH_DEFAULT, CORNER_RADIUS_DEFAULT, NAVY, PINK,
)

# Edge identifiers delivered by the interaction controller
EDGE_LEFT = "left"
EDGE_RIGHT = "right"
EDGE_TOP = "top"
EDGE_BOTTOM = "bottom"
EDGES = (EDGE_LEFT, EDGE_RIGHT, EDGE_TOP, EDGE_BOTTOM)


# =============================================================================
# Crop state
# =============================================================================
@dataclass
class CropRect:
    """Crop rectangle in image coordinates."""
    x: int = 0
    y: int = 0
    w: int = 0
    h: int = 0

    @property
    def right(self) -> int:
        return self.x + self.w

    @property
    def bottom(self) -> int:
        return self.y + self.h

    def copy(self) -> "CropRect":
        return CropRect(self.x, self.y, self.w, self.h)

    def as_box(self) -> tuple[int, int, int, int]:
        """Return ``(left, top, right, bottom)`` as used by ``Image.crop``."""
        return self.x, self.y, self.right, self.bottom


@dataclass(frozen=True)
class DragSession:
    """One active edge-resize gesture.

    ``start`` is a snapshot of the crop taken when the gesture began; every
    pointer move is resolved against it, never against the live crop.
    """
    edge: str
    start: CropRect

    def __post_init__(self):
        if self.edge not in EDGES:
            raise ValueError(f"Unknown edge {self.edge!r}")


def full_crop(img_w: int, img_h: int) -> CropRect:
    """Crop covering the whole image."""
    return CropRect(0, 0, img_w, img_h)


# =============================================================================
# Border style
# =============================================================================
@dataclass(frozen=True)
class StyleConfig:
    border_color: str = NAVY
    border_width: float = BORDER_WIDTH_DEFAULT
    corner_radius: float = CORNER_RADIUS_DEFAULT


def toggle_style(style: StyleConfig) -> StyleConfig:
    """Switch the border colour between navy and pink."""
    color = PINK if style.border_color == NAVY else NAVY
    return replace(style, border_color=color)


def style_label(style: StyleConfig) -> str:
    """Human-readable name of the current border colour."""
    return BORDER_COLORS.get(style.border_color, style.border_color)


# =============================================================================
# Rasters
# =============================================================================
@dataclass
class RasterSource:
    """A decoded image owned by the editor session.

    ``tainted`` marks pixels obtained from a remote origin that did not grant
    cross-origin use; renders built from it cannot be encoded.
    """
    image: Image.Image
    origin: str = ""
    tainted: bool = False

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


@dataclass
class RenderedImage:
    """Compositor output."""
    image: Image.Image
    tainted: bool = False

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size
