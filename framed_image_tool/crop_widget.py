"""
Interactive crop-overlay widget and Qt image helpers.

This module contains everything that touches both Qt **and** image display:
``pil_to_qpixmap``, the background ``ImageLoaderThread``, and the
``FramedCropWidget`` editor that turns pointer events on its four edge
grips into edge drags on the ``EditorSession``.
"""

import logging

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QRectF, QPointF, pyqtSignal, QThread
from PyQt6.QtGui import (
    QPainter, QPainterPath, QPixmap, QColor, QPen, QBrush, QImage,
    QFocusEvent, QKeyEvent, QMouseEvent, QPaintEvent, QResizeEvent,
)

from framed_image_tool.config import HANDLE_SIZE
from framed_image_tool.errors import DragError
from framed_image_tool.image_io import LoadRequest, load_source
from framed_image_tool.models import EDGE_BOTTOM, EDGE_LEFT, EDGE_RIGHT, EDGE_TOP
from framed_image_tool.session import EditorSession

logger = logging.getLogger(__name__)


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qimage(pil_img: Image.Image) -> QImage:
    """Convert a PIL Image to a QImage that owns its pixels."""
    img_rgba = pil_img.convert("RGBA")
    data = img_rgba.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgba.width, img_rgba.height, img_rgba.width * 4, QImage.Format.Format_RGBA8888)
    return qimg.copy()


def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Convert a PIL Image to QPixmap."""
    return QPixmap.fromImage(pil_to_qimage(pil_img))


# =============================================================================
# Background image loader
# =============================================================================

class ImageLoaderThread(QThread):
    """Background thread that decodes one image and reports a ``LoadResult``."""
    loaded = pyqtSignal(object)

    def __init__(self, request: LoadRequest, parent=None):
        super().__init__(parent)
        self._request = request

    def run(self):
        self.loaded.emit(load_source(self._request))


# =============================================================================
# Framed Crop Widget: image with edge-resizable crop overlay
# =============================================================================

class FramedCropWidget(QWidget):
    """Displays the session's image with a crop overlay resizable from its edges."""

    crop_changed = pyqtSignal()

    def __init__(self, session: EditorSession, parent=None):
        super().__init__(parent)
        self.setMinimumSize(400, 300)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setMouseTracking(True)

        self._session = session
        self._pixmap: QPixmap | None = None
        self._loading = False

        # Display mapping
        self._scale = 1.0
        self._offset_x = 0.0
        self._offset_y = 0.0

    def set_loading(self, loading: bool):
        """Show/hide loading indicator."""
        self._loading = loading
        self.update()

    def set_image(self, pixmap: QPixmap):
        """Show *pixmap*, the display copy of the session's current source."""
        self._loading = False
        self._pixmap = pixmap
        self._update_display_mapping()
        self.update()

    def has_image(self) -> bool:
        return self._pixmap is not None and self._session.has_image()

    # --- Coordinate mapping ---

    def _image_size(self) -> tuple[int, int]:
        source = self._session.source
        return (source.width, source.height) if source is not None else (0, 0)

    def _update_display_mapping(self):
        """Calculate scale and offset to fit image in widget with letterboxing."""
        img_w, img_h = self._image_size()
        if not self._pixmap or img_w == 0 or img_h == 0:
            return
        ww, wh = self.width(), self.height()
        self._scale = min(ww / img_w, wh / img_h)
        self._offset_x = (ww - img_w * self._scale) / 2
        self._offset_y = (wh - img_h * self._scale) / 2

    def _img_to_display(self, ix: float, iy: float) -> QPointF:
        return QPointF(ix * self._scale + self._offset_x, iy * self._scale + self._offset_y)

    def _display_to_img(self, dx: float, dy: float) -> QPointF:
        if self._scale == 0:
            return QPointF(0, 0)
        return QPointF((dx - self._offset_x) / self._scale, (dy - self._offset_y) / self._scale)

    def _crop_display_rect(self) -> QRectF:
        crop = self._session.crop
        if crop is None:
            return QRectF()
        tl = self._img_to_display(crop.x, crop.y)
        br = self._img_to_display(crop.right, crop.bottom)
        return QRectF(tl, br)

    # --- Edge hit testing ---

    def _grip_rects(self) -> dict[str, QRectF]:
        """Return screen-coordinate rectangles for the 4 edge-midpoint grips."""
        r = self._crop_display_rect()
        hs = HANDLE_SIZE
        cx, cy = r.center().x(), r.center().y()
        return {
            EDGE_LEFT: QRectF(r.left() - hs / 2, cy - hs, hs, hs * 2),
            EDGE_RIGHT: QRectF(r.right() - hs / 2, cy - hs, hs, hs * 2),
            EDGE_TOP: QRectF(cx - hs, r.top() - hs / 2, hs * 2, hs),
            EDGE_BOTTOM: QRectF(cx - hs, r.bottom() - hs / 2, hs * 2, hs),
        }

    def _hit_test(self, pos: QPointF) -> str | None:
        """Return the edge nearest to *pos* within grab distance, or None."""
        r = self._crop_display_rect()
        if r.isEmpty():
            return None
        hs = HANDLE_SIZE
        x, y = pos.x(), pos.y()
        in_x_span = r.left() - hs <= x <= r.right() + hs
        in_y_span = r.top() - hs <= y <= r.bottom() + hs
        candidates = []
        if in_y_span:
            candidates.append((abs(x - r.left()), EDGE_LEFT))
            candidates.append((abs(x - r.right()), EDGE_RIGHT))
        if in_x_span:
            candidates.append((abs(y - r.top()), EDGE_TOP))
            candidates.append((abs(y - r.bottom()), EDGE_BOTTOM))
        candidates = [c for c in candidates if c[0] <= hs]
        if not candidates:
            return None
        return min(candidates)[1]

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), QColor(30, 30, 30))

        if not self.has_image():
            painter.setPen(QColor(128, 128, 128))
            msg = "Loading image…" if self._loading else "Paste, drop or open an image"
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, msg)
            painter.end()
            return

        # Draw image
        img_w, img_h = self._image_size()
        dest = QRectF(self._img_to_display(0, 0), self._img_to_display(img_w, img_h))
        painter.drawPixmap(dest.toRect(), self._pixmap)

        # Dim area outside crop
        crop_rect = self._crop_display_rect()
        dim = QColor(0, 0, 0, 140)
        painter.fillRect(QRectF(dest.left(), dest.top(), dest.width(), crop_rect.top() - dest.top()), dim)
        painter.fillRect(QRectF(dest.left(), crop_rect.bottom(), dest.width(), dest.bottom() - crop_rect.bottom()), dim)
        painter.fillRect(QRectF(dest.left(), crop_rect.top(), crop_rect.left() - dest.left(), crop_rect.height()), dim)
        painter.fillRect(QRectF(crop_rect.right(), crop_rect.top(), dest.right() - crop_rect.right(), crop_rect.height()), dim)

        # Rounded frame outline in the current border colour
        style = self._session.style
        radius = style.corner_radius * self._scale
        outline = QPainterPath()
        outline.addRoundedRect(crop_rect, radius, radius)
        painter.setPen(QPen(QColor(style.border_color), max(1.0, style.border_width * self._scale)))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(outline)

        # Draw edge grips, highlighting the one being dragged
        active = self._session.drag_edge
        painter.setPen(QPen(QColor(0, 0, 0), 1))
        for edge, rect in self._grip_rects().items():
            color = QColor(style.border_color) if edge == active else QColor(255, 255, 255)
            painter.setBrush(QBrush(color))
            painter.drawRect(rect)

        # Draw crop size label
        crop = self._session.crop
        painter.setPen(QColor(255, 255, 255))
        painter.drawText(
            crop_rect.adjusted(0, -20, 0, 0).toRect(),
            Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom,
            f"{crop.w} × {crop.h}",
        )

        painter.end()

    def resizeEvent(self, event: QResizeEvent):
        self._update_display_mapping()
        super().resizeEvent(event)

    # --- Mouse interaction ---

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or not self.has_image():
            return
        edge = self._hit_test(event.position())
        if edge is None:
            return
        try:
            self._session.begin_drag(edge)
        except DragError as exc:
            logger.debug("Edge drag rejected: %s", exc)
            return
        self.update()

    def mouseMoveEvent(self, event: QMouseEvent):
        if not self.has_image():
            return

        pos = event.position()

        if not self._session.dragging:
            edge = self._hit_test(pos)
            if edge in (EDGE_LEFT, EDGE_RIGHT):
                self.setCursor(Qt.CursorShape.SizeHorCursor)
            elif edge in (EDGE_TOP, EDGE_BOTTOM):
                self.setCursor(Qt.CursorShape.SizeVerCursor)
            else:
                self.setCursor(Qt.CursorShape.ArrowCursor)
            return

        img_pos = self._display_to_img(pos.x(), pos.y())
        self._session.update_drag(img_pos.x(), img_pos.y())
        self.crop_changed.emit()
        self.update()

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton and self._session.dragging:
            self._session.end_drag()
            self.update()

    # --- Cancellation ---

    def cancel_drag(self):
        if self._session.dragging:
            self._session.cancel_drag()
            self.update()

    def keyPressEvent(self, event: QKeyEvent):
        if event.key() == Qt.Key.Key_Escape and self._session.dragging:
            self.cancel_drag()
        else:
            super().keyPressEvent(event)

    def focusOutEvent(self, event: QFocusEvent):
        self.cancel_drag()
        super().focusOutEvent(event)
