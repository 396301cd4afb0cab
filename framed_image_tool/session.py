"""
Editor session: the single owner of crop state (Qt-free).

Holds exactly one RasterSource and its CropRect, the active DragSession
and the StyleConfig.  Loads are identified by increasing tokens so a decode
that finishes after a newer load started is discarded.  ``RedrawScheduler``
collapses many redraw requests within one frame into a single callback.
"""

import logging
from typing import Callable

from framed_image_tool.compositor import render_framed
from framed_image_tool.errors import DragError
from framed_image_tool.models import (
    CropRect, DragSession, RasterSource, RenderedImage, StyleConfig, full_crop, toggle_style,
)
from framed_image_tool.resize import resize_crop

logger = logging.getLogger(__name__)


class EditorSession:
    def __init__(self, style: StyleConfig | None = None):
        self.style = style or StyleConfig()
        self._source: RasterSource | None = None
        self._crop: CropRect | None = None
        self._drag: DragSession | None = None
        self._load_token = 0

    # --- Image ownership ---

    @property
    def source(self) -> RasterSource | None:
        return self._source

    @property
    def crop(self) -> CropRect | None:
        return self._crop.copy() if self._crop is not None else None

    def has_image(self) -> bool:
        return self._source is not None

    def begin_load(self) -> int:
        """Start a new load and return its token; older tokens become stale."""
        self._load_token += 1
        return self._load_token

    def is_current(self, token: int) -> bool:
        return token == self._load_token

    def accept_image(self, source: RasterSource, token: int | None = None) -> bool:
        """Adopt *source* and reset the crop to its full bounds.

        Returns False, leaving state untouched, if *token* has been superseded.
        """
        if token is not None and not self.is_current(token):
            logger.info("Discarding stale image load %d (current %d)", token, self._load_token)
            return False
        self._source = source
        self._crop = full_crop(source.width, source.height)
        self._drag = None
        logger.info("Loaded %dx%d image from %s", source.width, source.height, source.origin or "input")
        return True

    # --- Edge drags ---

    @property
    def dragging(self) -> bool:
        return self._drag is not None

    @property
    def drag_edge(self) -> str | None:
        return self._drag.edge if self._drag is not None else None

    def begin_drag(self, edge: str) -> DragSession:
        """Snapshot the crop and start dragging *edge*.

        Only one gesture may be active; a second start is rejected.
        """
        if self._source is None or self._crop is None:
            raise DragError("no image loaded")
        if self._drag is not None:
            raise DragError(f"a {self._drag.edge} drag is already active")
        self._drag = DragSession(edge=edge, start=self._crop.copy())
        return self._drag

    def update_drag(self, pointer_x: float, pointer_y: float) -> CropRect:
        """Apply a pointer move in source-pixel coordinates and return the new crop."""
        if self._drag is None:
            raise DragError("no drag in progress")
        self._crop = resize_crop(
            self._drag, pointer_x, pointer_y, self._source.width, self._source.height,
        )
        return self._crop.copy()

    def end_drag(self) -> None:
        self._drag = None

    def cancel_drag(self) -> None:
        """Abandon the gesture; moves already applied are kept."""
        if self._drag is not None:
            logger.debug("Cancelled %s drag", self._drag.edge)
        self._drag = None

    # --- Style & rendering ---

    def toggle_style(self) -> StyleConfig:
        self.style = toggle_style(self.style)
        return self.style

    def render(self) -> RenderedImage | None:
        return render_framed(self._source, self._crop, self.style)


class RedrawScheduler:
    """
    Coalesce redraw requests into one callback per frame.

    *schedule* receives a zero-argument function to run on the next frame
    (``QTimer.singleShot(0, fn)`` in the app).  Requests made while one is
    pending are ignored.
    """

    def __init__(self, callback: Callable[[], None], schedule: Callable[[Callable[[], None]], None]):
        self._callback = callback
        self._schedule = schedule
        self._pending = False

    @property
    def pending(self) -> bool:
        return self._pending

    def request(self) -> None:
        if self._pending:
            return
        self._pending = True
        self._schedule(self._run)

    def _run(self) -> None:
        self._pending = False
        self._callback()
