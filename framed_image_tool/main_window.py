"""
Main application window.

Orchestrates image acquisition (file picker, paste, drag-drop), the crop
editor, the border-style toggle, the framed preview and export via
clipboard copy or WebP download.  Decodes run on background threads; only
the result of the most recent load is applied.
"""

import logging
from pathlib import Path

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QHBoxLayout, QVBoxLayout, QLabel, QFileDialog,
    QSplitter, QStatusBar, QToolBar, QPushButton, QApplication, QSizePolicy,
)
from PyQt6.QtCore import Qt, QTimer, QMimeData, QByteArray, QBuffer, QIODevice, QStandardPaths
from PyQt6.QtGui import (
    QAction, QKeySequence, QShortcut, QImage, QGuiApplication,
    QDragEnterEvent, QDropEvent, QResizeEvent, QCloseEvent,
)

from framed_image_tool.config import IMAGE_EXTENSIONS, NAVY, TOAST_DURATION_MS
from framed_image_tool.crop_widget import FramedCropWidget, ImageLoaderThread, pil_to_qpixmap
from framed_image_tool.errors import ExportTransportError, UnsupportedInputError
from framed_image_tool.exporter import (
    MIME_HTML, MIME_PNG, DownloadRequest, ExportOutcome, copy_to_clipboard, download_image,
)
from framed_image_tool.image_io import (
    LOAD_BYTES, LOAD_FILE, LOAD_URL, LoadRequest, LoadResult,
    extract_img_urls, is_image_mime, is_image_path, unique_path,
)
from framed_image_tool.models import style_label
from framed_image_tool.session import EditorSession, RedrawScheduler
from framed_image_tool.style_store import load_style, save_style

logger = logging.getLogger(__name__)

NO_CLIPBOARD_IMAGE_MESSAGE = "No usable image found in clipboard."


class Toast(QLabel):
    """Transient notification shown at the bottom of the window."""

    _BASE_STYLE = "padding: 8px 16px; border-radius: 6px; font-weight: bold;"

    def __init__(self, parent: QWidget):
        super().__init__(parent)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
        self.hide()
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self.hide)
        self.is_error = False

    def show_message(self, message: str, is_error: bool = False):
        self.is_error = is_error
        background = "#b3261e" if is_error else "#2e7d32"
        self.setStyleSheet(f"QLabel {{ background: {background}; color: white; {self._BASE_STYLE} }}")
        self.setText(message)
        self.adjustSize()
        self.reposition()
        self.show()
        self.raise_()
        self._timer.start(TOAST_DURATION_MS)

    def reposition(self):
        parent = self.parentWidget()
        if parent is None:
            return
        x = (parent.width() - self.width()) // 2
        y = parent.height() - self.height() - 40
        self.move(max(0, x), max(0, y))


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Framed Image Tool")
        self.setMinimumSize(900, 500)
        self.setAcceptDrops(True)

        # Screen-aware startup size, clamped to 80% of screen
        preferred_w, preferred_h = 1440, 900
        screen = QApplication.primaryScreen()
        if screen is not None:
            avail = screen.availableGeometry()
            preferred_w = min(preferred_w, int(avail.width() * 0.8))
            preferred_h = min(preferred_h, int(avail.height() * 0.8))
        self.resize(preferred_w, preferred_h)

        self._session = EditorSession(style=load_style())
        self._loaders: set[ImageLoaderThread] = set()
        self._redraw = RedrawScheduler(self._render_preview, lambda fn: QTimer.singleShot(0, fn))

        self._build_ui()
        self._update_button_states()

    # =========================================================================
    # UI construction
    # =========================================================================

    def _build_ui(self):
        self._build_toolbar()

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QHBoxLayout(central)
        main_layout.setContentsMargins(4, 4, 4, 4)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        main_layout.addWidget(splitter)

        # Left: crop editor
        self._crop_widget = FramedCropWidget(self._session)
        self._crop_widget.crop_changed.connect(self._on_crop_changed)
        splitter.addWidget(self._crop_widget)

        # Right: framed result preview
        preview_panel = QWidget()
        preview_layout = QVBoxLayout(preview_panel)
        preview_layout.setContentsMargins(4, 0, 0, 0)
        preview_layout.addWidget(QLabel("Result:"))
        self._preview = QLabel("")
        self._preview.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._preview.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self._preview.setMinimumSize(200, 150)
        preview_layout.addWidget(self._preview, stretch=1)
        self._crop_info_label = QLabel("Crop: -")
        self._crop_info_label.setWordWrap(True)
        preview_layout.addWidget(self._crop_info_label)
        splitter.addWidget(preview_panel)
        splitter.setSizes([900, 360])

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._status.showMessage("Paste, drop or open an image to begin.")

        self._toast = Toast(central)

        # --- Keyboard Shortcuts ---
        QShortcut(QKeySequence(QKeySequence.StandardKey.Paste), self, self._paste)
        QShortcut(QKeySequence(QKeySequence.StandardKey.Copy), self, self._copy_image)
        QShortcut(QKeySequence(QKeySequence.StandardKey.Save), self, self._download_image)
        QShortcut(QKeySequence(QKeySequence.StandardKey.Open), self, self._open_file)
        QShortcut(QKeySequence(Qt.Key.Key_B), self, self._toggle_style)

    def _build_toolbar(self):
        toolbar = QToolBar("Main")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        act_open = QAction("📂 Open Image", self)
        act_open.triggered.connect(self._open_file)
        toolbar.addAction(act_open)

        act_paste = QAction("📥 Paste", self)
        act_paste.triggered.connect(self._paste)
        toolbar.addAction(act_paste)

        toolbar.addSeparator()

        self._style_button = QPushButton()
        self._style_button.setCheckable(True)
        self._style_button.setToolTip("Switch the border colour")
        self._style_button.clicked.connect(self._toggle_style)
        toolbar.addWidget(self._style_button)
        self._sync_style_button()

        toolbar.addSeparator()

        act_copy = QAction("📋 Copy", self)
        act_copy.setToolTip("Copy the framed image (PNG + HTML) to the clipboard")
        act_copy.triggered.connect(self._copy_image)
        toolbar.addAction(act_copy)
        self._act_copy = act_copy

        act_download = QAction("💾 Download", self)
        act_download.setToolTip("Save the framed image as WebP")
        act_download.triggered.connect(self._download_image)
        toolbar.addAction(act_download)
        self._act_download = act_download

    def _update_button_states(self):
        has_image = self._session.has_image()
        self._act_copy.setEnabled(has_image)
        self._act_download.setEnabled(has_image)

    def show_toast(self, message: str, is_error: bool = False):
        if message:
            self._toast.show_message(message, is_error)
            self._status.showMessage(message, TOAST_DURATION_MS)

    # =========================================================================
    # Border style
    # =========================================================================

    def _sync_style_button(self):
        self._style_button.setText(f"Border: {style_label(self._session.style)}")
        self._style_button.setChecked(self._session.style.border_color != NAVY)

    def _toggle_style(self):
        style = self._session.toggle_style()
        save_style(style)
        self._sync_style_button()
        self._crop_widget.update()
        self._redraw.request()

    # =========================================================================
    # Image acquisition
    # =========================================================================

    def _open_file(self):
        patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Image", str(Path.home()), f"Images ({patterns});;All files (*)",
        )
        if path:
            self._load_local_file(Path(path))

    def _load_local_file(self, path: Path) -> bool:
        if not is_image_path(path):
            self.show_toast(UnsupportedInputError.message, is_error=True)
            return False
        self._start_load(kind=LOAD_FILE, path=path, origin=str(path))
        return True

    def _paste(self):
        """Load an image from the clipboard.

        Tries in order: raw image MIME formats, native image data, local
        file URLs, then ``<img>`` tags in HTML.
        """
        mime = QApplication.clipboard().mimeData()
        if mime is None or not self._load_from_mime(mime, allow_tainted=False):
            self.show_toast(NO_CLIPBOARD_IMAGE_MESSAGE, is_error=True)

    def _load_from_mime(self, mime: QMimeData, allow_tainted: bool) -> bool:
        # 1. Raw image MIME formats (e.g. image/png bytes)
        for fmt in mime.formats():
            if is_image_mime(fmt):
                data = bytes(mime.data(fmt))
                if data:
                    self._start_load(kind=LOAD_BYTES, data=data, origin="clipboard")
                    return True

        # 2. Native image data
        if mime.hasImage():
            qimg = QImage(mime.imageData())
            if not qimg.isNull():
                self._start_load(kind=LOAD_BYTES, data=qimage_to_png_bytes(qimg), origin="clipboard")
                return True

        # 3. URLs (local files or remote image links)
        if mime.hasUrls():
            for url in mime.urls():
                if url.isLocalFile():
                    self._load_local_file(Path(url.toLocalFile()))
                    return True
                if url.scheme() in ("http", "https"):
                    self._start_load(kind=LOAD_URL, url=url.toString(), allow_tainted=allow_tainted)
                    return True

        # 4. HTML with <img src="..."> (e.g. copied image from a browser)
        if mime.hasHtml():
            urls = extract_img_urls(mime.html())
            if urls:
                self._start_load(kind=LOAD_URL, url=urls[0], allow_tainted=False)
                return True

        return False

    # --- Drag and drop ---

    def dragEnterEvent(self, event: QDragEnterEvent):
        mime = event.mimeData()
        if mime.hasUrls() or mime.hasImage() or mime.hasHtml():
            event.acceptProposedAction()

    def dropEvent(self, event: QDropEvent):
        event.acceptProposedAction()
        # Dropped remote links behave like a plain <img>: usable, but tainted
        # when the server does not grant cross-origin access.
        if not self._load_from_mime(event.mimeData(), allow_tainted=True):
            self.show_toast(UnsupportedInputError.message, is_error=True)

    # --- Background loading ---

    def _start_load(self, **kwargs):
        token = self._session.begin_load()
        request = LoadRequest(token=token, **kwargs)
        if not self._session.has_image():
            self._crop_widget.set_loading(True)
        self._status.showMessage("Loading image…")

        loader = ImageLoaderThread(request, self)
        loader.loaded.connect(self._on_load_result)
        loader.finished.connect(lambda t=loader: self._loaders.discard(t))
        self._loaders.add(loader)
        loader.start()

    def _on_load_result(self, result: LoadResult):
        """Called when a background load completes."""
        if not self._session.is_current(result.token):
            logger.debug("Ignoring superseded load %d", result.token)
            return
        self._crop_widget.set_loading(False)
        if not result.ok:
            self.show_toast(result.error.message, is_error=True)
            return
        if not self._session.accept_image(result.source, result.token):
            return

        source = result.source
        self._crop_widget.set_image(pil_to_qpixmap(source.image))
        self._status.showMessage(f"Loaded {source.width}×{source.height} image")
        self._update_button_states()
        self._on_crop_changed()

    # =========================================================================
    # Crop & preview
    # =========================================================================

    def _on_crop_changed(self):
        crop = self._session.crop
        if crop is not None:
            self._crop_info_label.setText(f"Crop: {crop.w}×{crop.h} at ({crop.x}, {crop.y})")
        self._redraw.request()

    def _render_preview(self):
        rendered = self._session.render()
        if rendered is None:
            self._preview.clear()
            return
        pixmap = pil_to_qpixmap(rendered.image)
        self._preview.setPixmap(pixmap.scaled(
            self._preview.size(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        ))

    # =========================================================================
    # Export
    # =========================================================================

    def _report(self, outcome: ExportOutcome):
        self.show_toast(outcome.message, is_error=not outcome.ok)

    def _copy_image(self):
        self._report(copy_to_clipboard(self._session.render(), write_clipboard))

    def _download_image(self):
        self._report(download_image(self._session.render(), self._save_download))

    def _save_download(self, request: DownloadRequest) -> bool:
        """Ask where to save *request* and write it.  False if cancelled."""
        folder = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.DownloadLocation)
        default = unique_path(Path(folder or Path.home()) / request.filename)
        path, _ = QFileDialog.getSaveFileName(
            self, "Save Framed Image", str(default), "WebP images (*.webp)",
        )
        if not path:
            return False
        Path(path).write_bytes(request.data)
        return True

    # =========================================================================
    # Window events
    # =========================================================================

    def resizeEvent(self, event: QResizeEvent):
        super().resizeEvent(event)
        self._toast.reposition()
        self._redraw.request()

    def closeEvent(self, event: QCloseEvent):
        for loader in list(self._loaders):
            loader.wait(2000)
        super().closeEvent(event)


# =============================================================================
# Clipboard helpers
# =============================================================================

def qimage_to_png_bytes(qimage: QImage) -> bytes:
    """Encode a QImage as PNG bytes."""
    ba = QByteArray()
    buf = QBuffer(ba)
    buf.open(QIODevice.OpenModeFlag.WriteOnly)
    qimage.save(buf, "PNG")
    buf.close()
    return bytes(ba.data())


def write_clipboard(payload: dict[str, bytes]) -> None:
    """Write every representation in *payload* to the clipboard as one item."""
    clipboard = QGuiApplication.clipboard()
    if clipboard is None:
        raise ExportTransportError("no clipboard available")

    mime_data = QMimeData()
    for fmt, data in payload.items():
        mime_data.setData(fmt, QByteArray(data))
    if MIME_HTML in payload:
        mime_data.setHtml(payload[MIME_HTML].decode("utf-8"))
    if MIME_PNG in payload:
        qimg = QImage.fromData(payload[MIME_PNG], "PNG")
        if qimg.isNull():
            raise ExportTransportError("PNG payload could not be read back")
        mime_data.setImageData(qimg)
    clipboard.setMimeData(mime_data)
