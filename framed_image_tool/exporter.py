"""
Export encoders and fallback chains (Qt-free).

Clipboard copy walks an ordered list of ``CopyStrategy`` objects: each one
builds a ``{mime: bytes}`` payload and hands it to an injected writer as a
single item.  A tainted render stops the chain at once; any other failure
moves on to the next, simpler strategy.  Every call ends in a tagged
``ExportOutcome`` so the policy can be checked without a real clipboard.

Download encodes WebP at a fixed quality and delivers a ``DownloadRequest``
to an injected save callback.
"""

import base64
import io
import logging
from dataclasses import dataclass
from typing import Callable

from framed_image_tool.config import (
    DOWNLOAD_FILENAME, DOWNLOAD_MIME, HTML_FRAGMENT_TEMPLATE, PNG_COMPRESS_LEVEL, WEBP_QUALITY,
)
from framed_image_tool.errors import ExportSecurityError, ExportTransportError
from framed_image_tool.models import RenderedImage

logger = logging.getLogger(__name__)

MIME_PNG = "image/png"
MIME_HTML = "text/html"

# Outcome kinds
COPIED = "copied"
SECURITY_BLOCK = "security_block"
CLIPBOARD_FAILED = "clipboard_failed"
DOWNLOADED = "downloaded"
DOWNLOAD_FAILED = "download_failed"
CANCELLED = "cancelled"
NOTHING_TO_EXPORT = "nothing_to_export"

CLIPBOARD_FAILED_MESSAGE = "Clipboard failed. Use Download."
DOWNLOAD_FAILED_MESSAGE = "Download failed. Image may be protected."
NOTHING_TO_EXPORT_MESSAGE = "Load an image first."


@dataclass(frozen=True)
class ExportOutcome:
    kind: str
    ok: bool
    message: str
    strategy: str = ""
    attempts: int = 0


@dataclass(frozen=True)
class DownloadRequest:
    filename: str
    mime: str
    data: bytes


ClipboardWriter = Callable[[dict[str, bytes]], None]
SaveCallback = Callable[[DownloadRequest], bool]


# =============================================================================
# Encoders
# =============================================================================
def _require_readable(rendered: RenderedImage) -> None:
    if rendered.tainted:
        raise ExportSecurityError("render is tainted by cross-origin content")


def encode_png(rendered: RenderedImage) -> bytes:
    """Encode the render as lossless PNG."""
    _require_readable(rendered)
    buf = io.BytesIO()
    rendered.image.save(buf, "PNG", compress_level=PNG_COMPRESS_LEVEL)
    return buf.getvalue()


def encode_webp(rendered: RenderedImage, quality: int = WEBP_QUALITY) -> bytes:
    """Encode the render as lossy WebP, keeping the transparent corners."""
    _require_readable(rendered)
    buf = io.BytesIO()
    rendered.image.save(buf, "WEBP", quality=quality)
    return buf.getvalue()


def build_html_fragment(png_bytes: bytes) -> str:
    """Block-level, left-aligned figure embedding the PNG as a data URL."""
    src = "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
    return HTML_FRAGMENT_TEMPLATE.format(src=src)


# =============================================================================
# Clipboard copy
# =============================================================================
@dataclass(frozen=True)
class CopyStrategy:
    name: str
    build: Callable[[RenderedImage], dict[str, bytes]]
    success_message: str


def _rich_payload(rendered: RenderedImage) -> dict[str, bytes]:
    png = encode_png(rendered)
    return {MIME_PNG: png, MIME_HTML: build_html_fragment(png).encode("utf-8")}


def _simple_payload(rendered: RenderedImage) -> dict[str, bytes]:
    return {MIME_PNG: encode_png(rendered)}


COPY_STRATEGIES = (
    CopyStrategy("rich", _rich_payload, "Copied! (Block Left-Aligned)"),
    CopyStrategy("simple", _simple_payload, "Copied (Simple Mode)"),
)


def copy_to_clipboard(
    rendered: RenderedImage | None,
    write: ClipboardWriter,
    strategies: tuple[CopyStrategy, ...] = COPY_STRATEGIES,
) -> ExportOutcome:
    """Try each strategy in order until one payload is written."""
    if rendered is None:
        return ExportOutcome(NOTHING_TO_EXPORT, False, NOTHING_TO_EXPORT_MESSAGE)

    attempts = 0
    for strategy in strategies:
        attempts += 1
        try:
            payload = strategy.build(rendered)
            write(payload)
        except ExportSecurityError as exc:
            logger.warning("Clipboard copy blocked (%s): %s", strategy.name, exc)
            return ExportOutcome(SECURITY_BLOCK, False, exc.message, strategy.name, attempts)
        except Exception as exc:
            logger.warning(
                "Clipboard copy failed with %s strategy: %s", strategy.name, exc, exc_info=True,
            )
            continue
        logger.info("Copied %dx%d image to clipboard (%s)", *rendered.size, strategy.name)
        return ExportOutcome(COPIED, True, strategy.success_message, strategy.name, attempts)

    return ExportOutcome(CLIPBOARD_FAILED, False, CLIPBOARD_FAILED_MESSAGE, "", attempts)


# =============================================================================
# Download
# =============================================================================
def download_image(rendered: RenderedImage | None, save: SaveCallback) -> ExportOutcome:
    """Encode the render as WebP and hand it to *save* under the fixed filename."""
    if rendered is None:
        return ExportOutcome(NOTHING_TO_EXPORT, False, NOTHING_TO_EXPORT_MESSAGE)

    try:
        request = DownloadRequest(DOWNLOAD_FILENAME, DOWNLOAD_MIME, encode_webp(rendered))
        saved = save(request)
    except (ExportSecurityError, ExportTransportError, OSError) as exc:
        logger.warning("Download failed: %s", exc)
        return ExportOutcome(DOWNLOAD_FAILED, False, DOWNLOAD_FAILED_MESSAGE, "webp", 1)

    if not saved:
        return ExportOutcome(CANCELLED, False, "", "webp", 1)
    logger.info("Saved %dx%d image as %s", *rendered.size, request.filename)
    return ExportOutcome(DOWNLOADED, True, f"Saved {request.filename}", "webp", 1)
