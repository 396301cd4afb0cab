"""
Qt-free image acquisition.

Decodes images from raw bytes, local files (PSD via psd-tools), remote URLs
and ``data:`` URLs into ``RasterSource`` objects, and wraps a whole load in
``load_source`` so the background loader can report a typed ``LoadResult``
instead of raising across threads.

Remote images follow an anonymous cross-origin policy: a response that
carries ``Access-Control-Allow-Origin`` is usable; without it the load is
refused unless the caller accepts a tainted source.
"""

import base64
import binascii
import io
import logging
import re
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError
from psd_tools import PSDImage

from framed_image_tool.config import (
    IMAGE_EXTENSIONS, URL_MAX_BYTES, URL_TIMEOUT, USER_AGENT,
)
from framed_image_tool.errors import (
    CorsBlockedError, DecodeError, FramedImageError, UnsupportedInputError,
)
from framed_image_tool.models import RasterSource

logger = logging.getLogger(__name__)

# Allow very large images (Pillow's default limit is ~178MP)
Image.MAX_IMAGE_PIXELS = None

_IMG_SRC_RE = re.compile(r'<img[^>]+src=["\']([^"\']+)["\']', re.IGNORECASE)
_IMG_SRCSET_RE = re.compile(r'<img[^>]+srcset=["\']([^"\']+)["\']', re.IGNORECASE)
_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?P<params>(;[^,;]+)*?)(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)

# Load request kinds
LOAD_FILE = "file"
LOAD_BYTES = "bytes"
LOAD_URL = "url"


# =============================================================================
# Classification helpers
# =============================================================================
def is_image_mime(mime: str) -> bool:
    """True for ``image/*`` MIME types."""
    return bool(mime) and mime.lower().startswith("image/")


def is_image_path(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_EXTENSIONS


def extract_img_urls(html: str) -> list[str]:
    """Extract usable image URLs from ``<img>`` tags in an HTML fragment.

    The highest-resolution ``srcset`` entry is preferred.  Only http(s),
    ``file:`` and ``data:image`` URLs are returned.
    """
    urls = _IMG_SRC_RE.findall(html)
    for match in _IMG_SRCSET_RE.finditer(html):
        # srcset format: "url1 1x, url2 2x"; take the last (highest-res) entry
        entries = [e.strip().split()[0] for e in match.group(1).split(",") if e.strip()]
        if entries:
            urls.insert(0, entries[-1])
    return [u for u in urls if u.startswith(("http://", "https://", "file:", "data:image/"))]


# =============================================================================
# Decoding
# =============================================================================
def decode_image_bytes(data: bytes, origin: str = "", tainted: bool = False) -> RasterSource:
    """Decode encoded image bytes into a ``RasterSource``.

    EXIF orientation is applied so the crop works on the image as displayed.
    """
    if not data:
        raise DecodeError(f"no image data from {origin or 'input'}")
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
        img = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise DecodeError(f"cannot decode image from {origin or 'input'}: {exc}") from exc
    logger.debug("Decoded %dx%d %s image from %s", img.width, img.height, img.mode, origin or "bytes")
    return RasterSource(image=img, origin=origin, tainted=tainted)


def open_image_file(path: Path) -> RasterSource:
    """Open a local image file, using psd-tools for PSD and Pillow for the rest."""
    if not is_image_path(path):
        raise UnsupportedInputError(f"{path.name} is not a supported image")
    if path.suffix.lower() == ".psd":
        try:
            img = PSDImage.open(str(path)).composite()
        except (OSError, ValueError) as exc:
            raise DecodeError(f"cannot composite PSD {path}: {exc}") from exc
        if img is None:
            raise DecodeError(f"PSD {path} has no visible pixels")
        return RasterSource(image=img, origin=str(path))
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise DecodeError(f"cannot read {path}: {exc}") from exc
    return decode_image_bytes(data, origin=str(path))


def decode_data_url(url: str) -> RasterSource:
    """Decode a ``data:image/...`` URL."""
    match = _DATA_URL_RE.match(url)
    if not match or not is_image_mime(match.group("mime") or ""):
        raise UnsupportedInputError("data URL does not hold an image")
    payload = match.group("data")
    try:
        if match.group("b64"):
            data = base64.b64decode(payload, validate=False)
        else:
            data = urllib.parse.unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"malformed data URL: {exc}") from exc
    return decode_image_bytes(data, origin="data URL")


def load_image_url(url: str, allow_tainted: bool = False) -> RasterSource:
    """
    Load an image from a URL.

    ``data:`` and ``file:`` URLs are decoded locally.  Remote responses
    without ``Access-Control-Allow-Origin`` raise ``CorsBlockedError`` unless
    *allow_tainted* is set, in which case the source is marked tainted.
    """
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme == "data":
        return decode_data_url(url)
    if parsed.scheme == "file":
        return open_image_file(Path(urllib.request.url2pathname(parsed.path)))
    if parsed.scheme not in ("http", "https"):
        raise UnsupportedInputError(f"unsupported URL scheme {parsed.scheme!r}")

    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=URL_TIMEOUT) as resp:
            allow_origin = resp.headers.get("Access-Control-Allow-Origin")
            content_type = resp.headers.get("Content-Type", "")
            data = resp.read(URL_MAX_BYTES + 1)
    except (urllib.error.URLError, OSError, ValueError) as exc:
        logger.error("Load error for URL %s: %s", url, exc)
        raise DecodeError(f"cannot fetch {url}: {exc}") from exc

    if len(data) > URL_MAX_BYTES:
        logger.error("Image at %s exceeds the %d byte download limit", url, URL_MAX_BYTES)
        raise DecodeError(
            f"{url} is larger than {URL_MAX_BYTES // (1024 * 1024)} MB",
            message=f"Image is too large (over {URL_MAX_BYTES // (1024 * 1024)} MB).",
        )

    if content_type and not is_image_mime(content_type.split(";")[0].strip()):
        logger.debug("URL %s reported content type %s; trying to decode anyway", url, content_type)

    tainted = not allow_origin
    if tainted and not allow_tainted:
        logger.error("CORS error for URL %s: no Access-Control-Allow-Origin header", url)
        raise CorsBlockedError(f"{url} does not allow cross-origin use")
    return decode_image_bytes(data, origin=url, tainted=tainted)


# =============================================================================
# Background-load entry point
# =============================================================================
@dataclass(frozen=True)
class LoadRequest:
    """One image load, identified by the session's load token."""
    token: int
    kind: str
    path: Path | None = None
    data: bytes = b""
    url: str = ""
    origin: str = ""
    allow_tainted: bool = False


@dataclass(frozen=True)
class LoadResult:
    token: int
    source: RasterSource | None = None
    error: FramedImageError | None = None

    @property
    def ok(self) -> bool:
        return self.source is not None


def load_source(request: LoadRequest) -> LoadResult:
    """Run *request* and return the decoded source or the typed failure."""
    try:
        if request.kind == LOAD_FILE:
            source = open_image_file(request.path)
        elif request.kind == LOAD_URL:
            source = load_image_url(request.url, allow_tainted=request.allow_tainted)
        elif request.kind == LOAD_BYTES:
            source = decode_image_bytes(request.data, origin=request.origin)
        else:
            raise UnsupportedInputError(f"unknown load kind {request.kind!r}")
    except FramedImageError as exc:
        logger.warning("Image load %d failed: %s", request.token, exc)
        return LoadResult(token=request.token, error=exc)
    return LoadResult(token=request.token, source=source)


# =============================================================================
# Output paths
# =============================================================================
def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
