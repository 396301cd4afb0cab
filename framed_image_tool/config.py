"""
Application constants and configuration.

Border styles, crop-editor limits, export encodings and toast timing live
here as module constants.  The only runtime-persisted setting is the border
style, handled by ``style_store``.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules.
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "framed-image-tool"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory

# =============================================================================
# BORDER STYLE: two fixed colours, toggled from the toolbar
# =============================================================================
NAVY = "#064681"
PINK = "#ee3162"

# Label shown on the style toggle, keyed by colour
BORDER_COLORS = {NAVY: "Navy", PINK: "Pink"}

BORDER_WIDTH_DEFAULT = 1.5
CORNER_RADIUS_DEFAULT = 6

# Minimum crop size (pixels in image coordinates)
MIN_CROP_SIZE = 24

# Handle size for edge grips (pixels in screen coordinates)
HANDLE_SIZE = 10

# Mask rasterization: supersample factor, reduced for very large outputs so
# the temporary mask stays under the pixel budget.
SUPERSAMPLE_MAX = 4
SUPERSAMPLE_PIXEL_BUDGET = 64_000_000

# Segments used to flatten each rounded corner into a polygon
CURVE_STEPS = 12

# =============================================================================
# EXPORT
# =============================================================================
PNG_COMPRESS_LEVEL = 6

# Lossy download format
WEBP_QUALITY = 95
DOWNLOAD_FILENAME = "framed-image.webp"
DOWNLOAD_MIME = "image/webp"

# Rich-paste fragment wrapped around the PNG data URL
HTML_FRAGMENT_TEMPLATE = (
    '<figure class="image" style="float: none; clear: both; '
    'margin: 0 auto 0 0; display: table;"><img src="{src}" alt="" /></figure>'
)

# =============================================================================
# INPUT
# =============================================================================
# Supported image extensions for the file picker and local drops
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tiff", ".tif", ".webp", ".psd"}

# Remote image downloads
URL_TIMEOUT = 10
URL_MAX_BYTES = 10 * 1024 * 1024
USER_AGENT = "FramedImageTool/1.0"

# Toast display duration (milliseconds)
TOAST_DURATION_MS = 4000
