"""
Exception hierarchy.

Every error the editor recovers from derives from ``FramedImageError``.
Each carries a user-facing ``message`` used for the toast, separate from
the exception text that goes to the log.
"""


class FramedImageError(Exception):
    """Base class for all errors raised by the editor."""

    message = "Something went wrong."

    def __init__(self, detail: str = "", message: str | None = None):
        super().__init__(detail or self.message)
        if message is not None:
            self.message = message


# --- Input errors ---

class UnsupportedInputError(FramedImageError):
    """Raised when a dropped, pasted or opened file is not an image."""

    message = "Please upload an image file."


class DecodeError(FramedImageError):
    """Raised when image bytes cannot be decoded or a URL cannot be loaded."""

    message = "Could not load the image."


class CorsBlockedError(DecodeError):
    """Raised when a remote image does not permit cross-origin use."""

    message = "Cannot access image (CORS protected). Try saving to computer first."


# --- Export errors ---

class ExportSecurityError(FramedImageError):
    """Raised when a render is tainted by cross-origin content and cannot be read back."""

    message = "Security Block: Canvas is tainted. Download instead."


class ExportTransportError(FramedImageError):
    """Raised when the clipboard or disk write itself fails."""

    message = "Export failed."


# --- Interaction errors ---

class DragError(FramedImageError):
    """Raised when an edge drag cannot start."""

    message = "Cannot resize the crop right now."
