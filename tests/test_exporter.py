"""Tests for export encoders and the clipboard / download fallback chains."""
import base64
import io

import pytest
from PIL import Image

from framed_image_tool.config import DOWNLOAD_FILENAME, WEBP_QUALITY
from framed_image_tool.errors import ExportSecurityError, ExportTransportError
from framed_image_tool.exporter import (
    CANCELLED, CLIPBOARD_FAILED, COPIED, DOWNLOAD_FAILED, DOWNLOADED, MIME_HTML, MIME_PNG,
    NOTHING_TO_EXPORT, SECURITY_BLOCK, build_html_fragment, copy_to_clipboard,
    download_image, encode_png, encode_webp,
)
from framed_image_tool.models import RenderedImage


class FakeClipboard:
    """Records every write; fails the first *failures* of them."""

    def __init__(self, failures=0, error=ExportTransportError):
        self.failures = failures
        self.error = error
        self.writes = []

    def __call__(self, payload):
        self.writes.append(payload)
        if len(self.writes) <= self.failures:
            raise self.error("clipboard busy")


@pytest.fixture
def rendered():
    return RenderedImage(Image.new('RGBA', (40, 30), (10, 20, 30, 255)))


@pytest.fixture
def tainted():
    return RenderedImage(Image.new('RGBA', (40, 30), (10, 20, 30, 255)), tainted=True)


class TestEncoders:

    def test_png_is_lossless(self, rendered):
        decoded = Image.open(io.BytesIO(encode_png(rendered)))
        assert decoded.format == 'PNG'
        assert decoded.convert('RGBA').tobytes() == rendered.image.tobytes()

    def test_webp_keeps_size(self, rendered):
        decoded = Image.open(io.BytesIO(encode_webp(rendered)))
        assert decoded.format == 'WEBP'
        assert decoded.size == (40, 30)

    @pytest.mark.parametrize("encoder", [encode_png, encode_webp])
    def test_tainted_render_refused(self, tainted, encoder):
        with pytest.raises(ExportSecurityError):
            encoder(tainted)

    def test_html_fragment_is_block_left_aligned(self):
        html = build_html_fragment(b'\x89PNG')
        assert html.startswith('<figure class="image"')
        assert 'float: none' in html
        assert 'margin: 0 auto 0 0' in html
        assert 'display: table' in html
        assert 'src="data:image/png;base64,' + base64.b64encode(b'\x89PNG').decode() + '"' in html


class TestCopy:

    def test_rich_payload_written_once(self, rendered):
        clipboard = FakeClipboard()
        outcome = copy_to_clipboard(rendered, clipboard)
        assert outcome.ok and outcome.kind == COPIED
        assert outcome.strategy == 'rich'
        assert outcome.message == 'Copied! (Block Left-Aligned)'
        assert len(clipboard.writes) == 1
        payload = clipboard.writes[0]
        assert set(payload) == {MIME_PNG, MIME_HTML}
        png_b64 = base64.b64encode(payload[MIME_PNG]).decode()
        assert png_b64 in payload[MIME_HTML].decode()

    def test_falls_back_to_simple_payload(self, rendered):
        clipboard = FakeClipboard(failures=1)
        outcome = copy_to_clipboard(rendered, clipboard)
        assert outcome.ok and outcome.strategy == 'simple'
        assert outcome.message == 'Copied (Simple Mode)'
        assert outcome.attempts == 2
        assert set(clipboard.writes[1]) == {MIME_PNG}

    def test_os_error_also_falls_back(self, rendered):
        clipboard = FakeClipboard(failures=1, error=OSError)
        assert copy_to_clipboard(rendered, clipboard).strategy == 'simple'

    @pytest.mark.parametrize("error", [RuntimeError, TypeError])
    def test_unexpected_writer_error_falls_back(self, rendered, error):
        clipboard = FakeClipboard(failures=1, error=error)
        outcome = copy_to_clipboard(rendered, clipboard)
        assert outcome.ok and outcome.strategy == 'simple'

    def test_unexpected_errors_end_in_clipboard_failed(self, rendered):
        clipboard = FakeClipboard(failures=2, error=RuntimeError)
        outcome = copy_to_clipboard(rendered, clipboard)
        assert outcome.kind == CLIPBOARD_FAILED
        assert outcome.attempts == 2

    def test_both_attempts_fail(self, rendered):
        clipboard = FakeClipboard(failures=2)
        outcome = copy_to_clipboard(rendered, clipboard)
        assert not outcome.ok
        assert outcome.kind == CLIPBOARD_FAILED
        assert outcome.message == 'Clipboard failed. Use Download.'
        assert len(clipboard.writes) == 2

    def test_tainted_render_blocks_without_retry(self, tainted):
        clipboard = FakeClipboard()
        outcome = copy_to_clipboard(tainted, clipboard)
        assert not outcome.ok
        assert outcome.kind == SECURITY_BLOCK
        assert outcome.message == 'Security Block: Canvas is tainted. Download instead.'
        assert outcome.attempts == 1
        assert clipboard.writes == []

    def test_security_error_from_writer_stops_chain(self, rendered):
        clipboard = FakeClipboard(failures=5, error=ExportSecurityError)
        outcome = copy_to_clipboard(rendered, clipboard)
        assert outcome.kind == SECURITY_BLOCK
        assert len(clipboard.writes) == 1

    def test_nothing_rendered(self):
        clipboard = FakeClipboard()
        outcome = copy_to_clipboard(None, clipboard)
        assert outcome.kind == NOTHING_TO_EXPORT
        assert clipboard.writes == []


class TestDownload:

    def test_saves_webp_under_fixed_name(self, rendered):
        requests = []
        outcome = download_image(rendered, lambda req: requests.append(req) or True)
        assert outcome.ok and outcome.kind == DOWNLOADED
        (req,) = requests
        assert req.filename == DOWNLOAD_FILENAME == 'framed-image.webp'
        assert req.mime == 'image/webp'
        assert Image.open(io.BytesIO(req.data)).format == 'WEBP'
        assert WEBP_QUALITY == 95

    def test_cancelled_save(self, rendered):
        outcome = download_image(rendered, lambda req: False)
        assert outcome.kind == CANCELLED
        assert outcome.message == ''

    def test_write_failure_reported(self, rendered):
        def save(req):
            raise OSError("disk full")
        outcome = download_image(rendered, save)
        assert outcome.kind == DOWNLOAD_FAILED
        assert outcome.message == 'Download failed. Image may be protected.'

    def test_tainted_render_fails_without_saving(self, tainted):
        requests = []
        outcome = download_image(tainted, requests.append)
        assert outcome.kind == DOWNLOAD_FAILED
        assert requests == []
