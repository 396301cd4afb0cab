"""Shared pytest fixtures for Framed Image Tool tests."""
import os

os.environ['QT_QPA_PLATFORM'] = 'offscreen'  # must be set before QApplication import

import io
import pytest
from PIL import Image, ImageDraw

from framed_image_tool.models import RasterSource


@pytest.fixture
def make_png():
    """Factory fixture: make_png(width, height, color) -> PNG bytes."""
    def _make(width, height, color='red'):
        img = Image.new('RGB', (width, height), color)
        buf = io.BytesIO()
        img.save(buf, format='PNG')
        return buf.getvalue()
    return _make


@pytest.fixture
def make_source():
    """Factory fixture: make_source(width, height, color, tainted) -> RasterSource."""
    def _make(width, height, color='white', tainted=False):
        return RasterSource(image=Image.new('RGB', (width, height), color), origin='test', tainted=tainted)
    return _make


@pytest.fixture
def quadrant_source():
    """400x300 source with a different colour in each quadrant."""
    img = Image.new('RGB', (400, 300), 'red')
    draw = ImageDraw.Draw(img)
    draw.rectangle([200, 0, 399, 149], fill='green')
    draw.rectangle([0, 150, 199, 299], fill='blue')
    draw.rectangle([200, 150, 399, 299], fill='yellow')
    return RasterSource(image=img, origin='quadrants')


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Redirect the per-user config directory into a temp folder."""
    monkeypatch.setattr('framed_image_tool.style_store.config_dir', lambda: tmp_path)
    return tmp_path
