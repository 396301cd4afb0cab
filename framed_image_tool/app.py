"""
Application entry point and dark-theme stylesheet.

Usage:
    python -m framed_image_tool
    framed-image-tool          (after pip install)

Set ``FRAMED_IMAGE_LOG_LEVEL`` (e.g. ``DEBUG``) to change log verbosity.
"""

import logging
import os
import sys

from PyQt6.QtWidgets import QApplication

from framed_image_tool.main_window import MainWindow

DARK_STYLESHEET = """
    QMainWindow { background: #2b2b2b; }
    QWidget { background: #2b2b2b; color: #ddd; font-size: 10pt; }
    QPushButton { background: #3a3a3a; border: 1px solid #555; border-radius: 4px; padding: 6px 12px; }
    QPushButton:hover { background: #4a4a4a; }
    QPushButton:pressed { background: #2a2a2a; }
    QPushButton:checked { background: #ee3162; border-color: #f05a80; }
    QPushButton:disabled { color: #666; }
    QToolBar { background: #333; border-bottom: 1px solid #444; spacing: 4px; padding: 4px; }
    QStatusBar { background: #333; border-top: 1px solid #444; }
"""


def configure_logging():
    level = os.environ.get("FRAMED_IMAGE_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    configure_logging()
    app = QApplication(sys.argv)
    app.setStyleSheet(DARK_STYLESHEET)

    window = MainWindow()
    window.show()

    try:
        sys.exit(app.exec())
    except (SystemExit, KeyboardInterrupt):
        pass


if __name__ == "__main__":
    main()
