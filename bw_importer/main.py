"""
Main entry point for the Bitwarden Importer.

Startup arguments of the form `key=value` pre-fill the form, for example:

    bw-importer lastpassEmail=me@example.com bitwardenServerUrl=https://vault.example.com
"""

import sys
import os
import signal
import logging
from typing import Optional, List

from PyQt5.QtWidgets import QApplication
from PyQt5.QtCore import Qt

from .settings import settings_from_commandline
from .ui import ImporterWindow
from . import config


def get_default_cache_dir() -> str:
    """Get the per-user cache directory."""
    base = os.environ.get("LOCALAPPDATA") or os.path.join(os.path.expanduser("~"), ".cache")
    return os.path.join(base, config.CACHE_DIR_NAME)


def configure_logging(cache_dir: str, to_file: bool = config.LOG_TO_FILE, level: int = logging.INFO) -> None:
    """Set up console logging, and a debug log in the cache directory if requested."""
    log_format = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'
    logging.basicConfig(level=level, format=log_format)
    if to_file:
        os.makedirs(cache_dir, exist_ok=True)
        handler = logging.FileHandler(os.path.join(cache_dir, config.LOG_FILE), encoding='utf-8')
        handler.setFormatter(logging.Formatter(log_format))
        logging.getLogger().addHandler(handler)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    argv = sys.argv if argv is None else argv
    cache_dir = get_default_cache_dir()
    configure_logging(cache_dir)

    # Enable high DPI scaling
    if hasattr(Qt, 'AA_EnableHighDpiScaling'):
        QApplication.setAttribute(Qt.AA_EnableHighDpiScaling, True)
    if hasattr(Qt, 'AA_UseHighDpiPixmaps'):
        QApplication.setAttribute(Qt.AA_UseHighDpiPixmaps, True)

    app = QApplication(argv)
    app.setApplicationName(config.APP_NAME)
    app.setStyle(config.APP_STYLE)

    # Handle Ctrl+C gracefully
    signal.signal(signal.SIGINT, signal.SIG_DFL)

    window = ImporterWindow(cache_dir, settings_from_commandline(argv[1:]))
    window.show()
    return app.exec_()


if __name__ == "__main__":
    sys.exit(main())
