"""
Bar Tracker GUI — entry point.
Run: python main.py [config.json]
"""

from __future__ import annotations

import logging
import os
import sys

# Reduce TensorFlow/MediaPipe console noise (INFO and WARNING)
os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "2")

from PySide6.QtWidgets import QApplication

from core.config import load_config
from ui.main_window import MainWindow


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler once; later calls only change the level."""
    logging.basicConfig(format="%(asctime)s %(levelname)s:%(name)s:%(message)s")
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


def main(argv: list[str] | None = None) -> None:
    argv = sys.argv if argv is None else argv
    # Config loading logs its own warnings, so the handler goes in first.
    configure_logging()
    config = load_config(argv[1] if len(argv) > 1 else None)
    configure_logging(config.log_level)
    app = QApplication(argv)
    window = MainWindow(config=config)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
