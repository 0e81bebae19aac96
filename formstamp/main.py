"""Entry point for FormStamp."""

from __future__ import annotations

import logging
import sys

from PySide6.QtWidgets import QApplication

from formstamp.config import Settings
from formstamp.ui.main_window import MainWindow

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    app = QApplication(sys.argv)
    app.setApplicationName("FormStamp")
    app.setStyle("Fusion")

    window = MainWindow(settings)
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
