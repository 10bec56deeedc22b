"""Application bootstrap for Mothra Annotator."""

from __future__ import annotations

import logging
import sys
from typing import List, Optional

from PyQt6.QtWidgets import QApplication

from .ui.main_window import MainWindow

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)

logger = logging.getLogger(__name__)


def create_application(argv: Optional[List[str]] = None) -> QApplication:
    """
    Create and configure the Qt application.

    Returns:
        Configured QApplication instance
    """
    app = QApplication(argv if argv is not None else sys.argv)
    app.setApplicationName("Mothra Annotator")
    app.setApplicationVersion("1.0.0")
    app.setOrganizationName("Mothra Annotator")
    return app


def create_main_window() -> MainWindow:
    """
    Create the main application window.

    Returns:
        MainWindow instance
    """
    return MainWindow()


def run(argv: Optional[List[str]] = None) -> int:
    """
    Run the Mothra Annotator application.

    An image path given as the first argument is opened on startup.

    Returns:
        Exit code
    """
    argv = list(argv if argv is not None else sys.argv)
    logger.info("Starting Mothra Annotator")

    try:
        app = create_application(argv)
        logger.info("QApplication created")

        window = create_main_window()
        logger.info("MainWindow created")

        window.show()
        logger.info("MainWindow shown")

        if len(argv) > 1:
            window.open_image_path(argv[1])

        return app.exec()

    except Exception as e:
        logger.error(f"Application error: {e}", exc_info=True)
        return 1


def main() -> None:
    """Main entry point for the application."""
    sys.exit(run())


if __name__ == "__main__":
    main()
