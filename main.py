"""
DocInsight - Entry Point
Document exploration client: upload PDF clusters, browse the library, select
passages, and get related snippets, insights, and podcasts from the backend.

Sets up environment, configures logging, and launches the main window.
"""

import sys
import os
import logging

from config import settings, get_env_flags, APP_ROOT, LOG_FILE

# --- Critical Environment Setup (must be before any Qt imports) ---
os.environ.update(get_env_flags())

from PyQt6.QtWidgets import QApplication
from PyQt6.QtWebEngineCore import QWebEngineUrlScheme

# Qt requires custom schemes to be registered before the QApplication exists
_local_scheme = QWebEngineUrlScheme(b"local")
_local_scheme.setSyntax(QWebEngineUrlScheme.Syntax.Host)
_local_scheme.setFlags(
    QWebEngineUrlScheme.Flag.SecureScheme
    | QWebEngineUrlScheme.Flag.LocalAccessAllowed
    | QWebEngineUrlScheme.Flag.CorsEnabled
    | QWebEngineUrlScheme.Flag.ContentSecurityPolicyIgnored
)
QWebEngineUrlScheme.registerScheme(_local_scheme)

from ui.main_window import MainWindow


def setup_logging() -> None:
    """Configure application-wide logging."""
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=log_format,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(LOG_FILE, encoding="utf-8"),
        ],
    )
    # Suppress noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def main() -> None:
    """Application entry point."""
    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("DocInsight starting...")
    logger.info(f"App root: {APP_ROOT}")
    logger.info(f"Backend: {settings.api.base_url}")

    app = QApplication(sys.argv)
    app.setApplicationName("DocInsight")
    app.setOrganizationName("DocInsight")

    window = MainWindow()
    window.show()

    logger.info("Main window displayed.")
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
