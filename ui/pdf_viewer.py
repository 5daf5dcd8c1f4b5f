"""
DocInsight - PDF Viewer Widget
Wraps PDF.js inside QWebEngineView with a QWebChannel bridge for:
  - Rendering the active document from a local:// URL
  - Reporting text selections back to Python
  - Jumping to the page of a clicked snippet
"""

import json
import logging
import os
from urllib.parse import unquote, urlencode
from typing import Optional

from PyQt6.QtWidgets import QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLabel
from PyQt6.QtCore import QUrl, QBuffer, QIODevice, pyqtSignal, pyqtSlot, QObject
from PyQt6.QtWebEngineWidgets import QWebEngineView
from PyQt6.QtWebEngineCore import (
    QWebEngineSettings, QWebEngineUrlSchemeHandler, QWebEngineProfile
)
from PyQt6.QtWebChannel import QWebChannel

from config import settings, RESOURCES_DIR

logger = logging.getLogger(__name__)


class LocalFileSchemeHandler(QWebEngineUrlSchemeHandler):
    """Serves local:// URLs: the viewer bridge, PDF.js assets, and cached blobs."""

    _MIME_TYPES = {
        ".pdf": b"application/pdf",
        ".mp3": b"audio/mpeg",
        ".html": b"text/html",
        ".js": b"application/javascript",
        ".mjs": b"application/javascript",
        ".css": b"text/css",
        ".json": b"application/json",
        ".wasm": b"application/wasm",
        ".svg": b"image/svg+xml",
        ".png": b"image/png",
        ".woff2": b"font/woff2",
        ".ttf": b"font/ttf",
        ".bcmap": b"application/octet-stream",
    }

    def __init__(self, parent=None):
        super().__init__(parent)
        # Chromium reads the buffers asynchronously; keep them alive until the request dies
        self._active_buffers: list = []

    @staticmethod
    def path_from_url(raw: str) -> str:
        """Turn a local:// URL into a filesystem path (handles Windows drive letters)."""
        path = raw.split("?", 1)[0]
        path = unquote(path.replace("local://", "", 1))
        if path.startswith("/") and len(path) > 2 and path[2] == ":":
            path = path[1:]
        return path

    def requestStarted(self, request):
        path = self.path_from_url(request.requestUrl().toString())
        logger.debug(f"LocalFileSchemeHandler: serving {path}")

        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            request.fail(request.Error.UrlNotFound)
            return

        ext = os.path.splitext(path)[1].lower()
        mime_type = self._MIME_TYPES.get(ext, b"application/octet-stream")

        buf = QBuffer(request)
        buf.open(QIODevice.OpenModeFlag.ReadWrite)
        buf.write(data)
        buf.seek(0)
        self._active_buffers.append(buf)
        request.destroyed.connect(lambda b=buf: self._release_buffer(b))
        request.reply(mime_type, buf)

    def _release_buffer(self, buf):
        if buf in self._active_buffers:
            self._active_buffers.remove(buf)


class JsBridge(QObject):
    """
    Python ↔ JavaScript bridge object, exposed to the page as `pyBridge`.
    """
    text_selected = pyqtSignal(str)
    viewer_ready = pyqtSignal()
    page_changed = pyqtSignal(int)

    @pyqtSlot(str)
    def onTextSelected(self, text: str) -> None:
        logger.debug(f"JS → Python: text selected ({len(text)} chars)")
        self.text_selected.emit(text)

    @pyqtSlot()
    def onViewerReady(self) -> None:
        logger.info("JS → Python: viewer ready")
        self.viewer_ready.emit()

    @pyqtSlot(int)
    def onPageChanged(self, page_num: int) -> None:
        self.page_changed.emit(page_num)


class PDFViewerWidget(QWidget):
    """QWebEngineView running the PDF.js bridge page, fed by the controller's document URL."""

    text_selected = pyqtSignal(str)

    def __init__(self, parent: QWidget = None) -> None:
        super().__init__(parent)
        self.current_url: str = ""
        self._pending_page: Optional[int] = None
        self._viewer_ready = False

        self._init_ui()
        self._setup_scheme_handler()
        self._setup_bridge()

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self.toolbar = QWidget()
        toolbar = QHBoxLayout(self.toolbar)
        toolbar.setContentsMargins(4, 4, 4, 4)

        self.title_label = QLabel("PDF Preview")
        self.title_label.setStyleSheet("color: #D4D4D4; font-size: 13px; font-weight: bold;")
        toolbar.addWidget(self.title_label)
        toolbar.addStretch()

        self.btn_zoom_in = QPushButton("🔍+")
        self.btn_zoom_in.setFixedWidth(50)
        self.btn_zoom_in.clicked.connect(lambda: self._run_js("window.bridgeZoom(1.1);"))
        toolbar.addWidget(self.btn_zoom_in)

        self.btn_zoom_out = QPushButton("🔍−")
        self.btn_zoom_out.setFixedWidth(50)
        self.btn_zoom_out.clicked.connect(lambda: self._run_js("window.bridgeZoom(1 / 1.1);"))
        toolbar.addWidget(self.btn_zoom_out)

        self.page_label = QLabel("Page: —")
        self.page_label.setStyleSheet("color: #808080; font-size: 12px; padding-left: 8px;")
        toolbar.addWidget(self.page_label)

        self.toolbar.setVisible(settings.viewer.show_toolbar)
        layout.addWidget(self.toolbar)

        self.web_view = QWebEngineView()
        self._configure_web_settings()
        layout.addWidget(self.web_view)
        self.clear()

    def _configure_web_settings(self) -> None:
        s = self.web_view.settings()
        s.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessFileUrls, True)
        s.setAttribute(QWebEngineSettings.WebAttribute.JavascriptEnabled, True)
        s.setAttribute(QWebEngineSettings.WebAttribute.ScrollAnimatorEnabled, True)
        # Force PDF.js instead of Chromium's built-in viewer
        s.setAttribute(QWebEngineSettings.WebAttribute.PdfViewerEnabled, False)

    def _setup_scheme_handler(self) -> None:
        profile = QWebEngineProfile.defaultProfile()
        self.scheme_handler = LocalFileSchemeHandler(self)
        profile.installUrlSchemeHandler(b"local", self.scheme_handler)
        logger.info("Custom 'local://' scheme handler registered.")

    def _setup_bridge(self) -> None:
        self.js_bridge = JsBridge(self)
        self.channel = QWebChannel(self.web_view.page())
        self.web_view.page().setWebChannel(self.channel)
        self.channel.registerObject("pyBridge", self.js_bridge)

        self.js_bridge.text_selected.connect(self.text_selected.emit)
        self.js_bridge.viewer_ready.connect(self._on_viewer_ready)
        self.js_bridge.page_changed.connect(lambda p: self.page_label.setText(f"Page: {p}"))

    def show_document(self, url: str, title: str) -> None:
        """Load a document URL into the viewer; re-showing the same URL is a no-op."""
        if url == self.current_url:
            return
        self.current_url = url
        self._viewer_ready = False
        self.title_label.setText(title or "PDF Preview")

        bridge_html = RESOURCES_DIR / "viewer_bridge.html"
        if not bridge_html.exists():
            logger.error(f"viewer_bridge.html not found at {bridge_html}")
            return

        bridge_path = str(bridge_html).replace("\\", "/").lstrip("/")
        query = urlencode({"file": url, "zoom": settings.viewer.default_zoom})
        logger.info(f"Loading document into viewer: {url}")
        self.web_view.setUrl(QUrl(f"local:///{bridge_path}?{query}"))

    def go_to_page(self, page: int) -> None:
        """Scroll to `page`, deferring until the viewer has finished loading."""
        if not self._viewer_ready:
            self._pending_page = page
            return
        self._run_js(f"window.bridgeGoToPage({json.dumps(int(page))});")

    def _on_viewer_ready(self) -> None:
        if self._viewer_ready:
            return
        self._viewer_ready = True
        if self._pending_page is not None:
            page, self._pending_page = self._pending_page, None
            self.go_to_page(page)

    def clear(self) -> None:
        self.current_url = ""
        self._viewer_ready = False
        self._pending_page = None
        self.title_label.setText("PDF Preview")
        self.page_label.setText("Page: —")
        self.web_view.setHtml(
            "<body style='background:#1E1E1E;color:#808080;font-family:sans-serif;"
            "display:flex;align-items:center;justify-content:center;height:95vh'>"
            "<div style='text-align:center'><div style='font-size:48px'>📄</div>"
            "<p>Upload and select a document to view</p></div></body>"
        )

    def _run_js(self, code: str) -> None:
        self.web_view.page().runJavaScript(code)
