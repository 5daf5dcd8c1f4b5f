"""
DocInsight - Main Window
Three-column layout: Library | PDF Viewer | Insight Sidebar.
Owns the ControllerWorker and translates widget signals into controller intents.
"""

import logging
from typing import Optional

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QHBoxLayout, QSplitter, QStatusBar, QLabel, QMessageBox,
)
from PyQt6.QtCore import Qt, QSize

from config import settings, CACHE_DIR
from api.service_client import create_backend
from core.controller import WorkflowController, WorkflowState
from core.errors import Outcome, TransportError
from core.models import Document
from core.resource_cache import ResourceCache
from ui.components import GLOBAL_STYLESHEET
from ui.insight_sidebar import InsightSidebar
from ui.library_view import LibraryView
from ui.pdf_viewer import PDFViewerWidget
from workers.async_workers import ControllerWorker

logger = logging.getLogger(__name__)


def build_controller() -> WorkflowController:
    """Create the controller with the configured backend and blob cache."""
    return WorkflowController(create_backend(settings.api), ResourceCache(CACHE_DIR))


class MainWindow(QMainWindow):
    """Top-level application window."""

    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("DocInsight - Document Insight Engine")
        self.resize(1500, 950)
        self.setMinimumSize(QSize(1000, 600))
        self.setStyleSheet(GLOBAL_STYLESHEET)

        self._focus_page: Optional[int] = None

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)
        self.cluster_label = QLabel("")
        self.status_bar.addPermanentWidget(self.cluster_label)

        self._init_ui()
        self._start_worker()

    def _init_ui(self) -> None:
        central = QWidget()
        self.setCentralWidget(central)
        root_layout = QHBoxLayout(central)
        root_layout.setContentsMargins(0, 0, 0, 0)
        root_layout.setSpacing(0)

        self.library_view = LibraryView(self)
        self.pdf_viewer = PDFViewerWidget(self)
        self.insight_sidebar = InsightSidebar(self)

        self.main_splitter = QSplitter(Qt.Orientation.Horizontal)
        self.main_splitter.setHandleWidth(1)
        self.main_splitter.addWidget(self.library_view)
        self.main_splitter.addWidget(self.pdf_viewer)
        self.main_splitter.addWidget(self.insight_sidebar)
        self.main_splitter.setStretchFactor(0, 1)
        self.main_splitter.setStretchFactor(1, 4)
        self.main_splitter.setStretchFactor(2, 2)
        root_layout.addWidget(self.main_splitter)

    def _start_worker(self) -> None:
        self.worker = ControllerWorker(build_controller, self)
        self.worker.state_changed.connect(self._render)
        self.worker.outcome_ready.connect(self._on_outcome)
        self.worker.error_occurred.connect(lambda msg: self.show_status(f"Error: {msg}", 6000))
        self._connect_intents()
        self.worker.start()

        self.worker.submit("refresh_documents", lambda c: c.refresh_documents())
        self.show_status(f"Connecting to {settings.api.base_url}...")

    def _connect_intents(self) -> None:
        submit = self.worker.submit
        lib = self.library_view

        lib.files_picked.connect(lambda paths: submit("stage_files", lambda c: c.stage_files(paths)))
        lib.staged_removed.connect(lambda f: submit("remove_staged_file", lambda c: c.remove_staged_file(f)))
        lib.staged_chosen.connect(lambda f: submit("select_document", lambda c: c.select_document(f)))
        lib.upload_requested.connect(lambda: submit("upload", lambda c: c.upload()))
        lib.document_chosen.connect(self._on_document_chosen)
        lib.cluster_chosen.connect(lambda cid: submit("show_cluster", lambda c: c.show_cluster(cid)))

        self.pdf_viewer.text_selected.connect(
            lambda text: submit("select_text", lambda c: c.select_text(text))
        )
        self.insight_sidebar.snippet_opened.connect(
            lambda s: submit("open_snippet", lambda c: c.open_snippet(s))
        )
        self.insight_sidebar.podcast_requested.connect(
            lambda: submit("generate_podcast", lambda c: c.generate_podcast())
        )

    def _on_document_chosen(self, document: Document) -> None:
        self.show_status(f"Opening {document.filename}...")
        self.worker.submit("select_document", lambda c: c.select_document(document))

    # ---- Rendering ----

    def _render(self, state: WorkflowState) -> None:
        """Apply a controller snapshot to every panel."""
        self.library_view.apply_state(state)
        self.insight_sidebar.apply_state(state)

        document = state.selection.document if state.selection else None
        if state.document_url and document is not None:
            self.pdf_viewer.show_document(state.document_url, document.name)
        elif self.pdf_viewer.current_url:
            # The blob behind the old URL has been released
            self.pdf_viewer.clear()

        if state.focus_page is not None and state.focus_page != self._focus_page:
            self.pdf_viewer.go_to_page(state.focus_page)
        self._focus_page = state.focus_page

        if state.last_cluster is not None:
            self.cluster_label.setText(f"Cluster: {state.last_cluster.id}")

    def _on_outcome(self, name: str, outcome: Outcome) -> None:
        if not isinstance(outcome, Outcome) or outcome.stale:
            return
        if outcome.ok:
            if name == "upload":
                self.show_status("Upload complete.")
            elif name == "generate_podcast":
                self.show_status("Podcast ready.")
            return

        logger.info(f"{name}: {outcome.message}")
        if name == "upload" and isinstance(outcome.error, TransportError):
            QMessageBox.warning(self, "Upload failed", outcome.message)
        else:
            self.show_status(outcome.message, 6000)

    def show_status(self, message: str, timeout: int = 3000) -> None:
        self.status_bar.showMessage(message, timeout)

    def closeEvent(self, event) -> None:
        """Stop the controller loop (releasing cached blobs) before exiting."""
        self.worker.stop()
        settings.save()
        logger.info("Application closed.")
        super().closeEvent(event)
