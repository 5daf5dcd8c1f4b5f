"""
DocInsight - Library View
Left-hand panel: upload staging area, cluster filter, and the document library.
Renders WorkflowState snapshots and forwards user intents as signals.
"""

import logging
from typing import List, Optional

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QListWidget, QListWidgetItem,
    QPushButton, QLabel, QFileDialog, QComboBox,
)
from PyQt6.QtCore import Qt, pyqtSignal

from core.controller import WorkflowState
from core.models import Document, StagedFile, UploadStatus
from ui.components import FilterBar, SectionHeader, Separator

logger = logging.getLogger(__name__)

_ALL_CLUSTERS = "All clusters"


class LibraryView(QWidget):
    """Upload batch + document library panel."""

    files_picked = pyqtSignal(list)            # List[str] of local paths
    staged_removed = pyqtSignal(object)        # StagedFile
    staged_chosen = pyqtSignal(object)         # StagedFile
    upload_requested = pyqtSignal()
    document_chosen = pyqtSignal(object)       # Document
    cluster_chosen = pyqtSignal(object)        # Optional[str]

    def __init__(self, parent: QWidget = None) -> None:
        super().__init__(parent)
        self.setMinimumWidth(260)
        self.setMaximumWidth(360)
        self._documents: List[Document] = []
        self._active_id: Optional[str] = None

        self._init_ui()

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(6)

        # --- Upload Staging ---
        layout.addWidget(SectionHeader("UPLOAD DOCUMENTS"))

        self.btn_pick = QPushButton("📄 Add PDFs...")
        self.btn_pick.clicked.connect(self._pick_files)
        layout.addWidget(self.btn_pick)

        self.staged_list = QListWidget()
        self.staged_list.setMaximumHeight(140)
        self.staged_list.itemClicked.connect(self._on_staged_clicked)
        layout.addWidget(self.staged_list)

        row = QHBoxLayout()
        self.btn_remove = QPushButton("Remove")
        self.btn_remove.clicked.connect(self._remove_selected_staged)
        row.addWidget(self.btn_remove)
        self.btn_upload = QPushButton("⬆ Upload Cluster")
        self.btn_upload.clicked.connect(self.upload_requested.emit)
        row.addWidget(self.btn_upload)
        layout.addLayout(row)

        self.upload_label = QLabel("")
        self.upload_label.setWordWrap(True)
        self.upload_label.setStyleSheet("color: #808080; font-size: 11px;")
        layout.addWidget(self.upload_label)

        layout.addWidget(Separator())

        # --- Document Library ---
        layout.addWidget(SectionHeader("DOCUMENT LIBRARY"))

        self.cluster_selector = QComboBox()
        self.cluster_selector.addItem(_ALL_CLUSTERS, None)
        self.cluster_selector.activated.connect(self._on_cluster_activated)
        layout.addWidget(self.cluster_selector)

        self.filter_bar = FilterBar("Filter by filename...")
        self.filter_bar.textChanged.connect(lambda _: self._fill_documents())
        layout.addWidget(self.filter_bar)

        self.document_list = QListWidget()
        self.document_list.itemClicked.connect(self._on_document_clicked)
        layout.addWidget(self.document_list, stretch=1)

        self.library_label = QLabel("No documents uploaded")
        self.library_label.setStyleSheet("color: #808080; font-size: 11px;")
        layout.addWidget(self.library_label)

    # ---- Intents ----

    def _pick_files(self) -> None:
        paths, _ = QFileDialog.getOpenFileNames(self, "Select PDFs", "", "PDF Files (*.pdf)")
        if paths:
            self.files_picked.emit(paths)

    def _on_staged_clicked(self, item: QListWidgetItem) -> None:
        self.staged_chosen.emit(item.data(Qt.ItemDataRole.UserRole))

    def _remove_selected_staged(self) -> None:
        item = self.staged_list.currentItem()
        if item is not None:
            self.staged_removed.emit(item.data(Qt.ItemDataRole.UserRole))

    def _on_document_clicked(self, item: QListWidgetItem) -> None:
        self.document_chosen.emit(item.data(Qt.ItemDataRole.UserRole))

    def _on_cluster_activated(self, index: int) -> None:
        self.cluster_chosen.emit(self.cluster_selector.itemData(index))

    # ---- Rendering ----

    def apply_state(self, state: WorkflowState) -> None:
        """Redraw from a controller snapshot."""
        active = state.selection.document if state.selection else None

        self.staged_list.clear()
        for staged in state.staged:
            item = QListWidgetItem(f"📄 {staged.name}")
            item.setData(Qt.ItemDataRole.UserRole, staged)
            self.staged_list.addItem(item)
            if isinstance(active, StagedFile) and active == staged:
                item.setSelected(True)

        uploading = state.upload_status == UploadStatus.UPLOADING
        self.btn_upload.setEnabled(bool(state.staged) and not uploading)
        self.btn_remove.setEnabled(bool(state.staged) and not uploading)
        self.upload_label.setText(self._upload_text(state))

        self._documents = list(state.documents)
        self._active_id = active.id if isinstance(active, Document) else None
        self._sync_clusters(state)
        self._fill_documents()

        if state.library_loading:
            self.library_label.setText("Loading library...")
        elif not state.documents:
            self.library_label.setText("No documents uploaded")
        else:
            self.library_label.setText(f"{len(state.documents)} document(s)")

    @staticmethod
    def _upload_text(state: WorkflowState) -> str:
        if state.upload_status == UploadStatus.UPLOADING:
            return "Uploading..."
        if state.upload_status == UploadStatus.UPLOAD_FAILED:
            return "Upload failed. Your files are still staged; try again."
        if state.upload_status == UploadStatus.DOCUMENTS_READY and state.last_cluster:
            cluster = state.last_cluster
            return f"Cluster {cluster.id}: {cluster.processed_files_count} file(s) processed."
        if not state.staged:
            return "Upload multiple PDFs to analyze connections"
        return f"{len(state.staged)} file(s) ready to upload"

    def _sync_clusters(self, state: WorkflowState) -> None:
        known = {self.cluster_selector.itemData(i) for i in range(self.cluster_selector.count())}
        cluster_ids = [d.cluster_id for d in state.documents if d.cluster_id]
        if state.last_cluster is not None:
            cluster_ids.append(state.last_cluster.id)
        for cluster_id in cluster_ids:
            if cluster_id not in known:
                self.cluster_selector.addItem(f"Cluster: {cluster_id}", cluster_id)
                known.add(cluster_id)

        if state.cluster_filter is None:
            self.cluster_selector.setCurrentIndex(0)
            return
        index = self.cluster_selector.findData(state.cluster_filter)
        if index >= 0:
            self.cluster_selector.setCurrentIndex(index)

    def _fill_documents(self) -> None:
        keyword = self.filter_bar.text().strip().lower()

        self.document_list.clear()
        for doc in self._documents:
            if keyword and keyword not in doc.filename.lower():
                continue
            label = f"📑 {doc.filename}  ·  {doc.total_sections} sections"
            item = QListWidgetItem(label)
            item.setData(Qt.ItemDataRole.UserRole, doc)
            self.document_list.addItem(item)
            if doc.id == self._active_id:
                item.setSelected(True)
        self.filter_bar.set_counts(self.document_list.count(), len(self._documents))
