"""
DocInsight - Insight Sidebar
Right-side panel showing what the controller derived from the selected text:
  - The selected passage
  - Relevant snippets from other documents (click to open)
  - Contradictions and alternate viewpoints
  - Podcast generation and playback
"""

import logging
from typing import Optional

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLabel, QScrollArea,
)
from PyQt6.QtCore import Qt, QUrl, pyqtSignal
from PyQt6.QtMultimedia import QMediaPlayer, QAudioOutput

from core.controller import WorkflowState
from core.models import Insight, SearchResult, SelectionStatus, Snippet
from ui.components import InsightCard, SectionHeader, Separator

logger = logging.getLogger(__name__)


class InsightSidebar(QWidget):
    """Snippets, insights and podcast controls for the current selection."""

    snippet_opened = pyqtSignal(object)    # Snippet
    podcast_requested = pyqtSignal()

    def __init__(self, parent: QWidget = None) -> None:
        super().__init__(parent)
        self.setMinimumWidth(320)
        self.setMaximumWidth(520)
        self._rendered_key: Optional[tuple] = None
        self._audio_source = ""

        self._init_ui()
        self._init_player()

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        header = QLabel("🔗 Connecting the Dots")
        header.setStyleSheet(
            "color: #F28B82; font-size: 14px; font-weight: bold; padding: 10px 12px;"
            "background-color: #252526; border-bottom: 1px solid #3C3C3C;"
        )
        layout.addWidget(header)

        self.scroll_area = QScrollArea()
        self.scroll_area.setWidgetResizable(True)
        self.scroll_area.setStyleSheet("QScrollArea { border: none; background: #1E1E1E; }")

        self.content = QWidget()
        self.content_layout = QVBoxLayout(self.content)
        self.content_layout.setAlignment(Qt.AlignmentFlag.AlignTop)
        self.content_layout.setContentsMargins(8, 8, 8, 8)
        self.content_layout.setSpacing(6)
        self.scroll_area.setWidget(self.content)
        layout.addWidget(self.scroll_area, stretch=1)

        # Podcast controls pinned at the bottom
        podcast_panel = QWidget()
        podcast_panel.setStyleSheet("background-color: #252526; border-top: 1px solid #3C3C3C;")
        podcast_layout = QVBoxLayout(podcast_panel)
        podcast_layout.setContentsMargins(8, 8, 8, 8)

        podcast_layout.addWidget(SectionHeader("🎙️ PODCAST MODE"))
        self.podcast_label = QLabel(
            "Generate an AI podcast from your selected text and related snippets."
        )
        self.podcast_label.setWordWrap(True)
        self.podcast_label.setStyleSheet("color: #808080; font-size: 12px;")
        podcast_layout.addWidget(self.podcast_label)

        row = QHBoxLayout()
        self.btn_generate = QPushButton("Generate")
        self.btn_generate.clicked.connect(self.podcast_requested.emit)
        row.addWidget(self.btn_generate)
        self.btn_play = QPushButton("▶ Play")
        self.btn_play.clicked.connect(self._toggle_playback)
        row.addWidget(self.btn_play)
        row.addStretch()
        podcast_layout.addLayout(row)

        layout.addWidget(podcast_panel)
        self._show_placeholder("No text selected. Select a passage in the document to find related snippets.")

    def _init_player(self) -> None:
        self.audio_output = QAudioOutput(self)
        self.player = QMediaPlayer(self)
        self.player.setAudioOutput(self.audio_output)
        self.player.playbackStateChanged.connect(self._on_playback_state)

    # ---- Rendering ----

    def apply_state(self, state: WorkflowState) -> None:
        """Redraw from a controller snapshot; an unchanged selection and result set is skipped."""
        self._render_podcast(state)
        key = (state.generation, state.status, state.search)
        if key == self._rendered_key:
            return
        self._rendered_key = key

        self._clear_content()
        text = state.selection.text if state.selection else ""
        if not text:
            self._show_placeholder("No text selected. Select a passage in the document to find related snippets.")
            return

        self._add_widget(SectionHeader("⭐ SELECTED TEXT"))
        quote = QLabel(f"“{text}”")
        quote.setWordWrap(True)
        quote.setStyleSheet(
            "color: #D4D4D4; font-style: italic; border-left: 3px solid #C5283D; padding-left: 8px;"
        )
        self._add_widget(quote)

        if state.status == SelectionStatus.SEARCH_IN_FLIGHT:
            self._show_placeholder("🔄 Searching across your documents...")
        elif state.status == SelectionStatus.SEARCH_FAILED:
            self._show_placeholder(f"Search failed: {state.last_error}")
        elif state.search is not None:
            self._render_results(state.search)

    def _render_results(self, result: SearchResult) -> None:
        self._add_widget(SectionHeader(f"🔍 RELEVANT SNIPPETS ({len(result.snippets)})"))
        if not result.snippets:
            self._show_placeholder("No relevant snippets found for your selection.")
        for snippet in result.snippets:
            self._add_widget(self._snippet_card(snippet))

        self._add_widget(Separator())
        if not result.contradictions and not result.alternate_viewpoints:
            self._show_placeholder("No contradictions or alternative viewpoints found for the selected text.")
            return
        if result.contradictions:
            self._add_widget(SectionHeader("⚡ CONTRADICTORY VIEWPOINTS"))
            for insight in result.contradictions:
                self._add_widget(self._insight_card(insight))
        if result.alternate_viewpoints:
            self._add_widget(SectionHeader("💡 ALTERNATIVE PERSPECTIVES"))
            for insight in result.alternate_viewpoints:
                self._add_widget(self._insight_card(insight))

    def _snippet_card(self, snippet: Snippet) -> InsightCard:
        card = InsightCard(
            snippet.section_title or "Untitled section",
            f"“{snippet.text}”",
            subtitle=f"Page {snippet.page_number} • Relevance: {snippet.relevance_percent}%",
            clickable=True,
        )
        card.clicked.connect(lambda s=snippet: self.snippet_opened.emit(s))
        return card

    @staticmethod
    def _insight_card(insight: Insight) -> InsightCard:
        return InsightCard(insight.keyword, insight.text)

    def _render_podcast(self, state: WorkflowState) -> None:
        has_text = bool(state.selection and state.selection.text)
        job = state.podcast
        in_flight = state.status == SelectionStatus.PODCAST_IN_FLIGHT

        self.btn_generate.setEnabled(has_text and not in_flight)
        self.btn_generate.setText("Generating..." if in_flight else "Generate")

        audio_path = str(job.audio.path) if job is not None and job.audio is not None else ""
        if audio_path != self._audio_source:
            self._set_audio_source(audio_path)
        self.btn_play.setEnabled(bool(audio_path))

        if state.status == SelectionStatus.PODCAST_FAILED and job is not None:
            self.podcast_label.setText(f"Podcast generation failed: {job.error}")
        elif in_flight:
            self.podcast_label.setText("Generating your podcast. This can take a minute...")
        elif audio_path:
            self.podcast_label.setText("Your podcast is ready.")
        else:
            self.podcast_label.setText(
                "Generate an AI podcast from your selected text and related snippets."
            )

    # ---- Audio ----

    def _set_audio_source(self, path: str) -> None:
        # The previous file may already be released; drop it before anything else
        self.player.stop()
        self._audio_source = path
        if path:
            self.player.setSource(QUrl.fromLocalFile(path))
        else:
            self.player.setSource(QUrl())

    def _toggle_playback(self) -> None:
        if self.player.playbackState() == QMediaPlayer.PlaybackState.PlayingState:
            self.player.pause()
        else:
            self.player.play()

    def _on_playback_state(self, playback_state) -> None:
        playing = playback_state == QMediaPlayer.PlaybackState.PlayingState
        self.btn_play.setText("⏸ Pause" if playing else "▶ Play")

    # ---- Layout Helpers ----

    def _add_widget(self, widget: QWidget) -> None:
        self.content_layout.addWidget(widget)

    def _show_placeholder(self, text: str) -> None:
        label = QLabel(text)
        label.setWordWrap(True)
        label.setStyleSheet("color: #808080; font-size: 12px; padding: 8px;")
        self._add_widget(label)

    def _clear_content(self) -> None:
        while self.content_layout.count():
            child = self.content_layout.takeAt(0)
            if child.widget():
                child.widget().deleteLater()
