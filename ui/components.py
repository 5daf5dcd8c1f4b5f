"""
DocInsight - Reusable UI Components
Shared widgets: SectionHeader, Separator, FilterBar, InsightCard, and the global theme.
"""

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel,
    QLineEdit, QFrame,
)
from PyQt6.QtCore import Qt, pyqtSignal


class FilterBar(QWidget):
    """A filename filter with a match counter; Esc or the clear button resets it."""
    textChanged = pyqtSignal(str)

    def __init__(self, placeholder: str = "Filter...", parent: QWidget = None) -> None:
        super().__init__(parent)
        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)

        self.input = QLineEdit()
        self.input.setPlaceholderText(placeholder)
        self.input.setClearButtonEnabled(True)
        self.input.setStyleSheet(
            "QLineEdit { border: 1px solid #3C3C3C; border-radius: 6px; padding: 5px 8px;"
            " background: #1E1E1E; color: #CCCCCC; font-size: 12px; }"
            "QLineEdit:focus { border-color: #C5283D; }"
        )
        self.input.textChanged.connect(self.textChanged.emit)
        layout.addWidget(self.input, stretch=1)

        self.count_label = QLabel("")
        self.count_label.setStyleSheet("color: #808080; font-size: 11px;")
        layout.addWidget(self.count_label)

    def text(self) -> str:
        return self.input.text()

    def set_counts(self, shown: int, total: int) -> None:
        """Show 'shown/total' while a filter is active."""
        self.count_label.setText(f"{shown}/{total}" if self.text().strip() else "")

    def keyPressEvent(self, event) -> None:
        if event.key() == Qt.Key.Key_Escape:
            self.input.clear()
            return
        super().keyPressEvent(event)


class Separator(QFrame):
    """A horizontal line separator."""

    def __init__(self, parent: QWidget = None) -> None:
        super().__init__(parent)
        self.setFrameShape(QFrame.Shape.HLine)
        self.setStyleSheet("color: #3C3C3C;")
        self.setFixedHeight(1)


class SectionHeader(QLabel):
    """A styled section header label."""

    def __init__(self, text: str, parent: QWidget = None) -> None:
        super().__init__(text, parent)
        self.setStyleSheet("""
            QLabel {
                color: #F28B82;
                font-size: 11px;
                font-weight: bold;
                padding: 8px 12px 4px 12px;
                letter-spacing: 1px;
            }
        """)


class InsightCard(QFrame):
    """A card showing a heading line and a wrapped body, optionally clickable."""
    clicked = pyqtSignal()

    def __init__(self, title: str, body: str, subtitle: str = "",
                 clickable: bool = False, parent: QWidget = None) -> None:
        super().__init__(parent)
        self.setFrameShape(QFrame.Shape.StyledPanel)
        self._clickable = clickable
        if clickable:
            self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setStyleSheet("""
            QFrame {
                background-color: #2D2D2D;
                border-radius: 8px;
                border: none;
                margin: 2px;
            }
            QFrame:hover { background-color: #333337; }
        """)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(10, 6, 10, 6)

        title_label = QLabel(title)
        title_label.setWordWrap(True)
        title_label.setStyleSheet("color: #F28B82; font-size: 12px; font-weight: bold;")
        layout.addWidget(title_label)

        if subtitle:
            sub_label = QLabel(subtitle)
            sub_label.setStyleSheet("color: #808080; font-size: 11px;")
            layout.addWidget(sub_label)

        body_label = QLabel(body)
        body_label.setWordWrap(True)
        body_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        body_label.setStyleSheet("color: #D4D4D4; font-size: 13px; padding: 2px;")
        layout.addWidget(body_label)

    def mouseReleaseEvent(self, event) -> None:
        if self._clickable and event.button() == Qt.MouseButton.LeftButton:
            self.clicked.emit()
        super().mouseReleaseEvent(event)


GLOBAL_STYLESHEET = """
    QMainWindow, QWidget {
        background-color: #1E1E1E;
        color: #D4D4D4;
        font-family: "Segoe UI", "Helvetica Neue", sans-serif;
    }
    QSplitter::handle {
        background-color: #3C3C3C;
        width: 1px;
    }
    QListWidget {
        background-color: #1E1E1E;
        border: 1px solid #3C3C3C;
        color: #D4D4D4;
        font-size: 13px;
    }
    QListWidget::item {
        padding: 6px 10px;
        border-radius: 4px;
    }
    QListWidget::item:selected {
        background-color: #5C1F28;
        color: #FFFFFF;
    }
    QListWidget::item:hover {
        background-color: #2A2D2E;
    }
    QPushButton {
        background-color: #C5283D;
        color: #FFFFFF;
        border: none;
        border-radius: 4px;
        padding: 6px 16px;
        font-size: 13px;
    }
    QPushButton:hover { background-color: #D8434F; }
    QPushButton:pressed { background-color: #8E1C2C; }
    QPushButton:disabled { background-color: #3C3C3C; color: #6C6C6C; }
    QComboBox {
        background: #3C3C3C; color: #D4D4D4; border: 1px solid #555;
        border-radius: 4px; padding: 4px 8px; font-size: 12px;
    }
    QStatusBar {
        background-color: #C5283D;
        color: #FFFFFF;
        font-size: 12px;
    }
    QScrollBar:vertical {
        background: #1E1E1E; width: 10px; margin: 0;
    }
    QScrollBar::handle:vertical {
        background: #424242; min-height: 30px; border-radius: 5px;
    }
    QScrollBar::handle:vertical:hover { background: #4F4F4F; }
    QScrollBar::add-line:vertical, QScrollBar::sub-line:vertical { height: 0; }
"""
