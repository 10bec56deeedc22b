"""Keyboard shortcut reference dialog."""

from __future__ import annotations

import logging
from typing import List, Tuple

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QLabel,
    QVBoxLayout,
)

from ..core.constants import CLASSES

logger = logging.getLogger(__name__)


def shortcut_rows() -> List[Tuple[str, str]]:
    """(keys, description) pairs shown in the help dialog."""
    rows = [
        ("D", "Draw mode"),
        ("V", "Select mode"),
    ]
    rows.extend((cls.shortcut, f"Active class: {cls.name}") for cls in CLASSES)
    rows.extend([
        ("Delete / Backspace", "Delete selected box"),
        ("Ctrl+Z", "Undo"),
        ("Escape", "Cancel drawing or dragging, or deselect"),
        ("+ / =", "Zoom in"),
        ("-", "Zoom out"),
        ("0", "Fit image to window"),
        ("L", "Toggle labels"),
        ("Ctrl+S", "Save JSON"),
        ("Space + drag", "Pan"),
        ("Middle drag", "Pan"),
        ("Wheel / Shift+Wheel", "Pan vertically / horizontally"),
        ("Ctrl+Wheel", "Zoom around cursor"),
        ("?", "Show this help"),
    ])
    return rows


class HelpDialog(QDialog):
    """Modeless dialog listing the keyboard and mouse shortcuts."""

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self._init_ui()

    def _init_ui(self) -> None:
        """Initialize the dialog UI."""
        self.setWindowTitle("Keyboard Shortcuts")
        self.setMinimumWidth(380)

        layout = QVBoxLayout()
        layout.setSpacing(12)

        rows = "".join(
            f"<tr><td><b>{keys}</b></td><td>&nbsp;&nbsp;{description}</td></tr>"
            for keys, description in shortcut_rows()
        )
        table = QLabel(f"<table>{rows}</table>")
        table.setTextFormat(Qt.TextFormat.RichText)
        layout.addWidget(table)

        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Close)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

        self.setLayout(layout)
