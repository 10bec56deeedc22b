"""Side panel listing classes and annotations."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QColor, QIcon, QPixmap
from PyQt6.QtWidgets import (
    QAbstractItemView, QCheckBox, QHBoxLayout, QLabel, QListWidget,
    QListWidgetItem, QPushButton, QSlider, QVBoxLayout, QWidget
)

from ..core.constants import CLASSES, get_class_color, get_class_name
from ..core.models import Annotation
from ..core.store import AnnotationStore

logger = logging.getLogger(__name__)


def _color_icon(color: str, size: int = 12) -> QIcon:
    pixmap = QPixmap(size, size)
    pixmap.fill(QColor(color))
    return QIcon(pixmap)


def describe_annotation(index: int, annotation: Annotation) -> str:
    """List entry text for an annotation."""
    x, y, w, h = annotation.bbox
    return (
        f"#{index + 1} {get_class_name(annotation.class_id)} "
        f"({round(x)}, {round(y)}) {round(w)}x{round(h)}"
    )


class AnnotationListPanel(QWidget):
    """
    Class legend, display controls and the annotation list.

    The panel only reads from and writes to the store; the list is
    rebuilt whenever the store reports a change.
    """

    def __init__(self, store: AnnotationStore, parent: Optional[QWidget] = None) -> None:
        """
        Initialize the panel.

        Args:
            store: Store to display and edit
            parent: Parent widget
        """
        super().__init__(parent)
        self.store = store
        self._updating = False  # Flag to prevent selection feedback loops
        self.class_checkboxes: Dict[int, QCheckBox] = {}
        self._init_ui()

        store.annotations_changed.connect(self.refresh)
        store.selection_changed.connect(self._sync_selection)
        store.display_changed.connect(self._sync_display)
        store.active_class_changed.connect(lambda _: self._sync_classes())
        self.refresh()

    def _init_ui(self) -> None:
        """Initialize the user interface."""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        # Classes
        layout.addWidget(QLabel("Classes"))
        for cls in CLASSES:
            checkbox = QCheckBox()
            checkbox.setIcon(_color_icon(cls.color))
            checkbox.setChecked(True)
            checkbox.setToolTip(f"Show or hide {cls.name} boxes (shortcut {cls.shortcut} selects)")
            checkbox.toggled.connect(lambda _, cid=cls.id: self._on_class_toggled(cid))
            layout.addWidget(checkbox)
            self.class_checkboxes[cls.id] = checkbox

        self.toggle_all_button = QPushButton("Show/hide all")
        self.toggle_all_button.clicked.connect(self.store.toggle_all_class_visibility)
        layout.addWidget(self.toggle_all_button)

        # Display
        opacity_row = QHBoxLayout()
        opacity_row.addWidget(QLabel("Opacity"))
        self.opacity_slider = QSlider(Qt.Orientation.Horizontal)
        self.opacity_slider.setRange(0, 100)
        self.opacity_slider.setValue(round(self.store.box_opacity * 100))
        self.opacity_slider.valueChanged.connect(self._on_opacity_changed)
        opacity_row.addWidget(self.opacity_slider)
        layout.addLayout(opacity_row)

        self.labels_checkbox = QCheckBox("Show labels")
        self.labels_checkbox.setChecked(self.store.show_labels)
        self.labels_checkbox.toggled.connect(self.store.set_show_labels)
        layout.addWidget(self.labels_checkbox)

        # Annotations
        self.count_label = QLabel()
        layout.addWidget(self.count_label)

        self.annotation_list = QListWidget()
        self.annotation_list.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.annotation_list.itemSelectionChanged.connect(self._on_list_selection)
        layout.addWidget(self.annotation_list)

        buttons = QHBoxLayout()
        self.delete_button = QPushButton("Delete")
        self.delete_button.clicked.connect(self._delete_selected)
        buttons.addWidget(self.delete_button)

        self.clear_button = QPushButton("Clear all")
        self.clear_button.clicked.connect(self.store.clear_all)
        buttons.addWidget(self.clear_button)
        layout.addLayout(buttons)

    # === Store -> widgets ===

    def refresh(self) -> None:
        """Rebuild the annotation list from the store."""
        self._updating = True
        try:
            self.annotation_list.clear()
            for index, annotation in enumerate(self.store.annotations):
                item = QListWidgetItem(describe_annotation(index, annotation))
                item.setIcon(_color_icon(get_class_color(annotation.class_id)))
                item.setData(Qt.ItemDataRole.UserRole, annotation.id)
                if not self.store.is_class_visible(annotation.class_id):
                    item.setForeground(QColor("#9CA3AF"))
                self.annotation_list.addItem(item)
                if annotation.id == self.store.selected_id:
                    item.setSelected(True)
        finally:
            self._updating = False

        self.count_label.setText(f"Annotations ({len(self.store.annotations)})")
        self.clear_button.setEnabled(bool(self.store.annotations))
        self.delete_button.setEnabled(self.store.selected_id is not None)
        self._sync_classes()

    def _sync_classes(self) -> None:
        counts = self.store.class_counts()
        for class_id, checkbox in self.class_checkboxes.items():
            marker = " *" if class_id == self.store.active_class_id else ""
            checkbox.setText(f"{get_class_name(class_id)} ({counts.get(class_id, 0)}){marker}")

    def _sync_selection(self, annotation_id: Optional[str]) -> None:
        self._updating = True
        try:
            for row in range(self.annotation_list.count()):
                item = self.annotation_list.item(row)
                selected = item.data(Qt.ItemDataRole.UserRole) == annotation_id
                item.setSelected(selected)
                if selected:
                    self.annotation_list.scrollToItem(item)
        finally:
            self._updating = False
        self.delete_button.setEnabled(annotation_id is not None)

    def _sync_display(self) -> None:
        self._updating = True
        try:
            for class_id, checkbox in self.class_checkboxes.items():
                checkbox.setChecked(self.store.is_class_visible(class_id))
            self.opacity_slider.setValue(round(self.store.box_opacity * 100))
            self.labels_checkbox.setChecked(self.store.show_labels)
        finally:
            self._updating = False
        self.refresh()

    # === Widgets -> store ===

    def _on_class_toggled(self, class_id: int) -> None:
        if self._updating:
            return
        if self.class_checkboxes[class_id].isChecked() != self.store.is_class_visible(class_id):
            self.store.toggle_class_visibility(class_id)

    def _on_opacity_changed(self, value: int) -> None:
        if not self._updating:
            self.store.set_opacity(value / 100)

    def _on_list_selection(self) -> None:
        if self._updating:
            return
        items = self.annotation_list.selectedItems()
        annotation_id = items[0].data(Qt.ItemDataRole.UserRole) if items else None
        self.store.set_selected(annotation_id)

    def _delete_selected(self) -> None:
        if self.store.selected_id is not None:
            self.store.delete_annotation(self.store.selected_id)
