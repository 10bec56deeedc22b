"""Main application window for Mothra Annotator."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from PyQt6.QtCore import Qt, QSize
from PyQt6.QtGui import QAction, QActionGroup, QImageReader, QKeySequence
from PyQt6.QtWidgets import (
    QDockWidget, QFileDialog, QLabel, QMainWindow, QMessageBox,
    QStatusBar, QToolBar
)

from ..core.config import AppConfig, ConfigManager
from ..core.constants import CLASSES
from ..core.errors import AnnotatorError, DimensionMismatchError, MalformedRecordError
from ..core.image_loader import IMAGE_FILE_FILTER, is_supported, load_image
from ..core.models import EditMode, Session
from ..core.persistence import SessionAutosaver, SessionStorage
from ..core.session_io import (
    check_dimensions, export_file_names, import_json, parse_yolo,
    write_json, write_yolo, write_zip
)
from ..core.store import AnnotationStore
from .annotation_list import AnnotationListPanel
from .canvas import AnnotationCanvas
from .help_dialog import HelpDialog

logger = logging.getLogger(__name__)


def increase_image_allocation_limit() -> None:
    """Remove image allocation limit for large images."""
    QImageReader.setAllocationLimit(0)


class MainWindow(QMainWindow):
    """
    Main application window for Mothra Annotator.

    Wires one AnnotationStore to the canvas, the side panel, the session
    storage and the file actions:
    - Image loading with per-image session restore
    - JSON, YOLO and zip export
    - JSON and YOLO import
    - Zoom, label and help actions
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None) -> None:
        """
        Initialize the main window.

        Args:
            config_manager: Configuration manager; a default one is created if omitted
        """
        super().__init__()

        # Remove image allocation limit
        increase_image_allocation_limit()

        # Initialize managers
        self.config_manager = config_manager or ConfigManager()
        self.store = AnnotationStore(max_history=self.config.max_history_entries)
        self.storage = SessionStorage(self.config.session_directory or None)
        self.autosaver = SessionAutosaver(self.store, self.storage, parent=self)

        # State
        self.current_image_path: Optional[Path] = None

        # UI elements (initialized in _init_ui)
        self.canvas: Optional[AnnotationCanvas] = None
        self.panel: Optional[AnnotationListPanel] = None
        self.help_dialog: Optional[HelpDialog] = None
        self.dock_widgets: Dict[str, QDockWidget] = {}
        self.mode_actions: Dict[EditMode, QAction] = {}
        self.class_actions: Dict[int, QAction] = {}

        # Status bar elements
        self.status_bar: Optional[QStatusBar] = None
        self.file_label: Optional[QLabel] = None
        self.mode_label: Optional[QLabel] = None
        self.zoom_label: Optional[QLabel] = None
        self.cursor_label: Optional[QLabel] = None

        self._load_settings()
        self._init_ui()
        self._setup_connections()
        self._update_actions()

        logger.info("MainWindow initialization complete")

    @property
    def config(self) -> AppConfig:
        """Get the current configuration."""
        return self.config_manager.config

    def _load_settings(self) -> None:
        """Apply configuration to the store and autosaver."""
        config = self.config
        self.store.set_opacity(config.box_opacity)
        self.store.set_show_labels(config.show_labels)
        self.autosaver.enabled = config.autosave

    def _init_ui(self) -> None:
        """Initialize the user interface."""
        self.setWindowTitle("Mothra Annotator")
        self.setGeometry(100, 100, 1280, 820)
        self.setAcceptDrops(True)

        self.canvas = AnnotationCanvas(self.store)
        self.canvas.line_thickness = self.config.line_thickness
        self.canvas.font_size = self.config.font_size
        self.setCentralWidget(self.canvas)

        self._create_status_bar()
        self._create_dock_widgets()
        self._create_actions()
        self._create_toolbar()
        self._create_menus()

    def _create_status_bar(self) -> None:
        """Create the status bar."""
        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)

        self.file_label = QLabel("No image")
        self.status_bar.addPermanentWidget(self.file_label)

        self.mode_label = QLabel()
        self.status_bar.addPermanentWidget(self.mode_label)

        self.zoom_label = QLabel()
        self.status_bar.addPermanentWidget(self.zoom_label)

        self.cursor_label = QLabel()
        self.status_bar.addPermanentWidget(self.cursor_label)

    def _create_dock_widgets(self) -> None:
        """Create all dock widgets."""
        self.panel = AnnotationListPanel(self.store)

        self.dock_widgets["Annotations"] = QDockWidget("Annotations", self)
        self.dock_widgets["Annotations"].setObjectName("AnnotationsDock")
        self.dock_widgets["Annotations"].setAllowedAreas(
            Qt.DockWidgetArea.LeftDockWidgetArea | Qt.DockWidgetArea.RightDockWidgetArea
        )
        self.dock_widgets["Annotations"].setWidget(self.panel)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, self.dock_widgets["Annotations"])

    def _create_actions(self) -> None:
        """Create actions shared by the toolbar and the menus."""
        self.open_action = QAction("Open Image...", self)
        self.open_action.setShortcut(QKeySequence.StandardKey.Open)
        self.open_action.triggered.connect(self._open_image)

        self.save_json_action = QAction("Save JSON", self)
        self.save_json_action.setShortcut("Ctrl+S")
        self.save_json_action.triggered.connect(self._quick_save_json)

        self.export_json_action = QAction("Export JSON...", self)
        self.export_json_action.triggered.connect(self._export_json)

        self.export_yolo_action = QAction("Export YOLO...", self)
        self.export_yolo_action.triggered.connect(self._export_yolo)

        self.export_zip_action = QAction("Export JSON + YOLO (zip)...", self)
        self.export_zip_action.triggered.connect(self._export_zip)

        self.import_json_action = QAction("Import JSON...", self)
        self.import_json_action.triggered.connect(self._import_json)

        self.import_yolo_action = QAction("Import YOLO...", self)
        self.import_yolo_action.triggered.connect(self._import_yolo)

        self.clear_session_action = QAction("Clear Stored Session", self)
        self.clear_session_action.triggered.connect(self._clear_stored_session)

        # Ctrl+Z, Delete, Escape, 1-3, D and V are handled by the canvas controller
        self.undo_action = QAction("Undo", self)
        self.undo_action.setToolTip("Undo (Ctrl+Z)")
        self.undo_action.triggered.connect(self.canvas.controller.undo)

        self.delete_action = QAction("Delete Box", self)
        self.delete_action.setToolTip("Delete selected box (Delete)")
        self.delete_action.triggered.connect(self.canvas.controller.delete_selected)

        mode_group = QActionGroup(self)
        for mode, text, key in ((EditMode.DRAW, "Draw", "D"), (EditMode.SELECT, "Select", "V")):
            action = QAction(text, self)
            action.setCheckable(True)
            action.setToolTip(f"{text} mode ({key})")
            action.triggered.connect(lambda _, m=mode: self.canvas.controller.set_edit_mode(m))
            mode_group.addAction(action)
            self.mode_actions[mode] = action

        class_group = QActionGroup(self)
        for cls in CLASSES:
            action = QAction(cls.name, self)
            action.setCheckable(True)
            action.setToolTip(f"Draw {cls.name} boxes ({cls.shortcut})")
            action.triggered.connect(lambda _, cid=cls.id: self.store.set_active_class(cid))
            class_group.addAction(action)
            self.class_actions[cls.id] = action
        self.class_actions[self.store.active_class_id].setChecked(True)

        self.zoom_in_action = QAction("Zoom In", self)
        self.zoom_in_action.setShortcuts([QKeySequence("+"), QKeySequence("=")])
        self.zoom_in_action.triggered.connect(self.canvas.controller.zoom_in)

        self.zoom_out_action = QAction("Zoom Out", self)
        self.zoom_out_action.setShortcut("-")
        self.zoom_out_action.triggered.connect(self.canvas.controller.zoom_out)

        self.fit_action = QAction("Fit to Window", self)
        self.fit_action.setShortcut("0")
        self.fit_action.triggered.connect(self.canvas.controller.reset_view)

        self.labels_action = QAction("Show Labels", self)
        self.labels_action.setCheckable(True)
        self.labels_action.setChecked(self.store.show_labels)
        self.labels_action.setShortcut("L")
        self.labels_action.triggered.connect(self.store.toggle_labels)

        self.help_action = QAction("Keyboard Shortcuts", self)
        self.help_action.setShortcut("?")
        self.help_action.triggered.connect(self._toggle_help)

    def _create_toolbar(self) -> None:
        """Create the main toolbar."""
        self.toolbar = QToolBar()
        self.toolbar.setObjectName("MainToolBar")
        self.toolbar.setIconSize(QSize(24, 24))
        self.addToolBar(self.toolbar)

        self.toolbar.addAction(self.open_action)
        self.toolbar.addAction(self.save_json_action)
        self.toolbar.addSeparator()
        self.toolbar.addActions(list(self.mode_actions.values()))
        self.toolbar.addSeparator()
        self.toolbar.addActions(list(self.class_actions.values()))
        self.toolbar.addSeparator()
        self.toolbar.addAction(self.undo_action)
        self.toolbar.addAction(self.delete_action)
        self.toolbar.addSeparator()
        self.toolbar.addAction(self.zoom_out_action)
        self.toolbar.addAction(self.fit_action)
        self.toolbar.addAction(self.zoom_in_action)
        self.toolbar.addAction(self.labels_action)
        self.toolbar.addSeparator()
        self.toolbar.addAction(self.help_action)

    def _create_menus(self) -> None:
        """Create the menu bar."""
        menubar = self.menuBar()

        # File menu
        file_menu = menubar.addMenu("File")
        file_menu.addAction(self.open_action)

        self.recent_paths_menu = file_menu.addMenu("Recent Images")
        self._update_recent_paths_menu()

        file_menu.addSeparator()
        file_menu.addAction(self.save_json_action)
        file_menu.addAction(self.export_json_action)
        file_menu.addAction(self.export_yolo_action)
        file_menu.addAction(self.export_zip_action)
        file_menu.addSeparator()
        file_menu.addAction(self.import_json_action)
        file_menu.addAction(self.import_yolo_action)
        file_menu.addSeparator()
        file_menu.addAction(self.clear_session_action)
        file_menu.addSeparator()

        exit_action = QAction("Exit", self)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        # Edit menu
        edit_menu = menubar.addMenu("Edit")
        edit_menu.addAction(self.undo_action)
        edit_menu.addAction(self.delete_action)
        edit_menu.addSeparator()
        edit_menu.addActions(list(self.mode_actions.values()))
        edit_menu.addSeparator()
        edit_menu.addActions(list(self.class_actions.values()))

        # View menu
        view_menu = menubar.addMenu("View")
        view_menu.addAction(self.zoom_in_action)
        view_menu.addAction(self.zoom_out_action)
        view_menu.addAction(self.fit_action)
        view_menu.addAction(self.labels_action)
        view_menu.addSeparator()
        for name, dock in self.dock_widgets.items():
            view_menu.addAction(dock.toggleViewAction())

        # Help menu
        help_menu = menubar.addMenu("Help")
        help_menu.addAction(self.help_action)

        about_action = QAction("About", self)
        about_action.triggered.connect(self._show_about)
        help_menu.addAction(about_action)

    def _setup_connections(self) -> None:
        """Set up signal/slot connections."""
        controller = self.canvas.controller
        controller.edit_mode_changed.connect(lambda _: self._update_actions())
        self.canvas.zoom_changed.connect(self._update_zoom_label)

        self.store.undo_state_changed.connect(self._update_actions)
        self.store.selection_changed.connect(lambda _: self._update_actions())
        self.store.image_changed.connect(self._update_actions)
        self.store.active_class_changed.connect(self._on_active_class_changed)
        self.store.display_changed.connect(
            lambda: self.labels_action.setChecked(self.store.show_labels)
        )
        self.store.cursor_changed.connect(self._update_cursor_label)

    # === UI state ===

    def _update_actions(self) -> None:
        """Enable or disable actions from the current state."""
        has_image = self.store.has_image
        for action in (
            self.save_json_action, self.export_json_action, self.export_yolo_action,
            self.export_zip_action, self.import_json_action, self.import_yolo_action,
            self.clear_session_action, self.zoom_in_action, self.zoom_out_action,
            self.fit_action,
        ):
            action.setEnabled(has_image)
        for action in self.mode_actions.values():
            action.setEnabled(has_image)

        self.undo_action.setEnabled(self.store.can_undo())
        self.delete_action.setEnabled(self.store.selected_id is not None)

        mode = self.canvas.controller.edit_mode
        if mode in self.mode_actions:
            self.mode_actions[mode].setChecked(True)
        self.mode_label.setText(f"Mode: {mode.value}")

    def _on_active_class_changed(self, class_id: int) -> None:
        if class_id in self.class_actions:
            self.class_actions[class_id].setChecked(True)

    def _update_zoom_label(self, zoom: float) -> None:
        self.zoom_label.setText(f"{round(zoom * 100)}%")

    def _update_cursor_label(self, coords: Optional[tuple]) -> None:
        self.cursor_label.setText("" if coords is None else f"x: {coords[0]}  y: {coords[1]}")

    def _show_status_message(self, message: str) -> None:
        """Show a status bar message."""
        self.status_bar.showMessage(message, 5000)

    # === Image loading ===

    def _open_image(self) -> None:
        """Ask for an image file and load it."""
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Open Image", self.config.default_directory, IMAGE_FILE_FILTER
        )
        if file_path:
            self.open_image_path(file_path)

    def open_image_path(self, path: str) -> bool:
        """
        Load an image and restore its stored session, if any.

        Returns:
            True if the image was loaded
        """
        # Finish writing the previous image's session first
        self.autosaver.flush()

        try:
            loaded = load_image(path)
        except AnnotatorError as e:
            logger.error(f"Failed to load image {path}: {e}")
            QMessageBox.warning(self, "Error", f"Failed to load image:\n{e}")
            return False

        self.current_image_path = Path(path)
        self.store.set_image_info(loaded.name, loaded.width, loaded.height)
        self.canvas.set_image(loaded)

        restored = self.storage.restore(loaded.name, loaded.width, loaded.height)
        self.store.restore_session(restored or [])
        if restored:
            self._show_status_message(f"Restored {len(restored)} annotations")

        self.file_label.setText(f"{loaded.name} ({loaded.width}x{loaded.height})")
        self.setWindowTitle(f"Mothra Annotator - {loaded.name}")
        self._add_recent_path(str(self.current_image_path))
        self.canvas.setFocus()
        return True

    def _add_recent_path(self, path: str) -> None:
        self.config_manager.add_recent_path(path)
        self._update_recent_paths_menu()

    def _update_recent_paths_menu(self) -> None:
        """Update the recent images submenu."""
        self.recent_paths_menu.clear()

        config = self.config
        if config.max_recent_paths == 0:
            disabled_action = self.recent_paths_menu.addAction("(Disabled in settings)")
            disabled_action.setEnabled(False)
            return

        if not config.recent_paths:
            no_recent_action = self.recent_paths_menu.addAction("No recent images")
            no_recent_action.setEnabled(False)
            return

        for path in config.recent_paths:
            action = self.recent_paths_menu.addAction(path)
            action.triggered.connect(lambda checked, p=path: self.open_image_path(p))

        self.recent_paths_menu.addSeparator()
        clear_action = self.recent_paths_menu.addAction("Clear Recent Images")
        clear_action.triggered.connect(self._clear_recent_paths)

    def _clear_recent_paths(self) -> None:
        self.config_manager.update(recent_paths=[])
        self._update_recent_paths_menu()

    # === Export ===

    def _export_dir(self) -> str:
        if self.current_image_path is not None:
            return str(self.current_image_path.parent)
        return self.config.default_directory

    def _session_or_warn(self) -> Optional[Session]:
        session = self.store.snapshot()
        if session is None:
            QMessageBox.warning(self, "No Image", "Load an image first.")
        return session

    def _quick_save_json(self) -> None:
        """Save JSON next to the image without asking."""
        session = self._session_or_warn()
        if session is None:
            return
        path = Path(self._export_dir()) / export_file_names(session)["json"]
        self._write(write_json, session, path)

    def _ask_save_path(self, title: str, default_name: str, file_filter: str) -> Optional[Path]:
        file_path, _ = QFileDialog.getSaveFileName(
            self, title, str(Path(self._export_dir()) / default_name), file_filter
        )
        return Path(file_path) if file_path else None

    def _export_json(self) -> None:
        session = self._session_or_warn()
        if session is None:
            return
        path = self._ask_save_path("Export JSON", export_file_names(session)["json"], "JSON (*.json)")
        if path:
            self._write(write_json, session, path)

    def _export_yolo(self) -> None:
        session = self._session_or_warn()
        if session is None:
            return
        path = self._ask_save_path("Export YOLO", export_file_names(session)["yolo"], "YOLO (*.txt)")
        if path:
            self._write(write_yolo, session, path)

    def _export_zip(self) -> None:
        session = self._session_or_warn()
        if session is None:
            return
        path = self._ask_save_path("Export Archive", export_file_names(session)["zip"], "Zip (*.zip)")
        if path:
            self._write(write_zip, session, path)

    def _write(self, writer, session: Session, path: Path) -> None:
        try:
            writer(session, path)
        except OSError as e:
            logger.error(f"Error writing {path}: {e}")
            QMessageBox.critical(self, "Error", f"Could not save {path.name}:\n{e}")
            return
        self._show_status_message(f"Saved {path.name}")

    # === Import ===

    def _import_json(self) -> None:
        """Import a JSON record, confirming if it was made for another size."""
        if self._session_or_warn() is None:
            return

        file_path, _ = QFileDialog.getOpenFileName(
            self, "Import JSON", self._export_dir(), "JSON (*.json)"
        )
        if not file_path:
            return

        try:
            session = import_json(file_path)
        except MalformedRecordError as e:
            QMessageBox.warning(self, "Import Failed", f"Invalid annotation file:\n{e}")
            return
        except OSError as e:
            QMessageBox.critical(self, "Import Failed", f"Could not read file:\n{e}")
            return

        try:
            check_dimensions(session, self.store.image_width, self.store.image_height)
        except DimensionMismatchError as e:
            reply = QMessageBox.question(
                self,
                "Dimension Mismatch",
                f"{e}.\n\nImport anyway?",
                QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
                QMessageBox.StandardButton.No
            )
            if reply != QMessageBox.StandardButton.Yes:
                return

        self.store.restore_session(session.annotations)
        self._show_status_message(f"Imported {len(session.annotations)} annotations")

    def _import_yolo(self) -> None:
        """Import YOLO lines scaled to the current image."""
        if self._session_or_warn() is None:
            return

        file_path, _ = QFileDialog.getOpenFileName(
            self, "Import YOLO", self._export_dir(), "YOLO (*.txt)"
        )
        if not file_path:
            return

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            QMessageBox.critical(self, "Import Failed", f"Could not read file:\n{e}")
            return

        annotations = parse_yolo(text, self.store.image_width, self.store.image_height)
        self.store.restore_session(annotations)
        self._show_status_message(f"Imported {len(annotations)} annotations")

    def _clear_stored_session(self) -> None:
        """Forget the stored session and remove every box."""
        if self.store.image_name is None:
            return
        reply = QMessageBox.question(
            self,
            "Clear Session",
            "Remove all annotations for this image?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No
        )
        if reply == QMessageBox.StandardButton.Yes:
            self.store.clear_all()
            self.autosaver.cancel()
            self.storage.clear(self.store.image_name)

    # === Dialogs ===

    def _toggle_help(self) -> None:
        if self.help_dialog is None:
            self.help_dialog = HelpDialog(self)
        self.help_dialog.setVisible(not self.help_dialog.isVisible())

    def _show_about(self) -> None:
        """Show about dialog."""
        QMessageBox.about(
            self,
            "About Mothra Annotator",
            "Mothra Annotator\nVersion 1.0.0\n\n"
            "Bounding box annotation with JSON and YOLO export."
        )

    # === Event Handlers ===

    def keyPressEvent(self, event) -> None:
        """Route keys that no child consumed to the canvas controller."""
        if self.canvas.controller.key_press(event.key(), event.modifiers(), event.isAutoRepeat()):
            event.accept()
            return
        super().keyPressEvent(event)

    def keyReleaseEvent(self, event) -> None:
        if self.canvas.controller.key_release(event.key(), event.isAutoRepeat()):
            event.accept()
            return
        super().keyReleaseEvent(event)

    def dragEnterEvent(self, event) -> None:
        urls = event.mimeData().urls()
        if urls and urls[0].isLocalFile() and is_supported(urls[0].toLocalFile()):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event) -> None:
        urls = event.mimeData().urls()
        if urls and urls[0].isLocalFile():
            self.open_image_path(urls[0].toLocalFile())
            event.acceptProposedAction()

    def closeEvent(self, event) -> None:
        """Flush pending saves before closing."""
        self.autosaver.flush()
        self.config_manager.update(
            box_opacity=self.store.box_opacity,
            show_labels=self.store.show_labels,
        )
        super().closeEvent(event)
