"""Annotation canvas widget."""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QEvent, Qt, pyqtSignal
from PyQt6.QtGui import (
    QFocusEvent, QKeyEvent, QMouseEvent, QPainter, QPixmap,
    QResizeEvent, QWheelEvent
)
from PyQt6.QtWidgets import QWidget

from ..core.geometry import Viewport
from ..core.image_loader import LoadedImage
from ..core.interaction import InteractionController
from ..core.models import EditMode
from ..core.scheduler import FrameScheduler
from ..core.store import AnnotationStore
from .renderer import CanvasRenderer, RenderState

logger = logging.getLogger(__name__)


class AnnotationCanvas(QWidget):
    """
    Surface that displays the image and routes input to the controller.

    The widget holds no annotation state of its own: it forwards pointer,
    wheel and key events to an InteractionController and repaints from a
    RenderState built from the store at most once per frame.
    """

    # Signals
    zoom_changed = pyqtSignal(float)

    def __init__(self, store: AnnotationStore, parent: Optional[QWidget] = None) -> None:
        """
        Initialize the canvas.

        Args:
            store: Annotation store shared with the rest of the window
            parent: Parent widget
        """
        super().__init__(parent)

        self.store = store
        self.viewport = Viewport()
        self.controller = InteractionController(store, self.viewport, self)
        self.renderer = CanvasRenderer()

        # Visual settings
        self.line_thickness = 2
        self.font_size = 12

        self._pixmap: Optional[QPixmap] = None
        self._redraw = FrameScheduler(self.update, parent=self)

        self.controller.redraw_requested.connect(self.request_redraw)
        self.controller.viewport_changed.connect(self._on_viewport_changed)
        self.controller.cursor_shape_changed.connect(self.setCursor)
        self.controller.capture_changed.connect(self._on_capture_changed)
        self.controller.edit_mode_changed.connect(lambda _: self.request_redraw())

        store.annotations_changed.connect(self.request_redraw)
        store.selection_changed.connect(self.request_redraw)
        store.display_changed.connect(self.request_redraw)
        store.active_class_changed.connect(self.request_redraw)

        # Widget setup
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setAttribute(Qt.WidgetAttribute.WA_OpaquePaintEvent, True)
        self.setMinimumSize(200, 150)

    # === Image ===

    @property
    def has_image(self) -> bool:
        return self._pixmap is not None

    def set_image(self, loaded: LoadedImage) -> None:
        """Show a decoded image and fit it to the canvas."""
        self.controller.cancel_gesture()
        self._pixmap = QPixmap.fromImage(loaded.image)
        self.viewport.set_canvas_size(self.width(), self.height())
        self.viewport.set_image_size(loaded.width, loaded.height)
        self.controller.reset_view()

        if self.controller.edit_mode == EditMode.IDLE:
            self.controller.set_edit_mode(EditMode.DRAW)

        self._on_viewport_changed()
        self.request_redraw()

    def clear_image(self) -> None:
        """Remove the image and return to idle mode."""
        self.controller.cancel_gesture()
        self.controller.set_edit_mode(EditMode.IDLE)
        self._pixmap = None
        self.viewport.set_image_size(0, 0)
        self.request_redraw()

    # === Redraw ===

    def request_redraw(self) -> None:
        """Schedule a repaint on the next frame."""
        self._redraw.request()

    def render_state(self) -> RenderState:
        """Snapshot of everything the next frame paints."""
        return RenderState(
            pixmap=self._pixmap,
            annotations=self.store.annotations,
            hidden_class_ids=self.store.hidden_class_ids,
            selected_id=self.store.selected_id,
            drag_preview=self.controller.drag_preview(),
            draw_preview=self.controller.draw_preview(),
            active_class_id=self.store.active_class_id,
            zoom=self.viewport.zoom,
            pan_x=self.viewport.pan_x,
            pan_y=self.viewport.pan_y,
            edit_mode=self.controller.edit_mode,
            box_opacity=self.store.box_opacity,
            show_labels=self.store.show_labels,
            line_thickness=self.line_thickness,
            font_size=self.font_size,
        )

    def paintEvent(self, event) -> None:
        """Paint the current frame."""
        painter = QPainter(self)
        try:
            self.renderer.paint(painter, self.render_state(), self.width(), self.height())
        finally:
            painter.end()

    # === Qt event handlers ===

    def resizeEvent(self, event: QResizeEvent) -> None:
        """Refit the image to the new canvas size."""
        super().resizeEvent(event)
        self.viewport.set_canvas_size(event.size().width(), event.size().height())
        if self.has_image:
            self.controller.reset_view()

    def mousePressEvent(self, event: QMouseEvent) -> None:
        self.setFocus()
        pos = event.position()
        if self.controller.pointer_down(pos.x(), pos.y(), event.button(), event.modifiers()):
            event.accept()
        else:
            super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        pos = event.position()
        self.controller.pointer_move(pos.x(), pos.y())

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        pos = event.position()
        self.controller.pointer_up(pos.x(), pos.y(), event.button())

    def leaveEvent(self, event) -> None:
        self.controller.pointer_leave()
        super().leaveEvent(event)

    def wheelEvent(self, event: QWheelEvent) -> None:
        """Pan with the wheel, zoom with ctrl/cmd+wheel."""
        if event.buttons() != Qt.MouseButton.NoButton:
            event.ignore()
            return

        pos = event.position()
        delta = event.angleDelta()
        if self.controller.wheel(pos.x(), pos.y(), delta.x(), delta.y(), event.modifiers()):
            event.accept()
        else:
            event.ignore()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        if self.controller.key_press(event.key(), event.modifiers(), event.isAutoRepeat()):
            event.accept()
        else:
            super().keyPressEvent(event)

    def keyReleaseEvent(self, event: QKeyEvent) -> None:
        if self.controller.key_release(event.key(), event.isAutoRepeat()):
            event.accept()
        else:
            super().keyReleaseEvent(event)

    def event(self, event: QEvent) -> bool:
        # Another window or popup took the pointer grab mid-gesture
        if event.type() == QEvent.Type.UngrabMouse and self.controller.gesture is not None:
            self.controller.pointer_cancel()
        return super().event(event)

    def focusOutEvent(self, event: QFocusEvent) -> None:
        cancelling_reasons = (
            Qt.FocusReason.ActiveWindowFocusReason,
            Qt.FocusReason.PopupFocusReason,
        )
        if event.reason() in cancelling_reasons and self.controller.gesture is not None:
            self.controller.pointer_cancel()
        # A space release delivered to another widget would leave panning armed
        if self.controller.space_held:
            self.controller.key_release(Qt.Key.Key_Space)
        super().focusOutEvent(event)

    # === Controller callbacks ===

    def _on_capture_changed(self, captured: bool) -> None:
        if captured:
            self.grabMouse()
        else:
            self.releaseMouse()

    def _on_viewport_changed(self) -> None:
        self.zoom_changed.emit(self.viewport.zoom)
