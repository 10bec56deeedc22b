"""Pointer and keyboard state machine for the annotation canvas."""

from __future__ import annotations

import enum
import logging
from typing import Optional, Union

from PyQt6.QtCore import QObject, Qt, pyqtSignal

from .constants import MIN_BOX_SIZE, MOVE_COMMIT_EPSILON, ZOOM_STEP, class_for_shortcut
from .geometry import (
    Viewport, bbox_differs, clamp_point, normalize_rect,
    resize_bbox, translate_bbox_within
)
from .hit_testing import cursor_for_handle, handle_anchors, hit_test_body, hit_test_handle
from .models import (
    BBox, DragHandle, DraggingGesture, DrawingGesture, EditMode,
    Gesture, PanningGesture
)
from .scheduler import LatestValueLatch
from .store import AnnotationStore

logger = logging.getLogger(__name__)

# Screen pixels panned per wheel notch (120 angle units)
WHEEL_PAN_STEP = 60.0
WHEEL_NOTCH = 120.0

KeyLike = Union[int, Qt.Key]


def _key_value(key: KeyLike) -> int:
    """Normalize a Qt key enum or raw int to an int."""
    return key.value if isinstance(key, enum.Enum) else int(key)


def _has(modifiers: Qt.KeyboardModifier, flag: Qt.KeyboardModifier) -> bool:
    return bool(modifiers & flag)


def _is_command(modifiers: Qt.KeyboardModifier) -> bool:
    """Ctrl, or Cmd on macOS."""
    return (
        _has(modifiers, Qt.KeyboardModifier.ControlModifier) or
        _has(modifiers, Qt.KeyboardModifier.MetaModifier)
    )


class InteractionController(QObject):
    """
    Turns pointer, wheel and key input into viewport changes, transient
    gestures and committed store mutations.

    The controller exclusively owns the current gesture (drawing, dragging
    or panning). While a gesture runs the store is never touched; only
    when it completes is a single finished value committed. The renderer
    reads the gesture through the `gesture` property, which is always a
    frozen value.
    """

    redraw_requested = pyqtSignal()
    viewport_changed = pyqtSignal()
    cursor_shape_changed = pyqtSignal(object)  # Qt.CursorShape
    capture_changed = pyqtSignal(bool)  # True to grab the pointer, False to release
    edit_mode_changed = pyqtSignal(object)  # EditMode

    def __init__(
        self,
        store: AnnotationStore,
        viewport: Optional[Viewport] = None,
        parent: Optional[QObject] = None
    ) -> None:
        """
        Initialize the controller.

        Args:
            store: Store that finished gestures are committed into
            viewport: Viewport to read and update; a new one is created if omitted
            parent: Optional Qt parent
        """
        super().__init__(parent)
        self.store = store
        self.viewport = viewport or Viewport()

        self._mode = EditMode.IDLE
        self._gesture: Gesture = None
        self._space_held = False
        self._captured = False
        self._gesture_button = Qt.MouseButton.NoButton
        self._cursor_shape = Qt.CursorShape.ArrowCursor

        self._cursor_latch: LatestValueLatch[Optional[tuple]] = LatestValueLatch(
            self._write_cursor_coords, parent=self
        )

    # === State ===

    @property
    def edit_mode(self) -> EditMode:
        return self._mode

    @property
    def gesture(self) -> Gesture:
        """Read-only snapshot of the gesture in progress, or None."""
        return self._gesture

    @property
    def is_drawing(self) -> bool:
        return isinstance(self._gesture, DrawingGesture)

    @property
    def is_dragging(self) -> bool:
        return isinstance(self._gesture, DraggingGesture)

    @property
    def is_panning(self) -> bool:
        return isinstance(self._gesture, PanningGesture)

    @property
    def space_held(self) -> bool:
        return self._space_held

    @property
    def cursor_shape(self) -> Qt.CursorShape:
        return self._cursor_shape

    def draw_preview(self) -> Optional[BBox]:
        """Normalized rectangle of the box being drawn, if any."""
        if isinstance(self._gesture, DrawingGesture):
            (sx, sy), (cx, cy) = self._gesture.start, self._gesture.current
            return normalize_rect(sx, sy, cx, cy)
        return None

    def drag_preview(self) -> Optional[tuple]:
        """(annotation id, preview bbox) of the box being dragged, if any."""
        if isinstance(self._gesture, DraggingGesture):
            return (self._gesture.annotation_id, self._gesture.preview_bbox)
        return None

    # === Internal helpers ===

    def _set_gesture(self, gesture: Gesture) -> None:
        self._gesture = gesture
        self.redraw_requested.emit()

    def _set_capture(self, captured: bool) -> None:
        if captured != self._captured:
            self._captured = captured
            self.capture_changed.emit(captured)

    def _end_gesture(self) -> None:
        """Drop the gesture and release pointer capture."""
        self._set_gesture(None)
        self._set_capture(False)
        self._update_idle_cursor()

    def _set_cursor(self, shape: Qt.CursorShape) -> None:
        if shape != self._cursor_shape:
            self._cursor_shape = shape
            self.cursor_shape_changed.emit(shape)

    def _update_idle_cursor(self, hover_shape: Optional[Qt.CursorShape] = None) -> None:
        if self._space_held:
            self._set_cursor(Qt.CursorShape.OpenHandCursor)
        elif hover_shape is not None:
            self._set_cursor(hover_shape)
        elif self._mode == EditMode.DRAW:
            self._set_cursor(Qt.CursorShape.CrossCursor)
        else:
            self._set_cursor(Qt.CursorShape.ArrowCursor)

    def _image_size(self) -> tuple:
        return (self.store.image_width, self.store.image_height)

    def _hover_cursor(self, ix: float, iy: float) -> Optional[Qt.CursorShape]:
        """Cursor for what lies under the pointer in select mode."""
        selected = self.store.selected_annotation
        if selected is not None and self.store.is_class_visible(selected.class_id):
            handle = hit_test_handle(selected.bbox, ix, iy, self.viewport.zoom)
            if handle is not None:
                return cursor_for_handle(handle)

        if hit_test_body(self.store.annotations, ix, iy, self.store.hidden_class_ids):
            return cursor_for_handle(DragHandle.BODY)
        return None

    def _write_cursor_coords(self, position: Optional[tuple]) -> None:
        """Latch consumer: convert the latest pointer position and store it."""
        if position is None:
            self.store.set_cursor_coords(None)
            return
        ix, iy = self.viewport.screen_to_image(*position)
        self.store.set_cursor_coords((round(ix), round(iy)))

    def flush_pending(self) -> None:
        """Deliver any latched pointer position immediately."""
        self._cursor_latch.flush()

    # === Edit mode ===

    def set_edit_mode(self, mode: EditMode) -> None:
        """Switch edit mode, cancelling any gesture in progress."""
        mode = EditMode(mode)
        self.cancel_gesture()
        if mode == self._mode:
            return
        self._mode = mode
        logger.debug(f"Edit mode set to {mode.value}")
        self._update_idle_cursor()
        self.edit_mode_changed.emit(mode)
        self.redraw_requested.emit()

    # === Pointer input ===

    def pointer_down(
        self,
        sx: float,
        sy: float,
        button: Qt.MouseButton,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier
    ) -> bool:
        """
        Handle a pointer press at a screen position.

        Returns:
            True if the press started a gesture or changed the selection
        """
        if self._gesture is not None:
            return False
        self._gesture_button = button

        is_middle = button == Qt.MouseButton.MiddleButton
        is_space_left = button == Qt.MouseButton.LeftButton and self._space_held
        if is_middle or is_space_left:
            self._start_pan(sx, sy, via_space=is_space_left)
            return True

        if button != Qt.MouseButton.LeftButton:
            return False

        plain = modifiers & ~Qt.KeyboardModifier.KeypadModifier
        if plain != Qt.KeyboardModifier.NoModifier:
            return False

        if self._mode == EditMode.IDLE or not self.store.has_image:
            return False

        ix, iy = self.viewport.screen_to_image(sx, sy)

        if self._mode == EditMode.DRAW:
            self.store.set_selected(None)
            self._set_gesture(DrawingGesture(start=(ix, iy), current=(ix, iy)))
            self._set_capture(True)
            return True

        return self._select_press(ix, iy)

    def _start_pan(self, sx: float, sy: float, via_space: bool) -> None:
        self._set_gesture(PanningGesture(
            origin=(sx, sy),
            origin_pan=(self.viewport.pan_x, self.viewport.pan_y),
            via_space=via_space,
        ))
        self._set_capture(True)
        self._set_cursor(Qt.CursorShape.ClosedHandCursor)

    def _select_press(self, ix: float, iy: float) -> bool:
        """Select-mode press: handles of the selection first, then bodies."""
        selected = self.store.selected_annotation
        if selected is not None and self.store.is_class_visible(selected.class_id):
            handle = hit_test_handle(selected.bbox, ix, iy, self.viewport.zoom)
            if handle is not None:
                self._start_drag(selected.id, selected.bbox, handle, ix, iy)
                return True

        hit = hit_test_body(self.store.annotations, ix, iy, self.store.hidden_class_ids)
        if hit is None:
            self.store.set_selected(None)
            self._update_idle_cursor()
            return True

        self.store.set_selected(hit.id)
        self._start_drag(hit.id, hit.bbox, DragHandle.BODY, ix, iy)
        return True

    def _start_drag(
        self,
        annotation_id: str,
        bbox: BBox,
        handle: DragHandle,
        ix: float,
        iy: float
    ) -> None:
        self._set_gesture(DraggingGesture(
            annotation_id=annotation_id,
            handle=handle,
            original_bbox=bbox,
            start_point=(ix, iy),
            preview_bbox=bbox,
        ))
        self._set_capture(True)
        self._set_cursor(cursor_for_handle(handle))

    def pointer_move(self, sx: float, sy: float) -> None:
        """Handle pointer motion at a screen position."""
        self._cursor_latch.push((sx, sy))

        gesture = self._gesture
        if gesture is None:
            if self._mode == EditMode.SELECT and self.store.has_image:
                ix, iy = self.viewport.screen_to_image(sx, sy)
                self._update_idle_cursor(self._hover_cursor(ix, iy))
            return

        if isinstance(gesture, PanningGesture):
            ox, oy = gesture.origin
            px, py = gesture.origin_pan
            self.viewport.set_pan(px + (sx - ox), py + (sy - oy))
            self.viewport_changed.emit()
            self.redraw_requested.emit()
            return

        ix, iy = self.viewport.screen_to_image(sx, sy)
        if isinstance(gesture, DrawingGesture):
            self._set_gesture(DrawingGesture(start=gesture.start, current=(ix, iy)))
        elif isinstance(gesture, DraggingGesture):
            preview = self._drag_preview_for(gesture, ix, iy)
            self._set_gesture(DraggingGesture(
                annotation_id=gesture.annotation_id,
                handle=gesture.handle,
                original_bbox=gesture.original_bbox,
                start_point=gesture.start_point,
                preview_bbox=preview,
            ))

    def _drag_preview_for(self, gesture: DraggingGesture, ix: float, iy: float) -> BBox:
        """Preview box for a drag whose pointer is now at (ix, iy)."""
        width, height = self._image_size()
        dx = ix - gesture.start_point[0]
        dy = iy - gesture.start_point[1]

        if gesture.handle == DragHandle.BODY:
            return translate_bbox_within(gesture.original_bbox, dx, dy, width, height)

        # Grabbed anchor follows the pointer delta
        anchors = dict(handle_anchors(gesture.original_bbox))
        ax, ay = anchors[gesture.handle]
        return resize_bbox(
            gesture.original_bbox, gesture.handle,
            ax + dx, ay + dy, width, height, MIN_BOX_SIZE
        )

    def pointer_up(
        self,
        sx: float,
        sy: float,
        button: Optional[Qt.MouseButton] = None
    ) -> bool:
        """
        Finish the gesture in progress at a screen position.

        Args:
            sx: Screen x of the release
            sy: Screen y of the release
            button: Released button; releases of any button other than
                the one that started the gesture are ignored

        Returns:
            True if a gesture was finished
        """
        gesture = self._gesture
        if gesture is None:
            self._set_capture(False)
            return False
        if button is not None and button != self._gesture_button:
            return False

        if isinstance(gesture, PanningGesture):
            self.pointer_move(sx, sy)
            self._end_gesture()
            return True

        self.pointer_move(sx, sy)
        gesture = self._gesture

        if isinstance(gesture, DrawingGesture):
            self._commit_drawing(gesture)
        elif isinstance(gesture, DraggingGesture):
            self._commit_drag(gesture)

        self._end_gesture()
        return True

    def _commit_drawing(self, gesture: DrawingGesture) -> None:
        width, height = self._image_size()
        x1, y1 = clamp_point(*gesture.start, width, height)
        x2, y2 = clamp_point(*gesture.current, width, height)
        bbox = normalize_rect(x1, y1, x2, y2)

        if bbox[2] >= MIN_BOX_SIZE and bbox[3] >= MIN_BOX_SIZE:
            self.store.add_annotation(bbox)
        else:
            logger.debug(f"Discarded box smaller than {MIN_BOX_SIZE}px: {bbox}")

    def _commit_drag(self, gesture: DraggingGesture) -> None:
        if bbox_differs(gesture.preview_bbox, gesture.original_bbox, MOVE_COMMIT_EPSILON):
            self.store.move_annotation(gesture.annotation_id, gesture.preview_bbox)

    def pointer_cancel(self) -> None:
        """Abandon the gesture in progress without touching the store."""
        if self._gesture is not None:
            logger.debug("Pointer cancelled, discarding gesture")
        self._end_gesture()

    def pointer_leave(self) -> None:
        """Clear the cursor readout when the pointer leaves the surface."""
        self._cursor_latch.push(None)

    # === Wheel input ===

    def wheel(
        self,
        sx: float,
        sy: float,
        delta_x: float,
        delta_y: float,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier
    ) -> bool:
        """
        Handle a wheel event with Qt angle deltas (120 per notch).

        Plain wheel pans vertically, shift+wheel horizontally and
        ctrl/cmd+wheel zooms around the cursor.
        """
        if self._gesture is not None:
            return False

        if _is_command(modifiers):
            if delta_y == 0:
                return False
            step = ZOOM_STEP if delta_y > 0 else -ZOOM_STEP
            return self.zoom_at(self.viewport.zoom + step, sx, sy)

        if _has(modifiers, Qt.KeyboardModifier.ShiftModifier):
            # Some platforms already swap the axis for shift+wheel
            delta = delta_x if delta_x != 0 else delta_y
            self.viewport.pan_by(delta / WHEEL_NOTCH * WHEEL_PAN_STEP, 0)
        else:
            if delta_y == 0:
                return False
            self.viewport.pan_by(0, delta_y / WHEEL_NOTCH * WHEEL_PAN_STEP)

        self.viewport_changed.emit()
        self.redraw_requested.emit()
        return True

    # === Keyboard input ===

    def key_press(
        self,
        key: KeyLike,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
        auto_repeat: bool = False
    ) -> bool:
        """
        Handle a key press.

        Returns:
            True if the key was consumed
        """
        key = _key_value(key)

        if key == Qt.Key.Key_Space.value:
            if not auto_repeat and not self._space_held:
                self._space_held = True
                if self._gesture is None:
                    self._update_idle_cursor()
            return True

        if key == Qt.Key.Key_Escape.value:
            if self.is_drawing or self.is_dragging:
                self.cancel_gesture()
            elif self._gesture is None:
                self.store.set_selected(None)
            return True

        if key in (Qt.Key.Key_Delete.value, Qt.Key.Key_Backspace.value):
            return self.delete_selected()

        if key == Qt.Key.Key_Z.value and _is_command(modifiers):
            self.undo()
            return True

        if _is_command(modifiers) or _has(modifiers, Qt.KeyboardModifier.AltModifier):
            return False

        if Qt.Key.Key_0.value <= key <= Qt.Key.Key_9.value:
            cls = class_for_shortcut(chr(key))
            if cls is None:
                return False
            self.set_active_class(cls.id)
            return True

        if not self.store.has_image:
            return False

        if key == Qt.Key.Key_D.value:
            self.set_edit_mode(EditMode.DRAW)
            return True
        if key == Qt.Key.Key_V.value:
            self.set_edit_mode(EditMode.SELECT)
            return True

        return False

    def key_release(self, key: KeyLike, auto_repeat: bool = False) -> bool:
        """Handle a key release; releasing space ends a space-started pan."""
        key = _key_value(key)
        if key != Qt.Key.Key_Space.value or auto_repeat:
            return False

        self._space_held = False
        if isinstance(self._gesture, PanningGesture) and self._gesture.via_space:
            self._end_gesture()
        elif self._gesture is None:
            self._update_idle_cursor()
        return True

    # === Actions ===

    def cancel_drawing(self) -> None:
        """Discard a box being drawn."""
        if self.is_drawing:
            self._end_gesture()

    def cancel_drag(self) -> None:
        """Discard a move or resize in progress."""
        if self.is_dragging:
            self._end_gesture()

    def cancel_gesture(self) -> None:
        """Discard whatever gesture is in progress."""
        if self._gesture is not None:
            self._end_gesture()

    def undo(self) -> bool:
        """Cancel any gesture and restore the previous annotation list."""
        self.cancel_gesture()
        return self.store.undo()

    def delete_selected(self) -> bool:
        """Delete the selected annotation, if any."""
        selected_id = self.store.selected_id
        if selected_id is None:
            return False
        if self.is_dragging and self._gesture.annotation_id == selected_id:
            self.cancel_gesture()
        self.store.delete_annotation(selected_id)
        return True

    def set_active_class(self, class_id: int) -> None:
        self.store.set_active_class(class_id)

    def zoom_at(self, new_zoom: float, anchor_x: float, anchor_y: float) -> bool:
        """Zoom keeping the image point under the anchor in place."""
        if not self.viewport.zoom_at(new_zoom, anchor_x, anchor_y):
            return False
        self.viewport_changed.emit()
        self.redraw_requested.emit()
        return True

    def zoom_in(self) -> bool:
        if not self.viewport.zoom_in():
            return False
        self.viewport_changed.emit()
        self.redraw_requested.emit()
        return True

    def zoom_out(self) -> bool:
        if not self.viewport.zoom_out():
            return False
        self.viewport_changed.emit()
        self.redraw_requested.emit()
        return True

    def reset_view(self) -> bool:
        """Zoom to fit and centre the image."""
        if not self.viewport.fit():
            return False
        self.viewport_changed.emit()
        self.redraw_requested.emit()
        return True
