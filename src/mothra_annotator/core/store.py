"""Authoritative annotation store with snapshot undo."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

from .constants import CLASSES, DEFAULT_BOX_OPACITY, get_class
from .hit_testing import visible
from .models import Annotation, BBox, Session

logger = logging.getLogger(__name__)


class AnnotationStore(QObject):
    """
    Owns the annotation list, selection, active class and undo history.

    Consumers receive a handle to one store and subscribe to its signals;
    all mutation goes through the methods below. Undo works on full
    snapshots of the annotation list: a snapshot is pushed before every
    operation that participates in undo, and popping one replaces the list
    wholesale.
    """

    annotations_changed = pyqtSignal()
    selection_changed = pyqtSignal(object)  # Emits the selected id or None
    active_class_changed = pyqtSignal(int)
    display_changed = pyqtSignal()  # Opacity, labels or class visibility
    cursor_changed = pyqtSignal(object)  # Emits (x, y) image coords or None
    image_changed = pyqtSignal()
    undo_state_changed = pyqtSignal()

    def __init__(self, max_history: int = 100) -> None:
        """
        Initialize an empty store.

        Args:
            max_history: Maximum number of undo snapshots to keep
        """
        super().__init__()
        self._annotations: Tuple[Annotation, ...] = ()
        self._undo_stack: List[Tuple[Annotation, ...]] = []
        self._max_history = max(1, max_history)
        self._selected_id: Optional[str] = None
        self._active_class_id: int = CLASSES[0].id

        self._image_name: Optional[str] = None
        self._image_width = 0
        self._image_height = 0

        self._box_opacity = DEFAULT_BOX_OPACITY
        self._show_labels = True
        self._hidden_class_ids: Set[int] = set()
        self._cursor_coords: Optional[Tuple[int, int]] = None

    # === Queries ===

    @property
    def annotations(self) -> Tuple[Annotation, ...]:
        """Current annotations in insertion (paint) order."""
        return self._annotations

    def get(self, annotation_id: Optional[str]) -> Optional[Annotation]:
        """Find an annotation by id."""
        if annotation_id is None:
            return None
        for annotation in self._annotations:
            if annotation.id == annotation_id:
                return annotation
        return None

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def selected_annotation(self) -> Optional[Annotation]:
        return self.get(self._selected_id)

    @property
    def active_class_id(self) -> int:
        return self._active_class_id

    @property
    def image_name(self) -> Optional[str]:
        return self._image_name

    @property
    def image_width(self) -> int:
        return self._image_width

    @property
    def image_height(self) -> int:
        return self._image_height

    @property
    def has_image(self) -> bool:
        return self._image_name is not None

    @property
    def box_opacity(self) -> float:
        return self._box_opacity

    @property
    def show_labels(self) -> bool:
        return self._show_labels

    @property
    def hidden_class_ids(self) -> frozenset:
        return frozenset(self._hidden_class_ids)

    @property
    def cursor_coords(self) -> Optional[Tuple[int, int]]:
        return self._cursor_coords

    def is_class_visible(self, class_id: int) -> bool:
        return class_id not in self._hidden_class_ids

    def visible_annotations(self) -> List[Annotation]:
        """Annotations whose class is not hidden, in paint order."""
        return visible(self._annotations, self._hidden_class_ids)

    def class_counts(self) -> Dict[int, int]:
        """Number of annotations per class id."""
        counts = {cls.id: 0 for cls in CLASSES}
        for annotation in self._annotations:
            counts[annotation.class_id] = counts.get(annotation.class_id, 0) + 1
        return counts

    def can_undo(self) -> bool:
        """Check if undo is available."""
        return len(self._undo_stack) > 0

    @property
    def undo_count(self) -> int:
        """Get the number of snapshots that can be restored."""
        return len(self._undo_stack)

    def snapshot(self) -> Optional[Session]:
        """
        Build a session snapshot for export or persistence.

        Returns:
            Session, or None if no image is loaded
        """
        if self._image_name is None:
            return None
        return Session(
            image_name=self._image_name,
            image_width=self._image_width,
            image_height=self._image_height,
            annotations=list(self._annotations),
        )

    # === Undoable mutations ===

    def _push_undo(self) -> None:
        """Push the current list onto the undo stack."""
        self._undo_stack.append(self._annotations)

        # Limit history size
        while len(self._undo_stack) > self._max_history:
            self._undo_stack.pop(0)

    def _set_annotations(self, annotations: Sequence[Annotation]) -> None:
        self._annotations = tuple(annotations)
        self.annotations_changed.emit()

    def _set_selected_silently(self, annotation_id: Optional[str]) -> bool:
        if self._selected_id == annotation_id:
            return False
        self._selected_id = annotation_id
        return True

    def add_annotation(self, bbox: BBox) -> Annotation:
        """
        Append a new annotation of the active class.

        The caller guarantees the box is already clamped to the image and
        at least MIN_BOX_SIZE on each side.

        Args:
            bbox: Box as (x, y, w, h) in image pixels

        Returns:
            The created annotation
        """
        annotation = Annotation.create(bbox, self._active_class_id)
        self._push_undo()
        self._set_annotations(self._annotations + (annotation,))
        logger.debug(f"Added annotation {annotation.id} {annotation.bbox}")
        self.undo_state_changed.emit()
        return annotation

    def delete_annotation(self, annotation_id: str) -> None:
        """
        Remove an annotation by id.

        A snapshot is pushed even when no annotation has this id, so an
        unmatched delete still consumes one undo step.
        """
        self._push_undo()
        self._set_annotations(
            [a for a in self._annotations if a.id != annotation_id]
        )
        if self._selected_id == annotation_id:
            self._set_selected_silently(None)
            self.selection_changed.emit(None)
        logger.debug(f"Deleted annotation {annotation_id}")
        self.undo_state_changed.emit()

    def clear_all(self) -> None:
        """Remove every annotation."""
        self._push_undo()
        self._set_annotations(())
        if self._set_selected_silently(None):
            self.selection_changed.emit(None)
        logger.debug("Cleared all annotations")
        self.undo_state_changed.emit()

    def undo(self) -> bool:
        """
        Restore the most recent snapshot.

        Returns:
            True if a snapshot was restored
        """
        if not self._undo_stack:
            return False

        self._set_annotations(self._undo_stack.pop())
        if self._set_selected_silently(None):
            self.selection_changed.emit(None)
        logger.debug(f"Undone, {len(self._undo_stack)} steps left")
        self.undo_state_changed.emit()
        return True

    # === Non-undoable mutations ===

    def move_annotation(self, annotation_id: str, bbox: BBox) -> bool:
        """
        Replace the box of an annotation in place.

        Used to commit finished drags and resizes. No undo snapshot is
        pushed.

        Returns:
            True if an annotation with this id exists
        """
        for index, annotation in enumerate(self._annotations):
            if annotation.id == annotation_id:
                updated = list(self._annotations)
                updated[index] = annotation.with_bbox(bbox)
                self._set_annotations(updated)
                logger.debug(f"Moved annotation {annotation_id} to {bbox}")
                return True
        return False

    def restore_session(self, annotations: Sequence[Annotation]) -> None:
        """
        Replace the annotation list with restored or imported data.

        Undo history and selection are reset, so the previous image's
        history can never be undone into the new one.
        """
        self._undo_stack.clear()
        self._set_annotations(annotations)
        if self._set_selected_silently(None):
            self.selection_changed.emit(None)
        logger.info(f"Restored session with {len(self._annotations)} annotations")
        self.undo_state_changed.emit()

    def set_selected(self, annotation_id: Optional[str]) -> None:
        if self._set_selected_silently(annotation_id):
            self.selection_changed.emit(annotation_id)

    def set_active_class(self, class_id: int) -> None:
        """Set the class given to new annotations; unknown ids are ignored."""
        if get_class(class_id) is None:
            logger.warning(f"Ignoring unknown class id {class_id}")
            return
        if self._active_class_id != class_id:
            self._active_class_id = class_id
            self.active_class_changed.emit(class_id)

    def set_image_info(self, name: str, width: int, height: int) -> None:
        """Record the loaded image's name and pixel size."""
        self._image_name = name
        self._image_width = width
        self._image_height = height
        self.image_changed.emit()

    def set_opacity(self, value: float) -> None:
        self._box_opacity = min(max(value, 0.0), 1.0)
        self.display_changed.emit()

    def toggle_labels(self) -> None:
        self._show_labels = not self._show_labels
        self.display_changed.emit()

    def set_show_labels(self, show: bool) -> None:
        if self._show_labels != show:
            self._show_labels = show
            self.display_changed.emit()

    def toggle_class_visibility(self, class_id: int) -> None:
        if class_id in self._hidden_class_ids:
            self._hidden_class_ids.discard(class_id)
        else:
            self._hidden_class_ids.add(class_id)
        self.display_changed.emit()

    def toggle_all_class_visibility(self) -> None:
        """Hide every class if all are visible, otherwise show them all."""
        if self._hidden_class_ids:
            self._hidden_class_ids.clear()
        else:
            self._hidden_class_ids = {cls.id for cls in CLASSES}
        self.display_changed.emit()

    def set_cursor_coords(self, coords: Optional[Tuple[int, int]]) -> None:
        if self._cursor_coords != coords:
            self._cursor_coords = coords
            self.cursor_changed.emit(coords)
