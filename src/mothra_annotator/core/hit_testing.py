"""Hit testing for box bodies and resize handles."""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Optional, Sequence, Tuple

from PyQt6.QtCore import Qt

from .constants import HANDLE_HALFSIZE_PX
from .geometry import point_in_bbox
from .models import Annotation, BBox, DragHandle

# Corners first, then edge midpoints
HANDLE_ORDER: Tuple[DragHandle, ...] = (
    DragHandle.NW,
    DragHandle.NE,
    DragHandle.SE,
    DragHandle.SW,
    DragHandle.N,
    DragHandle.E,
    DragHandle.S,
    DragHandle.W,
)

_HANDLE_CURSORS = {
    DragHandle.NW: Qt.CursorShape.SizeFDiagCursor,
    DragHandle.SE: Qt.CursorShape.SizeFDiagCursor,
    DragHandle.NE: Qt.CursorShape.SizeBDiagCursor,
    DragHandle.SW: Qt.CursorShape.SizeBDiagCursor,
    DragHandle.N: Qt.CursorShape.SizeVerCursor,
    DragHandle.S: Qt.CursorShape.SizeVerCursor,
    DragHandle.E: Qt.CursorShape.SizeHorCursor,
    DragHandle.W: Qt.CursorShape.SizeHorCursor,
    DragHandle.BODY: Qt.CursorShape.SizeAllCursor,
}


def handle_anchors(bbox: BBox) -> List[Tuple[DragHandle, Tuple[float, float]]]:
    """
    Get the 8 handle anchor points of a box in image space.

    Args:
        bbox: Box as (x, y, w, h)

    Returns:
        List of (handle, (x, y)) in hit-test order
    """
    x, y, w, h = bbox
    cx, cy = x + w / 2, y + h / 2
    positions = {
        DragHandle.NW: (x, y),
        DragHandle.NE: (x + w, y),
        DragHandle.SE: (x + w, y + h),
        DragHandle.SW: (x, y + h),
        DragHandle.N: (cx, y),
        DragHandle.E: (x + w, cy),
        DragHandle.S: (cx, y + h),
        DragHandle.W: (x, cy),
    }
    return [(handle, positions[handle]) for handle in HANDLE_ORDER]


def handle_tolerance(zoom: float, halfsize_px: float = HANDLE_HALFSIZE_PX) -> float:
    """Grab tolerance in image pixels for a fixed screen-pixel handle size."""
    return halfsize_px / zoom


def hit_test_handle(
    bbox: BBox,
    ix: float,
    iy: float,
    zoom: float,
    halfsize_px: float = HANDLE_HALFSIZE_PX
) -> Optional[DragHandle]:
    """
    Find the handle of a box under an image-space point.

    The tolerance is a square of `halfsize_px` screen pixels around each
    anchor, so handles grab the same on screen at every zoom level.
    """
    tolerance = handle_tolerance(zoom, halfsize_px)
    for handle, (hx, hy) in handle_anchors(bbox):
        if abs(ix - hx) <= tolerance and abs(iy - hy) <= tolerance:
            return handle
    return None


def hit_test_body(
    annotations: Sequence[Annotation],
    ix: float,
    iy: float,
    hidden_class_ids: AbstractSet[int] = frozenset()
) -> Optional[Annotation]:
    """
    Find the topmost visible annotation containing an image-space point.

    Later annotations paint over earlier ones, so the list is searched in
    reverse insertion order.
    """
    for annotation in reversed(annotations):
        if annotation.class_id in hidden_class_ids:
            continue
        if point_in_bbox(annotation.bbox, ix, iy):
            return annotation
    return None


def visible(
    annotations: Iterable[Annotation],
    hidden_class_ids: AbstractSet[int]
) -> List[Annotation]:
    """Filter out annotations of hidden classes, keeping paint order."""
    return [a for a in annotations if a.class_id not in hidden_class_ids]


def cursor_for_handle(handle: DragHandle) -> Qt.CursorShape:
    """Cursor glyph shown while hovering or dragging a handle."""
    return _HANDLE_CURSORS[handle]
