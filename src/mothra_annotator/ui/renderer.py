"""Frame compositor for the annotation canvas."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Optional, Tuple

from PyQt6.QtCore import QPointF, QRectF, Qt
from PyQt6.QtGui import QColor, QFont, QFontMetricsF, QPainter, QPen, QPixmap

from ..core.constants import get_class_color, get_class_name
from ..core.hit_testing import handle_anchors
from ..core.models import Annotation, BBox, EditMode

logger = logging.getLogger(__name__)

BACKGROUND_COLOR = QColor("#1F2937")
SELECTION_STROKE_COLOR = QColor("#FFFFFF")
HANDLE_FILL_COLOR = QColor("#FFFFFF")

# Screen-space handle square edge
HANDLE_SIZE_PX = 8
PREVIEW_FILL_OPACITY = 0.15
LABEL_FONT_PX = 14
LABEL_PADDING_PX = 3


@dataclass
class RenderState:
    """
    Everything one frame needs, read once when the frame is painted.

    The canvas builds a fresh state per frame from the store, the
    controller and the viewport, so painting never reads half-updated
    input.
    """

    # Image
    pixmap: Optional[QPixmap] = None

    # Annotations
    annotations: Tuple[Annotation, ...] = ()
    hidden_class_ids: AbstractSet[int] = field(default_factory=frozenset)
    selected_id: Optional[str] = None
    drag_preview: Optional[Tuple[str, BBox]] = None
    draw_preview: Optional[BBox] = None
    active_class_id: int = 1

    # View state
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    edit_mode: EditMode = EditMode.IDLE

    # Visual settings
    box_opacity: float = 0.3
    show_labels: bool = True
    line_thickness: int = 2
    font_size: int = 12

    def bbox_for(self, annotation: Annotation) -> BBox:
        """Bbox to paint, substituting the live drag preview."""
        if self.drag_preview is not None and self.drag_preview[0] == annotation.id:
            return self.drag_preview[1]
        return annotation.bbox


def _rect(bbox: BBox) -> QRectF:
    x, y, w, h = bbox
    return QRectF(x, y, w, h)


def _with_alpha(color: QColor, opacity: float) -> QColor:
    result = QColor(color)
    result.setAlphaF(min(max(opacity, 0.0), 1.0))
    return result


class CanvasRenderer:
    """
    Paints a RenderState onto a QPainter.

    Paint order: background, image, annotation boxes, selection
    decoration and labels, resize handles, then the draw preview.
    """

    def paint(self, painter: QPainter, state: RenderState, width: int, height: int) -> None:
        """
        Paint a full frame.

        Args:
            painter: Active painter on the canvas
            state: Frame state
            width: Canvas width in logical pixels
            height: Canvas height in logical pixels
        """
        painter.fillRect(QRectF(0, 0, width, height), BACKGROUND_COLOR)

        if state.pixmap is None or state.pixmap.isNull():
            return

        painter.save()
        painter.translate(state.pan_x, state.pan_y)
        painter.scale(state.zoom, state.zoom)

        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, state.zoom < 1.0)
        painter.drawPixmap(QPointF(0, 0), state.pixmap)

        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        selected: Optional[Annotation] = None
        for annotation in state.annotations:
            if annotation.class_id in state.hidden_class_ids:
                continue
            self._draw_box(painter, annotation, state)
            if annotation.id == state.selected_id:
                selected = annotation

        if selected is not None:
            self._draw_selection(painter, state.bbox_for(selected), state)

        if state.show_labels:
            for annotation in state.annotations:
                if annotation.class_id not in state.hidden_class_ids:
                    self._draw_label(painter, annotation, state)

        painter.restore()

        # Handles keep a constant size on screen, so draw them untransformed
        if selected is not None and state.edit_mode == EditMode.SELECT:
            self._draw_handles(painter, state.bbox_for(selected), state)

        if state.draw_preview is not None:
            self._draw_preview(painter, state.draw_preview, state)

    def _draw_box(self, painter: QPainter, annotation: Annotation, state: RenderState) -> None:
        """Draw one annotation's fill and border."""
        color = QColor(get_class_color(annotation.class_id))
        is_selected = annotation.id == state.selected_id
        thickness = state.line_thickness + 1 if is_selected else state.line_thickness

        painter.setPen(QPen(color, thickness / state.zoom))
        painter.setBrush(_with_alpha(color, state.box_opacity))
        painter.drawRect(_rect(state.bbox_for(annotation)))

    def _draw_selection(self, painter: QPainter, bbox: BBox, state: RenderState) -> None:
        """Dashed white stroke just inside the selected box."""
        inset = (state.line_thickness + 1) / state.zoom
        x, y, w, h = bbox
        if w <= 2 * inset or h <= 2 * inset:
            return

        pen = QPen(SELECTION_STROKE_COLOR, 1 / state.zoom)
        # Dash pattern is in units of pen width, which is already 1/zoom
        pen.setDashPattern([6, 4])
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(QRectF(x + inset, y + inset, w - 2 * inset, h - 2 * inset))

    def _draw_label(self, painter: QPainter, annotation: Annotation, state: RenderState) -> None:
        """Draw the class name in a pill above the box."""
        label = get_class_name(annotation.class_id)
        color = QColor(get_class_color(annotation.class_id))
        x, y, _, _ = state.bbox_for(annotation)

        font_size = max(state.font_size, LABEL_FONT_PX / state.zoom)
        font = QFont()
        font.setPixelSize(max(1, round(font_size)))
        metrics = QFontMetricsF(font)

        padding = LABEL_PADDING_PX / state.zoom
        rect_width = metrics.horizontalAdvance(label) + 2 * padding
        rect_height = metrics.height() + 2 * padding
        top = y - rect_height if y - rect_height >= 0 else y
        background_rect = QRectF(x, top, rect_width, rect_height)

        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(color)
        painter.drawRoundedRect(background_rect, padding, padding)

        painter.setFont(font)
        painter.setPen(Qt.GlobalColor.white)
        painter.drawText(background_rect, Qt.AlignmentFlag.AlignCenter, label)

    def _draw_handles(self, painter: QPainter, bbox: BBox, state: RenderState) -> None:
        """Draw the 8 resize handles in screen space."""
        color = QColor(get_class_color(self._selected_class(state)))
        half = HANDLE_SIZE_PX / 2

        painter.save()
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, False)
        painter.setPen(QPen(color, 1))
        painter.setBrush(HANDLE_FILL_COLOR)
        for _, (ix, iy) in handle_anchors(bbox):
            sx = ix * state.zoom + state.pan_x
            sy = iy * state.zoom + state.pan_y
            painter.drawRect(QRectF(sx - half, sy - half, HANDLE_SIZE_PX, HANDLE_SIZE_PX))
        painter.restore()

    def _selected_class(self, state: RenderState) -> int:
        for annotation in state.annotations:
            if annotation.id == state.selected_id:
                return annotation.class_id
        return state.active_class_id

    def _draw_preview(self, painter: QPainter, bbox: BBox, state: RenderState) -> None:
        """Draw the box being drawn, in the active class color."""
        color = QColor(get_class_color(state.active_class_id))
        x, y, w, h = bbox

        pen = QPen(color, 2)
        pen.setStyle(Qt.PenStyle.DashLine)
        painter.save()
        painter.setPen(pen)
        painter.setBrush(_with_alpha(color, PREVIEW_FILL_OPACITY))
        painter.drawRect(QRectF(
            x * state.zoom + state.pan_x,
            y * state.zoom + state.pan_y,
            w * state.zoom,
            h * state.zoom,
        ))
        painter.restore()
