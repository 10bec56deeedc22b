"""Viewport transform and bounding box geometry."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

from .constants import MAX_ZOOM, MIN_ZOOM, ZOOM_STEP
from .models import BBox, DragHandle

logger = logging.getLogger(__name__)


def screen_to_image(
    sx: float,
    sy: float,
    zoom: float,
    pan_x: float,
    pan_y: float
) -> Tuple[float, float]:
    """Map a screen-space point to image-pixel coordinates."""
    return ((sx - pan_x) / zoom, (sy - pan_y) / zoom)


def image_to_screen(
    ix: float,
    iy: float,
    zoom: float,
    pan_x: float,
    pan_y: float
) -> Tuple[float, float]:
    """Map an image-pixel point to screen space."""
    return (ix * zoom + pan_x, iy * zoom + pan_y)


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Clamp a value into [minimum, maximum]; maximum wins if they cross."""
    return min(max(value, minimum), maximum)


def compute_fit_zoom(
    canvas_width: float,
    canvas_height: float,
    image_width: float,
    image_height: float
) -> float:
    """Zoom level at which the whole image exactly fits the canvas."""
    return min(canvas_width / image_width, canvas_height / image_height)


def normalize_rect(x1: float, y1: float, x2: float, y2: float) -> BBox:
    """Build an (x, y, w, h) box from two opposite corners in any order."""
    return (min(x1, x2), min(y1, y2), abs(x2 - x1), abs(y2 - y1))


def clamp_point(
    x: float,
    y: float,
    image_width: float,
    image_height: float
) -> Tuple[float, float]:
    """Clamp a point into the image rectangle."""
    return (clamp(x, 0, image_width), clamp(y, 0, image_height))


def point_in_bbox(bbox: BBox, x: float, y: float) -> bool:
    """Inclusive point-in-rectangle test."""
    bx, by, bw, bh = bbox
    return bx <= x <= bx + bw and by <= y <= by + bh


def translate_bbox_within(
    bbox: BBox,
    dx: float,
    dy: float,
    image_width: float,
    image_height: float
) -> BBox:
    """
    Translate a box, clamping its position so it stays inside the image.

    The size is never changed.
    """
    x, y, w, h = bbox
    new_x = clamp(x + dx, 0, max(0.0, image_width - w))
    new_y = clamp(y + dy, 0, max(0.0, image_height - h))
    return (new_x, new_y, w, h)


def resize_bbox(
    bbox: BBox,
    handle: DragHandle,
    ix: float,
    iy: float,
    image_width: float,
    image_height: float,
    min_size: float
) -> BBox:
    """
    Move the edge(s) a handle controls to the given image point.

    Corner handles move two edges, edge handles one. Each moved edge is
    clamped to the image and to keep at least `min_size` from the pinned
    opposite edge.
    """
    x, y, w, h = bbox
    left, top, right, bottom = x, y, x + w, y + h

    if handle.moves_left:
        left = clamp(ix, 0, right - min_size)
    if handle.moves_right:
        right = clamp(ix, left + min_size, image_width)
    if handle.moves_top:
        top = clamp(iy, 0, bottom - min_size)
    if handle.moves_bottom:
        bottom = clamp(iy, top + min_size, image_height)

    return (left, top, right - left, bottom - top)


def bbox_differs(a: BBox, b: BBox, epsilon: float) -> bool:
    """True if any component of the two boxes differs by more than epsilon."""
    return any(abs(av - bv) > epsilon for av, bv in zip(a, b))


@dataclass
class Viewport:
    """
    Zoom and pan of the image on the canvas.

    Pan is the screen-space position of the image origin. Zoom is kept
    within [fit zoom, MAX_ZOOM] by every operation that changes it.
    """

    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    canvas_width: float = 0.0
    canvas_height: float = 0.0
    image_width: int = 0
    image_height: int = 0

    @property
    def has_geometry(self) -> bool:
        """True once both the canvas and image sizes are known."""
        return (
            self.canvas_width > 0 and self.canvas_height > 0 and
            self.image_width > 0 and self.image_height > 0
        )

    @property
    def min_zoom(self) -> float:
        """Lowest allowed zoom: the fit zoom, or MIN_ZOOM before an image is shown."""
        if not self.has_geometry:
            return MIN_ZOOM
        return compute_fit_zoom(
            self.canvas_width, self.canvas_height,
            self.image_width, self.image_height
        )

    def set_canvas_size(self, width: float, height: float) -> None:
        self.canvas_width = width
        self.canvas_height = height

    def set_image_size(self, width: int, height: int) -> None:
        self.image_width = width
        self.image_height = height

    def screen_to_image(self, sx: float, sy: float) -> Tuple[float, float]:
        return screen_to_image(sx, sy, self.zoom, self.pan_x, self.pan_y)

    def image_to_screen(self, ix: float, iy: float) -> Tuple[float, float]:
        return image_to_screen(ix, iy, self.zoom, self.pan_x, self.pan_y)

    def fit(self) -> bool:
        """
        Zoom to fit and centre the image on the canvas.

        Returns:
            False if the canvas or image size is not known yet
        """
        if not self.has_geometry:
            return False

        fit_zoom = self.min_zoom
        self.zoom = fit_zoom
        self.pan_x = (self.canvas_width - self.image_width * fit_zoom) / 2
        self.pan_y = (self.canvas_height - self.image_height * fit_zoom) / 2
        logger.debug(f"Viewport fitted at zoom {fit_zoom:.3f}")
        return True

    def zoom_at(self, new_zoom: float, anchor_x: float, anchor_y: float) -> bool:
        """
        Zoom while keeping the image point under the anchor fixed on screen.

        Args:
            new_zoom: Requested zoom, clamped to [fit zoom, MAX_ZOOM]
            anchor_x: Screen x of the anchor
            anchor_y: Screen y of the anchor

        Returns:
            True if the zoom changed
        """
        old_zoom = self.zoom
        clamped = clamp(new_zoom, self.min_zoom, MAX_ZOOM)
        if clamped == old_zoom:
            return False

        ratio = clamped / old_zoom
        self.pan_x = anchor_x - (anchor_x - self.pan_x) * ratio
        self.pan_y = anchor_y - (anchor_y - self.pan_y) * ratio
        self.zoom = clamped
        return True

    def canvas_center(self) -> Tuple[float, float]:
        return (self.canvas_width / 2, self.canvas_height / 2)

    def zoom_in(self) -> bool:
        """Step zoom in around the canvas centre."""
        cx, cy = self.canvas_center()
        return self.zoom_at(self.zoom + ZOOM_STEP, cx, cy)

    def zoom_out(self) -> bool:
        """Step zoom out around the canvas centre."""
        cx, cy = self.canvas_center()
        return self.zoom_at(self.zoom - ZOOM_STEP, cx, cy)

    def pan_by(self, dx: float, dy: float) -> None:
        self.pan_x += dx
        self.pan_y += dy

    def set_pan(self, pan_x: float, pan_y: float) -> None:
        self.pan_x = pan_x
        self.pan_y = pan_y
