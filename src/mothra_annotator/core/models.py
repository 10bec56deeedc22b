"""Data models for Mothra Annotator sessions."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# (x, y, w, h) in image-pixel coordinates
BBox = Tuple[float, float, float, float]


class EditMode(str, Enum):
    """Edit mode gating which gestures a left click may start."""

    IDLE = "idle"
    DRAW = "draw"
    SELECT = "select"


class DragHandle(str, Enum):
    """Part of a box grabbed by a drag gesture."""

    BODY = "body"
    N = "n"
    S = "s"
    E = "e"
    W = "w"
    NE = "ne"
    NW = "nw"
    SE = "se"
    SW = "sw"

    @property
    def moves_left(self) -> bool:
        return self in (DragHandle.W, DragHandle.NW, DragHandle.SW)

    @property
    def moves_right(self) -> bool:
        return self in (DragHandle.E, DragHandle.NE, DragHandle.SE)

    @property
    def moves_top(self) -> bool:
        return self in (DragHandle.N, DragHandle.NE, DragHandle.NW)

    @property
    def moves_bottom(self) -> bool:
        return self in (DragHandle.S, DragHandle.SE, DragHandle.SW)


@dataclass(frozen=True)
class AnnotationClass:
    """A label class an annotation can be tagged with."""

    id: int
    name: str
    color: str
    shortcut: str


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_annotation_id() -> str:
    """Generate a session-unique annotation id."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Annotation:
    """
    A single bounding box annotation.

    Instances are immutable; moving or resizing a box produces a new
    value via `with_bbox`, so snapshots held by the undo stack never
    change underneath it.
    """

    id: str
    class_id: int
    bbox: BBox
    timestamp: str

    @classmethod
    def create(cls, bbox: BBox, class_id: int) -> Annotation:
        """Create a new annotation with a fresh id and the current time."""
        return cls(
            id=new_annotation_id(),
            class_id=class_id,
            bbox=tuple(float(v) for v in bbox),
            timestamp=utc_timestamp(),
        )

    def with_bbox(self, bbox: BBox) -> Annotation:
        """Return a copy with a different bounding box."""
        return replace(self, bbox=tuple(float(v) for v in bbox))

    @property
    def x(self) -> float:
        return self.bbox[0]

    @property
    def y(self) -> float:
        return self.bbox[1]

    @property
    def width(self) -> float:
        return self.bbox[2]

    @property
    def height(self) -> float:
        return self.bbox[3]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the exchanged record layout."""
        return {
            "id": self.id,
            "classId": self.class_id,
            "bbox": list(self.bbox),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Annotation:
        """Create from an already validated record."""
        return cls(
            id=str(data["id"]),
            class_id=int(data["classId"]),
            bbox=tuple(float(v) for v in data["bbox"]),
            timestamp=str(data.get("timestamp") or utc_timestamp()),
        )


@dataclass
class Session:
    """
    Complete annotation state for one loaded image.

    This is the snapshot handed to the export and persistence layers.
    """

    image_name: str
    image_width: int
    image_height: int
    annotations: List[Annotation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the exchanged record layout."""
        return {
            "imageName": self.image_name,
            "imageWidth": self.image_width,
            "imageHeight": self.image_height,
            "annotations": [a.to_dict() for a in self.annotations],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Session:
        """Create from an already validated record."""
        return cls(
            image_name=str(data["imageName"]),
            image_width=int(data["imageWidth"]),
            image_height=int(data["imageHeight"]),
            annotations=[Annotation.from_dict(a) for a in data["annotations"]],
        )

    def matches_size(self, width: int, height: int) -> bool:
        """Check whether this session was recorded for an image of the given size."""
        return self.image_width == width and self.image_height == height

    @property
    def base_name(self) -> str:
        """Image name without its extension."""
        name = self.image_name
        dot = name.rfind(".")
        return name[:dot] if dot > 0 else name


# Gesture values. Frozen; every update replaces the whole value.

Point = Tuple[float, float]


@dataclass(frozen=True)
class DrawingGesture:
    """A box being drawn: start and current corners in image space."""

    start: Point
    current: Point


@dataclass(frozen=True)
class DraggingGesture:
    """A box body or handle being dragged."""

    annotation_id: str
    handle: DragHandle
    original_bbox: BBox
    start_point: Point
    preview_bbox: BBox


@dataclass(frozen=True)
class PanningGesture:
    """A pan: screen-space origin of the pointer and the pan at that moment."""

    origin: Point
    origin_pan: Point
    via_space: bool = False


Gesture = Optional[Union[DrawingGesture, DraggingGesture, PanningGesture]]
