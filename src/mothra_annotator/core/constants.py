"""Fixed class table and interaction constants."""

from __future__ import annotations

from typing import Optional, Tuple

from .models import AnnotationClass

CLASSES: Tuple[AnnotationClass, ...] = (
    AnnotationClass(id=1, name="text", color="#3B82F6", shortcut="1"),
    AnnotationClass(id=2, name="music", color="#EF4444", shortcut="2"),
    AnnotationClass(id=3, name="staves", color="#10B981", shortcut="3"),
)

MIN_ZOOM = 0.25
MAX_ZOOM = 5.0
ZOOM_STEP = 0.1

# Image-space pixels; smaller drags are discarded
MIN_BOX_SIZE = 4

# Screen-space half size of a resize handle
HANDLE_HALFSIZE_PX = 6

# Drag results closer than this to the original bbox are treated as clicks
MOVE_COMMIT_EPSILON = 0.5

DEFAULT_BOX_OPACITY = 0.3
FALLBACK_CLASS_COLOR = "#888888"


def get_class(class_id: int) -> Optional[AnnotationClass]:
    """Look up a class by id."""
    for cls in CLASSES:
        if cls.id == class_id:
            return cls
    return None


def get_class_color(class_id: int) -> str:
    """Get the hex color for a class id."""
    cls = get_class(class_id)
    return cls.color if cls else FALLBACK_CLASS_COLOR


def get_class_name(class_id: int) -> str:
    """Get the display name for a class id."""
    cls = get_class(class_id)
    return cls.name if cls else "unknown"


def class_for_shortcut(key: str) -> Optional[AnnotationClass]:
    """Find the class bound to a shortcut key, if any."""
    for cls in CLASSES:
        if cls.shortcut == key:
            return cls
    return None
