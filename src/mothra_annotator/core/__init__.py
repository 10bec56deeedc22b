"""Core annotation engine modules for Mothra Annotator."""

from .models import Annotation, EditMode, DragHandle, Session
from .geometry import Viewport
from .store import AnnotationStore
from .interaction import InteractionController
from .config import AppConfig, ConfigManager

__all__ = [
    "Annotation",
    "EditMode",
    "DragHandle",
    "Session",
    "Viewport",
    "AnnotationStore",
    "InteractionController",
    "AppConfig",
    "ConfigManager",
]
