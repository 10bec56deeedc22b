"""UI components for Mothra Annotator."""

from .canvas import AnnotationCanvas
from .annotation_list import AnnotationListPanel
from .main_window import MainWindow

__all__ = [
    "AnnotationCanvas",
    "AnnotationListPanel",
    "MainWindow",
]
