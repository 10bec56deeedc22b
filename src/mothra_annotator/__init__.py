"""
Mothra Annotator - a desktop bounding-box annotation tool for single images.

Built with PyQt6. Boxes are drawn on a zoomable canvas, tagged with one of a
small set of classes and exported as JSON or YOLO text.
"""

__version__ = "1.0.0"
__author__ = "Mothra Annotator Team"
