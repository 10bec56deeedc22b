"""Tests for core models."""

import dataclasses
import re

import pytest

from mothra_annotator.core.models import (
    Annotation, DragHandle, DrawingGesture, EditMode, Session
)


class TestAnnotation:
    """Tests for the Annotation class."""

    def test_create(self):
        """Test creating an annotation fills id and timestamp."""
        annotation = Annotation.create((1, 2, 3, 4), 2)

        assert annotation.class_id == 2
        assert annotation.bbox == (1.0, 2.0, 3.0, 4.0)
        assert annotation.id
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", annotation.timestamp)

    def test_ids_are_unique(self):
        """Test every created annotation gets its own id."""
        ids = {Annotation.create((0, 0, 5, 5), 1).id for _ in range(50)}

        assert len(ids) == 50

    def test_frozen(self):
        """Test annotations cannot be changed in place."""
        annotation = Annotation.create((0, 0, 5, 5), 1)

        with pytest.raises(dataclasses.FrozenInstanceError):
            annotation.bbox = (1, 1, 1, 1)

    def test_with_bbox(self):
        """Test with_bbox copies everything but the box."""
        annotation = Annotation("a", 3, (0, 0, 5, 5), "t")

        moved = annotation.with_bbox((1, 1, 5, 5))

        assert moved == Annotation("a", 3, (1.0, 1.0, 5.0, 5.0), "t")
        assert annotation.bbox == (0, 0, 5, 5)

    def test_accessors(self):
        """Test x, y, width and height read the box."""
        annotation = Annotation("a", 1, (1, 2, 3, 4), "t")

        assert (annotation.x, annotation.y, annotation.width, annotation.height) == (1, 2, 3, 4)

    def test_to_dict(self):
        """Test the record uses camelCase keys and a bbox list."""
        annotation = Annotation("a", 2, (1.5, 2, 3, 4), "2024-01-01T00:00:00.000Z")

        assert annotation.to_dict() == {
            "id": "a",
            "classId": 2,
            "bbox": [1.5, 2, 3, 4],
            "timestamp": "2024-01-01T00:00:00.000Z",
        }

    def test_from_dict_without_timestamp(self):
        """Test a missing timestamp is filled with the current time."""
        annotation = Annotation.from_dict({"id": "a", "classId": 1, "bbox": [0, 0, 5, 5]})

        assert annotation.timestamp.endswith("Z")


class TestSession:
    """Tests for the Session class."""

    def test_round_trip(self, sample_session):
        """Test to_dict and from_dict preserve the session."""
        assert Session.from_dict(sample_session.to_dict()) == sample_session

    def test_matches_size(self, sample_session):
        """Test size matching is exact."""
        assert sample_session.matches_size(200, 100)
        assert not sample_session.matches_size(100, 200)

    @pytest.mark.parametrize("name,expected", [
        ("page.png", "page"),
        ("scan.v2.jpg", "scan.v2"),
        ("noext", "noext"),
        (".hidden", ".hidden"),
    ])
    def test_base_name(self, name, expected):
        """Test the extension is stripped from the image name."""
        assert Session(name, 1, 1).base_name == expected


class TestEnums:
    """Tests for EditMode and DragHandle."""

    def test_edit_mode_values(self):
        """Test edit modes round-trip through their string values."""
        assert EditMode("draw") is EditMode.DRAW
        assert EditMode("select") is EditMode.SELECT

    @pytest.mark.parametrize("handle,left,right,top,bottom", [
        (DragHandle.NW, True, False, True, False),
        (DragHandle.SE, False, True, False, True),
        (DragHandle.N, False, False, True, False),
        (DragHandle.E, False, True, False, False),
        (DragHandle.BODY, False, False, False, False),
    ])
    def test_handle_edges(self, handle, left, right, top, bottom):
        """Test which edges each handle moves."""
        assert (handle.moves_left, handle.moves_right, handle.moves_top, handle.moves_bottom) == (
            left, right, top, bottom
        )

    def test_gesture_frozen(self):
        """Test gesture values cannot be changed in place."""
        gesture = DrawingGesture(start=(0, 0), current=(1, 1))

        with pytest.raises(dataclasses.FrozenInstanceError):
            gesture.current = (2, 2)
