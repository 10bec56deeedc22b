"""Tests for the annotation store."""

import pytest

from mothra_annotator.core.constants import CLASSES
from mothra_annotator.core.models import Annotation
from mothra_annotator.core.store import AnnotationStore


class TestMutations:
    """Tests for undoable and plain mutations."""

    def test_add_annotation(self, store):
        """Test adding uses the active class and a fresh id."""
        store.set_active_class(2)

        first = store.add_annotation((10, 10, 40, 30))
        second = store.add_annotation((0, 0, 5, 5))

        assert store.annotations == (first, second)
        assert first.class_id == 2
        assert first.bbox == (10.0, 10.0, 40.0, 30.0)
        assert first.id != second.id
        assert first.timestamp.endswith("Z")

    def test_delete_annotation(self, store):
        """Test deleting removes the box and clears its selection."""
        annotation = store.add_annotation((10, 10, 40, 30))
        store.set_selected(annotation.id)

        store.delete_annotation(annotation.id)

        assert store.annotations == ()
        assert store.selected_id is None

    def test_delete_unknown_id_consumes_undo_step(self, store):
        """Test deleting an unknown id still pushes a snapshot."""
        store.add_annotation((10, 10, 40, 30))

        store.delete_annotation("missing")

        assert store.undo_count == 2
        assert len(store.annotations) == 1

    def test_move_annotation_does_not_push_undo(self, store):
        """Test moves replace the bbox in place without an undo entry."""
        annotation = store.add_annotation((10, 10, 40, 30))

        assert store.move_annotation(annotation.id, (20, 20, 40, 30))

        assert store.get(annotation.id).bbox == (20.0, 20.0, 40.0, 30.0)
        assert store.get(annotation.id).timestamp == annotation.timestamp
        assert store.undo_count == 1
        assert store.move_annotation("missing", (0, 0, 1, 1)) is False

    def test_clear_all(self, store):
        """Test clearing empties the list and can be undone."""
        store.add_annotation((10, 10, 40, 30))
        store.add_annotation((50, 50, 10, 10))

        store.clear_all()
        assert store.annotations == ()

        store.undo()
        assert len(store.annotations) == 2

    def test_restore_session_resets_history(self, store, sample_session):
        """Test restoring replaces the list and forgets undo history."""
        store.add_annotation((10, 10, 40, 30))
        store.set_selected(store.annotations[0].id)

        store.restore_session(sample_session.annotations)

        assert [a.id for a in store.annotations] == ["a", "b"]
        assert store.can_undo() is False
        assert store.selected_id is None

    def test_set_active_class_ignores_unknown(self, store):
        """Test unknown class ids are ignored."""
        store.set_active_class(3)
        store.set_active_class(99)

        assert store.active_class_id == 3


class TestUndo:
    """Tests for snapshot undo."""

    def test_undo_empty_stack_is_noop(self, store):
        """Test undo with nothing to undo."""
        assert store.undo() is False
        assert store.annotations == ()

    def test_undo_restores_exact_prior_states(self, store):
        """Test each undo restores the list from before that operation."""
        states = [store.annotations]
        store.add_annotation((0, 0, 10, 10))
        states.append(store.annotations)
        store.add_annotation((20, 20, 10, 10))
        states.append(store.annotations)
        store.delete_annotation(store.annotations[0].id)
        states.append(store.annotations)
        store.clear_all()

        for expected in reversed(states):
            assert store.undo() is True
            assert store.annotations == expected

        assert store.undo() is False

    def test_undo_clears_selection(self, store):
        """Test undo drops the selection."""
        annotation = store.add_annotation((0, 0, 10, 10))
        store.add_annotation((20, 20, 10, 10))
        store.set_selected(annotation.id)

        store.undo()

        assert store.selected_id is None

    def test_history_limit(self, qapp):
        """Test old snapshots are dropped beyond max_history."""
        store = AnnotationStore(max_history=3)
        for i in range(5):
            store.add_annotation((i, 0, 10, 10))

        assert store.undo_count == 3
        store.undo()
        assert len(store.annotations) == 4


class TestDisplayState:
    """Tests for opacity, labels and class visibility."""

    def test_opacity_clamped(self, store):
        """Test opacity is clamped to [0, 1]."""
        store.set_opacity(1.7)
        assert store.box_opacity == 1.0

        store.set_opacity(-0.2)
        assert store.box_opacity == 0.0

    def test_toggle_labels(self, store):
        """Test toggling label display."""
        assert store.show_labels is True
        store.toggle_labels()
        assert store.show_labels is False

    def test_toggle_class_visibility(self, store):
        """Test hiding and showing one class."""
        store.add_annotation((0, 0, 10, 10))
        store.set_active_class(2)
        store.add_annotation((0, 0, 10, 10))

        store.toggle_class_visibility(1)

        assert store.is_class_visible(1) is False
        assert [a.class_id for a in store.visible_annotations()] == [2]

        store.toggle_class_visibility(1)
        assert store.is_class_visible(1) is True

    def test_toggle_all_class_visibility(self, store):
        """Test hiding all classes, then showing all again."""
        store.toggle_all_class_visibility()
        assert store.hidden_class_ids == {cls.id for cls in CLASSES}

        store.toggle_all_class_visibility()
        assert store.hidden_class_ids == frozenset()

    def test_toggle_all_shows_when_some_hidden(self, store):
        """Test toggle-all shows everything if any class is hidden."""
        store.toggle_class_visibility(2)

        store.toggle_all_class_visibility()

        assert store.hidden_class_ids == frozenset()


class TestQueries:
    """Tests for read-only queries and signals."""

    def test_snapshot(self, store):
        """Test the session snapshot."""
        store.add_annotation((0, 0, 10, 10))

        session = store.snapshot()

        assert session.image_name == "page.png"
        assert (session.image_width, session.image_height) == (200, 100)
        assert len(session.annotations) == 1

    def test_snapshot_without_image(self, qapp):
        """Test there is no snapshot before an image is loaded."""
        assert AnnotationStore().snapshot() is None

    def test_class_counts(self, store):
        """Test per-class counts include empty classes."""
        store.add_annotation((0, 0, 10, 10))
        store.add_annotation((0, 0, 10, 10))

        assert store.class_counts() == {1: 2, 2: 0, 3: 0}

    def test_signals(self, store):
        """Test change signals fire for mutations."""
        events = []
        store.annotations_changed.connect(lambda: events.append("annotations"))
        store.selection_changed.connect(lambda i: events.append(("selection", i)))
        store.undo_state_changed.connect(lambda: events.append("undo"))

        annotation = store.add_annotation((0, 0, 10, 10))
        store.set_selected(annotation.id)
        store.set_selected(annotation.id)

        assert events == ["annotations", "undo", ("selection", annotation.id)]

    def test_cursor_coords(self, store):
        """Test cursor coordinate updates only signal on change."""
        seen = []
        store.cursor_changed.connect(seen.append)

        store.set_cursor_coords((1, 2))
        store.set_cursor_coords((1, 2))
        store.set_cursor_coords(None)

        assert seen == [(1, 2), None]
