"""Pytest configuration and fixtures."""

import os
import pytest
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Run Qt without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session")
def qapp():
    """Create a QApplication for tests that need it."""
    from PyQt6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])

    yield app


@pytest.fixture
def store(qapp):
    """Provide a store with a 200x100 image loaded."""
    from mothra_annotator.core.store import AnnotationStore

    store = AnnotationStore()
    store.set_image_info("page.png", 200, 100)
    return store


@pytest.fixture
def sample_session():
    """Provide a session with two annotations."""
    from mothra_annotator.core.models import Annotation, Session

    return Session(
        image_name="page.png",
        image_width=200,
        image_height=100,
        annotations=[
            Annotation(id="a", class_id=1, bbox=(0.0, 0.0, 100.0, 50.0),
                       timestamp="2024-01-01T00:00:00.000Z"),
            Annotation(id="b", class_id=3, bbox=(20.0, 30.0, 40.0, 10.0),
                       timestamp="2024-01-01T00:00:01.000Z"),
        ],
    )


@pytest.fixture
def sample_record(sample_session):
    """Provide the exchanged record layout of the sample session."""
    return sample_session.to_dict()
