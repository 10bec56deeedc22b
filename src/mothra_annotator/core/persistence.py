"""Local persistence of per-image annotation sessions."""

from __future__ import annotations

import json
import logging
import os
import platform
import re
from pathlib import Path
from typing import List, Optional, Union

from PyQt6.QtCore import QObject

from .errors import MalformedRecordError
from .models import Annotation, Session
from .scheduler import FrameScheduler
from .session_io import parse_session, to_json
from .store import AnnotationStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "mothra-session-"

# Delay between the last edit and the background save
AUTOSAVE_INTERVAL_MS = 500

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def get_session_dir() -> Path:
    """Get the per-user data directory for stored sessions."""
    system = platform.system()

    if system == "Darwin":  # macOS
        data_base = Path.home() / "Library" / "Application Support"
    elif system == "Windows":
        data_base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    else:  # Linux and others
        data_base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))

    return data_base / "mothra-annotator" / "sessions"


def storage_key(image_name: str) -> str:
    """Storage key for the session of an image."""
    return f"{KEY_PREFIX}{image_name}"


def merge_restored(
    session: Optional[Session],
    width: int,
    height: int
) -> Optional[List[Annotation]]:
    """
    Annotations of a stored session, if it was recorded for this image size.

    Returns:
        The stored annotations, or None if there is no session or the
        recorded dimensions differ from (width, height)
    """
    if session is None:
        return None
    if not session.matches_size(width, height):
        logger.info(
            f"Ignoring stored session for {session.image_name}: recorded "
            f"{session.image_width}x{session.image_height}, image is {width}x{height}"
        )
        return None
    return list(session.annotations)


class SessionStorage:
    """
    One JSON file per image name inside a directory.

    Writes never raise: a failed save is logged and the in-memory session
    carries on untouched.
    """

    def __init__(self, directory: Optional[Union[str, Path]] = None) -> None:
        """
        Initialize the storage.

        Args:
            directory: Directory holding session files; defaults to the
                per-user data directory
        """
        self.directory = Path(directory) if directory else get_session_dir()

    def path_for(self, image_name: str) -> Path:
        """File path used for an image's session."""
        safe_name = _UNSAFE_CHARS.sub("_", storage_key(image_name))
        return self.directory / f"{safe_name}.json"

    def save(self, session: Session) -> bool:
        """
        Write a session snapshot.

        Returns:
            True if the write succeeded
        """
        path = self.path_for(session.image_name)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(to_json(session))
            logger.debug(f"Saved session to {path}")
            return True
        except OSError as e:
            logger.error(f"Error saving session for {session.image_name}: {e}")
            return False

    def load(self, image_name: str) -> Optional[Session]:
        """
        Read the stored session of an image.

        Returns:
            The session, or None if nothing valid is stored
        """
        path = self.path_for(image_name)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            session = parse_session(data)
            logger.info(f"Loaded stored session for {image_name}")
            return session
        except (OSError, json.JSONDecodeError, MalformedRecordError) as e:
            logger.warning(f"Ignoring unreadable session file {path}: {e}")
            return None

    def clear(self, image_name: str) -> None:
        """Remove the stored session of an image, if any."""
        path = self.path_for(image_name)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Error removing session file {path}: {e}")

    def restore(self, image_name: str, width: int, height: int) -> Optional[List[Annotation]]:
        """Stored annotations for an image, if recorded for the same size."""
        return merge_restored(self.load(image_name), width, height)


class SessionAutosaver(QObject):
    """
    Saves the store's session in the background after edits.

    Every edit restarts the timer, so a burst of edits collapses into one
    write `interval_ms` after the last of them.
    """

    def __init__(
        self,
        store: AnnotationStore,
        storage: SessionStorage,
        interval_ms: int = AUTOSAVE_INTERVAL_MS,
        parent: Optional[QObject] = None
    ) -> None:
        super().__init__(parent)
        self.store = store
        self.storage = storage
        self.enabled = True
        self._scheduler = FrameScheduler(self._save_now, interval_ms, self)
        store.annotations_changed.connect(self.schedule)

    @property
    def pending(self) -> bool:
        return self._scheduler.pending

    def schedule(self) -> None:
        if self.enabled and self.store.has_image:
            self._scheduler.restart()

    def flush(self) -> None:
        """Write any pending save immediately."""
        self._scheduler.flush()

    def cancel(self) -> None:
        self._scheduler.cancel()

    def _save_now(self) -> None:
        session = self.store.snapshot()
        if session is not None:
            self.storage.save(session)
