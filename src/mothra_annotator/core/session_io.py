"""JSON and YOLO export and import of annotation sessions."""

from __future__ import annotations

import json
import logging
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Union

from .errors import DimensionMismatchError, MalformedRecordError
from .models import Annotation, Session

logger = logging.getLogger(__name__)

# Boxes narrower or shorter than this (image pixels) are left out of YOLO output
YOLO_MIN_EXPORT_SIZE = 1.0

PathLike = Union[str, Path]


# === Export ===

def to_json(session: Session) -> str:
    """Serialize a session to the exchanged JSON record layout."""
    return json.dumps(session.to_dict(), indent=2)


def to_yolo(session: Session) -> str:
    """
    Serialize a session to YOLO text.

    One line per box: `classIndex cx cy w h`, with a zero-based class
    index and center/size normalized by the image dimensions to six
    decimals. Boxes under one pixel on either side are omitted.
    """
    width = session.image_width
    height = session.image_height
    lines: List[str] = []

    for annotation in session.annotations:
        x, y, w, h = annotation.bbox
        if w < YOLO_MIN_EXPORT_SIZE or h < YOLO_MIN_EXPORT_SIZE:
            continue

        x_center = (x + w / 2) / width
        y_center = (y + h / 2) / height
        lines.append(
            f"{annotation.class_id - 1} {x_center:.6f} {y_center:.6f} "
            f"{w / width:.6f} {h / height:.6f}"
        )

    return "\n".join(lines)


def export_file_names(session: Session) -> Dict[str, str]:
    """Default file names for each export kind, derived from the image name."""
    base = session.base_name
    return {
        "json": f"{base}.json",
        "yolo": f"{base}.txt",
        "zip": f"{base}_annotations.zip",
    }


def write_json(session: Session, path: PathLike) -> Path:
    """Write the JSON export of a session to a file."""
    path = Path(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(to_json(session))
    logger.info(f"Saved {len(session.annotations)} annotations to {path}")
    return path


def write_yolo(session: Session, path: PathLike) -> Path:
    """Write the YOLO export of a session to a file."""
    path = Path(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(to_yolo(session))
    logger.info(f"Saved YOLO annotations to {path}")
    return path


def write_zip(session: Session, path: PathLike) -> Path:
    """Write a zip archive holding both the JSON and the YOLO export."""
    path = Path(path)
    names = export_file_names(session)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(names["json"], to_json(session))
        archive.writestr(names["yolo"], to_yolo(session))
    logger.info(f"Saved annotation archive to {path}")
    return path


# === Import ===

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_annotation(index: int, entry: Any) -> None:
    if not isinstance(entry, dict):
        raise MalformedRecordError(f"Annotation {index} is not an object")

    annotation_id = entry.get("id")
    if not isinstance(annotation_id, str) or not annotation_id:
        raise MalformedRecordError(f"Annotation {index} has no id")

    if not _is_number(entry.get("classId")):
        raise MalformedRecordError(f"Annotation {index} has no numeric classId")

    bbox = entry.get("bbox")
    if not isinstance(bbox, list) or len(bbox) != 4:
        raise MalformedRecordError(f"Annotation {index} bbox must have 4 elements")
    if not all(_is_number(v) for v in bbox):
        raise MalformedRecordError(f"Annotation {index} bbox must be numeric")

    timestamp = entry.get("timestamp")
    if timestamp is not None and not isinstance(timestamp, str):
        raise MalformedRecordError(f"Annotation {index} timestamp must be a string")


def parse_session(data: Any) -> Session:
    """
    Validate a decoded record and build a session from it.

    Every field is checked before anything is built, so a single bad
    annotation rejects the whole record.

    Raises:
        MalformedRecordError: If any required field is missing or mistyped
    """
    if not isinstance(data, dict):
        raise MalformedRecordError("Record is not an object")

    image_name = data.get("imageName")
    if not isinstance(image_name, str) or not image_name:
        raise MalformedRecordError("Record has no imageName")

    if not _is_number(data.get("imageWidth")) or not _is_number(data.get("imageHeight")):
        raise MalformedRecordError("Record has no numeric imageWidth/imageHeight")

    annotations = data.get("annotations")
    if not isinstance(annotations, list):
        raise MalformedRecordError("Record has no annotations list")

    for index, entry in enumerate(annotations):
        _validate_annotation(index, entry)

    return Session.from_dict(data)


def parse_json(text: str) -> Session:
    """Decode JSON text and validate it as a session record."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedRecordError(f"Invalid JSON: {e}") from e
    return parse_session(data)


def import_json(path: PathLike) -> Session:
    """
    Read and validate a JSON export from disk.

    Raises:
        MalformedRecordError: If the file is not a valid session record
        OSError: If the file cannot be read
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    session = parse_json(text)
    logger.info(f"Imported {len(session.annotations)} annotations from {path}")
    return session


def check_dimensions(session: Session, width: int, height: int) -> None:
    """
    Check that a record was made for an image of the given size.

    Raises:
        DimensionMismatchError: If the sizes differ
    """
    if not session.matches_size(width, height):
        raise DimensionMismatchError(
            expected=(width, height),
            actual=(session.image_width, session.image_height),
        )


def parse_yolo(text: str, width: int, height: int) -> List[Annotation]:
    """
    Read YOLO lines back into annotations for an image of the given size.

    Blank lines are ignored; malformed lines are skipped with a warning.
    """
    annotations: List[Annotation] = []

    for line_num, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line:
            continue

        parts = line.split()
        if len(parts) != 5:
            logger.warning(f"Skipping YOLO line {line_num}: expected 5 values")
            continue

        try:
            class_index = int(parts[0])
            x_center, y_center, w, h = map(float, parts[1:])
        except ValueError as e:
            logger.warning(f"Skipping YOLO line {line_num}: {e}")
            continue

        box_w = w * width
        box_h = h * height
        bbox = (x_center * width - box_w / 2, y_center * height - box_h / 2, box_w, box_h)
        annotations.append(Annotation.create(bbox, class_index + 1))

    logger.debug(f"Parsed {len(annotations)} YOLO boxes")
    return annotations
