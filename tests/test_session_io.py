"""Tests for JSON and YOLO export and import."""

import json
import zipfile

import pytest

from mothra_annotator.core.errors import DimensionMismatchError, MalformedRecordError
from mothra_annotator.core.models import Annotation, Session
from mothra_annotator.core.session_io import (
    check_dimensions,
    export_file_names,
    import_json,
    parse_json,
    parse_session,
    parse_yolo,
    to_json,
    to_yolo,
    write_json,
    write_yolo,
    write_zip,
)


def session_with(*bboxes, class_id=1, width=200, height=100):
    return Session(
        image_name="page.png",
        image_width=width,
        image_height=height,
        annotations=[
            Annotation(id=f"id{i}", class_id=class_id, bbox=bbox, timestamp="")
            for i, bbox in enumerate(bboxes)
        ],
    )


class TestYOLOExport:
    """Tests for YOLO text export."""

    def test_single_box(self):
        """Test the normalized line for a known box."""
        session = session_with((0, 0, 100, 50))

        assert to_yolo(session) == "0 0.250000 0.250000 0.500000 0.500000"

    def test_class_index_is_zero_based(self):
        """Test class ids map to zero-based indices."""
        session = session_with((0, 0, 100, 50), class_id=3)

        assert to_yolo(session).startswith("2 ")

    def test_lines_joined_without_trailing_newline(self):
        """Test multiple boxes are newline separated."""
        session = session_with((0, 0, 100, 50), (100, 50, 100, 50))

        assert to_yolo(session).split("\n") == [
            "0 0.250000 0.250000 0.500000 0.500000",
            "0 0.750000 0.750000 0.500000 0.500000",
        ]

    def test_sub_pixel_boxes_omitted(self):
        """Test boxes under one pixel wide or high are left out."""
        session = session_with((0, 0, 0.5, 50), (0, 0, 50, 0.9), (0, 0, 1, 1))

        assert to_yolo(session) == "0 0.002500 0.005000 0.005000 0.010000"

    def test_empty_session(self):
        """Test an empty session exports empty text."""
        assert to_yolo(session_with()) == ""


class TestJSONExport:
    """Tests for JSON export."""

    def test_layout(self, sample_session):
        """Test the exchanged record layout."""
        data = json.loads(to_json(sample_session))

        assert data["imageName"] == "page.png"
        assert data["imageWidth"] == 200
        assert data["imageHeight"] == 100
        assert data["annotations"][0] == {
            "id": "a",
            "classId": 1,
            "bbox": [0.0, 0.0, 100.0, 50.0],
            "timestamp": "2024-01-01T00:00:00.000Z",
        }

    def test_indented(self, sample_session):
        """Test the output is pretty-printed with two spaces."""
        assert '\n  "imageName"' in to_json(sample_session)

    def test_file_names(self, sample_session):
        """Test export names derive from the image base name."""
        assert export_file_names(sample_session) == {
            "json": "page.json",
            "yolo": "page.txt",
            "zip": "page_annotations.zip",
        }


class TestWriters:
    """Tests for writing exports to disk."""

    def test_write_json_round_trip(self, tmp_path, sample_session):
        """Test a written JSON file imports back to the same session."""
        path = write_json(sample_session, tmp_path / "page.json")

        assert import_json(path) == sample_session

    def test_write_yolo(self, tmp_path):
        """Test writing YOLO text."""
        path = write_yolo(session_with((0, 0, 100, 50)), tmp_path / "page.txt")

        assert path.read_text() == "0 0.250000 0.250000 0.500000 0.500000"

    def test_write_zip(self, tmp_path, sample_session):
        """Test the archive holds both exports."""
        path = write_zip(sample_session, tmp_path / "page_annotations.zip")

        with zipfile.ZipFile(path) as archive:
            assert sorted(archive.namelist()) == ["page.json", "page.txt"]
            assert archive.read("page.txt").decode() == to_yolo(sample_session)


class TestImport:
    """Tests for validated JSON import."""

    def test_valid_record(self, sample_record, sample_session):
        """Test a valid record parses."""
        assert parse_session(sample_record) == sample_session

    def test_missing_annotations_rejected(self, sample_record):
        """Test a record without annotations is rejected."""
        del sample_record["annotations"]

        with pytest.raises(MalformedRecordError):
            parse_session(sample_record)

    def test_short_bbox_rejects_whole_record(self, sample_record):
        """Test one bad bbox rejects the whole record."""
        sample_record["annotations"][1]["bbox"] = [1, 2, 3]

        with pytest.raises(MalformedRecordError, match="bbox"):
            parse_session(sample_record)

    @pytest.mark.parametrize("field,value", [
        ("imageName", ""),
        ("imageName", None),
        ("imageWidth", "200"),
        ("imageHeight", None),
        ("imageWidth", True),
        ("annotations", {}),
    ])
    def test_bad_top_level_fields(self, sample_record, field, value):
        """Test mistyped top-level fields are rejected."""
        sample_record[field] = value

        with pytest.raises(MalformedRecordError):
            parse_session(sample_record)

    @pytest.mark.parametrize("field,value", [
        ("id", ""),
        ("id", 5),
        ("classId", "1"),
        ("bbox", [1, 2, 3, "4"]),
        ("bbox", "0,0,1,1"),
        ("timestamp", 12),
    ])
    def test_bad_annotation_fields(self, sample_record, field, value):
        """Test mistyped annotation fields are rejected."""
        sample_record["annotations"][0][field] = value

        with pytest.raises(MalformedRecordError):
            parse_session(sample_record)

    def test_missing_timestamp_filled_in(self, sample_record):
        """Test a missing timestamp is replaced with the current time."""
        del sample_record["annotations"][0]["timestamp"]

        session = parse_session(sample_record)

        assert session.annotations[0].timestamp.endswith("Z")

    def test_non_object_rejected(self):
        """Test non-object JSON is rejected."""
        with pytest.raises(MalformedRecordError):
            parse_json("[1, 2, 3]")

    def test_invalid_json_rejected(self):
        """Test undecodable text is a malformed record."""
        with pytest.raises(MalformedRecordError):
            parse_json("{not json")

    def test_malformed_record_is_value_error(self):
        """Test malformed records can be caught as ValueError."""
        with pytest.raises(ValueError):
            parse_session({})


class TestDimensions:
    """Tests for the dimension check."""

    def test_matching(self, sample_session):
        """Test matching sizes pass."""
        check_dimensions(sample_session, 200, 100)

    def test_mismatch(self, sample_session):
        """Test a size mismatch raises with both sizes."""
        with pytest.raises(DimensionMismatchError) as exc_info:
            check_dimensions(sample_session, 400, 100)

        assert exc_info.value.expected == (400, 100)
        assert exc_info.value.actual == (200, 100)


class TestYOLOImport:
    """Tests for reading YOLO lines back."""

    def test_parse(self):
        """Test a line maps back to a pixel box and one-based class."""
        annotations = parse_yolo("2 0.250000 0.250000 0.500000 0.500000\n", 200, 100)

        assert len(annotations) == 1
        assert annotations[0].class_id == 3
        assert annotations[0].bbox == pytest.approx((0, 0, 100, 50))

    def test_skips_bad_lines(self):
        """Test blank and malformed lines are skipped."""
        text = "\n0 0.5 0.5 0.1 0.1\nbad line\n0 0.5 0.5\n1 x 0.5 0.1 0.1\n"

        assert len(parse_yolo(text, 200, 100)) == 1

    def test_export_then_import(self):
        """Test exported boxes come back at the same place."""
        session = session_with((10, 20, 30, 40), (150, 0, 50, 100))

        annotations = parse_yolo(to_yolo(session), 200, 100)

        for original, parsed in zip(session.annotations, annotations):
            assert parsed.bbox == pytest.approx(original.bbox, abs=1e-3)
