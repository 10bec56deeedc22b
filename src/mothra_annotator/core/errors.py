"""Exception types raised by the loading and import layers."""

from __future__ import annotations


class AnnotatorError(Exception):
    """Base class for all Mothra Annotator errors."""


class UnsupportedFileTypeError(AnnotatorError):
    """The selected file is not an image type the loader accepts."""


class DecodeFailureError(AnnotatorError):
    """The image bytes could not be decoded."""


class MalformedRecordError(AnnotatorError, ValueError):
    """Imported annotation data is missing or mistypes a required field."""


class DimensionMismatchError(AnnotatorError):
    """
    An imported record was made for an image of a different size.

    This is a soft condition: callers may ask the user and proceed anyway.
    """

    def __init__(
        self,
        expected: tuple[int, int],
        actual: tuple[int, int]
    ) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Image dimensions mismatch: current {expected[0]}x{expected[1]}, "
            f"record {actual[0]}x{actual[1]}"
        )
