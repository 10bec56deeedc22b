"""Image file loading and decoding."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from PyQt6.QtCore import QBuffer, QByteArray, QIODevice
from PyQt6.QtGui import QImage, QImageReader

from .errors import DecodeFailureError, UnsupportedFileTypeError

logger = logging.getLogger(__name__)

# Supported image extensions
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp", ".tif", ".tiff"}

# Filter string for file dialogs
IMAGE_FILE_FILTER = "Images ({})".format(
    " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
)


@dataclass
class LoadedImage:
    """A decoded image and its natural pixel size."""

    image: QImage
    name: str
    width: int
    height: int


def is_supported(path: Union[str, Path]) -> bool:
    """Check whether a file has an accepted image extension."""
    return Path(path).suffix.lower() in IMAGE_EXTENSIONS


def _read(reader: QImageReader, name: str) -> LoadedImage:
    reader.setAutoTransform(True)
    image = reader.read()
    if image.isNull():
        raise DecodeFailureError(f"Could not decode {name}: {reader.errorString()}")
    return LoadedImage(image=image, name=name, width=image.width(), height=image.height())


def load_image(path: Union[str, Path]) -> LoadedImage:
    """
    Load and decode an image file.

    Args:
        path: Path to the image file

    Returns:
        LoadedImage with the decoded image and its size

    Raises:
        UnsupportedFileTypeError: If the extension is not an accepted image type
        DecodeFailureError: If the file cannot be read or decoded
    """
    path = Path(path)
    if not is_supported(path):
        raise UnsupportedFileTypeError(f"Unsupported file type: {path.suffix or path.name}")
    if not path.is_file():
        raise DecodeFailureError(f"Image file not found: {path}")

    loaded = _read(QImageReader(str(path)), path.name)
    logger.info(f"Loaded image {path.name} ({loaded.width}x{loaded.height})")
    return loaded


def load_image_data(data: bytes, name: str) -> LoadedImage:
    """
    Decode image bytes, for example from a drop or the clipboard.

    Raises:
        UnsupportedFileTypeError: If the name has no accepted image extension
        DecodeFailureError: If the bytes cannot be decoded
    """
    if not is_supported(name):
        raise UnsupportedFileTypeError(f"Unsupported file type: {name}")

    buffer = QBuffer()
    buffer.setData(QByteArray(data))
    buffer.open(QIODevice.OpenModeFlag.ReadOnly)
    try:
        return _read(QImageReader(buffer), name)
    finally:
        buffer.close()
