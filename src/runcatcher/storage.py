"""
Flat-file capture storage.

The captures directory is the database: one ``runner_<timestamp>.jpg`` per
capture, no index or manifest. Listings re-scan the directory on every call.
"""

import base64
import binascii
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from .capture.types import DATA_URI_PREFIX, isoformat_utc
from .errors import CaptureStorageError, InvalidCaptureError


logger = logging.getLogger(__name__)


FILENAME_PREFIX = "runner_"
MAX_NAME_ATTEMPTS = 1000


@dataclass
class StoredCapture:
    """A JPEG file in the captures directory."""
    filename: str
    created: float                 # Unix timestamp from filesystem metadata

    @property
    def path(self) -> str:
        return f"/captures/{self.filename}"

    def to_dict(self) -> dict:
        return {
            'filename': self.filename,
            'path': self.path,
            'created': isoformat_utc(self.created),
        }


def decode_image(image: Any) -> bytes:
    """
    Decode a ``data:image/jpeg;base64,`` data URI (or bare base64) to bytes.

    Only the JPEG prefix is stripped; any other prefix is left in place and
    will usually fail to decode.
    """
    if not image:
        raise InvalidCaptureError("No image data provided")
    if not isinstance(image, str):
        raise InvalidCaptureError(f"Expected a base64 string, got {type(image).__name__}")

    base64_data = image[len(DATA_URI_PREFIX):] if image.startswith(DATA_URI_PREFIX) else image
    try:
        return base64.b64decode(base64_data)
    except (binascii.Error, ValueError) as e:
        raise InvalidCaptureError(f"Invalid base64 image data: {e}") from e


def timestamp_filename(timestamp: float) -> str:
    """``runner_2024-05-01T12-30-45-123Z.jpg`` for the given Unix time."""
    stamp = isoformat_utc(timestamp).replace(':', '-').replace('.', '-')
    return f"{FILENAME_PREFIX}{stamp}.jpg"


def _created_time(stat: os.stat_result) -> float:
    # Birth time where the platform reports it, change time otherwise
    return getattr(stat, 'st_birthtime', stat.st_ctime)


class CaptureStore:
    """
    Writes and lists capture files.

    Usage:
        store = CaptureStore("captures")
        filename = store.save(jpeg_bytes)
        for capture in store.list_captures():
            print(capture.filename, capture.created)
    """

    def __init__(self, directory: str):
        self.directory = Path(directory).resolve()
        self.directory.mkdir(parents=True, exist_ok=True)

    def save(self, image_bytes: bytes, received_at: Optional[float] = None) -> str:
        """
        Write a capture named after the server receipt time.

        The file is created exclusively; when the name is taken a numeric
        suffix is added instead of overwriting.

        Returns:
            str: Filename relative to the captures directory
        """
        if received_at is None:
            received_at = time.time()
        base = timestamp_filename(received_at)
        stem = base[:-len('.jpg')]

        for attempt in range(MAX_NAME_ATTEMPTS):
            filename = base if attempt == 0 else f"{stem}_{attempt}.jpg"
            try:
                with open(self.directory / filename, 'xb') as f:
                    f.write(image_bytes)
            except FileExistsError:
                continue
            except OSError as e:
                raise CaptureStorageError(str(e)) from e

            if attempt:
                logger.warning("Filename collision, saved as %s", filename)
            return filename

        raise CaptureStorageError(f"No free filename for {base}")

    def list_captures(self) -> List[StoredCapture]:
        """All .jpg captures, newest first."""
        captures = []
        with os.scandir(self.directory) as entries:
            for entry in entries:
                if not entry.name.endswith('.jpg') or not entry.is_file():
                    continue
                captures.append(StoredCapture(entry.name, _created_time(entry.stat())))

        captures.sort(key=lambda c: (c.created, c.filename), reverse=True)
        return captures

    def count(self) -> int:
        """Number of directory entries (any file type)."""
        return len(os.listdir(self.directory))

    def resolve(self, filename: str) -> Optional[Path]:
        """Path of a stored capture, None if missing or outside the directory."""
        path = (self.directory / filename).resolve()
        if path.parent != self.directory or not path.is_file():
            return None
        return path
