"""In-memory catalogue of ingested source images.

The vectorizer worker reads from it on its own thread while the requester
adds and removes images, so every access goes through a mutex.
"""

import mimetypes
import time
from pathlib import Path

from PyQt6.QtCore import QMutex, QMutexLocker

from image2svg.models import ImageRecord


class ImageStore:
    """Thread-safe image catalogue keyed by integer id."""

    def __init__(self):
        self._records: dict[int, ImageRecord] = {}
        self._next_id = 1
        self._lock = QMutex()

    def add(self, name: str, payload: bytes, mime_type: str | None = None) -> int:
        """Persist a new image and return its id."""
        with QMutexLocker(self._lock):
            image_id = self._next_id
            self._next_id += 1
            self._records[image_id] = ImageRecord(
                id=image_id,
                name=name,
                payload=bytes(payload),
                created_at=time.time(),
                mime_type=mime_type,
            )
            return image_id

    def add_file(self, file_path: str | Path) -> int:
        """Read an image file from disk into the store."""
        path = Path(file_path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return self.add(path.name, path.read_bytes(), mime_type)

    def get(self, image_id) -> ImageRecord | None:
        with QMutexLocker(self._lock):
            return self._records.get(image_id)

    def delete(self, image_id) -> bool:
        with QMutexLocker(self._lock):
            return self._records.pop(image_id, None) is not None

    def list_recent(self) -> "list[ImageRecord]":
        """All records, newest first."""
        with QMutexLocker(self._lock):
            records = list(self._records.values())
        return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)

    def __len__(self) -> int:
        with QMutexLocker(self._lock):
            return len(self._records)
