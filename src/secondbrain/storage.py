"""Binary payload storage for uploaded captures.

Uploads live at ``<root>/<bucket>/<path>``. Paths are resolved inside the
bucket directory; anything escaping it is rejected.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class StorageError(RuntimeError):
    """Raised when a payload cannot be stored or found."""


class BlobStore(ABC):
    """Interface for the storage collaborator used by the content extractor."""

    @abstractmethod
    def upload(self, bucket: str, path: str, data: bytes) -> None:
        """Store *data* at *bucket*/*path*; an existing object is an error."""

    @abstractmethod
    def download(self, bucket: str, path: str) -> bytes:
        """Return the bytes stored at *bucket*/*path*."""


class LocalBlobStore(BlobStore):
    """Filesystem-backed blob store.

    Args:
        root: Directory holding one sub-directory per bucket.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def upload(self, bucket: str, path: str, data: bytes) -> None:
        target = self._resolve(bucket, path)
        if target.exists():
            raise StorageError(f"Object already exists: {bucket}/{path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def download(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        if not target.is_file():
            raise StorageError(f"File not found in storage: {bucket}/{path}")
        return target.read_bytes()

    def _resolve(self, bucket: str, path: str) -> Path:
        if not bucket or "/" in bucket or bucket in (".", ".."):
            raise StorageError(f"Invalid bucket name: {bucket!r}")
        base = (self.root / bucket).resolve()
        target = (base / path).resolve()
        if target == base or base not in target.parents:
            raise StorageError(f"Path escapes bucket '{bucket}': {path!r}")
        return target
