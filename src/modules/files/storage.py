"""Blob store contract and the default local-disk implementation.

Only storage ids are persisted by the service; blob bytes live behind this
interface.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Protocol

from src.config import settings
from src.exceptions import NotFoundException, ValidationException

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def generate_upload_url(self) -> str: ...

    def put_blob(self, upload_url: str, data: bytes) -> str: ...

    def get_url(self, storage_id: str) -> str: ...

    def delete(self, storage_id: str) -> None: ...


class LocalBlobStore:
    """Stores blobs as files named by their storage id under ``root``."""

    def __init__(self, root: str | Path | None = None, public_base_url: str | None = None):
        self.root = Path(root or settings.file_storage_dir)
        self.public_base_url = (public_base_url or settings.file_public_base_url).rstrip("/")

    def generate_upload_url(self) -> str:
        return f"{self.public_base_url}/upload/{uuid.uuid4().hex}"

    def put_blob(self, upload_url: str, data: bytes) -> str:
        prefix = f"{self.public_base_url}/upload/"
        if not upload_url.startswith(prefix):
            raise ValidationException("Upload URL was not issued by this store")
        storage_id = upload_url[len(prefix):]
        if not storage_id.isalnum():
            raise ValidationException("Malformed upload URL")
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / storage_id).write_bytes(data)
        logger.info("Stored blob %s (%d bytes)", storage_id, len(data))
        return storage_id

    def get_url(self, storage_id: str) -> str:
        if not (self.root / storage_id).exists():
            raise NotFoundException(f"Blob {storage_id} not found")
        return f"{self.public_base_url}/{storage_id}"

    def delete(self, storage_id: str) -> None:
        (self.root / storage_id).unlink(missing_ok=True)


def get_blob_store() -> BlobStore:
    """FastAPI dependency returning the configured blob store."""
    return LocalBlobStore()
