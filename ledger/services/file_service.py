"""Storage of uploaded statement files."""

import uuid
from pathlib import PurePath
from typing import Protocol


class BlobStore(Protocol):
    """The object-storage operations FileService relies on."""

    def upload_fileobj(self, key: str, data: bytes) -> None:
        """Store bytes under a key."""

    def download_fileobj(self, key: str) -> bytes:
        """Fetch the bytes stored under a key."""

    def file_exists(self, key: str) -> bool:
        """Check whether a key exists."""


class FileService:
    """Service for statement file operations on top of an object store."""

    def __init__(self, store: BlobStore) -> None:
        """Initialize FileService with an object store (S3FileService in production)."""
        self.store = store

    def save_file(self, key: str, data: bytes) -> None:
        """Save a file under the given key."""
        self.store.upload_fileobj(key, data)

    def get_file(self, key: str) -> bytes:
        """Retrieve a file by key."""
        return self.store.download_fileobj(key)

    def file_exists(self, key: str) -> bool:
        """Check if a file exists by key."""
        return self.store.file_exists(key)

    def save_statement_upload(self, file_name: str, data: bytes) -> tuple[str, str]:
        """Store an uploaded statement and return the new job_id and its storage key."""
        job_id = str(uuid.uuid4())
        suffix = PurePath(file_name).suffix.lower()
        key = f"statements/{job_id}{suffix}"
        self.save_file(key, data)
        return job_id, key
