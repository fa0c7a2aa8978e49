"""
Blob storage abstraction for document and biometric artifacts.

v0: file:// support (local filesystem)
s3:// is recognised but not implemented yet.

Objects are addressed by (namespace, key). The namespace is the record's
salted identifier hash; keys are ``<ArtifactKind folder>/<artifact id>``.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


class BlobStoreError(Exception):
    """Raised when the store cannot be read or written."""

    def __init__(self, message: str, namespace: str = "", key: str = ""):
        self.namespace = namespace
        self.key = key
        super().__init__(message)


class BlobStore(ABC):
    """Abstract base class for blob storage."""

    @abstractmethod
    def put(self, namespace: str, key: str, data: bytes) -> None:
        """Write raw bytes under (namespace, key), replacing any previous content."""
        pass

    @abstractmethod
    def get(self, namespace: str, key: str) -> bytes:
        """Read raw bytes stored under (namespace, key)."""
        pass

    @abstractmethod
    def exists(self, namespace: str, key: str) -> bool:
        """Whether an object is stored under (namespace, key)."""
        pass

    @abstractmethod
    def get_uri(self) -> str:
        """Get the full URI of this store."""
        pass


class FileBlobStore(BlobStore):
    """Local filesystem blob store (file:// URIs).

    Structure:
        {base_path}/
        └── {namespace}/
            ├── Biometrics/{artifact id}
            └── Demographics/{artifact id}
    """

    def __init__(self, base_path: Path):
        self.base_path = base_path

    def _path_for(self, namespace: str, key: str) -> Path:
        full_path = (self.base_path / namespace / key).resolve()
        if not full_path.is_relative_to(self.base_path.resolve()):
            raise BlobStoreError(f"Key escapes the store: {namespace}/{key}", namespace, key)
        return full_path

    def put(self, namespace: str, key: str, data: bytes) -> None:
        full_path = self._path_for(namespace, key)
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(data)
        except OSError as e:
            logger.error("Blob write failed for %s/%s: %s", namespace, key, e)
            raise BlobStoreError(f"Cannot write {namespace}/{key}: {e}", namespace, key) from e

    def get(self, namespace: str, key: str) -> bytes:
        full_path = self._path_for(namespace, key)
        try:
            return full_path.read_bytes()
        except OSError as e:
            logger.error("Blob read failed for %s/%s: %s", namespace, key, e)
            raise BlobStoreError(f"Cannot read {namespace}/{key}: {e}", namespace, key) from e

    def exists(self, namespace: str, key: str) -> bool:
        return self._path_for(namespace, key).is_file()

    def get_uri(self) -> str:
        return f"file://{self.base_path}"


def create_blob_store(uri: str) -> BlobStore:
    """Factory function to create the appropriate BlobStore from a URI.

    Args:
        uri: Base URI (e.g., "file:///var/lib/idrepo/objects")

    Raises:
        ValueError: If URI scheme is not supported
    """
    parsed = urlparse(uri)

    if parsed.scheme == "file":
        return FileBlobStore(Path(parsed.path))

    elif parsed.scheme == "s3":
        raise NotImplementedError(f"S3 storage not yet implemented. URI: {uri}")

    else:
        raise ValueError(
            f"Unsupported storage scheme: {parsed.scheme}. Supported: file://"
        )
