"""Blob stores holding the files uploaded with contacts.

A blob store exposes ``put``, ``delete`` and ``exists``. Stored files are
addressed by the path returned from ``put``, which is what the contact
row keeps in ``file_path``. Two backends are provided: a local directory
(default) and Cloudinary.
"""

import abc
import contextlib
import logging
import re
import shutil
import time
import uuid
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import BinaryIO

import cloudinary
import cloudinary.api
import cloudinary.exceptions
import cloudinary.uploader

from .core import get_settings

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class BlobStoreError(Exception):
    """Raised when a blob cannot be written, removed or inspected."""


@dataclass
class Attachment:
    """File received with a request, not yet written to a blob store."""

    stream: BinaryIO
    filename: str


def generate_blob_name(original_name: str) -> str:
    """
    Build a collision-resistant name for an uploaded file.

    The name is prefixed with the current epoch milliseconds and a random
    token; directory components and unsafe characters are stripped from
    the original name.

    Args:
        original_name (str): File name supplied by the client.

    Returns:
        str: Generated blob name.
    """
    base = Path((original_name or "").replace("\\", "/")).name
    safe = _UNSAFE_CHARS.sub("_", base) or "upload"
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{safe}"


class BlobStore(abc.ABC):
    """Interface shared by all blob store backends."""

    @abc.abstractmethod
    def put(self, data: BinaryIO | bytes, original_name: str) -> str:
        """Store ``data`` and return the path it can be addressed by."""

    @abc.abstractmethod
    def delete(self, path: str) -> None:
        """Remove the blob at ``path``; missing blobs are ignored."""

    @abc.abstractmethod
    def exists(self, path: str) -> bool:
        """Return whether a blob is stored at ``path``."""


class LocalBlobStore(BlobStore):
    """Blob store backed by a directory on the local filesystem."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def put(self, data: BinaryIO | bytes, original_name: str) -> str:
        target = self.root / generate_blob_name(original_name)
        try:
            with target.open("wb") as fh:
                if isinstance(data, (bytes, bytearray)):
                    fh.write(data)
                else:
                    shutil.copyfileobj(data, fh)
        except OSError as exc:
            with contextlib.suppress(OSError):
                target.unlink(missing_ok=True)
            raise BlobStoreError(f"Could not store {original_name!r}") from exc
        logger.debug("Stored blob %s", target)
        return target.as_posix()

    def _resolve(self, path: str) -> Path:
        resolved = Path(path).resolve()
        if self.root.resolve() not in resolved.parents:
            raise BlobStoreError(f"{path!r} is outside of {self.root}")
        return resolved

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise BlobStoreError(f"Could not delete {path!r}") from exc
        logger.debug("Deleted blob %s", target)

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).is_file()
        except BlobStoreError:
            return False


class CloudinaryBlobStore(BlobStore):
    """
    Blob store that uploads files to Cloudinary as ``raw`` resources.

    The Cloudinary ``public_id`` of the upload is used as the blob path.
    """

    resource_type = "raw"

    def __init__(self, folder: str = "contacts_files"):
        self.folder = folder

    def put(self, data: BinaryIO | bytes, original_name: str) -> str:
        try:
            result = cloudinary.uploader.upload(
                data,
                folder=self.folder,
                public_id=generate_blob_name(original_name),
                resource_type=self.resource_type,
                overwrite=False,
            )
        except cloudinary.exceptions.Error as exc:
            raise BlobStoreError(f"Could not upload {original_name!r}") from exc

        public_id = result.get("public_id")
        if not public_id:
            raise BlobStoreError(f"Cloudinary returned no public_id for {original_name!r}")
        return public_id

    def delete(self, path: str) -> None:
        try:
            cloudinary.uploader.destroy(
                path, resource_type=self.resource_type, invalidate=True
            )
        except cloudinary.exceptions.Error as exc:
            raise BlobStoreError(f"Could not delete {path!r}") from exc

    def exists(self, path: str) -> bool:
        try:
            cloudinary.api.resource(path, resource_type=self.resource_type)
        except cloudinary.exceptions.NotFound:
            return False
        except cloudinary.exceptions.Error as exc:
            raise BlobStoreError(f"Could not look up {path!r}") from exc
        return True


@lru_cache()
def get_blob_store() -> BlobStore:
    """
    Return the blob store selected by ``BLOB_BACKEND``.

    Used as a FastAPI dependency; the instance is built once per process.

    Raises:
        RuntimeError: If the cloudinary backend is selected without
            ``CLOUDINARY_URL``, or the backend name is unknown.

    Returns:
        BlobStore: Configured blob store.
    """
    settings = get_settings()
    backend = settings.BLOB_BACKEND.lower()

    if backend == "cloudinary":
        if not settings.CLOUDINARY_URL:
            raise RuntimeError("BLOB_BACKEND=cloudinary requires CLOUDINARY_URL")
        cloudinary.config(cloudinary_url=settings.CLOUDINARY_URL)
        return CloudinaryBlobStore(folder=settings.CLOUDINARY_FOLDER)

    if backend == "local":
        return LocalBlobStore(settings.UPLOAD_DIR)

    raise RuntimeError(f"Unknown BLOB_BACKEND {settings.BLOB_BACKEND!r}")
