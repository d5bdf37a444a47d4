"""Object storage for money log receipts.

Uploaders take raw bytes and a logical prefix and hand back a public URL.
The ``local`` backend writes under the data directory; the ``cloudinary``
backend stores images in a Cloudinary folder named after the prefix.
"""

from __future__ import annotations

import logging
import posixpath
import uuid
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import unquote, urlparse

import cloudinary
import cloudinary.uploader

from config import Settings, get_settings
from errors import StorageError


logger = logging.getLogger(__name__)


def filename_from_url(url: str) -> str:
    """Last path segment of ``url``, i.e. the name the object is stored under."""
    path = urlparse(url).path or url
    return unquote(posixpath.basename(path))


def _safe_suffix(filename: Optional[str]) -> str:
    suffix = Path(filename or "").suffix.lower()
    if len(suffix) > 10 or not suffix[1:].isalnum():
        return ""
    return suffix


class Uploader(Protocol):
    def upload(
        self, content: bytes, prefix: str, filename: Optional[str] = None
    ) -> str: ...

    def delete(self, url: str) -> None: ...


class LocalUploader:
    def __init__(self, root: Path, base_url: str) -> None:
        self.root = root
        self.base_url = base_url.rstrip("/")

    def _path_for(self, url: str) -> Path:
        relative = url[len(self.base_url) :].lstrip("/")
        path = (self.root / relative).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"URL {url!r} is outside the upload directory")
        return path

    def upload(
        self, content: bytes, prefix: str, filename: Optional[str] = None
    ) -> str:
        store_name = f"{uuid.uuid4().hex}{_safe_suffix(filename)}"
        target_dir = self.root / prefix
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            (target_dir / store_name).write_bytes(content)
        except OSError as exc:
            raise StorageError(f"Failed to store {filename or store_name}") from exc
        url = f"{self.base_url}/{prefix}/{store_name}"
        logger.info(f"storage_upload: backend=local prefix={prefix} url={url}")
        return url

    def delete(self, url: str) -> None:
        path = self._path_for(url)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {url}") from exc


class CloudinaryUploader:
    def __init__(self, cloud_name: str, api_key: str, api_secret: str) -> None:
        self._credentials = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
        }
        self._configured = False

    def _configure(self) -> None:
        if not self._configured:
            cloudinary.config(secure=True, **self._credentials)
            self._configured = True

    @staticmethod
    def _public_id(url: str) -> str:
        # .../image/upload/v1712345678/moneyLog/abc123.jpg -> moneyLog/abc123
        path = urlparse(url).path
        _, _, tail = path.partition("/upload/")
        parts = tail.split("/")
        if parts and parts[0].startswith("v") and parts[0][1:].isdigit():
            parts = parts[1:]
        return posixpath.splitext("/".join(parts))[0]

    def upload(
        self, content: bytes, prefix: str, filename: Optional[str] = None
    ) -> str:
        self._configure()
        try:
            result = cloudinary.uploader.upload(
                content,
                folder=prefix,
                public_id=uuid.uuid4().hex,
                resource_type="image",
            )
        except Exception as exc:
            raise StorageError(f"Failed to upload {filename or 'image'}") from exc
        url = result.get("secure_url") or result.get("url")
        if not url:
            raise StorageError("Cloudinary response did not include a URL")
        logger.info(f"storage_upload: backend=cloudinary prefix={prefix} url={url}")
        return url

    def delete(self, url: str) -> None:
        self._configure()
        try:
            cloudinary.uploader.destroy(self._public_id(url), resource_type="image")
        except Exception as exc:
            raise StorageError(f"Failed to delete {url}") from exc


def build_uploader(settings: Optional[Settings] = None) -> Uploader:
    settings = settings or get_settings()
    backend = settings.storage_backend
    if backend == "local":
        return LocalUploader(settings.storage_dir, settings.storage_base_url)
    if backend == "cloudinary":
        if not (
            settings.cloudinary_cloud_name
            and settings.cloudinary_api_key
            and settings.cloudinary_api_secret
        ):
            raise ValueError("Cloudinary storage requires cloud name, key and secret")
        return CloudinaryUploader(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
        )
    raise ValueError(f"Unsupported storage backend: {backend}")
