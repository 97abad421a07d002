"""
Artifact Storage Abstraction Layer

Persists generated images: accepts either an inline ``data:`` reference or a
remote http(s) URL, writes the bytes durably and returns the local path and
public URL of the stored artifact.
"""

import io
import re
import time
import uuid
import base64
import binascii
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, List

import httpx
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

from src.core.config import settings
from src.core.exceptions import PersistenceError
from src.core.logging import get_logger

logger = get_logger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:image/([a-zA-Z0-9.+-]+);base64,(.+)$", re.DOTALL)

CONTENT_TYPE_TO_EXTENSION = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


class SavedArtifact(BaseModel):
    """Location of a persisted artifact."""
    file_path: str
    public_url: str
    file_name: str


def extension_from_content_type(content_type: str) -> str:
    """Map a MIME type (parameters allowed) to a file extension, defaulting to png."""
    mime = content_type.split(";")[0].strip().lower()
    return CONTENT_TYPE_TO_EXTENSION.get(mime, "png")


def is_data_url(url: str) -> bool:
    return url.startswith("data:")


def is_remote_url(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")


class IArtifactStorage(ABC):
    """Interface for artifact persistence."""

    @abstractmethod
    async def save_image(
        self,
        url: str,
        task: str,
        filename: Optional[str] = None
    ) -> SavedArtifact:
        """
        Persist one image and return where it was stored.

        Args:
            url: Inline data reference or http(s) URL of the image
            task: Task label, used to build the filename
            filename: Optional base filename (generated if omitted)

        Raises:
            PersistenceError: If the image could not be stored
        """
        pass

    @abstractmethod
    async def delete_image(self, file_path: str) -> bool:
        """Delete a stored image. Returns False if it did not exist."""
        pass

    async def save_images(self, urls: List[str], task: str) -> List[SavedArtifact]:
        """Persist several images in order, numbering the filenames."""
        saved = []
        for index, url in enumerate(urls, start=1):
            filename = self.generate_filename(f"{task}-{index}")
            saved.append(await self.save_image(url, task, filename=filename))
        return saved

    @staticmethod
    def generate_filename(task: str) -> str:
        """Generate a unique base filename: {task}-{epoch_ms}-{random}."""
        timestamp = int(time.time() * 1000)
        random_part = uuid.uuid4().hex[:6]
        return f"{task}-{timestamp}-{random_part}"


class LocalArtifactStorage(IArtifactStorage):
    """Local filesystem storage served under a public URL prefix."""

    def __init__(
        self,
        storage_path: str = "./data/generated",
        public_url_base: str = "/generated",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.storage_path = Path(storage_path).resolve()
        self.public_url_base = public_url_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _ensure_directory(self):
        try:
            self.storage_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to create storage directory: {e}")

    def _write(self, data: bytes, base_name: str, extension: str) -> SavedArtifact:
        self._ensure_directory()

        file_name = base_name if base_name.endswith(f".{extension}") else f"{base_name}.{extension}"
        file_path = self.storage_path / file_name

        try:
            with open(file_path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise PersistenceError(f"Failed to write image: {e}")

        return SavedArtifact(
            file_path=str(file_path),
            public_url=f"{self.public_url_base}/{file_name}",
            file_name=file_name
        )

    @staticmethod
    def _verify_image(data: bytes, source: str):
        """Reject payloads Pillow cannot identify as an image."""
        if not data:
            raise PersistenceError("Image payload is empty", source=source)
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise PersistenceError(f"Payload is not a valid image: {e}", source=source)

    def _decode_data_url(self, data_url: str) -> tuple:
        match = DATA_URL_PATTERN.match(data_url)
        if not match:
            raise PersistenceError("Invalid data URL format", source=data_url)

        subtype, payload = match.group(1).lower(), match.group(2)
        try:
            data = base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise PersistenceError(f"Invalid base64 payload: {e}", source=data_url)

        return data, extension_from_content_type(f"image/{subtype}")

    async def _download(self, url: str) -> tuple:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise PersistenceError(f"Failed to download image: {e}", source=url)

        if response.status_code < 200 or response.status_code >= 300:
            raise PersistenceError(
                f"Failed to download image: {response.status_code} {response.reason_phrase}",
                source=url
            )

        content_type = response.headers.get("content-type", "image/png")
        return response.content, extension_from_content_type(content_type)

    async def save_image(
        self,
        url: str,
        task: str,
        filename: Optional[str] = None
    ) -> SavedArtifact:
        base_name = filename or self.generate_filename(task)

        if is_data_url(url):
            data, extension = self._decode_data_url(url)
        elif is_remote_url(url):
            data, extension = await self._download(url)
        else:
            raise PersistenceError(
                "Unsupported URL format. Must be a data URL or HTTP/HTTPS URL.",
                source=url
            )

        self._verify_image(data, source=url)
        saved = self._write(data, base_name, extension)

        logger.info(
            "artifact_saved",
            task=task,
            file_name=saved.file_name,
            size_bytes=len(data),
            inline=is_data_url(url)
        )
        return saved

    async def delete_image(self, file_path: str) -> bool:
        path = Path(file_path)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False


class StorageFactory:
    """
    Factory for the process-wide default storage.

    Callers that need a different backend construct their own instance and
    pass it to the service.
    """

    _instance: Optional[IArtifactStorage] = None

    @classmethod
    def get_storage(cls) -> IArtifactStorage:
        if cls._instance is None:
            cls._instance = LocalArtifactStorage(
                storage_path=settings.STORAGE_PATH,
                public_url_base=settings.PUBLIC_STORAGE_URL,
                timeout=settings.PROVIDER_TIMEOUT_SECONDS
            )
        return cls._instance


# Convenience function for dependency injection
def get_storage() -> IArtifactStorage:
    """Get the storage instance - ready for FastAPI Depends()."""
    return StorageFactory.get_storage()
