import logging
import os
import uuid
from pathlib import Path

import aiofiles
import aiofiles.os

from freight_intake.config import Settings
from freight_intake.exceptions import DocumentNotFound, SourceUnavailable

logger = logging.getLogger("freight.storage")


class LocalStorage:
    """Filesystem-backed document storage rooted at settings.storage_root."""

    def __init__(self, root: str):
        self.root = Path(root)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalStorage":
        return cls(settings.storage_root)

    def _resolve(self, location: str) -> Path:
        path = Path(location)
        if not path.is_absolute():
            path = self.root / path
        resolved = path.resolve()
        if not resolved.is_relative_to(self.root.resolve()):
            raise SourceUnavailable(f"Location outside storage root: {location}")
        return resolved

    async def get(self, location: str) -> bytes:
        """Read a stored document.

        Raises:
            DocumentNotFound: Nothing stored at location.
            SourceUnavailable: Storage could not be read.
        """
        path = self._resolve(location)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except FileNotFoundError as e:
            raise DocumentNotFound(f"Document not found: {location}") from e
        except OSError as e:
            logger.error("Storage read failed for %s: %s", location, e)
            raise SourceUnavailable(f"Storage read failed: {e}") from e

    async def put(self, filename: str, content: bytes) -> str:
        """Store bytes under a fresh name. Returns the storage location."""
        ext = os.path.splitext(filename or "upload")[1]
        stored_name = f"{uuid.uuid4()}{ext}"
        os.makedirs(self.root, exist_ok=True)
        async with aiofiles.open(self.root / stored_name, "wb") as f:
            await f.write(content)
        return stored_name

    async def delete(self, location: str) -> None:
        """Remove a stored document. Missing documents are ignored."""
        path = self._resolve(location)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.debug("Nothing to delete at %s", location)


def get_file_extension(filename: str) -> str:
    """Extract the file extension without the dot, lowercased."""
    _, ext = os.path.splitext(filename)
    return ext.lstrip(".").lower()


def get_mime_type(filename: str) -> str:
    """Map file extension to MIME type."""
    ext = get_file_extension(filename)
    mime_map = {
        "pdf": "application/pdf",
        "eml": "message/rfc822",
        "png": "image/png",
        "jpg": "image/jpeg",
        "jpeg": "image/jpeg",
        "gif": "image/gif",
        "webp": "image/webp",
        "tiff": "image/tiff",
        "tif": "image/tiff",
        "bmp": "image/bmp",
    }
    return mime_map.get(ext, "application/octet-stream")
