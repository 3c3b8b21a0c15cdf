"""
Plant Progression Backend — Image Upload Service
=================================================

What:  Validates uploaded plant photos, writes them to the upload directory,
       and removes them again when the request that stored them fails.
Who:   Called by PlantService after the ownership check has passed.
When:  POST /api/plants, PATCH /api/plants/{id}, PUT /api/plants/{id}/progress.

Security Model:
    1. Declared MIME type:  must be image/png or image/jpeg (cheap, first)
    2. Size check:          empty and > max_file_size are rejected
    3. Content sniffing:    Pillow must recognise the bytes as PNG or JPEG,
                            so a renamed .exe with an image content type fails
    4. Random filename:     uuid4 hex + extension from the sniffed format;
                            no client input reaches the file system path

Public paths:
    Files land flat in upload_root and are served at /uploads/<name>.<ext>.
"""

import io
import logging
import os
import uuid
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from fastapi import UploadFile
from PIL import Image

from plant_progression.config import Settings
from plant_progression.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads/"

# Declared content types accepted from the client
ALLOWED_MIME_TYPES = {"image/png", "image/jpeg", "image/jpg"}

# Pillow format name → stored extension
ALLOWED_FORMATS = {
    "PNG": ".png",
    "JPEG": ".jpg",
}


class FileService:
    """
    Image validation and storage bound to one upload directory.

    Lifecycle of an uploaded file:
        1. save_upload() reads the UploadFile into memory
        2. validate_image() checks type, size and actual content
        3. store_image() writes it under a random name
        4. The public path (/uploads/...) is stored on the plant/entry
        5. If the store write then fails, cleanup() removes the file
    """

    def __init__(self, settings: Settings):
        self.upload_root = settings.upload_root
        self.max_file_size = settings.max_file_size

    def validate_content_type(self, content_type: Optional[str]) -> None:
        if (content_type or "").lower() not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message="Unsupported image type. Allowed types: PNG, JPEG",
                field="image",
                context={"content_type": content_type},
            )

    def validate_size(self, size: int) -> None:
        if size == 0:
            raise ValidationError(message="Uploaded image is empty", field="image")

        if size > self.max_file_size:
            max_mb = self.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=f"Image exceeds the maximum size of {max_mb:.0f}MB",
                field="image",
                context={"size": size, "max_size": self.max_file_size},
            )

    def detect_format(self, content: bytes) -> str:
        """
        Identify the real image format from the bytes.

        Returns:
            The stored extension (".png" or ".jpg").
        Raises:
            ValidationError when Pillow can't parse the data or it's
            neither PNG nor JPEG.
        """
        try:
            with Image.open(io.BytesIO(content)) as img:
                fmt = img.format
                img.verify()
        except Exception as e:
            raise ValidationError(
                message="Uploaded file is not a valid image",
                field="image",
                context={"error": type(e).__name__},
            )

        if fmt not in ALLOWED_FORMATS:
            raise ValidationError(
                message="Unsupported image type. Allowed types: PNG, JPEG",
                field="image",
                context={"detected_format": fmt},
            )
        return ALLOWED_FORMATS[fmt]

    def validate_image(self, content: bytes, content_type: Optional[str]) -> str:
        """Run all checks cheapest-first; returns the extension to store under."""
        self.validate_content_type(content_type)
        self.validate_size(len(content))
        return self.detect_format(content)

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        name = f"{uuid.uuid4().hex}{extension}"
        return self.upload_root / name, f"{PUBLIC_PREFIX}{name}"

    async def store_image(self, content: bytes, extension: str) -> str:
        """
        Write validated bytes to disk.

        Returns:
            Public path, e.g. "/uploads/3f2a....png".
        Raises:
            FileStorageError on any OS-level failure.
        """
        absolute_path, public_path = self._generate_storage_path(extension)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store image at %s: %s", absolute_path, e)
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("Image stored: %s (%d bytes)", public_path, len(content))
        return public_path

    async def save_upload(self, upload: UploadFile) -> str:
        """Read, validate and store an UploadFile; returns its public path."""
        content = await upload.read()
        extension = self.validate_image(content, upload.content_type)
        return await self.store_image(content, extension)

    def resolve_public_path(self, public_path: str) -> Optional[Path]:
        """Map /uploads/<name> back to a file inside upload_root, or None."""
        if not public_path.startswith(PUBLIC_PREFIX):
            return None
        name = public_path[len(PUBLIC_PREFIX):]
        if not name or "/" in name or "\\" in name or name in {".", ".."}:
            return None
        return self.upload_root / name

    async def cleanup(self, public_path: Optional[str]) -> None:
        """
        Best-effort removal of a stored image.

        Used when a request fails after its image was written. Failures
        are logged and swallowed: the request is already failing with the
        original error, which is the one the client should see.
        """
        if not public_path:
            return
        path = self.resolve_public_path(public_path)
        if path is None:
            return
        try:
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up image: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up image %s: %s", path.name, e)
