"""
Plant Progression Backend — File Service Unit Tests
====================================================

What:  Tests for FileService validation, storage and cleanup.
Why:   Upload validation is a security boundary: only real PNG/JPEG bytes
       under the size limit may reach the disk.
How:   Real images generated with Pillow, a temporary upload directory.

Test Strategy:
    ✅ Declared content type (png/jpeg accepted, gif/pdf rejected)
    ✅ Size limits (empty, boundary, over limit)
    ✅ Content sniffing (renamed non-images, GIF bytes behind a PNG header)
    ✅ Random storage names with the sniffed extension
    ✅ Cleanup removes stored files and ignores paths outside the upload dir
"""

import io

import pytest
from starlette.datastructures import Headers, UploadFile

from plant_progression.exceptions import ValidationError
from plant_progression.services.file_service import FileService


def _upload(content: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def service(settings) -> FileService:
    settings.upload_root.mkdir(parents=True, exist_ok=True)
    return FileService(settings)


class TestContentType:
    def test_png_and_jpeg_accepted(self, service):
        for content_type in ("image/png", "image/jpeg", "image/jpg", "IMAGE/PNG"):
            service.validate_content_type(content_type)

    @pytest.mark.parametrize("content_type", ["image/gif", "application/pdf", "", None])
    def test_other_types_rejected(self, service, content_type):
        with pytest.raises(ValidationError, match="Unsupported image type"):
            service.validate_content_type(content_type)


class TestSize:
    def test_within_limit(self, service):
        service.validate_size(1000)

    def test_exact_limit_accepted(self, service):
        service.validate_size(service.max_file_size)

    def test_over_limit_rejected(self, service):
        with pytest.raises(ValidationError, match="maximum size of 5MB"):
            service.validate_size(service.max_file_size + 1)

    def test_empty_rejected(self, service):
        with pytest.raises(ValidationError, match="empty"):
            service.validate_size(0)


class TestContentSniffing:
    def test_png_detected(self, service, png_bytes):
        assert service.detect_format(png_bytes) == ".png"

    def test_jpeg_detected(self, service, jpeg_bytes):
        assert service.detect_format(jpeg_bytes) == ".jpg"

    def test_text_rejected(self, service):
        with pytest.raises(ValidationError, match="not a valid image"):
            service.detect_format(b"MZ\x90\x00 definitely not an image")

    def test_gif_rejected(self, service, gif_bytes):
        with pytest.raises(ValidationError, match="Unsupported image type"):
            service.detect_format(gif_bytes)

    def test_declared_type_must_match_allowed_set(self, service, png_bytes):
        # Real PNG bytes declared as GIF still fail on the declared type
        with pytest.raises(ValidationError):
            service.validate_image(png_bytes, "image/gif")


class TestStorage:
    @pytest.mark.asyncio
    async def test_save_upload_writes_file(self, service, png_bytes):
        public_path = await service.save_upload(_upload(png_bytes, "../../evil.png", "image/png"))

        assert public_path.startswith("/uploads/")
        assert public_path.endswith(".png")
        assert "evil" not in public_path

        stored = service.resolve_public_path(public_path)
        assert stored is not None
        assert stored.parent == service.upload_root
        assert stored.read_bytes() == png_bytes

    @pytest.mark.asyncio
    async def test_extension_follows_content_not_filename(self, service, jpeg_bytes):
        public_path = await service.save_upload(_upload(jpeg_bytes, "photo.png", "image/png"))
        assert public_path.endswith(".jpg")

    @pytest.mark.asyncio
    async def test_names_are_unique(self, service, png_bytes):
        first = await service.save_upload(_upload(png_bytes, "a.png", "image/png"))
        second = await service.save_upload(_upload(png_bytes, "a.png", "image/png"))
        assert first != second

    @pytest.mark.asyncio
    async def test_invalid_upload_writes_nothing(self, service):
        with pytest.raises(ValidationError):
            await service.save_upload(_upload(b"hello", "notes.txt", "text/plain"))
        assert list(service.upload_root.iterdir()) == []


class TestCleanup:
    @pytest.mark.asyncio
    async def test_cleanup_removes_file(self, service, png_bytes):
        public_path = await service.save_upload(_upload(png_bytes, "a.png", "image/png"))
        await service.cleanup(public_path)
        assert not service.resolve_public_path(public_path).exists()

    @pytest.mark.asyncio
    async def test_cleanup_missing_file_is_noop(self, service):
        await service.cleanup("/uploads/does-not-exist.png")
        await service.cleanup(None)

    def test_paths_outside_upload_dir_not_resolved(self, service):
        assert service.resolve_public_path("/etc/passwd") is None
        assert service.resolve_public_path("/uploads/../secret.png") is None
        assert service.resolve_public_path("/uploads/") is None
