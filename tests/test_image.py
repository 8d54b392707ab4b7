"""Tests for transaction image upload. Cloudinary itself is never called."""

import cloudinary.uploader
import pytest

from moneybook.config import get_settings
from moneybook.services.image import (
    CloudinaryImageService,
    ImageTooLargeError,
    ImageUploadError,
    UnsupportedImageError,
    detect_extension,
)

from tests.conftest import png_bytes


@pytest.fixture
def cloudinary_env(monkeypatch):
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.setenv("CLOUDINARY_API_KEY", "key")
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "secret")
    monkeypatch.setenv("MAX_UPLOAD_SIZE_MB", "1")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def uploads(monkeypatch):
    calls = []

    def fake_upload(file, **options):
        calls.append(options)
        return {
            "secure_url": f"https://res.cloudinary.com/demo/{options['public_id']}.{options['format']}",
            "public_id": options["public_id"],
        }

    monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
    return calls


class TestDetectExtension:
    """Tests for content-based format detection."""

    def test_png(self):
        assert detect_extension(png_bytes(), ["png"]) == "png"

    def test_jpeg_accepted_as_jpg(self):
        assert detect_extension(png_bytes(image_format="JPEG"), ["jpeg"]) == "jpg"

    def test_unsupported_format(self):
        with pytest.raises(UnsupportedImageError):
            detect_extension(png_bytes(image_format="GIF"), ["jpg", "png"])

    def test_not_an_image(self):
        with pytest.raises(UnsupportedImageError):
            detect_extension(b"%PDF-1.4 not an image", ["png"])


class TestCloudinaryImageService:
    """Tests for the upload flow with the SDK call replaced."""

    @pytest.mark.asyncio
    async def test_upload_returns_secure_url(self, cloudinary_env, uploads):
        service = CloudinaryImageService()

        url = await service.upload_image(png_bytes(), "receipt.png", "u1")

        assert url.startswith("https://res.cloudinary.com/demo/u1/")
        assert url.endswith(".png")
        assert uploads[0]["folder"] == "transaction-images"
        assert uploads[0]["public_id"].startswith("u1/")

    @pytest.mark.asyncio
    async def test_too_large_is_rejected_before_upload(self, cloudinary_env, uploads):
        service = CloudinaryImageService()

        with pytest.raises(ImageTooLargeError):
            await service.upload_image(b"x" * (1024 * 1024 + 1), "huge.png", "u1")

        assert uploads == []

    @pytest.mark.asyncio
    async def test_unsupported_file_is_rejected(self, cloudinary_env, uploads):
        service = CloudinaryImageService()

        with pytest.raises(UnsupportedImageError):
            await service.upload_image(b"plain text", "notes.txt", "u1")

        assert uploads == []

    @pytest.mark.asyncio
    async def test_sdk_failure_becomes_upload_error(self, cloudinary_env, monkeypatch):
        def broken_upload(file, **options):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(cloudinary.uploader, "upload", broken_upload)
        service = CloudinaryImageService()

        with pytest.raises(ImageUploadError, match="connection reset"):
            await service.upload_image(png_bytes(), "receipt.png", "u1")

    @pytest.mark.asyncio
    async def test_missing_url_is_an_error(self, cloudinary_env, monkeypatch):
        monkeypatch.setattr(cloudinary.uploader, "upload", lambda file, **options: {})
        service = CloudinaryImageService()

        with pytest.raises(ImageUploadError, match="No URL"):
            await service.upload_image(png_bytes(), "receipt.png", "u1")

    def test_public_id_is_scoped_to_owner(self):
        public_id = CloudinaryImageService.generate_public_id("u1")
        owner, stamp = public_id.split("/")
        assert owner == "u1"
        assert stamp.isdigit()
