"""
Transaction Image Storage using Cloudinary

DESIGN DECISION: We use Cloudinary because:
1. Reliable cloud infrastructure with public delivery URLs
2. Simple API
3. Free tier sufficient for personal use

This service handles:
1. Checking the upload is a real image in a supported format
2. Uploading it under a per-user path
3. Returning the public URL to store on the transaction

Upload happens BEFORE the transaction write, so a transaction never
points at an image that failed to upload. If the transaction write then
fails, the uploaded image is left behind; there is no cleanup path.
"""

import time
from abc import ABC, abstractmethod
from io import BytesIO

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
import structlog
from PIL import Image, UnidentifiedImageError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from moneybook.config import get_settings


logger = structlog.get_logger(__name__)

# Pillow format name -> file extension
EXTENSION_BY_FORMAT = {
    "JPEG": "jpg",
    "PNG": "png",
    "WEBP": "webp",
    "GIF": "gif",
    "BMP": "bmp",
}


class ImageUploadError(Exception):
    """Base exception for image upload errors."""
    pass


class UnsupportedImageError(ImageUploadError):
    """The file is not an image, or not in a supported format."""
    pass


class ImageTooLargeError(ImageUploadError):
    """The file exceeds the configured upload limit."""
    pass


class ImageStorageInterface(ABC):
    """Object storage for transaction images."""

    @abstractmethod
    async def upload_image(
        self,
        image_bytes: bytes,
        filename: str,
        owner_id: str,
    ) -> str:
        """
        Store an image and return its publicly resolvable URL.

        Raises:
            ImageUploadError: If the image is rejected or the upload fails
        """
        pass


def detect_extension(
    image_bytes: bytes,
    supported_formats: list[str],
) -> str:
    """
    Identify the image format with Pillow.

    Returns the file extension to store the image under.

    Raises:
        UnsupportedImageError: If the bytes are not a supported image
    """
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            img.verify()
            image_format = img.format or ""
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise UnsupportedImageError(f"File is not a readable image: {e}")

    extension = EXTENSION_BY_FORMAT.get(image_format.upper(), image_format.lower())
    accepted = set(supported_formats)
    # jpg and jpeg are the same format
    if extension == "jpg" and "jpeg" in accepted:
        accepted.add("jpg")
    if extension not in accepted:
        raise UnsupportedImageError(
            f"Unsupported image format: {image_format or 'unknown'}. "
            f"Allowed: {', '.join(supported_formats)}"
        )
    return extension


class CloudinaryImageService(ImageStorageInterface):
    """
    Image storage on Cloudinary.

    Objects are stored as {upload_folder}/{owner_id}/{epoch_ms}.{ext}.
    """

    def __init__(self):
        self._settings = get_settings().cloudinary
        self._app_settings = get_settings().app
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    @staticmethod
    def generate_public_id(owner_id: str) -> str:
        """Generate the object path (without folder and extension)."""
        return f"{owner_id}/{int(time.time() * 1000)}"

    @retry(
        retry=retry_if_exception_type(cloudinary.exceptions.Error),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _upload(self, image_bytes: bytes, public_id: str, extension: str) -> dict:
        return cloudinary.uploader.upload(
            image_bytes,
            public_id=public_id,
            folder=self._settings.upload_folder,
            resource_type="image",
            format=extension,
            overwrite=False,
        )

    async def upload_image(
        self,
        image_bytes: bytes,
        filename: str,
        owner_id: str,
    ) -> str:
        """
        Validate and upload a transaction image.

        Args:
            image_bytes: Raw file contents
            filename: Original file name (for logging only; the format is
                      detected from the contents)
            owner_id: Identity the image belongs to

        Returns:
            The image's secure public URL

        Raises:
            ImageTooLargeError: If the file is over the size limit
            UnsupportedImageError: If the file is not a supported image
            ImageUploadError: If Cloudinary rejects the upload
        """
        max_bytes = self._app_settings.max_upload_size_bytes
        if len(image_bytes) > max_bytes:
            raise ImageTooLargeError(
                f"Image is {len(image_bytes)} bytes; limit is {max_bytes} bytes"
            )

        extension = detect_extension(
            image_bytes,
            self._app_settings.supported_formats_list,
        )

        self._configure()
        public_id = self.generate_public_id(owner_id)
        try:
            result = self._upload(image_bytes, public_id, extension)
        except cloudinary.exceptions.Error as e:
            raise ImageUploadError(f"Cloudinary error: {e}")
        except Exception as e:
            raise ImageUploadError(f"Failed to upload image: {e}")

        url = result.get("secure_url", result.get("url", ""))
        if not url:
            raise ImageUploadError("No URL returned from Cloudinary")

        logger.info(
            "image_uploaded",
            filename=filename,
            public_id=result.get("public_id", public_id),
            size_bytes=len(image_bytes),
        )
        return url
