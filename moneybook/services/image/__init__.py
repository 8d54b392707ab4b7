"""Image storage services package."""

from moneybook.services.image.cloudinary_service import (
    CloudinaryImageService,
    ImageStorageInterface,
    ImageTooLargeError,
    ImageUploadError,
    UnsupportedImageError,
    detect_extension,
)

__all__ = [
    "CloudinaryImageService",
    "ImageStorageInterface",
    "ImageTooLargeError",
    "ImageUploadError",
    "UnsupportedImageError",
    "detect_extension",
]
