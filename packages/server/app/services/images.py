"""
Image uploads (user avatars, workspace images) to Cloudinary.

Type and size are checked before anything leaves the process.
"""

from __future__ import annotations

import httpx
import structlog

from app.core.config import get_settings
from app.core.errors import DependencyError, ValidationError

log = structlog.get_logger()
settings = get_settings()

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud}/image/upload"
UPLOAD_TIMEOUT_SECONDS = 30.0


async def read_upload(file) -> bytes:
    """Read an UploadFile, stopping one byte past the size ceiling."""
    return await file.read(settings.image_max_bytes + 1)


def validate_image(content_type: str | None, size: int) -> None:
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("Not an image! Please upload only images.")
    if size == 0:
        raise ValidationError("Uploaded file is empty")
    if size > settings.image_max_bytes:
        limit_mb = settings.image_max_bytes // (1024 * 1024)
        raise ValidationError(f"Image is too large. Maximum size is {limit_mb}MB")


async def upload_image(
    data: bytes, *, content_type: str | None, filename: str, folder: str
) -> str:
    """Upload an image and return its public HTTPS URL."""
    validate_image(content_type, len(data))

    if not settings.cloudinary_cloud_name:
        raise DependencyError("Image uploads are not configured")

    url = CLOUDINARY_UPLOAD_URL.format(cloud=settings.cloudinary_cloud_name)
    try:
        async with httpx.AsyncClient(timeout=UPLOAD_TIMEOUT_SECONDS) as client:
            response = await client.post(
                url,
                data={"upload_preset": settings.cloudinary_upload_preset, "folder": folder},
                files={"file": (filename, data, content_type)},
            )
            response.raise_for_status()
            secure_url = response.json()["secure_url"]
    except (httpx.HTTPError, KeyError, ValueError) as exc:
        log.error("image.upload_failed", folder=folder, error=str(exc))
        raise DependencyError("Image upload failed. Please try again later.") from exc

    log.info("image.uploaded", folder=folder, size=len(data))
    return secure_url
