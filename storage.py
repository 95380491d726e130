"""
Image storage on Cloudinary.

Uploads return the public URL plus the public_id needed to delete the asset
later. Deletions are best-effort: a failure is logged and never raised.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import cloudinary
import cloudinary.uploader
from fastapi import UploadFile

import config
from errors import ServerError, ValidationError

logger = logging.getLogger(__name__)

cloudinary.config(
    cloud_name=config.CLOUDINARY_CLOUD_NAME,
    api_key=config.CLOUDINARY_API_KEY,
    api_secret=config.CLOUDINARY_API_SECRET,
    secure=True,
)


@dataclass
class ImageFile:
    filename: str
    content_type: str
    data: bytes


def read_image(upload: UploadFile, max_bytes: int) -> ImageFile:
    """Validate an uploaded file and read it into memory."""
    if not upload.content_type or not upload.content_type.startswith("image/"):
        raise ValidationError("Only image files are allowed")
    data = upload.file.read()
    if len(data) > max_bytes:
        raise ValidationError(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB")
    return ImageFile(filename=upload.filename or "image", content_type=upload.content_type, data=data)


def read_images(uploads: Optional[List[UploadFile]], max_bytes: int, max_count: int) -> List[ImageFile]:
    uploads = [u for u in (uploads or []) if u.filename]
    if len(uploads) > max_count:
        raise ValidationError(f"Too many files. Maximum is {max_count}")
    return [read_image(u, max_bytes) for u in uploads]


def upload_image(image: ImageFile, folder: str) -> Tuple[str, str]:
    try:
        result = cloudinary.uploader.upload(
            image.data,
            folder=folder,
            resource_type="image",
            filename_override=image.filename,
        )
    except Exception as e:
        logger.error("Cloudinary upload failed for %s: %s", image.filename, e)
        raise ServerError("Image upload failed")
    return result["secure_url"], result["public_id"]


def delete_image(public_id: Optional[str]) -> bool:
    if not public_id:
        return False
    try:
        cloudinary.uploader.destroy(public_id)
        logger.info("Deleted image %s", public_id)
        return True
    except Exception as e:
        logger.warning("Failed deleting image %s: %s", public_id, e)
        return False


def delete_images(public_ids: Iterable[Optional[str]]):
    for public_id in public_ids:
        delete_image(public_id)
