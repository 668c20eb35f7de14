"""Uploads to Cloudinary. Only the resulting ``secure_url`` leaves this module."""
import io
import logging
from typing import Optional

import cloudinary.exceptions
import cloudinary.uploader

from ..config import settings
from ..errors import BadRequest, GatewayError

logger = logging.getLogger(__name__)


def upload_file(data: bytes, filename: Optional[str], content_type: Optional[str]) -> str:
    if not data:
        raise BadRequest("NO_FILE", "No file provided")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise BadRequest("FILE_TOO_LARGE", "File exceeds the upload size limit")
    if not (settings.CLOUDINARY_CLOUD_NAME and settings.CLOUDINARY_API_KEY and settings.CLOUDINARY_API_SECRET):
        raise GatewayError("STORAGE_NOT_CONFIGURED", "Cloudinary environment variables are not fully defined")

    try:
        result = cloudinary.uploader.upload(
            io.BytesIO(data),
            resource_type="auto",
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
        )
    except cloudinary.exceptions.Error as e:
        logger.error("Upload of %s (%s) failed: %s", filename, content_type, e)
        raise GatewayError("UPLOAD_FAILED", f"Failed to upload file: {e}")

    secure_url = result.get("secure_url")
    if not secure_url:
        raise GatewayError("UPLOAD_FAILED", "Uploaded asset did not return a secure_url")
    logger.info("Uploaded %s (%d bytes)", filename, len(data))
    return secure_url
