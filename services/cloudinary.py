import logging
from typing import Optional, Tuple

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from core.config import settings
from core.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_FORMATS = ["jpg", "jpeg", "png", "webp"]
MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5MB


class CloudinaryService:
    def __init__(self):
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True
        )

    def _upload(self, file_data: bytes, folder: str) -> Tuple[bool, Optional[str], Optional[str], Optional[str]]:
        try:
            result = cloudinary.uploader.upload(
                file_data,
                folder=folder,
                resource_type="image",
                allowed_formats=ALLOWED_FORMATS,
            )
            return True, result.get("secure_url"), result.get("public_id"), None
        except CloudinaryError as e:
            logger.warning("Cloudinary upload to %s failed: %s", folder, e)
            return False, None, None, str(e)

    def upload_product_image(self, file_data: bytes) -> Tuple[bool, Optional[str], Optional[str], Optional[str]]:
        """
        Upload a catalog image.

        Returns:
            Tuple of (success, url, public_id, error)
        """
        return self._upload(file_data, settings.CLOUDINARY_PRODUCT_FOLDER)

    def upload_design(self, file_data: bytes, user_id: int) -> Tuple[bool, Optional[str], Optional[str], Optional[str]]:
        """Upload a customer's custom design, grouped per user."""
        return self._upload(file_data, f"{settings.CLOUDINARY_DESIGN_FOLDER}/user_{user_id}")

    def delete(self, public_id: str) -> Tuple[bool, Optional[str]]:
        """
        Delete an asset by public id.

        Returns:
            Tuple of (success, error)
        """
        try:
            result = cloudinary.uploader.destroy(public_id)
        except CloudinaryError as e:
            logger.warning("Cloudinary delete of %s failed: %s", public_id, e)
            return False, str(e)

        # Cloudinary returns {"result": "ok"} or {"result": "not found"}
        if result.get("result") in ("ok", "not found"):
            return True, None
        return False, f"Failed to delete: {result.get('result')}"


# Global instance
cloudinary_service = CloudinaryService()


async def read_image_upload(file) -> bytes:
    """Read an uploaded image, enforcing type and size limits."""
    if not file.content_type or not file.content_type.startswith("image/"):
        raise ValidationError("File must be an image")
    file_data = await file.read()
    if len(file_data) > MAX_UPLOAD_BYTES:
        raise ValidationError("File size must be less than 5MB")
    return file_data
