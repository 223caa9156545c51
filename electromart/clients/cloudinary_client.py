"""
Cloudinary client for product and profile images.

The Cloudinary SDK is blocking, so calls run in the threadpool. Credentials
are passed on every call instead of through cloudinary.config().
"""
import io
import logging
from typing import Any, Dict

import cloudinary.api
import cloudinary.exceptions
import cloudinary.uploader
import cloudinary.utils
from starlette.concurrency import run_in_threadpool

from ..config import CloudinarySettings
from ..exceptions import MediaUnavailableError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "products"


class MediaStore:
    """Upload, inspect and delete images on Cloudinary."""

    def __init__(self, settings: CloudinarySettings):
        self._settings = settings
        if settings.is_configured:
            logger.info("Cloudinary configured successfully")
        else:
            logger.warning(
                "Cloudinary configuration not found or using placeholder values. "
                "Image management functionality will be disabled."
            )

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    def _credentials(self) -> Dict[str, str]:
        if not self._settings.is_configured:
            raise MediaUnavailableError()
        return self._settings.credentials()

    async def upload_image(self, data: bytes, file_name: str, folder: str = DEFAULT_FOLDER) -> Dict[str, Any]:
        """
        Upload an image.

        Args:
            data: Raw image bytes
            file_name: Public id to store the image under (inside `folder`)
            folder: Cloudinary folder

        Returns:
            Dict with public_id and the secure url
        """
        options = {
            "folder": folder,
            "public_id": file_name,
            "use_filename": True,
            "unique_filename": False,
            **self._credentials(),
        }
        try:
            result = await run_in_threadpool(cloudinary.uploader.upload, io.BytesIO(data), **options)
        except cloudinary.exceptions.Error as e:
            logger.error(f"Error uploading image to Cloudinary: {e}")
            raise UpstreamError(f"Failed to upload image: {e}")

        logger.info(f"Uploaded image {result.get('public_id')}")
        return {"public_id": result["public_id"], "url": result["secure_url"]}

    async def delete_image(self, public_id: str) -> Dict[str, Any]:
        try:
            result = await run_in_threadpool(cloudinary.uploader.destroy, public_id, **self._credentials())
        except cloudinary.exceptions.Error as e:
            logger.error(f"Error deleting image from Cloudinary: {e}")
            raise UpstreamError(f"Failed to delete image: {e}")

        if result.get("result") == "not found":
            raise NotFoundError("Image not found")
        logger.info(f"Deleted image {public_id}")
        return result

    async def get_image_details(self, public_id: str) -> Dict[str, Any]:
        """
        Fetch stored metadata (format, size, dimensions, urls) for an image.

        Raises:
            NotFoundError: If no image has this public id
        """
        try:
            return await run_in_threadpool(cloudinary.api.resource, public_id, **self._credentials())
        except cloudinary.exceptions.NotFound:
            raise NotFoundError("Image not found")
        except cloudinary.exceptions.Error as e:
            logger.error(f"Error getting image details from Cloudinary: {e}")
            raise UpstreamError(f"Failed to get image details: {e}")

    def build_image_url(self, public_id: str, **transformations: Any) -> str:
        """
        Build a delivery URL with transformations applied.

        Example:
            media.build_image_url("products/tv", width=300, crop="fill")
        """
        url, _ = cloudinary.utils.cloudinary_url(
            public_id,
            secure=True,
            cloud_name=self._credentials()["cloud_name"],
            **transformations,
        )
        return url
