"""
Object Storage
Upload field photos to Cloudinary and build public URLs for them
"""

import logging
import time
from typing import Any, Dict, Optional

import cloudinary.uploader
import cloudinary.utils
from cloudinary.exceptions import Error as CloudinaryError

from vimarsha.exceptions import TransientError

logger = logging.getLogger(__name__)


class CloudinaryStorage:
    """Image storage on Cloudinary, configured per instance instead of globally"""

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, folder: str = "vimarsha"):
        self.folder = folder
        self._options = {
            'cloud_name': cloud_name,
            'api_key': api_key,
            'api_secret': api_secret,
        }

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'CloudinaryStorage':
        return cls(
            cloud_name=config.get('CLOUDINARY_CLOUD_NAME', ''),
            api_key=config.get('CLOUDINARY_API_KEY', ''),
            api_secret=config.get('CLOUDINARY_API_SECRET', ''),
            folder=config.get('CLOUDINARY_FOLDER', 'vimarsha'),
        )

    def upload_image(self, file, subfolder: str, public_id: Optional[str] = None) -> str:
        """
        Upload an image and return its secure URL.

        Args:
            file: File-like object or bytes
            subfolder: Folder under the application folder (e.g. "installation")
            public_id: Stable name for the upload; a timestamped one otherwise

        Raises:
            TransientError: If the upload fails
        """
        public_id = public_id or f"{subfolder}_{int(time.time())}"
        try:
            result = cloudinary.uploader.upload(
                file,
                resource_type="image",
                folder=f"{self.folder}/{subfolder}",
                public_id=public_id,
                overwrite=True,
                **self._options,
            )
        except CloudinaryError as e:
            logger.error(f"Failed to upload image to Cloudinary: {e}")
            raise TransientError() from e

        url = result["secure_url"]
        logger.info(f"Image uploaded to Cloudinary: {url}")
        return url

    def public_url(self, public_id: str) -> str:
        """Public URL for a previously uploaded image"""
        url, _ = cloudinary.utils.cloudinary_url(public_id, secure=True, **self._options)
        return url
