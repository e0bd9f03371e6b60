from __future__ import annotations

from typing import BinaryIO

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from ..core.exceptions import UpstreamError
from .model import UploadedMedia
from .repository import MediaStorage

FOLDER = "students"
PHOTO_TRANSFORMATION = [
    {"width": 500, "height": 500, "crop": "limit"},
    {"quality": "auto"},
    {"fetch_format": "auto"},
]


class CloudinaryMediaStorage(MediaStorage):
    """ID-card photos on Cloudinary, in the ``students`` folder."""

    def __init__(self, *, cloud_name: str, api_key: str, api_secret: str):
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    def upload(self, file: BinaryIO) -> UploadedMedia:
        try:
            result = cloudinary.uploader.upload(
                file,
                folder=FOLDER,
                resource_type="auto",
                transformation=PHOTO_TRANSFORMATION,
            )
        except CloudinaryError as e:
            raise UpstreamError(f"Photo upload failed: {e}") from e
        return UploadedMedia(url=result["secure_url"], public_id=result["public_id"])

    def destroy(self, public_id: str) -> None:
        try:
            cloudinary.uploader.destroy(public_id)
        except CloudinaryError as e:
            raise UpstreamError(f"Photo delete failed: {e}") from e
