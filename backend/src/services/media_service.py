"""Media store integration for hosting feedback photos on S3."""

import logging
import os
from io import BytesIO

from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError
from ulid import ULID

from models.feedback import UploadResult
from services.errors import PerFileUploadError, UploadFatalError
from utils.constants import DEFAULT_MEDIA_FOLDER, MAX_IMAGE_DIMENSION

logger = logging.getLogger(__name__)


def _prepare_image(content: bytes) -> tuple[bytes, int, int, str]:
    """Read image dimensions, scaling the image down if it is too large.

    Returns:
        Tuple of (body, width, height, content_type). The original bytes are
        returned untouched when no scaling is needed.

    Raises:
        UnidentifiedImageError: If the content is not a readable image
        OSError: If the image data is truncated or cannot be re-encoded
    """
    with Image.open(BytesIO(content)) as image:
        image_format = image.format
        content_type = Image.MIME.get(image_format, "application/octet-stream")
        width, height = image.size

        if width <= MAX_IMAGE_DIMENSION and height <= MAX_IMAGE_DIMENSION:
            return content, width, height, content_type

        image.thumbnail((MAX_IMAGE_DIMENSION, MAX_IMAGE_DIMENSION))
        buffer = BytesIO()
        image.save(buffer, format=image_format)
        width, height = image.size

    return buffer.getvalue(), width, height, content_type


class MediaService:
    """Uploads images to an S3 bucket and returns their public URLs."""

    def __init__(
        self,
        s3_client,
        bucket: str | None,
        public_base_url: str | None = None,
        folder: str = DEFAULT_MEDIA_FOLDER,
        region: str = "us-west-2",
    ):
        """Initialize the media service.

        Args:
            s3_client: boto3 S3 client
            bucket: Bucket holding the photos
            public_base_url: CDN base URL serving the bucket. When unset the
                bucket's own S3 URL is used.
            folder: Key prefix for uploaded photos
            region: Bucket region, used to build S3 URLs
        """
        self.s3_client = s3_client
        self.bucket = bucket
        self.public_base_url = public_base_url
        self.folder = folder
        self.region = region

    @property
    def configured(self) -> bool:
        return bool(self.bucket)

    def ensure_ready(self) -> None:
        """Check that the bucket is configured and reachable.

        Raises:
            UploadFatalError: If no upload could possibly succeed
        """
        if not self.bucket:
            raise UploadFatalError("Media bucket is not configured (MEDIA_BUCKET)")

        try:
            self.s3_client.head_bucket(Bucket=self.bucket)
        except (ClientError, BotoCoreError) as e:
            logger.error("Media bucket %s is not reachable: %s", self.bucket, e)
            raise UploadFatalError(f"Media store unavailable: {e}")

    def public_url(self, key: str) -> str:
        """Build the permanent public URL for an object key."""
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def upload_image(self, content: bytes, original_name: str) -> UploadResult:
        """Host one image and describe the stored object.

        Args:
            content: Raw file bytes
            original_name: Filename supplied by the client

        Returns:
            UploadResult for the stored object

        Raises:
            PerFileUploadError: If this file could not be hosted
        """
        try:
            body, width, height, content_type = _prepare_image(content)
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            ValueError,
        ) as e:
            raise PerFileUploadError(f"Could not read image {original_name}: {e}")

        extension = os.path.splitext(original_name)[1].lower()
        key = f"{self.folder}/feedback_{ULID()}{extension}"

        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise PerFileUploadError(f"Failed to upload {original_name}: {e}")

        url = self.public_url(key)
        logger.info("Uploaded %s to %s", original_name, url)

        return UploadResult(
            url=url,
            storage_id=key,
            original_name=original_name,
            width=width,
            height=height,
            byte_size=len(body),
        )
