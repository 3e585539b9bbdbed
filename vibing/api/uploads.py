"""
Upload endpoints: /upload/*

Type and size checks here are conveniences that save a doomed upload; the
server re-validates everything.
"""

from pathlib import Path

from structlog import get_logger

from vibing.api.client import ApiClient
from vibing.exceptions import AuthenticationRequiredError, UploadValidationError
from vibing.models.api import UploadedFile, UploadedImage
from vibing.models.domain import LocalFile

logger = get_logger(__name__)

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})
MAX_IMAGE_SIZE = 20 * 1024 * 1024

ALLOWED_ARCHIVE_TYPES = frozenset({"application/zip", "application/x-zip-compressed"})
MAX_ARCHIVE_SIZE = 200 * 1024 * 1024


def validate_image(file: LocalFile) -> None:
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise UploadValidationError("Only JPEG, PNG, and WebP images are allowed")
    if file.size > MAX_IMAGE_SIZE:
        raise UploadValidationError("Image file size must be less than 20MB")


def validate_archive(file: LocalFile) -> None:
    if file.content_type not in ALLOWED_ARCHIVE_TYPES and not file.name.lower().endswith(".zip"):
        raise UploadValidationError(
            f'Only ZIP files are allowed. "{file.name}" is not a valid ZIP file.'
        )
    if file.size > MAX_ARCHIVE_SIZE:
        raise UploadValidationError(f'File "{file.name}" is too large. Maximum size is 200MB.')


class UploadsApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def _require_token(self) -> None:
        if not self.client.has_token():
            raise AuthenticationRequiredError()

    async def upload_image(self, path: str | Path) -> UploadedImage:
        """Upload a product cover image (seller only)."""
        file = LocalFile.from_path(path)
        validate_image(file)
        self._require_token()
        return await self._send_image("/upload/image", file)

    async def upload_chat_image(self, path: str | Path) -> UploadedImage:
        file = LocalFile.from_path(path)
        validate_image(file)
        self._require_token()
        return await self._send_image("/upload/chat-image", file)

    async def _send_image(self, endpoint: str, file: LocalFile) -> UploadedImage:
        logger.info("uploading_image", endpoint=endpoint, filename=file.name, size=file.size)
        body = await self.client.request(
            "POST",
            endpoint,
            files={"image": (file.name, file.read_bytes(), file.content_type)},
        )
        return UploadedImage.model_validate(body)

    async def upload_product_file(self, product_id: str, path: str | Path) -> UploadedFile:
        """Attach one ZIP archive to a product."""
        if not product_id:
            raise UploadValidationError("Product ID is required for file upload")
        file = LocalFile.from_path(path)
        self._require_token()
        validate_archive(file)

        logger.info(
            "uploading_product_file",
            product_id=product_id,
            filename=file.name,
            size=file.size,
        )
        body = await self.client.request(
            "POST",
            "/upload/product-files",
            files={"file": (file.name, file.read_bytes(), file.content_type)},
            data={"productId": product_id},
        )
        return UploadedFile.model_validate(body)
