from typing import Dict, List, Optional
import asyncio
import io
import uuid
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from minio import Minio
from minio.error import S3Error

from app.core.config import settings
from app.core.exceptions import ImageUploadError, InvalidImageError
from app.core.logging_config import logger


class StorageClient:
    """S3/MinIO storage client for uploaded images"""

    def __init__(self):
        if settings.USE_MINIO:
            self.client = Minio(
                settings.MINIO_ENDPOINT,
                access_key=settings.AWS_ACCESS_KEY_ID,
                secret_key=settings.AWS_SECRET_ACCESS_KEY,
                secure=settings.MINIO_SECURE
            )
            self.is_minio = True
        else:
            self.client = boto3.client(
                's3',
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
                region_name=settings.AWS_REGION
            )
            self.is_minio = False

        self.bucket_name = settings.S3_BUCKET_NAME
        self._bucket_checked = False

    def _ensure_bucket_exists(self):
        """Ensure the bucket exists, create if not"""
        if self._bucket_checked:
            return
        try:
            if self.is_minio:
                if not self.client.bucket_exists(self.bucket_name):
                    self.client.make_bucket(self.bucket_name)
                    logger.info(f"Created MinIO bucket: {self.bucket_name}")
            else:
                self.client.head_bucket(Bucket=self.bucket_name)
        except ClientError:
            self.client.create_bucket(
                Bucket=self.bucket_name,
                CreateBucketConfiguration={'LocationConstraint': settings.AWS_REGION}
            )
            logger.info(f"Created S3 bucket: {self.bucket_name}")
        self._bucket_checked = True

    def validate_image(self, data: bytes, filename: str, content_type: Optional[str]) -> None:
        """Reject non-image content types and oversize files"""
        if content_type not in settings.ALLOWED_IMAGE_TYPES:
            raise InvalidImageError(
                f"Unsupported image type '{content_type}'. Allowed: {', '.join(settings.ALLOWED_IMAGE_TYPES)}",
                filename=filename
            )
        if not data:
            raise InvalidImageError("Uploaded image is empty", filename=filename)
        if len(data) > settings.MAX_IMAGE_SIZE:
            raise InvalidImageError(
                f"Image exceeds maximum size of {settings.MAX_IMAGE_SIZE // 1024 // 1024}MB",
                filename=filename
            )

    def build_object_name(self, filename: str, folder: str) -> str:
        suffix = Path(filename or "").suffix.lower() or ".jpg"
        return f"{folder}/{uuid.uuid4().hex}{suffix}"

    def get_public_url(self, object_name: str) -> str:
        """Public URL of an uploaded object (CDN base when configured)"""
        if settings.STORAGE_PUBLIC_URL:
            return f"{settings.STORAGE_PUBLIC_URL.rstrip('/')}/{object_name}"
        if self.is_minio:
            scheme = "https" if settings.MINIO_SECURE else "http"
            return f"{scheme}://{settings.MINIO_ENDPOINT}/{self.bucket_name}/{object_name}"
        return f"https://{self.bucket_name}.s3.{settings.AWS_REGION}.amazonaws.com/{object_name}"

    def _put_object(self, data: bytes, object_name: str, content_type: str) -> None:
        self._ensure_bucket_exists()
        if self.is_minio:
            self.client.put_object(
                self.bucket_name,
                object_name,
                io.BytesIO(data),
                len(data),
                content_type=content_type
            )
        else:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=object_name,
                Body=data,
                ContentType=content_type
            )

    async def upload_image(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str],
        folder: str
    ) -> Dict[str, str]:
        """
        Validate and upload one image.

        Returns:
            {"url": public URL, "public_id": object key}
        """
        self.validate_image(data, filename, content_type)
        object_name = self.build_object_name(filename, folder)

        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._put_object, data, object_name, content_type)
        except (ClientError, BotoCoreError, S3Error) as e:
            logger.error(f"Error uploading image {object_name}: {e}")
            raise ImageUploadError(object_name, str(e))

        logger.info(f"Uploaded image: {object_name}")
        return {"url": self.get_public_url(object_name), "public_id": object_name}

    def _remove_object(self, object_name: str) -> None:
        if self.is_minio:
            self.client.remove_object(self.bucket_name, object_name)
        else:
            self.client.delete_object(Bucket=self.bucket_name, Key=object_name)

    async def delete_object(self, public_id: str) -> bool:
        """Delete an uploaded object; returns False on failure"""
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._remove_object, public_id)
            logger.info(f"Deleted object: {public_id}")
            return True
        except (ClientError, BotoCoreError, S3Error) as e:
            logger.error(f"Error deleting object {public_id}: {e}")
            return False


async def upload_images(storage: "StorageClient", files: List[UploadFile], folder: str) -> List[Dict[str, str]]:
    """Upload a multipart image list; earlier uploads are removed if a later one fails"""
    files = [f for f in files or [] if f is not None and f.filename]
    if len(files) > settings.MAX_IMAGES_PER_UPLOAD:
        raise InvalidImageError(f"A maximum of {settings.MAX_IMAGES_PER_UPLOAD} images can be uploaded")

    uploaded: List[Dict[str, str]] = []
    try:
        for upload in files:
            data = await upload.read()
            uploaded.append(
                await storage.upload_image(data, upload.filename, upload.content_type, folder)
            )
    except Exception:
        for image in uploaded:
            await storage.delete_object(image["public_id"])
        raise
    return uploaded


_storage_client: Optional[StorageClient] = None


def get_storage_client() -> StorageClient:
    """FastAPI dependency returning the shared storage client"""
    global _storage_client
    if _storage_client is None:
        _storage_client = StorageClient()
    return _storage_client
