"""
Storage backend factory
Creates appropriate storage backend based on configuration
"""

from functools import lru_cache
import logging
from docuchat.config import settings
from docuchat.storage.base import StorageBackend

logger = logging.getLogger(__name__)


@lru_cache()
def get_storage_backend() -> StorageBackend:
    """
    Create the configured storage backend (built once, on first use)

    Raises:
        ValueError: If STORAGE_BACKEND is not "local" or "s3"
    """
    backend_type = settings.STORAGE_BACKEND.lower()

    if backend_type == "local":
        from docuchat.storage.local import LocalStorage
        logger.info(f"Using local file storage: {settings.UPLOAD_DIR}")
        return LocalStorage(base_path=settings.UPLOAD_DIR)

    if backend_type == "s3":
        from docuchat.storage.s3 import S3Storage
        logger.info(f"Using S3 storage: bucket={settings.S3_BUCKET_NAME}, region={settings.S3_REGION}")
        return S3Storage(
            bucket_name=settings.S3_BUCKET_NAME,
            aws_access_key_id=settings.S3_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY or None,
            region_name=settings.S3_REGION or None,
            endpoint_url=settings.S3_ENDPOINT_URL or None,
        )

    raise ValueError(f"Invalid STORAGE_BACKEND: {backend_type}. Must be 'local' or 's3'")
