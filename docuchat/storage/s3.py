"""
S3 file storage backend (AWS S3 or compatible services)
"""

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from typing import Optional
from uuid import UUID
import logging

from docuchat.config import settings
from docuchat.core.exceptions import StorageError
from docuchat.storage.base import StorageBackend, document_key, owns

logger = logging.getLogger(__name__)


class S3Storage(StorageBackend):
    """S3 file storage with user-scoped keys"""

    def __init__(
        self,
        bucket_name: str = None,
        aws_access_key_id: str = None,
        aws_secret_access_key: str = None,
        region_name: str = None,
        endpoint_url: str = None,
        client=None
    ):
        """
        Args:
            bucket_name: S3 bucket name
            aws_access_key_id: AWS access key (optional, uses env/IAM if not provided)
            aws_secret_access_key: AWS secret key (optional)
            region_name: AWS region (optional)
            endpoint_url: Custom S3 endpoint (for MinIO, DigitalOcean Spaces, etc.)
            client: Pre-built boto3 client
        """
        self.bucket_name = bucket_name or settings.S3_BUCKET_NAME

        if client is None:
            s3_config = {}
            if aws_access_key_id:
                s3_config['aws_access_key_id'] = aws_access_key_id
            if aws_secret_access_key:
                s3_config['aws_secret_access_key'] = aws_secret_access_key
            if region_name:
                s3_config['region_name'] = region_name
            if endpoint_url:
                s3_config['endpoint_url'] = endpoint_url
            client = boto3.client('s3', **s3_config)

        self.s3_client = client

    def _check_owner(self, storage_path: str, user_id: UUID) -> None:
        if not owns(storage_path, user_id):
            raise PermissionError(f"Access denied: file does not belong to user {user_id}")

    def save(
        self,
        data: bytes,
        user_id: UUID,
        document_id: UUID,
        filename: str,
        content_type: Optional[str] = None
    ) -> str:
        s3_key = document_key(user_id, document_id, filename)

        extra_args = {
            'Metadata': {
                'user_id': str(user_id),
                'document_id': str(document_id)
            }
        }
        if content_type:
            extra_args['ContentType'] = content_type

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=s3_key,
                Body=data,
                **extra_args
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload to S3: {e}")
            raise StorageError("Could not store the uploaded file") from e

        logger.info(f"Uploaded file to S3: {s3_key}")
        return s3_key

    def read(self, storage_path: str, user_id: UUID) -> bytes:
        self._check_owner(storage_path, user_id)
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=storage_path)
            return response['Body'].read()
        except ClientError as e:
            if e.response['Error']['Code'] == 'NoSuchKey':
                raise FileNotFoundError(f"File not found: {storage_path}")
            logger.error(f"Failed to read from S3: {e}")
            raise

    def exists(self, storage_path: str, user_id: UUID) -> bool:
        if not owns(storage_path, user_id):
            return False
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=storage_path)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] in ('404', 'NoSuchKey'):
                return False
            raise

    def delete(self, storage_path: str, user_id: UUID) -> None:
        self._check_owner(storage_path, user_id)
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=storage_path)
            logger.info(f"Deleted file from S3: {storage_path}")
        except ClientError as e:
            logger.error(f"Failed to delete from S3: {e}")
            raise
