"""
File storage backends (local filesystem or S3)
"""

from docuchat.storage.base import StorageBackend
from docuchat.storage.factory import get_storage_backend

__all__ = ["StorageBackend", "get_storage_backend"]
