"""
Local file storage with user-scoped paths
"""

from pathlib import Path
from typing import Optional
from uuid import UUID
import logging

from docuchat.config import settings
from docuchat.core.exceptions import StorageError
from docuchat.storage.base import StorageBackend, document_key, owns

logger = logging.getLogger(__name__)


class LocalStorage(StorageBackend):
    """Local file storage with user-scoped paths"""

    def __init__(self, base_path: str = None):
        self.base_path = Path(base_path or settings.UPLOAD_DIR)

    def _resolve(self, storage_path: str, user_id: UUID) -> Path:
        if not owns(storage_path, user_id):
            raise PermissionError(f"Access denied: file does not belong to user {user_id}")

        absolute_path = (self.base_path / storage_path.replace('\\', '/')).resolve()
        expected_prefix = (self.base_path / "users" / str(user_id)).resolve()
        try:
            absolute_path.relative_to(expected_prefix)
        except ValueError:
            raise PermissionError(f"Access denied: file does not belong to user {user_id}")
        return absolute_path

    def save(
        self,
        data: bytes,
        user_id: UUID,
        document_id: UUID,
        filename: str,
        content_type: Optional[str] = None
    ) -> str:
        storage_path = document_key(user_id, document_id, filename)
        file_path = self._resolve(storage_path, user_id)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to write {storage_path}: {e}")
            raise StorageError("Could not store the uploaded file") from e
        logger.debug(f"Saved {len(data)} bytes to {storage_path}")
        return storage_path

    def read(self, storage_path: str, user_id: UUID) -> bytes:
        file_path = self._resolve(storage_path, user_id)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {storage_path}")
        return file_path.read_bytes()

    def exists(self, storage_path: str, user_id: UUID) -> bool:
        try:
            return self._resolve(storage_path, user_id).exists()
        except PermissionError:
            return False

    def delete(self, storage_path: str, user_id: UUID) -> None:
        file_path = self._resolve(storage_path, user_id)
        if file_path.exists():
            file_path.unlink()
            # Remove the now-empty document directory
            try:
                file_path.parent.rmdir()
            except OSError:
                pass
