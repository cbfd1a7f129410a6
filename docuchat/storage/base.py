"""
Abstract base class for storage backends
Document bytes live under user-scoped keys: users/{user_id}/documents/{document_id}/{filename}
"""

from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import Optional
from uuid import UUID


def safe_filename(filename: str) -> str:
    """Strip any directory components a client put in the filename"""
    name = PurePosixPath((filename or "").replace("\\", "/")).name
    return name or "upload"


def document_key(user_id: UUID, document_id: UUID, filename: str) -> str:
    return f"users/{user_id}/documents/{document_id}/{safe_filename(filename)}"


def owns(storage_path: str, user_id: UUID) -> bool:
    return storage_path.replace("\\", "/").startswith(f"users/{user_id}/")


class StorageBackend(ABC):
    """Abstract base class for file storage backends"""

    @abstractmethod
    def save(
        self,
        data: bytes,
        user_id: UUID,
        document_id: UUID,
        filename: str,
        content_type: Optional[str] = None
    ) -> str:
        """
        Save document bytes under a user-scoped key

        Returns:
            str: Storage path/key for the saved file
        """
        pass

    @abstractmethod
    def read(self, storage_path: str, user_id: UUID) -> bytes:
        """
        Read file bytes

        Raises:
            PermissionError: path does not belong to the user
            FileNotFoundError: nothing stored at the path
        """
        pass

    @abstractmethod
    def exists(self, storage_path: str, user_id: UUID) -> bool:
        pass

    @abstractmethod
    def delete(self, storage_path: str, user_id: UUID) -> None:
        """Delete a file; missing files are ignored"""
        pass
