"""
Document lookup and deletion scoped to the owning user
"""

from typing import List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from docuchat.core.exceptions import ResourceNotFoundError, ValidationError
from docuchat.models.chat_message import ChatMessage
from docuchat.models.document import Document, DocumentStatus
from docuchat.storage import StorageBackend, get_storage_backend

logger = logging.getLogger(__name__)


def get_owned_document(db: Session, document_id: UUID, user_id: UUID, require_ready: bool = False) -> Document:
    """
    Load a document the user owns

    Another user's document is reported as not found.

    Raises:
        ResourceNotFoundError: no such document for this user
        ValidationError: require_ready and the document is not ready
    """
    document = db.query(Document).filter(
        Document.id == document_id,
        Document.user_id == user_id
    ).first()

    if not document:
        raise ResourceNotFoundError("document", document_id)

    if require_ready and document.status != DocumentStatus.READY:
        raise ValidationError(
            f"Document is not ready (status: {document.status})",
            {"document_id": str(document_id), "status": document.status},
        )
    return document


def list_documents(
    db: Session,
    user_id: UUID,
    limit: int = 20,
    offset: int = 0,
    status: Optional[str] = None,
) -> Tuple[List[Document], int]:
    """Newest first, with the total count for pagination"""
    query = db.query(Document).filter(Document.user_id == user_id)
    if status:
        query = query.filter(Document.status == status)

    total = query.count()
    documents = query.order_by(Document.created_at.desc()).offset(offset).limit(limit).all()
    return documents, total


def delete_document(
    db: Session,
    document_id: UUID,
    user_id: UUID,
    storage: Optional[StorageBackend] = None,
) -> None:
    """Delete a document, its stored file, chunks, messages and summaries"""
    document = get_owned_document(db, document_id, user_id)

    if document.storage_path:
        storage = storage or get_storage_backend()
        try:
            storage.delete(document.storage_path, user_id)
        except FileNotFoundError:
            logger.warning(f"Stored file for document {document_id} was already gone")

    db.delete(document)
    db.commit()
    logger.info(f"Deleted document {document_id}")


def get_messages(db: Session, document_id: UUID, user_id: UUID, limit: Optional[int] = None) -> List[ChatMessage]:
    """
    Chat messages for a document, oldest first

    With limit, the most recent limit messages are returned (still oldest first).
    """
    get_owned_document(db, document_id, user_id)

    query = db.query(ChatMessage).filter(
        ChatMessage.document_id == document_id,
        ChatMessage.user_id == user_id,
    )
    if limit:
        recent = query.order_by(ChatMessage.created_at.desc()).limit(limit).all()
        return list(reversed(recent))
    return query.order_by(ChatMessage.created_at).all()
