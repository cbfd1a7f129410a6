"""
Unit tests for document lookup, listing, deletion and chat history
"""

from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import MagicMock
from uuid import uuid4

from docuchat.core.exceptions import ResourceNotFoundError, ValidationError
from docuchat.models.chat_message import ChatMessage
from docuchat.models.chunk import DocumentChunk
from docuchat.models.document import Document, DocumentStatus
from docuchat.services.document_service import (
    delete_document,
    get_messages,
    get_owned_document,
    list_documents,
)


@pytest.mark.unit
class TestGetOwnedDocument:

    def test_owner_sees_document(self, db_session, test_user, make_document):
        document = make_document(test_user)
        assert get_owned_document(db_session, document.id, test_user.id).id == document.id

    def test_other_user_gets_not_found(self, db_session, make_user, make_document):
        document = make_document(make_user())

        with pytest.raises(ResourceNotFoundError):
            get_owned_document(db_session, document.id, make_user().id)

    def test_require_ready(self, db_session, test_user, make_document):
        document = make_document(test_user)
        document.status = DocumentStatus.FAILED
        db_session.commit()

        with pytest.raises(ValidationError) as exc_info:
            get_owned_document(db_session, document.id, test_user.id, require_ready=True)
        assert exc_info.value.details["status"] == "failed"


@pytest.mark.unit
class TestListDocuments:

    def test_pagination_and_status_filter(self, db_session, test_user, make_document):
        for index in range(3):
            make_document(test_user, filename=f"doc{index}.pdf")
        failed = make_document(test_user, filename="broken.pdf")
        failed.status = DocumentStatus.FAILED
        db_session.commit()

        documents, total = list_documents(db_session, test_user.id, limit=2, offset=0)
        assert total == 4
        assert len(documents) == 2

        documents, total = list_documents(db_session, test_user.id, status="failed")
        assert total == 1
        assert documents[0].filename == "broken.pdf"

    def test_only_own_documents(self, db_session, make_user, make_document):
        make_document(make_user())

        assert list_documents(db_session, make_user().id) == ([], 0)


@pytest.mark.unit
class TestDeleteDocument:

    def test_removes_rows_and_stored_file(self, db_session, test_user, make_document):
        document = make_document(test_user)
        storage_path = f"users/{test_user.id}/documents/{document.id}/report.pdf"
        document.storage_path = storage_path
        db_session.commit()
        storage = MagicMock()

        delete_document(db_session, document.id, test_user.id, storage=storage)

        storage.delete.assert_called_once_with(storage_path, test_user.id)
        assert db_session.query(Document).count() == 0
        assert db_session.query(DocumentChunk).count() == 0

    def test_missing_file_is_tolerated(self, db_session, test_user, make_document):
        document = make_document(test_user)
        document.storage_path = f"users/{test_user.id}/documents/{document.id}/report.pdf"
        db_session.commit()
        storage = MagicMock()
        storage.delete.side_effect = FileNotFoundError("gone")

        delete_document(db_session, document.id, test_user.id, storage=storage)

        assert db_session.query(Document).count() == 0

    def test_cannot_delete_other_users_document(self, db_session, make_user, make_document):
        document = make_document(make_user())

        with pytest.raises(ResourceNotFoundError):
            delete_document(db_session, document.id, uuid4(), storage=MagicMock())


@pytest.mark.unit
class TestGetMessages:

    def test_oldest_first_and_recent_window(self, db_session, test_user, make_document):
        document = make_document(test_user)
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for minute in range(5):
            db_session.add(ChatMessage(
                document_id=document.id,
                user_id=test_user.id,
                role="user" if minute % 2 == 0 else "ai",
                content=f"message {minute}",
                created_at=start + timedelta(minutes=minute),
            ))
        db_session.commit()

        assert [m.content for m in get_messages(db_session, document.id, test_user.id)] == [
            f"message {n}" for n in range(5)
        ]
        assert [m.content for m in get_messages(db_session, document.id, test_user.id, limit=2)] == [
            "message 3", "message 4"
        ]
