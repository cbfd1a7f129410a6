"""
Integration tests for document endpoints

Tests:
- Upload to a ready document
- Rejections mapped to status codes
- Listing, fetching and deleting scoped to the owner
- Single-image OCR
"""

import pytest
from uuid import uuid4

from docuchat.models.document import Document

LINES = [
    ["Policy number 4471 covers water damage to the ground floor only."] * 3,
    ["Claims must be filed within thirty days of the incident occurring."] * 3,
]


@pytest.mark.integration
class TestUpload:

    def test_upload_pdf(self, client, pdf_factory, test_user):
        response = client.post(
            "/api/v1/documents",
            files={"file": ("policy.pdf", pdf_factory(LINES), "application/pdf")},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "ready"
        assert body["category"] == "pdf"
        assert body["page_count"] == 2
        assert body["is_ocr"] is False
        assert body["chunk_count"] > 0
        assert body["user_id"] == str(test_user.id)

    def test_upload_scanned_pdf_uses_ocr(self, client, pdf_factory, ocr_client):
        response = client.post(
            "/api/v1/documents",
            files={"file": ("scan.pdf", pdf_factory([[], []]), "application/pdf")},
        )

        assert response.status_code == 201
        assert response.json()["is_ocr"] is True
        ocr_client.batch.assert_awaited_once()

    def test_unsupported_format(self, client):
        response = client.post(
            "/api/v1/documents",
            files={"file": ("archive.zip", b"PK\x03\x04", "application/zip")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "UNSUPPORTED_FORMAT"

    def test_no_meaningful_text(self, client, db_session):
        response = client.post(
            "/api/v1/documents",
            files={"file": ("blank.txt", b"  \n  ", "text/plain")},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "INSUFFICIENT_CONTENT"
        assert db_session.query(Document).count() == 0

    def test_daily_limit_is_a_200_with_error_body(self, client):
        text = ("Enough text to pass the minimum content check. " * 3).encode()
        for number in range(3):
            assert client.post(
                "/api/v1/documents",
                files={"file": (f"n{number}.txt", text, "text/plain")},
            ).status_code == 201

        response = client.post("/api/v1/documents", files={"file": ("n4.txt", text, "text/plain")})

        assert response.status_code == 200
        assert response.json()["error"] == "DAILY_LIMIT_REACHED"

    def test_embedding_outage(self, client, mock_embedder, db_session):
        from unittest.mock import AsyncMock
        from docuchat.core.exceptions import UpstreamProviderError
        mock_embedder.embed_batch = AsyncMock(side_effect=UpstreamProviderError("openai_embeddings", "sk-secret"))

        response = client.post(
            "/api/v1/documents",
            files={"file": ("notes.txt", b"Meaningful notes about the launch plan.", "text/plain")},
        )

        assert response.status_code == 500
        assert response.json() == {
            "error": "UPSTREAM_ERROR",
            "message": "The AI service is temporarily unavailable. Please try again.",
        }
        assert db_session.query(Document).one().status == "failed"


@pytest.mark.integration
class TestDocumentResources:

    def test_list_with_pagination(self, client, test_user, make_document):
        for number in range(3):
            make_document(test_user, filename=f"doc{number}.pdf")

        response = client.get("/api/v1/documents", params={"limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 2
        assert body["pagination"] == {"total": 3, "limit": 2, "offset": 0, "has_more": True}

    def test_get_document(self, client, test_user, make_document):
        document = make_document(test_user)

        response = client.get(f"/api/v1/documents/{document.id}")

        assert response.status_code == 200
        assert response.json()["filename"] == "report.pdf"

    def test_other_users_document_is_not_found(self, client, make_user, make_document):
        document = make_document(make_user())

        response = client.get(f"/api/v1/documents/{document.id}")

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_delete(self, client, db_session, test_user, make_document):
        document = make_document(test_user)
        document_id = document.id

        response = client.delete(f"/api/v1/documents/{document_id}")

        assert response.status_code == 204
        assert db_session.query(Document).filter(Document.id == document_id).first() is None

    def test_delete_missing(self, client):
        assert client.delete(f"/api/v1/documents/{uuid4()}").status_code == 404


@pytest.mark.integration
class TestOcrEndpoint:

    def test_image(self, client, ocr_client):
        response = client.post("/api/v1/ocr", files={"file": ("photo.jpg", b"\xff\xd8\xff", "image/jpeg")})

        assert response.status_code == 200
        assert response.json() == {"text": "Text in the photo.", "is_ocr": True}

    def test_not_an_image(self, client):
        response = client.post("/api/v1/ocr", files={"file": ("notes.txt", b"hello", "text/plain")})

        assert response.status_code == 400
