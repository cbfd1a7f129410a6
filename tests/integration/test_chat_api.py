"""
Integration tests for chat endpoints

Tests:
- Chat answer, sources and usage
- Quick query without history
- Message history
- Plan limits and credits surfaced as error bodies
"""

import pytest
from uuid import uuid4


@pytest.mark.integration
class TestChatAPI:

    def test_chat(self, client, test_user, make_document, fake_provider):
        document = make_document(test_user, ["The warranty lasts two years.", "Returns within 30 days."])

        response = client.post(f"/api/v1/documents/{document.id}/chat", json={"question": "How long is the warranty?"})

        assert response.status_code == 200
        body = response.json()
        assert body["answer"] == "A grounded answer."
        assert body["context_policy"] == "similarity"
        assert [s["page_number"] for s in body["sources"]] == [1, 2]
        assert body["usage"] == {"input_tokens": 12, "output_tokens": 5, "provider": "fake", "charged_with": "counter"}
        assert fake_provider.call_count == 1

    def test_messages_after_chat(self, client, test_user, make_document):
        document = make_document(test_user)
        client.post(f"/api/v1/documents/{document.id}/chat", json={"question": "What is this?"})

        response = client.get(f"/api/v1/documents/{document.id}/messages")

        assert response.status_code == 200
        messages = response.json()["messages"]
        assert [(m["role"], m["content"]) for m in messages] == [
            ("user", "What is this?"),
            ("ai", "A grounded answer."),
        ]

    def test_quick_query(self, client, test_user, make_document):
        document = make_document(test_user)

        response = client.post(f"/api/v1/documents/{document.id}/query", json={"question": "Summary?"})

        assert response.status_code == 200
        assert response.json()["context_policy"] == "sequential"
        history = client.get(f"/api/v1/documents/{document.id}/messages").json()["messages"]
        assert [(m["role"], m["content"]) for m in history] == [
            ("user", "Summary?"),
            ("ai", "A grounded answer."),
        ]

    def test_empty_question(self, client, test_user, make_document):
        document = make_document(test_user)

        response = client.post(f"/api/v1/documents/{document.id}/chat", json={"question": ""})

        assert response.status_code == 422

    def test_unknown_document(self, client):
        response = client.post(f"/api/v1/documents/{uuid4()}/chat", json={"question": "Hello?"})

        assert response.status_code == 404

    def test_daily_limit(self, client, db_session, make_document, fake_provider, current_user):
        document = make_document(current_user)
        for _ in range(5):
            client.post(f"/api/v1/documents/{document.id}/query", json={"question": "Q?"})
        current_user.credit_balance = 0
        db_session.commit()

        response = client.post(f"/api/v1/documents/{document.id}/chat", json={"question": "One more?"})

        assert response.status_code == 200
        assert response.json()["error"] == "DAILY_LIMIT_REACHED"
        assert fake_provider.call_count == 5


@pytest.mark.integration
class TestChatWithoutCredits:

    @pytest.fixture
    def current_user(self, make_user):
        return make_user("pro", 0)

    def test_insufficient_credits(self, client, current_user, make_document, fake_provider, mock_embedder):
        document = make_document(current_user)

        response = client.post(f"/api/v1/documents/{document.id}/chat", json={"question": "Anything?"})

        assert response.status_code == 402
        assert response.json()["error"] == "INSUFFICIENT_CREDITS"
        assert fake_provider.call_count == 0
        mock_embedder.embed.assert_not_called()
