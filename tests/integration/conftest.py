"""
Fixtures for API integration tests

The app runs against the in-memory test database, with the completion
provider, embedder and OCR client replaced by fakes.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

from docuchat.api.deps import (
    get_chat_service,
    get_current_user,
    get_ingestion_service,
    get_summary_service,
)
from docuchat.chunking import WindowChunker
from docuchat.database import get_db
from docuchat.main import app
from docuchat.search import VectorSearchService
from docuchat.services.cache_service import CacheService, MemoryCacheBackend
from docuchat.services.chat_service import ChatService
from docuchat.services.ingestion_service import IngestionService
from docuchat.services.summary_service import SummaryService
from docuchat.storage.local import LocalStorage
from docuchat.parsers import ParserFactory


@pytest.fixture
def ocr_client():
    client = MagicMock()
    client.batch = AsyncMock(side_effect=lambda images: [f"Scanned page {i + 1} text." for i in range(len(images))])
    client.extract_text = AsyncMock(return_value="Text in the photo.")
    return client


@pytest.fixture
def current_user(test_user):
    """User the API authenticates as; override to switch plans"""
    return test_user


@pytest.fixture
def client(db_session, current_user, fake_provider, mock_embedder, mock_tokenizer, ocr_client, tmp_path):
    """Test client with database, auth and providers overridden"""
    storage = LocalStorage(str(tmp_path))
    search = VectorSearchService(db_session)
    # pgvector operators are not available on SQLite
    search.match_chunks = MagicMock(return_value=[])

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: current_user
    app.dependency_overrides[get_ingestion_service] = lambda: IngestionService(
        db_session,
        parser_factory=ParserFactory(ocr_client),
        embedder=mock_embedder,
        storage=storage,
        chunker=WindowChunker(chunk_size=200, chunk_overlap=50, tokenizer=mock_tokenizer),
        ocr_client=ocr_client,
    )
    app.dependency_overrides[get_chat_service] = lambda: ChatService(
        db_session, fake_provider, embedder=mock_embedder, search=search
    )
    app.dependency_overrides[get_summary_service] = lambda: SummaryService(
        db_session, fake_provider, cache=CacheService(backend=MemoryCacheBackend(max_entries=10))
    )

    yield TestClient(app)

    app.dependency_overrides.clear()

