"""
Pytest configuration and shared fixtures for DocuChat tests

Provides:
- In-memory SQLite database sessions
- Users on each plan
- Ready documents with chunks
- Fake completion provider and embedder
- Minimal PDF builder
"""

import os

# Must be set before docuchat.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["EMBEDDING_DIMENSIONS"] = "8"
os.environ["OPENAI_API_KEY"] = "test-openai-key"
os.environ["GOOGLE_VISION_API_KEY"] = "test-vision-key"
os.environ["PAYSTACK_SECRET_KEY"] = "sk_test_paystack_secret"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_stripe_secret"

import pytest
from typing import Generator, List
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from docuchat.database import Base
from docuchat.models.user import User
from docuchat.models.document import Document, DocumentStatus
from docuchat.models.chunk import DocumentChunk
from docuchat.services.llm_providers import CompletionProvider, CompletionResult

EMBEDDING_DIM = 8


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db_session):
    """Factory for users on a given plan and balance"""

    def _make(plan: str = "free", credit_balance: int = 0, email: str = None) -> User:
        user = User(
            id=uuid4(),
            email=email or f"{uuid4().hex[:8]}@example.com",
            hashed_password="not-a-real-hash",
            is_active=True,
            plan=plan,
            credit_balance=credit_balance,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def test_user(make_user) -> User:
    return make_user("free", 3, email="test@example.com")


@pytest.fixture
def make_document(db_session):
    """Factory for ready documents with chunks in page order"""

    def _make(user: User, chunk_texts: List[str] = None, filename: str = "report.pdf") -> Document:
        chunk_texts = chunk_texts or ["First page text.", "Second page text."]
        document = Document(
            id=uuid4(),
            user_id=user.id,
            filename=filename,
            content_type="application/pdf",
            category="pdf",
            status=DocumentStatus.READY,
            page_count=len(chunk_texts),
            chunk_count=len(chunk_texts),
            extracted_text="\n\n".join(chunk_texts),
        )
        db_session.add(document)
        for index, text in enumerate(chunk_texts):
            db_session.add(DocumentChunk(
                document_id=document.id,
                user_id=user.id,
                chunk_index=index,
                page_number=index + 1,
                content=text,
                embedding=[0.1] * EMBEDDING_DIM,
            ))
        db_session.commit()
        db_session.refresh(document)
        return document

    return _make


class FakeProvider(CompletionProvider):
    """Completion provider that records calls and replays scripted outcomes"""

    name = "fake"

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.calls = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def complete(self, messages, max_tokens, temperature=0.7):
        self.calls.append({"messages": messages, "max_tokens": max_tokens, "temperature": temperature})
        outcome = self.outcomes.pop(0) if self.outcomes else "A grounded answer."
        if isinstance(outcome, Exception):
            raise outcome
        return CompletionResult(text=outcome, input_tokens=12, output_tokens=5, provider=self.name, model="fake-model")


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def make_provider():
    """Factory for FakeProvider with scripted outcomes"""
    return FakeProvider


@pytest.fixture
def mock_embedder():
    """Embedder returning one fixed-size vector per text"""
    embedder = MagicMock()
    embedder.embed_batch = AsyncMock(side_effect=lambda texts: [[0.1] * EMBEDDING_DIM for _ in texts])
    embedder.embed = AsyncMock(return_value=[0.1] * EMBEDDING_DIM)
    return embedder


@pytest.fixture
def mock_tokenizer():
    tokenizer = MagicMock()
    tokenizer.encode.side_effect = lambda text: text.split()
    return tokenizer


def build_pdf(page_lines: List[List[str]]) -> bytes:
    """
    Build a minimal PDF with one page per entry

    Each entry is a list of text lines drawn in Helvetica; an empty list gives
    a page with no text layer.
    """
    count = len(page_lines)
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        ("<< /Type /Pages /Kids [%s] /Count %d >>" % (
            " ".join(f"{4 + 2 * i} 0 R" for i in range(count)), count
        )).encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for i, lines in enumerate(page_lines):
        objects.append((
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            "/Resources << /Font << /F1 3 0 R >> >> /Contents %d 0 R >>" % (5 + 2 * i)
        ).encode())
        if lines:
            shown = " T* ".join(
                "(%s) Tj" % line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
                for line in lines
            )
            stream = f"BT /F1 10 Tf 14 TL 50 740 Td {shown} ET".encode()
        else:
            stream = b""
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = b"%PDF-1.4\n"
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_at = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n".encode()
    return out


@pytest.fixture
def pdf_factory():
    return build_pdf


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for API endpoints"
    )
