"""
FastAPI dependencies
Authentication, database session, service singletons
"""

from fastapi import Depends, Header
from sqlalchemy.orm import Session
from datetime import datetime, timezone
from functools import lru_cache

from docuchat.database import get_db
from docuchat.models.user import User
from docuchat.models.api_key import APIKey
from docuchat.core.security import hash_api_key
from docuchat.core.exceptions import http_401_unauthorized


async def get_current_user(
    authorization: str = Header(..., description="Bearer token"),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from API key

    Args:
        authorization: Authorization header (format: "Bearer dc_...")
        db: Database session

    Raises:
        HTTPException: 401 if authentication fails
    """
    if not authorization.startswith("Bearer "):
        raise http_401_unauthorized("Invalid authorization header format")

    api_key = authorization[7:]
    if not api_key:
        raise http_401_unauthorized("API key missing")

    api_key_obj = db.query(APIKey).filter(APIKey.key_hash == hash_api_key(api_key)).first()
    if not api_key_obj:
        raise http_401_unauthorized("Invalid API key")

    api_key_obj.last_used_at = datetime.now(timezone.utc)
    db.commit()

    user = db.query(User).filter(User.id == api_key_obj.user_id).first()

    if not user:
        raise http_401_unauthorized("User not found")

    if not user.is_active:
        raise http_401_unauthorized("User account is inactive")

    return user


# ==============================================================================
# Service Singletons
# ==============================================================================
# Built once per process: provider clients, cache backend and OCR pool


@lru_cache(maxsize=1)
def get_cache_service():
    """
    Get singleton CacheService instance

    Keeps the in-memory cache (or Redis connection) shared across requests
    """
    from docuchat.services.cache_service import CacheService
    return CacheService()


@lru_cache(maxsize=1)
def get_provider_registry():
    """Completion providers configured at startup, in fallback order"""
    from docuchat.services.llm_providers import ProviderRegistry
    return ProviderRegistry()


@lru_cache(maxsize=1)
def get_ocr_client():
    from docuchat.vision.ocr import OCRClient
    return OCRClient()


@lru_cache(maxsize=1)
def get_embedder():
    from docuchat.embeddings import OpenAIEmbedder
    return OpenAIEmbedder(cache=get_cache_service())


def get_ingestion_service(db: Session = Depends(get_db)):
    from docuchat.services.ingestion_service import IngestionService
    return IngestionService(db, embedder=get_embedder(), ocr_client=get_ocr_client())


def get_chat_service(db: Session = Depends(get_db)):
    from docuchat.services.chat_service import ChatService
    return ChatService(db, get_provider_registry(), embedder=get_embedder())


def get_summary_service(db: Session = Depends(get_db)):
    from docuchat.services.summary_service import SummaryService
    return SummaryService(db, get_provider_registry(), cache=get_cache_service())
