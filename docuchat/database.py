"""
Database session management for DocuChat
SQLAlchemy setup on PostgreSQL + pgvector
"""

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from docuchat.config import settings

logger = logging.getLogger(__name__)

# pool_pre_ping: Verify connections before using them
# echo: Log all SQL statements when DEBUG=True
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DEBUG
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Dependency for FastAPI endpoints to get database session
    Rolls back on exceptions so a failed request never leaves a dirty session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables():
    """
    Create the pgvector extension and all tables
    Called during application startup
    """
    from docuchat import models  # noqa: F401

    if engine.dialect.name == "postgresql":
        with engine.begin() as conn:
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))

    Base.metadata.create_all(bind=engine)

    if engine.dialect.name == "postgresql":
        # Approximate nearest-neighbour index for cosine similarity search
        with engine.begin() as conn:
            conn.execute(text(
                "CREATE INDEX IF NOT EXISTS idx_document_chunks_embedding "
                "ON document_chunks USING ivfflat (embedding vector_cosine_ops) WITH (lists = 100)"
            ))

    logger.info("Database tables ready")
