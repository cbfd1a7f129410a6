"""
DocuChat API - FastAPI application entry point
Document upload, chat, summaries, OCR and billing
"""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s"
)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from docuchat.config import settings
from docuchat.database import SessionLocal, create_tables
from docuchat.middleware.rate_limiter import setup_rate_limiting
from docuchat.utils.error_handlers import setup_error_handlers

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Chat with your documents: upload, ask, summarize",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "authentication", "description": "User registration and API keys"},
        {"name": "documents", "description": "Document upload and management"},
        {"name": "chat", "description": "Questions about a document"},
        {"name": "summaries", "description": "Document summaries"},
        {"name": "billing", "description": "Credits, usage and payment webhooks"}
    ]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_rate_limiting(app)
setup_error_handlers(app)


@app.on_event("startup")
async def startup_event():
    """Create tables and build the completion provider registry"""
    from docuchat.api.deps import get_provider_registry

    create_tables()
    get_provider_registry()
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} started")
    logger.info(f"API Docs: http://{settings.API_HOST}:{settings.API_PORT}/docs")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy"
    }


@app.get("/health")
async def health_check():
    """Health check with a database round trip"""
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        database = "unavailable"
    finally:
        db.close()

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "version": settings.APP_VERSION,
        "database": database
    }


from docuchat.api import auth, documents, chat, summaries, billing

app.include_router(auth.router, prefix="/api/v1")
app.include_router(documents.router, prefix="/api/v1")
app.include_router(chat.router, prefix="/api/v1")
app.include_router(summaries.router, prefix="/api/v1")
app.include_router(billing.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "docuchat.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD
    )
