"""
Document API endpoints
Upload (synchronous ingestion), list, fetch, delete
"""

from fastapi import APIRouter, Depends, File, Query, Request, Response, UploadFile, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from docuchat.database import get_db
from docuchat.api.deps import get_current_user, get_ingestion_service
from docuchat.middleware.rate_limiter import upload_rate_limit
from docuchat.models.user import User
from docuchat.schemas.document import DocumentListResponse, DocumentResponse, OCRResponse
from docuchat.services import document_service
from docuchat.services.ingestion_service import IngestionService
import logging

router = APIRouter(tags=["documents"])
logger = logging.getLogger(__name__)


@router.post("/documents", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
@upload_rate_limit()
async def upload_document(
    request: Request,
    file: UploadFile = File(..., description="PDF, DOCX, PPTX, text or image file"),
    current_user: User = Depends(get_current_user),
    ingestion: IngestionService = Depends(get_ingestion_service)
):
    """
    Upload a document and ingest it

    Text is extracted (OCR for scanned PDFs and images), chunked and embedded
    before the response is returned.

    Raises:
        400: unsupported format or file too large
        422: no meaningful text could be extracted (nothing stored)
        200: plan limit reached
        402: not enough credits for the OCR pages
    """
    data = await file.read()
    document = await ingestion.ingest(current_user, data, file.filename or "upload", file.content_type)
    return document


@router.get("/documents", response_model=DocumentListResponse)
async def list_documents(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    documents, total = document_service.list_documents(db, current_user.id, limit, offset, status_filter)
    return DocumentListResponse(
        data=[DocumentResponse.model_validate(d) for d in documents],
        pagination={
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(documents) < total
        }
    )


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return document_service.get_owned_document(db, document_id, current_user.id)


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete a document with its stored file, chunks, messages and summaries"""
    document_service.delete_document(db, document_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/ocr", response_model=OCRResponse)
@upload_rate_limit()
async def ocr_image(
    request: Request,
    file: UploadFile = File(..., description="Image to transcribe"),
    current_user: User = Depends(get_current_user),
    ingestion: IngestionService = Depends(get_ingestion_service)
):
    """Transcribe one image, charged as one OCR page; nothing is stored"""
    data = await file.read()
    text = await ingestion.ocr_image(current_user, data, file.filename or "image", file.content_type)
    return OCRResponse(text=text)
