"""
Summary API endpoints
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from docuchat.database import get_db
from docuchat.api.deps import get_current_user, get_summary_service
from docuchat.middleware.rate_limiter import summary_rate_limit
from docuchat.models.summary import Summary
from docuchat.models.user import User
from docuchat.schemas.summary import SummaryRequest, SummaryResponse
from docuchat.services.document_service import get_owned_document
from docuchat.services.summary_service import SummaryService

router = APIRouter(prefix="/documents", tags=["summaries"])


def _to_response(summary: Summary, cached: bool = False) -> SummaryResponse:
    return SummaryResponse(
        id=summary.id,
        document_id=summary.document_id,
        summary_type=summary.summary_type,
        domain_focus=summary.domain_focus,
        content=summary.content,
        credits_used=summary.credits_used or 0,
        provider=summary.provider,
        cached=cached,
        created_at=summary.created_at,
    )


@router.post("/{document_id}/summaries", response_model=SummaryResponse, status_code=status.HTTP_201_CREATED)
@summary_rate_limit()
async def create_summary(
    request: Request,
    document_id: UUID,
    payload: SummaryRequest,
    current_user: User = Depends(get_current_user),
    service: SummaryService = Depends(get_summary_service)
):
    """
    Summarize a document

    Costs (credit plans): brief 5, standard 10, detailed 25, bullets 10.
    Identical requests within the cache window are served without a charge.
    """
    summary, cached = await service.summarize(
        current_user,
        document_id,
        payload.summary_type,
        payload.domain_focus,
    )
    return _to_response(summary, cached)


@router.get("/{document_id}/summaries", response_model=List[SummaryResponse])
async def list_summaries(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    get_owned_document(db, document_id, current_user.id)
    summaries = db.query(Summary).filter(
        Summary.document_id == document_id,
        Summary.user_id == current_user.id,
    ).order_by(Summary.created_at.desc()).all()
    return [_to_response(s) for s in summaries]
