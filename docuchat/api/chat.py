"""
Chat API endpoints
Questions about one document, answered from its chunks
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from uuid import UUID

from docuchat.database import get_db
from docuchat.api.deps import get_current_user, get_chat_service
from docuchat.middleware.rate_limiter import chat_rate_limit
from docuchat.models.user import User
from docuchat.schemas.chat import (
    ChatHistoryResponse,
    ChatMessageResponse,
    ChatRequest,
    ChatResponse,
    Source,
    Usage,
)
from docuchat.services.chat_service import ChatAnswer, ChatService
from docuchat.services.document_service import get_messages

router = APIRouter(prefix="/documents", tags=["chat"])


def _to_response(result: ChatAnswer) -> ChatResponse:
    completion = result.completion
    return ChatResponse(
        answer=result.answer,
        context_policy=result.context_policy.value,
        sources=[
            Source(
                chunk_id=s["chunk_id"],
                chunk_index=s["chunk_index"],
                page_number=s["page_number"] or 1,
                content=s["content"],
                similarity=s.get("similarity"),
            )
            for s in result.sources
        ],
        usage=Usage(
            input_tokens=completion.input_tokens,
            output_tokens=completion.output_tokens,
            provider=completion.provider,
            charged_with=result.charged_with,
        ),
    )


@router.post("/{document_id}/chat", response_model=ChatResponse)
@chat_rate_limit()
async def chat(
    request: Request,
    document_id: UUID,
    payload: ChatRequest,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
):
    """
    Ask a question about a document

    Context is the chunks most similar to the question; the last few messages
    of the conversation are included. Both question and answer are stored.
    """
    result = await service.chat(current_user, document_id, payload.question)
    return _to_response(result)


@router.post("/{document_id}/query", response_model=ChatResponse)
@chat_rate_limit()
async def quick_query(
    request: Request,
    document_id: UUID,
    payload: ChatRequest,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
):
    """Quick answer from the start of the document, without retrieval or history"""
    result = await service.quick_query(current_user, document_id, payload.question)
    return _to_response(result)


@router.get("/{document_id}/messages", response_model=ChatHistoryResponse)
async def list_messages(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    messages = get_messages(db, document_id, current_user.id)
    return ChatHistoryResponse(
        document_id=document_id,
        messages=[ChatMessageResponse.model_validate(m) for m in messages],
    )
