"""
Chat Service - question answering over one document

Context assembly is an explicit policy per operation:
- chat (ContextPolicy.SIMILARITY): the top-K chunks most similar to the
  question; when none clears the threshold, a truncated prefix of the
  document in page order
- quick query (ContextPolicy.SEQUENTIAL): the first N chunks in page order

The quota is charged before the first provider call and refunded if a
provider fails.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from docuchat.config import settings
from docuchat.core.exceptions import UpstreamProviderError
from docuchat.embeddings import OpenAIEmbedder
from docuchat.models.chat_message import ChatMessage
from docuchat.models.document import Document
from docuchat.models.user import User
from docuchat.prompts import PromptBuilder
from docuchat.search import ContextPolicy, VectorSearchService
from docuchat.services.document_service import get_messages, get_owned_document
from docuchat.services.llm_providers import CompletionProvider, CompletionResult
from docuchat.services.quota_service import QuotaService

logger = logging.getLogger(__name__)


@dataclass
class ChatAnswer:
    answer: str
    context_policy: ContextPolicy
    sources: List[Dict[str, Any]] = field(default_factory=list)
    completion: Optional[CompletionResult] = None
    charged_with: str = ""


def truncate_sections(chunks: List[Dict[str, Any]], max_chars: int) -> List[Dict[str, Any]]:
    """Leading chunks whose combined content fits in max_chars, the last one cut to fit"""
    sections = []
    remaining = max_chars
    for chunk in chunks:
        if remaining <= 0:
            break
        content = chunk["content"][:remaining]
        sections.append({**chunk, "content": content})
        remaining -= len(content)
    return sections


class ChatService:
    """Answers questions about a user's document"""

    def __init__(
        self,
        db: Session,
        provider: CompletionProvider,
        embedder: Optional[OpenAIEmbedder] = None,
        quota: Optional[QuotaService] = None,
        search: Optional[VectorSearchService] = None,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        self.db = db
        self.provider = provider
        self._embedder = embedder
        self.quota = quota or QuotaService(db)
        self.search = search or VectorSearchService(db)
        self.prompt_builder = prompt_builder or PromptBuilder()

    @property
    def embedder(self) -> OpenAIEmbedder:
        if self._embedder is None:
            self._embedder = OpenAIEmbedder()
        return self._embedder

    async def chat(self, user: User, document_id: UUID, question: str) -> ChatAnswer:
        """
        Answer a question with retrieved context and recent history

        The question and answer are stored as a user/ai message pair once the
        answer is back.

        Raises:
            ResourceNotFoundError: document missing or not owned
            ValidationError: document not ready
            RateLimitError, InsufficientCreditsError: before any provider call
            UpstreamProviderError: embedding or completion failed (charge refunded)
        """
        document = get_owned_document(self.db, document_id, user.id, require_ready=True)
        charged_with = self.quota.consume(user, "chat")
        asked_at = datetime.now(timezone.utc)

        try:
            sections = await self._similar_sections(question, document, user.id)
            history = get_messages(self.db, document.id, user.id, limit=settings.CHAT_HISTORY_TURNS)
            messages = self.prompt_builder.build_chat_messages(
                question,
                sections,
                history=history,
                filename=document.filename,
            )
            completion = await self.provider.complete(
                messages,
                max_tokens=settings.CHAT_MAX_TOKENS,
                temperature=settings.CHAT_TEMPERATURE,
            )
        except UpstreamProviderError:
            self.quota.refund(user, "chat", charged_with)
            raise

        self._store_exchange(document, user.id, question, asked_at, completion)

        logger.info(
            f"Answered question on document {document.id} via {completion.provider} "
            f"({completion.input_tokens} in / {completion.output_tokens} out)"
        )
        return ChatAnswer(
            answer=completion.text,
            context_policy=ContextPolicy.SIMILARITY,
            sources=sections,
            completion=completion,
            charged_with=charged_with,
        )

    async def quick_query(self, user: User, document_id: UUID, question: str) -> ChatAnswer:
        """
        One-off answer from the start of the document, without history

        The exchange is appended to the document's chat log like any other.
        """
        document = get_owned_document(self.db, document_id, user.id, require_ready=True)
        charged_with = self.quota.consume(user, "chat")
        asked_at = datetime.now(timezone.utc)

        sections = self.search.first_chunks(document.id, user.id, limit=settings.SEQUENTIAL_CONTEXT_CHUNKS)
        messages = self.prompt_builder.build_chat_messages(question, sections, filename=document.filename)

        try:
            completion = await self.provider.complete(
                messages,
                max_tokens=settings.QUERY_MAX_TOKENS,
                temperature=settings.CHAT_TEMPERATURE,
            )
        except UpstreamProviderError:
            self.quota.refund(user, "chat", charged_with)
            raise

        self._store_exchange(document, user.id, question, asked_at, completion)
        return ChatAnswer(
            answer=completion.text,
            context_policy=ContextPolicy.SEQUENTIAL,
            sources=sections,
            completion=completion,
            charged_with=charged_with,
        )

    def _store_exchange(
        self,
        document: Document,
        user_id: UUID,
        question: str,
        asked_at: datetime,
        completion: CompletionResult,
    ) -> None:
        """Append the question and its answer as a user/ai message pair"""
        self.db.add_all([
            ChatMessage(
                document_id=document.id,
                user_id=user_id,
                role="user",
                content=question,
                created_at=asked_at,
            ),
            ChatMessage(
                document_id=document.id,
                user_id=user_id,
                role="ai",
                content=completion.text,
                input_tokens=completion.input_tokens,
                output_tokens=completion.output_tokens,
                created_at=datetime.now(timezone.utc),
            ),
        ])
        self.db.commit()

    async def _similar_sections(self, question: str, document: Document, user_id: UUID) -> List[Dict[str, Any]]:
        query_embedding = await self.embedder.embed(question)
        sections = self.search.match_chunks(
            query_embedding,
            user_id=user_id,
            document_id=document.id,
        )
        if sections:
            return sections

        logger.info(f"No similar chunks for document {document.id}, using leading text")
        return truncate_sections(
            self.search.first_chunks(document.id, user_id, limit=0),
            settings.CHAT_CONTEXT_MAX_CHARS,
        )
