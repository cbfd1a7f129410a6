"""
Summary Service

Summaries read the document's full extracted text (at most
SUMMARY_MAX_INPUT_CHARS). Text that fits in one summary window is summarized
in a single call; longer text is split into overlapping windows, each window
summarized, and the partial summaries combined in a final call. Every
completion call retries transient provider failures with exponential backoff.

Results are cached by (text, summary_type, domain_focus); a cache hit is
served without a provider call and without a charge.
"""

from typing import List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from docuchat.chunking import chunk
from docuchat.config import settings, SUMMARY_TYPES
from docuchat.core.exceptions import UpstreamProviderError, ValidationError
from docuchat.models.document import Document
from docuchat.models.summary import Summary
from docuchat.models.user import User
from docuchat.prompts import PromptBuilder
from docuchat.search import VectorSearchService
from docuchat.services.cache_service import CacheService
from docuchat.services.document_service import get_owned_document
from docuchat.services.llm_providers import CompletionProvider, CompletionResult
from docuchat.services.quota_service import QuotaService
from docuchat.utils.retry import retry_on_upstream_error

logger = logging.getLogger(__name__)


class SummaryService:
    """Generates and stores document summaries"""

    def __init__(
        self,
        db: Session,
        provider: CompletionProvider,
        cache: Optional[CacheService] = None,
        quota: Optional[QuotaService] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        retry_wait=None,
    ):
        self.db = db
        self.provider = provider
        self.cache = cache or CacheService()
        self.quota = quota or QuotaService(db)
        self.prompt_builder = prompt_builder or PromptBuilder()
        self._complete = retry_on_upstream_error(wait=retry_wait)(self._complete_once)

    def document_text(self, document: Document) -> str:
        """Extracted text, or the chunks in page order for documents stored without it"""
        text = document.extracted_text
        if not text:
            chunks = VectorSearchService(self.db).first_chunks(document.id, document.user_id, limit=0)
            text = "\n\n".join(c["content"] for c in chunks)
        return text[:settings.SUMMARY_MAX_INPUT_CHARS]

    async def summarize(
        self,
        user: User,
        document_id: UUID,
        summary_type: str = "standard",
        domain_focus: Optional[str] = None,
    ) -> Tuple[Summary, bool]:
        """
        Summarize a ready document

        Returns:
            (stored summary, whether it came from the cache)

        Raises:
            ValidationError: unknown summary type or document not ready
            RateLimitError, InsufficientCreditsError: before any provider call
            UpstreamProviderError: every attempt failed (charge refunded)
        """
        if summary_type not in SUMMARY_TYPES:
            raise ValidationError(
                f"Unknown summary type: {summary_type}",
                {"allowed": sorted(SUMMARY_TYPES)},
            )

        document = get_owned_document(self.db, document_id, user.id, require_ready=True)
        text = self.document_text(document)

        cached = self.cache.get_summary(text, summary_type, domain_focus)
        if cached:
            summary = self._store(document, user, summary_type, domain_focus, cached["content"], 0, cached.get("provider"))
            return summary, True

        operation = f"summary:{summary_type}"
        charged_with = self.quota.consume(user, operation)

        try:
            result = await self._generate(text, summary_type, domain_focus, document.filename)
        except UpstreamProviderError:
            self.quota.refund(user, operation, charged_with)
            raise

        credits_used = self.quota.cost_of(operation) if charged_with == "credits" else 0
        summary = self._store(document, user, summary_type, domain_focus, result.text, credits_used, result.provider)
        self.cache.set_summary(text, summary_type, domain_focus, {"content": result.text, "provider": result.provider})
        return summary, False

    async def _generate(
        self,
        text: str,
        summary_type: str,
        domain_focus: Optional[str],
        filename: str,
    ) -> CompletionResult:
        max_tokens = settings.SUMMARY_MAX_TOKENS[summary_type]
        parts = chunk(text, settings.SUMMARY_CHUNK_SIZES[summary_type], settings.SUMMARY_CHUNK_OVERLAP)

        if len(parts) <= 1:
            messages = self.prompt_builder.build_summary_messages(text, summary_type, domain_focus, filename)
            return await self._complete(messages, max_tokens)

        logger.info(f"Summarizing {filename} in {len(parts)} parts ({summary_type})")
        partials: List[str] = []
        for number, part in enumerate(parts, start=1):
            messages = self.prompt_builder.build_summary_messages(
                part,
                summary_type,
                domain_focus,
                filename,
                part=number,
                part_count=len(parts),
            )
            partials.append((await self._complete(messages, max_tokens)).text)

        messages = self.prompt_builder.build_combine_messages(partials, summary_type, domain_focus, filename)
        return await self._complete(messages, max_tokens)

    async def _complete_once(self, messages, max_tokens: int) -> CompletionResult:
        return await self.provider.complete(
            messages,
            max_tokens=max_tokens,
            temperature=settings.SUMMARY_TEMPERATURE,
        )

    def _store(
        self,
        document: Document,
        user: User,
        summary_type: str,
        domain_focus: Optional[str],
        content: str,
        credits_used: int,
        provider: Optional[str],
    ) -> Summary:
        summary = Summary(
            document_id=document.id,
            user_id=user.id,
            summary_type=summary_type,
            domain_focus=domain_focus,
            content=content,
            credits_used=credits_used,
            provider=provider,
        )
        self.db.add(summary)
        self.db.commit()
        self.db.refresh(summary)
        return summary
