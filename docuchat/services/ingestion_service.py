"""
Document Ingestion Service

Upload → format detection → text extraction (OCR for scans and images) →
minimum-content gate → storage → sliding-window chunks → embeddings.

Every rejection that can be decided locally (size, format, quota) happens
before any provider call. Extraction failures persist nothing. Chunk rows are
written in a single transaction once every embedding is back, so a failed
ingestion never leaves a partial chunk set behind.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from docuchat.chunking import WindowChunker
from docuchat.config import settings
from docuchat.core.exceptions import (
    DocuChatException,
    StorageError,
    UnsupportedFormatError,
    UpstreamProviderError,
    ValidationError,
)
from docuchat.embeddings import OpenAIEmbedder
from docuchat.models.chunk import DocumentChunk
from docuchat.models.document import Document, DocumentStatus
from docuchat.models.user import User
from docuchat.parsers import ExtractionResult, ParserFactory, ensure_min_content
from docuchat.services.quota_service import QuotaService
from docuchat.storage import StorageBackend, get_storage_backend
from docuchat.utils.content_type import IMAGE, UNKNOWN, SUPPORTED_EXTENSIONS, detect_category
from docuchat.vision.ocr import OCRClient

logger = logging.getLogger(__name__)


class IngestionService:
    """Turns one uploaded file into a ready, searchable document"""

    def __init__(
        self,
        db: Session,
        parser_factory: Optional[ParserFactory] = None,
        embedder: Optional[OpenAIEmbedder] = None,
        storage: Optional[StorageBackend] = None,
        quota: Optional[QuotaService] = None,
        chunker: Optional[WindowChunker] = None,
        ocr_client: Optional[OCRClient] = None,
    ):
        self.db = db
        self.ocr_client = ocr_client or OCRClient()
        self.parser_factory = parser_factory or ParserFactory(self.ocr_client)
        self._embedder = embedder
        self._storage = storage
        self.quota = quota or QuotaService(db)
        self.chunker = chunker or WindowChunker()

    @property
    def embedder(self) -> OpenAIEmbedder:
        if self._embedder is None:
            self._embedder = OpenAIEmbedder()
        return self._embedder

    @property
    def storage(self) -> StorageBackend:
        if self._storage is None:
            self._storage = get_storage_backend()
        return self._storage

    def validate_upload(self, data: bytes, filename: str, content_type: Optional[str]) -> str:
        """
        Check size and format

        Returns:
            Detected category

        Raises:
            ValidationError: empty or oversized file
            UnsupportedFormatError: category could not be determined
        """
        if not data:
            raise ValidationError("Uploaded file is empty", {"filename": filename})

        if len(data) > settings.MAX_UPLOAD_SIZE:
            raise ValidationError(
                f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE / 1024 / 1024:.1f}MB, "
                f"got {len(data) / 1024 / 1024:.1f}MB",
                {"filename": filename, "size_bytes": len(data), "max_bytes": settings.MAX_UPLOAD_SIZE},
            )

        category = detect_category(filename, content_type)
        if category == UNKNOWN:
            raise UnsupportedFormatError(filename, SUPPORTED_EXTENSIONS)
        return category

    async def extract(
        self,
        user: User,
        data: bytes,
        filename: str,
        category: str,
        ocr_charges: Optional[List[Tuple[str, int]]] = None,
    ) -> ExtractionResult:
        """
        Extract and gate the text of one file

        OCR pages are charged through the quota as soon as the parser knows it
        needs OCR, before the first provider call. Each charge is appended to
        ocr_charges so later pipeline failures can refund it. If extraction or
        the content gate fails, the pages are refunded here.
        """
        charges = [] if ocr_charges is None else ocr_charges

        def charge_ocr(pages: int) -> None:
            if pages < 1:
                return
            charges.append((self.quota.consume(user, "ocr_page", pages), pages))

        parser = self.parser_factory.get_parser(category)
        try:
            result = await parser.parse(data, filename, before_ocr=charge_ocr)
            return ensure_min_content(result, filename)
        except DocuChatException:
            self._refund_ocr(user, charges)
            raise

    async def ingest(self, user: User, data: bytes, filename: str, content_type: Optional[str] = None) -> Document:
        """
        Ingest one upload for the user

        Returns:
            The document with status "ready"

        Raises:
            ValidationError, UnsupportedFormatError: rejected before any charge
            RateLimitError, InsufficientCreditsError: plan limits
            ExtractionError, InsufficientContentError, RenderError: nothing persisted
            StorageError, UpstreamProviderError: document kept with status
                "failed" (or nothing persisted when OCR failed)

        Every failure after the upload charge refunds it, together with any
        OCR pages charged for the same file.
        """
        category = self.validate_upload(data, filename, content_type)
        charged_with = self.quota.consume(user, "upload")
        ocr_charges: List[Tuple[str, int]] = []

        try:
            result = await self.extract(user, data, filename, category, ocr_charges)
        except DocuChatException:
            self.quota.refund(user, "upload", charged_with)
            raise

        logger.info(
            f"Extracted {len(result.text)} characters from {filename} "
            f"({category}, pages={result.page_count}, ocr={result.is_ocr})"
        )

        document = Document(
            user_id=user.id,
            filename=filename,
            content_type=content_type,
            category=category,
            size_bytes=len(data),
            status=DocumentStatus.PROCESSING,
            page_count=result.page_count,
            is_ocr=result.is_ocr,
            extracted_text=result.text,
        )
        self.db.add(document)
        self.db.commit()
        self.db.refresh(document)

        try:
            document.storage_path = self.storage.save(data, user.id, document.id, filename, content_type)
        except StorageError:
            self._fail(document, user, charged_with, ocr_charges, "Storing the file failed")
            raise
        self.db.commit()

        chunks = self.chunker.chunk(result.text)
        try:
            embeddings = await self.embedder.embed_batch([c["content"] for c in chunks])
        except UpstreamProviderError as e:
            self._fail(document, user, charged_with, ocr_charges, f"Embedding failed: {e.provider}")
            raise

        if len(embeddings) != len(chunks):
            self._fail(document, user, charged_with, ocr_charges, "Embedding count did not match chunk count")
            raise UpstreamProviderError(
                "openai_embeddings",
                f"Expected {len(chunks)} embeddings, got {len(embeddings)}",
            )

        for chunk_data, embedding in zip(chunks, embeddings):
            self.db.add(DocumentChunk(
                document_id=document.id,
                user_id=user.id,
                chunk_index=chunk_data["chunk_index"],
                page_number=result.page_at(chunk_data["metadata"]["start_char"]),
                content=chunk_data["content"],
                token_count=chunk_data["metadata"]["tokens"],
                embedding=embedding,
            ))

        document.status = DocumentStatus.READY
        document.chunk_count = len(chunks)
        document.token_count = sum(c["metadata"]["tokens"] for c in chunks)
        document.processed_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(document)

        logger.info(f"Document {document.id} ready: {len(chunks)} chunks")
        return document

    async def ocr_image(self, user: User, data: bytes, filename: str, content_type: Optional[str] = None) -> str:
        """
        OCR a single image without storing it, charged as one OCR page

        Raises:
            ValidationError: not an image, or empty/oversized
            UpstreamProviderError: OCR failed (page refunded)
        """
        category = self.validate_upload(data, filename, content_type)
        if category != IMAGE:
            raise ValidationError(f"{filename} is not an image", {"category": category})

        charged_with = self.quota.consume(user, "ocr_page")
        try:
            return await self.ocr_client.extract_text(data)
        except UpstreamProviderError:
            self.quota.refund(user, "ocr_page", charged_with)
            raise

    def _refund_ocr(self, user: User, ocr_charges: List[Tuple[str, int]]) -> None:
        for charged_with, pages in ocr_charges:
            self.quota.refund(user, "ocr_page", charged_with, pages)
        ocr_charges.clear()

    def _fail(
        self,
        document: Document,
        user: User,
        charged_with: str,
        ocr_charges: List[Tuple[str, int]],
        message: str,
    ) -> None:
        """Mark the document failed and give back everything charged for it"""
        self.db.rollback()
        document.status = DocumentStatus.FAILED
        document.error_message = message
        self.db.commit()
        self.quota.refund(user, "upload", charged_with)
        self._refund_ocr(user, ocr_charges)
        logger.error(f"Ingestion of document {document.id} failed: {message}")
