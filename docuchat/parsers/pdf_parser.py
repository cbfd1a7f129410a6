"""
PDF Parser
Extracts the text layer page by page with pypdfium2. PDFs whose pages carry
almost no text are treated as scans: every page is rasterized and sent to OCR.
"""

import asyncio
import logging
from typing import List, Optional

import pypdfium2 as pdfium

from docuchat.config import settings
from docuchat.core.exceptions import ExtractionError
from docuchat.parsers.base import ExtractionResult, OCRGate, join_sections
from docuchat.vision import rasterizer
from docuchat.vision.ocr import OCRClient

logger = logging.getLogger(__name__)


def is_scanned(
    page_texts: List[str],
    min_chars: Optional[int] = None,
    min_ratio: Optional[float] = None,
) -> bool:
    """
    Decide whether a PDF is image-only from its per-page text

    A page is text-bearing when it has at least min_chars characters. The PDF
    is scanned when the share of text-bearing pages is strictly below
    min_ratio. A PDF with no pages counts as scanned.
    """
    min_chars = settings.SCAN_MIN_PAGE_CHARS if min_chars is None else min_chars
    min_ratio = settings.SCAN_MIN_TEXT_RATIO if min_ratio is None else min_ratio

    if not page_texts:
        return True

    text_pages = sum(1 for text in page_texts if len(text.strip()) >= min_chars)
    ratio = text_pages / len(page_texts)
    logger.debug(f"Text-bearing pages: {text_pages}/{len(page_texts)} (ratio {ratio:.2f})")
    return ratio < min_ratio


class PdfParser:
    """Parser for PDF documents with OCR fallback for scans"""

    CATEGORIES = {"pdf"}

    def __init__(self, ocr_client: Optional[OCRClient] = None):
        self._ocr_client = ocr_client

    @property
    def ocr_client(self) -> OCRClient:
        if self._ocr_client is None:
            self._ocr_client = OCRClient()
        return self._ocr_client

    def can_parse(self, category: str) -> bool:
        return category in self.CATEGORIES

    def extract_pages(self, data: bytes) -> List[str]:
        """
        Extract the text layer of every page

        Raises:
            ExtractionError: file is not a readable PDF
        """
        try:
            pdf = pdfium.PdfDocument(data)
        except pdfium.PdfiumError as e:
            raise ExtractionError(f"Could not read PDF: {e}") from e

        pages = []
        try:
            for page in pdf:
                textpage = page.get_textpage()
                try:
                    pages.append(textpage.get_text_bounded() or "")
                finally:
                    textpage.close()
                    page.close()
        except pdfium.PdfiumError as e:
            raise ExtractionError(f"Could not extract PDF text: {e}") from e
        finally:
            pdf.close()

        return pages

    async def ocr_pages(self, data: bytes) -> List[str]:
        """Rasterize every page off the event loop, then OCR them through the worker pool"""
        images = await asyncio.to_thread(rasterizer.render_all, data)
        return await self.ocr_client.batch(images)

    async def parse(self, data: bytes, filename: str, before_ocr: Optional[OCRGate] = None) -> ExtractionResult:
        """
        Extract text from a PDF, falling back to OCR for scanned documents

        Args:
            data: Raw PDF bytes
            filename: Original filename (for logging)
            before_ocr: Called with the page count before any OCR call

        Returns:
            ExtractionResult with "--- Page N ---" sections
        """
        pages = await asyncio.to_thread(self.extract_pages, data)

        if not is_scanned(pages):
            logger.info(f"Extracted text layer from {filename} ({len(pages)} pages)")
            return join_sections("Page", pages)

        logger.info(f"{filename} looks scanned, running OCR on {len(pages)} pages")
        if before_ocr is not None:
            before_ocr(len(pages))

        result = join_sections("Page", await self.ocr_pages(data))
        result.is_ocr = True
        return result
