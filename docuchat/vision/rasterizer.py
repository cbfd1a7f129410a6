"""
PDF Page Rasterizer
Renders PDF pages to in-memory PNG images for OCR using pypdfium2
"""

import io
import logging
from typing import Iterator, List

import pypdfium2 as pdfium

from docuchat.config import settings
from docuchat.core.exceptions import PageOutOfRangeError, RenderError

logger = logging.getLogger(__name__)


def _open(pdf_bytes: bytes) -> pdfium.PdfDocument:
    try:
        return pdfium.PdfDocument(pdf_bytes)
    except pdfium.PdfiumError as e:
        raise RenderError(f"Could not open PDF for rendering: {e}") from e


def _render(pdf: pdfium.PdfDocument, index: int, scale: float) -> bytes:
    page = pdf[index]
    try:
        image = page.render(scale=scale).to_pil()
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()
    except Exception as e:
        raise RenderError(f"Failed to render page {index + 1}: {e}") from e
    finally:
        page.close()


def page_count(pdf_bytes: bytes) -> int:
    pdf = _open(pdf_bytes)
    try:
        return len(pdf)
    finally:
        pdf.close()


def render_page(pdf_bytes: bytes, page_number: int, scale: float = None) -> bytes:
    """
    Render one page of a PDF to PNG bytes

    Args:
        pdf_bytes: Raw PDF file
        page_number: 1-based page number
        scale: Render scale (default settings.RASTER_SCALE, 2.0)

    Returns:
        PNG-encoded image

    Raises:
        PageOutOfRangeError: page_number outside 1..page count
        RenderError: PDF could not be opened or the page could not be rendered
    """
    scale = scale or settings.RASTER_SCALE
    pdf = _open(pdf_bytes)
    try:
        total = len(pdf)
        if page_number < 1 or page_number > total:
            raise PageOutOfRangeError(page_number, total)
        return _render(pdf, page_number - 1, scale)
    finally:
        pdf.close()


def render_pages(pdf_bytes: bytes, scale: float = None) -> Iterator[bytes]:
    """Render every page in order, yielding PNG bytes per page"""
    scale = scale or settings.RASTER_SCALE
    pdf = _open(pdf_bytes)
    try:
        total = len(pdf)
        logger.info(f"Rasterizing {total} pages at scale {scale}")
        for index in range(total):
            yield _render(pdf, index, scale)
    finally:
        pdf.close()


def render_all(pdf_bytes: bytes, scale: float = None) -> List[bytes]:
    """Every page as PNG bytes; blocking, so async callers run it in a worker thread"""
    return list(render_pages(pdf_bytes, scale))
