"""
Document Parsers
Factory pattern for selecting the parser for a detected category
"""

import logging
from typing import Optional

from docuchat.parsers.base import ExtractionResult, ensure_min_content
from docuchat.parsers.pdf_parser import PdfParser, is_scanned
from docuchat.parsers.office_parser import DocxParser, PptxParser
from docuchat.parsers.text_parser import TextParser
from docuchat.parsers.image_parser import ImageParser
from docuchat.vision.ocr import OCRClient

logger = logging.getLogger(__name__)


class ParserFactory:
    """Factory for selecting appropriate parser based on document category"""

    def __init__(self, ocr_client: Optional[OCRClient] = None):
        self.parsers = [
            PdfParser(ocr_client),
            DocxParser(),
            PptxParser(),
            TextParser(),
            ImageParser(ocr_client),
        ]

    def get_parser(self, category: str):
        """
        Get parser for category

        Raises:
            ValueError: If no parser available for category
        """
        for parser in self.parsers:
            if parser.can_parse(category):
                return parser

        raise ValueError(f"No parser available for category: {category}")


__all__ = [
    "ParserFactory",
    "ExtractionResult",
    "ensure_min_content",
    "is_scanned",
    "PdfParser",
    "DocxParser",
    "PptxParser",
    "TextParser",
    "ImageParser",
]
