"""
Plain Text Parser
Text, Markdown, CSV, HTML and RTF uploads are passed through as UTF-8
"""

from typing import Optional

from docuchat.parsers.base import ExtractionResult, OCRGate


class TextParser:
    """Parser for plain text files"""

    CATEGORIES = {"text"}

    def can_parse(self, category: str) -> bool:
        return category in self.CATEGORIES

    async def parse(self, data: bytes, filename: str, before_ocr: Optional[OCRGate] = None) -> ExtractionResult:
        return ExtractionResult(text=data.decode("utf-8", errors="replace"))
