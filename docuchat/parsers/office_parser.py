"""
DOCX and PPTX Parsers
Both formats are ZIP archives of XML parts. Text is recovered by stripping
every tag and collapsing whitespace, so tables and styling are flattened.
"""

import io
import logging
import re
import zipfile
from typing import List, Optional

from docuchat.core.exceptions import ExtractionError
from docuchat.parsers.base import ExtractionResult, OCRGate, join_sections

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"<[^>]+>")
WHITESPACE_PATTERN = re.compile(r"\s+")
SLIDE_PATTERN = re.compile(r"^ppt/slides/slide(\d+)\.xml$")


def strip_xml(xml: str) -> str:
    """Replace tags with spaces and collapse runs of whitespace"""
    return WHITESPACE_PATTERN.sub(" ", TAG_PATTERN.sub(" ", xml)).strip()


def _open_archive(data: bytes, filename: str) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise ExtractionError(f"{filename} is not a valid Office Open XML file") from e


class DocxParser:
    """Parser for Word documents"""

    CATEGORIES = {"docx"}
    BODY_PART = "word/document.xml"

    def can_parse(self, category: str) -> bool:
        return category in self.CATEGORIES

    async def parse(self, data: bytes, filename: str, before_ocr: Optional[OCRGate] = None) -> ExtractionResult:
        with _open_archive(data, filename) as archive:
            try:
                xml = archive.read(self.BODY_PART).decode("utf-8", errors="replace")
            except KeyError as e:
                raise ExtractionError(f"{filename} has no {self.BODY_PART} part") from e

        return ExtractionResult(text=strip_xml(xml))


class PptxParser:
    """Parser for PowerPoint presentations, one section per slide"""

    CATEGORIES = {"pptx"}

    def can_parse(self, category: str) -> bool:
        return category in self.CATEGORIES

    def _slide_names(self, archive: zipfile.ZipFile) -> List[str]:
        slides = []
        for name in archive.namelist():
            match = SLIDE_PATTERN.match(name)
            if match:
                slides.append((int(match.group(1)), name))
        return [name for _, name in sorted(slides)]

    async def parse(self, data: bytes, filename: str, before_ocr: Optional[OCRGate] = None) -> ExtractionResult:
        with _open_archive(data, filename) as archive:
            names = self._slide_names(archive)
            if not names:
                raise ExtractionError(f"{filename} contains no slides")
            slides = [
                strip_xml(archive.read(name).decode("utf-8", errors="replace"))
                for name in names
            ]

        logger.info(f"Extracted {len(slides)} slides from {filename}")
        return join_sections("Slide", slides)
