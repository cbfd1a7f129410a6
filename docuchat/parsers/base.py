"""
Shared parser types
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from docuchat.config import settings
from docuchat.core.exceptions import InsufficientContentError

logger = logging.getLogger(__name__)

# Called with the number of images about to be sent to OCR, before any call is made
OCRGate = Callable[[int], None]


@dataclass
class ExtractionResult:
    """
    Plain text extracted from one upload

    page_offsets holds the character offset at which each page (or slide)
    starts in text, so chunks can be traced back to a page.
    """

    text: str
    is_ocr: bool = False
    page_count: int = 1
    page_offsets: List[int] = field(default_factory=lambda: [0])

    def page_at(self, offset: int) -> int:
        """1-based page containing the character at offset"""
        page = 1
        for number, start in enumerate(self.page_offsets, start=1):
            if start > offset:
                break
            page = number
        return page


def join_sections(label: str, texts: Sequence[str]) -> ExtractionResult:
    """
    Join per-page texts under "--- {label} N ---" separators

    Sections are separated by a blank line.
    """
    parts = []
    offsets = []
    position = 0
    for number, text in enumerate(texts, start=1):
        section = f"--- {label} {number} ---\n{text}"
        offsets.append(position)
        parts.append(section)
        position += len(section) + 2

    return ExtractionResult(
        text="\n\n".join(parts),
        page_count=len(texts),
        page_offsets=offsets or [0],
    )


def ensure_min_content(result: ExtractionResult, filename: str, min_chars: Optional[int] = None) -> ExtractionResult:
    """
    Reject extraction output that carries no meaningful text

    Page separators do not count towards the minimum.

    Raises:
        InsufficientContentError: fewer than min_chars characters after trimming
    """
    min_chars = settings.MIN_EXTRACTED_CHARS if min_chars is None else min_chars
    meaningful = strip_separators(result.text).strip()
    if len(meaningful) < min_chars:
        logger.warning(f"Extraction of {filename} produced {len(meaningful)} characters")
        raise InsufficientContentError(
            f"Could not extract meaningful text from {filename}",
            {"filename": filename, "characters": len(meaningful), "minimum": min_chars},
        )
    return result


def strip_separators(text: str) -> str:
    return "\n".join(
        line for line in text.splitlines()
        if not (line.startswith("--- ") and line.endswith(" ---"))
    )
