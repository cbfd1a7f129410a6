"""
Image Parser
Images have no text layer, so their text always comes from OCR
"""

import logging
from typing import Optional

from docuchat.parsers.base import ExtractionResult, OCRGate
from docuchat.vision.ocr import OCRClient

logger = logging.getLogger(__name__)


class ImageParser:
    """Parser for images (JPEG, PNG, WEBP, GIF, BMP)"""

    CATEGORIES = {"image"}

    def __init__(self, ocr_client: Optional[OCRClient] = None):
        self._ocr_client = ocr_client

    @property
    def ocr_client(self) -> OCRClient:
        if self._ocr_client is None:
            self._ocr_client = OCRClient()
        return self._ocr_client

    def can_parse(self, category: str) -> bool:
        return category in self.CATEGORIES

    async def parse(self, data: bytes, filename: str, before_ocr: Optional[OCRGate] = None) -> ExtractionResult:
        """
        OCR the image

        Raises:
            UpstreamProviderError: OCR provider failed
        """
        if before_ocr is not None:
            before_ocr(1)

        text = await self.ocr_client.extract_text(data)
        logger.info(f"OCR extracted {len(text)} characters from {filename}")
        return ExtractionResult(text=text, is_ocr=True)
