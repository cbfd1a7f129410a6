"""
OCR client backed by external providers.

Providers:
- Google Cloud Vision TEXT_DETECTION (default)
- OpenAI vision-capable chat model (transcription prompt)

Batches go through a bounded worker pool. With the default pool size of 1 the
pages are sent one at a time, which keeps us under provider rate limits; a
failed image contributes an empty string instead of failing the batch.
"""

import asyncio
import base64
import binascii
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import httpx
from openai import AsyncOpenAI, OpenAIError

from docuchat.config import settings
from docuchat.core.exceptions import UpstreamProviderError, ValidationError

logger = logging.getLogger(__name__)

ImageInput = Union[bytes, str]

TRANSCRIBE_PROMPT = (
    "Transcribe all text visible in this image exactly as written. "
    "Preserve line breaks and reading order. "
    "Return only the text, with no commentary. "
    "If there is no text, return an empty response."
)


@dataclass
class EncodedImage:
    """Base64 image payload plus its MIME type"""

    data: str
    mime_type: str = "image/png"

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


def encode_image(image: ImageInput) -> EncodedImage:
    """
    Normalize raw bytes or a data URL into a base64 payload

    Raises:
        ValidationError: empty input or a malformed data URL
    """
    if not image:
        raise ValidationError("Image data is empty")

    if isinstance(image, bytes):
        return EncodedImage(base64.b64encode(image).decode("utf-8"))

    if not image.startswith("data:"):
        raise ValidationError("Image string must be a data URL")

    header, _, payload = image.partition(",")
    if not payload or ";base64" not in header:
        raise ValidationError("Image data URL must be base64 encoded")
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid base64 image data: {e}") from e

    mime_type = header[len("data:"):].split(";", 1)[0] or "image/png"
    return EncodedImage(payload, mime_type)


class OCRProvider(ABC):
    """One external OCR service"""

    name = "ocr"

    @abstractmethod
    async def recognize(self, image: EncodedImage) -> str:
        """Return the full text found in the image"""
        pass


class GoogleVisionOCR(OCRProvider):
    """Google Cloud Vision images:annotate with TEXT_DETECTION"""

    name = "google_vision"

    def __init__(self, api_key: str = None, url: str = None, timeout: int = None):
        self.api_key = api_key or settings.GOOGLE_VISION_API_KEY
        self.url = url or settings.GOOGLE_VISION_URL
        self.timeout = timeout or settings.OCR_TIMEOUT

    async def recognize(self, image: EncodedImage) -> str:
        body = {
            "requests": [
                {
                    "image": {"content": image.data},
                    "features": [{"type": "TEXT_DETECTION"}],
                }
            ]
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, params={"key": self.api_key}, json=body)
        except httpx.HTTPError as e:
            raise UpstreamProviderError(self.name, f"Google Vision request failed: {e}") from e

        if response.status_code >= 400:
            raise UpstreamProviderError(
                self.name,
                f"Google Vision returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        result = response.json().get("responses", [{}])[0]
        if "error" in result:
            raise UpstreamProviderError(self.name, f"Google Vision error: {result['error'].get('message')}")

        return result.get("fullTextAnnotation", {}).get("text", "")


class OpenAIVisionOCR(OCRProvider):
    """Transcription through an OpenAI vision model"""

    name = "openai_vision"

    def __init__(self, api_key: str = None, model: str = None):
        self.client = AsyncOpenAI(api_key=api_key or settings.OPENAI_API_KEY)
        self.model = model or settings.VISION_MODEL

    async def recognize(self, image: EncodedImage) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": TRANSCRIBE_PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {"url": image.data_url, "detail": "high"},
                            },
                        ],
                    }
                ],
                max_completion_tokens=4000,
                temperature=0,
            )
        except OpenAIError as e:
            raise UpstreamProviderError(
                self.name,
                f"Vision API error: {e}",
                status_code=getattr(e, "status_code", None),
            ) from e

        text = response.choices[0].message.content
        return text.strip() if text else ""


def get_ocr_provider(name: str = None) -> OCRProvider:
    name = (name or settings.OCR_PROVIDER).lower()
    if name == "google":
        return GoogleVisionOCR()
    if name == "openai":
        return OpenAIVisionOCR()
    raise ValueError(f"Unknown OCR provider: {name}")


class OCRClient:
    """
    Text extraction from images through an OCR provider

    Args:
        provider: OCR backend (default from settings.OCR_PROVIDER)
        max_concurrency: Worker pool size for batch() (default 1, sequential)
    """

    def __init__(self, provider: Optional[OCRProvider] = None, max_concurrency: int = None):
        self.provider = provider or get_ocr_provider()
        self.max_concurrency = max(1, max_concurrency or settings.OCR_MAX_CONCURRENCY)

    async def extract_text(self, image: ImageInput) -> str:
        """
        OCR a single image

        Raises:
            ValidationError: image is empty or malformed
            UpstreamProviderError: provider call failed
        """
        return await self.provider.recognize(encode_image(image))

    async def batch(self, images: Sequence[ImageInput]) -> List[str]:
        """
        OCR a sequence of images through the worker pool

        Results line up with the input. An image whose OCR fails yields ""
        and the remaining images are still processed.
        """
        if not images:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def process_single(index: int, image: ImageInput) -> str:
            async with semaphore:
                try:
                    return await self.extract_text(image)
                except Exception as e:
                    logger.warning(f"OCR failed for image {index + 1}/{len(images)}: {e}")
                    return ""

        results = await asyncio.gather(*(process_single(i, img) for i, img in enumerate(images)))

        succeeded = sum(1 for text in results if text)
        logger.info(f"OCR batch complete: {succeeded}/{len(images)} images returned text")
        return list(results)
