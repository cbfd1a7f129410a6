"""
Vision module: PDF page rasterization and OCR through external providers
"""

from docuchat.vision.ocr import OCRClient, GoogleVisionOCR, OpenAIVisionOCR
from docuchat.vision.rasterizer import render_all, render_page, render_pages, page_count

__all__ = [
    "OCRClient",
    "GoogleVisionOCR",
    "OpenAIVisionOCR",
    "render_page",
    "render_pages",
    "render_all",
    "page_count",
]
