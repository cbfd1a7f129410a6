"""
Format Detection Utility
Classifies an upload into a document category from its declared MIME type,
falling back to the filename extension when the MIME type is absent or generic.

No content sniffing: the client-supplied metadata is trusted.
"""

import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

PDF = "pdf"
DOCX = "docx"
PPTX = "pptx"
TEXT = "text"
IMAGE = "image"
UNKNOWN = "unknown"

CATEGORIES = (PDF, DOCX, PPTX, TEXT, IMAGE)

MIME_CATEGORY_MAP = {
    "application/pdf": PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DOCX,
    "application/msword": DOCX,
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": PPTX,
    "application/vnd.ms-powerpoint": PPTX,
    "text/plain": TEXT,
    "text/markdown": TEXT,
    "text/csv": TEXT,
    "text/html": TEXT,
    "application/rtf": TEXT,
    "image/jpeg": IMAGE,
    "image/png": IMAGE,
    "image/webp": IMAGE,
    "image/gif": IMAGE,
    "image/bmp": IMAGE,
}

EXTENSION_CATEGORY_MAP = {
    ".pdf": PDF,
    ".docx": DOCX,
    ".doc": DOCX,
    ".pptx": PPTX,
    ".ppt": PPTX,
    ".txt": TEXT,
    ".md": TEXT,
    ".csv": TEXT,
    ".html": TEXT,
    ".rtf": TEXT,
    ".jpg": IMAGE,
    ".jpeg": IMAGE,
    ".png": IMAGE,
    ".webp": IMAGE,
    ".gif": IMAGE,
    ".bmp": IMAGE,
}

SUPPORTED_EXTENSIONS = tuple(EXTENSION_CATEGORY_MAP)

# MIME types that say nothing about the format
GENERIC_MIME_TYPES = {
    "",
    "application/octet-stream",
    "binary/octet-stream",
    "application/unknown",
}


def _normalize_mime(content_type: Optional[str]) -> str:
    # Drop parameters such as "; charset=utf-8"
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def detect_category(filename: Optional[str], content_type: Optional[str] = None) -> str:
    """
    Detect the document category of an upload

    Args:
        filename: Original filename with extension
        content_type: Content-Type declared by the client

    Returns:
        One of "pdf", "docx", "pptx", "text", "image" or "unknown"
    """
    mime = _normalize_mime(content_type)

    if mime in MIME_CATEGORY_MAP:
        return MIME_CATEGORY_MAP[mime]

    if mime in GENERIC_MIME_TYPES:
        extension = Path(filename or "").suffix.lower()
        category = EXTENSION_CATEGORY_MAP.get(extension, UNKNOWN)
        logger.debug(f"Detected {category} from extension '{extension}' for {filename}")
        return category

    logger.debug(f"Unrecognized content type '{mime}' for {filename}")
    return UNKNOWN
