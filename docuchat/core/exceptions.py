"""
Custom exceptions for DocuChat API

Every domain failure carries a stable error code. The HTTP status each one
maps to lives in docuchat.utils.error_handlers.
"""

from typing import Any, Dict, Iterable, Optional

from fastapi import HTTPException, status


class DocuChatException(Exception):
    """Base exception for DocuChat"""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(DocuChatException):
    """Bad or missing input fields"""

    code = "VALIDATION_ERROR"


class UnsupportedFormatError(DocuChatException):
    """Unrecognized file type"""

    code = "UNSUPPORTED_FORMAT"

    def __init__(self, filename: str, allowed: Iterable[str]):
        allowed = sorted(allowed)
        super().__init__(
            f"Unsupported file type: {filename}. Allowed: {', '.join(allowed)}",
            {"filename": filename, "allowed": allowed},
        )


class ExtractionError(DocuChatException):
    """Text could not be extracted from the file"""

    code = "EXTRACTION_FAILED"


class InsufficientContentError(ExtractionError):
    """Extracted text is too short to be useful"""

    code = "INSUFFICIENT_CONTENT"


class RenderError(DocuChatException):
    """A PDF page could not be rendered"""

    code = "RENDER_FAILED"


class PageOutOfRangeError(RenderError):
    """Requested page does not exist in the document"""

    def __init__(self, page_number: int, page_count: int):
        super().__init__(
            f"Page {page_number} out of range (document has {page_count} pages)",
            {"page_number": page_number, "page_count": page_count},
        )


class RateLimitError(DocuChatException):
    """Plan usage limit reached"""

    DAILY = "DAILY_LIMIT_REACHED"
    MONTHLY = "MONTHLY_LIMIT_REACHED"

    def __init__(self, code: str, event_type: str, limit: int):
        self.code = code
        window = "daily" if code == self.DAILY else "monthly"
        super().__init__(
            f"You have reached your {window} {event_type} limit of {limit}. Upgrade your plan to continue.",
            {"event_type": event_type, "limit": limit},
        )


class InsufficientCreditsError(DocuChatException):
    """Credit balance is below the cost of the operation"""

    code = "INSUFFICIENT_CREDITS"

    def __init__(self, required: int, balance: Optional[int] = None):
        details = {"required": required}
        if balance is not None:
            details["balance"] = balance
        super().__init__(
            f"Insufficient credits: this operation costs {required}.",
            details,
        )


class UpstreamProviderError(DocuChatException):
    """An LLM, OCR or embedding provider call failed"""

    code = "UPSTREAM_ERROR"

    def __init__(self, provider: str, message: str = "", status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(message or f"{provider} request failed")

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500


class StorageError(DocuChatException):
    """The uploaded file could not be stored"""

    code = "STORAGE_ERROR"


class PaymentProviderError(DocuChatException):
    """A payment processor rejected or failed a request"""

    code = "PAYMENT_ERROR"


class SignatureVerificationError(DocuChatException):
    """Webhook signature did not match the payload"""

    code = "INVALID_SIGNATURE"


class ResourceNotFoundError(DocuChatException):
    """Resource not found"""

    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource.capitalize()} not found",
            {"resource": resource, "identifier": str(identifier)},
        )


# HTTP exception helpers
def http_401_unauthorized(detail: str = "Invalid authentication credentials"):
    """Raise 401 Unauthorized"""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def http_409_conflict(detail: str = "Resource conflict"):
    """Raise 409 Conflict"""
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    )
