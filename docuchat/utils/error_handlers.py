"""
Centralized Error Handling

Maps every DocuChatException to a JSON body {"error", "message", "details"}
with the status code its error code carries. Upstream provider detail is
logged server-side and replaced with a generic message in the response.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError
from docuchat.core.exceptions import (
    DocuChatException,
    ExtractionError,
    InsufficientCreditsError,
    PaymentProviderError,
    RateLimitError,
    RenderError,
    ResourceNotFoundError,
    SignatureVerificationError,
    StorageError,
    UnsupportedFormatError,
    UpstreamProviderError,
    ValidationError,
)
from docuchat.utils.sanitize import sanitize_headers, sanitize_string
import logging

logger = logging.getLogger(__name__)


# Most specific class first; InsufficientContentError inherits ExtractionError
STATUS_CODES = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (UnsupportedFormatError, status.HTTP_400_BAD_REQUEST),
    (SignatureVerificationError, status.HTTP_400_BAD_REQUEST),
    (ExtractionError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (RenderError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    # Plan limits are a normal outcome the client renders as an upgrade prompt
    (RateLimitError, status.HTTP_200_OK),
    (InsufficientCreditsError, status.HTTP_402_PAYMENT_REQUIRED),
    (ResourceNotFoundError, status.HTTP_404_NOT_FOUND),
    (UpstreamProviderError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (PaymentProviderError, status.HTTP_502_BAD_GATEWAY),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(exc: DocuChatException) -> int:
    for exc_class, status_code in STATUS_CODES:
        if isinstance(exc, exc_class):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _describe(request: Request) -> str:
    return f"{request.method} {request.url.path}"


async def docuchat_error_handler(request: Request, exc: DocuChatException):
    """FastAPI exception handler for domain errors"""
    status_code = status_for(exc)

    if isinstance(exc, UpstreamProviderError):
        logger.error(
            f"Upstream failure ({exc.provider}, status={exc.status_code}) on {_describe(request)}: "
            f"{sanitize_string(exc.message)}"
        )
        content = {
            "error": exc.code,
            "message": "The AI service is temporarily unavailable. Please try again.",
        }
    else:
        if status_code >= 500:
            logger.error(f"{exc.code} on {_describe(request)}: {exc.message}", exc_info=exc)
        else:
            logger.info(f"{exc.code} on {_describe(request)}: {exc.message}")
        content = exc.to_dict()

    return JSONResponse(status_code=status_code, content=content)


async def database_error_handler(request: Request, exc: Exception):
    """FastAPI exception handler for database errors"""
    if isinstance(exc, IntegrityError):
        logger.warning(f"Database integrity error on {_describe(request)}: {exc.orig}")
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "error": "CONFLICT",
                "message": "Data integrity violation. Duplicate entry or constraint failed.",
            }
        )

    logger.error(f"Database error on {_describe(request)}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "DATABASE_ERROR", "message": "Database is temporarily unavailable."}
    )


async def generic_error_handler(request: Request, exc: Exception):
    """FastAPI exception handler for unhandled errors"""
    logger.error(
        f"Unexpected error on {_describe(request)} "
        f"(headers={sanitize_headers(dict(request.headers))}): {exc}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again.",
        }
    )


def setup_error_handlers(app):
    """
    Setup global error handlers for FastAPI app

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(DocuChatException, docuchat_error_handler)
    app.add_exception_handler(IntegrityError, database_error_handler)
    app.add_exception_handler(OperationalError, database_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    logger.info("Error handlers registered")
