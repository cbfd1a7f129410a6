"""
Rate Limiting Middleware

Request-rate protection with SlowAPI, keyed by API key (client IP as
fallback). This guards the HTTP surface only; plan usage limits and credits
are enforced by QuotaService.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request, status
from fastapi.responses import JSONResponse
from docuchat.config import settings
from docuchat.utils.sanitize import get_safe_api_key_display
import logging

logger = logging.getLogger(__name__)


def rate_limit_key(request: Request) -> str:
    """
    Rate limit key from the bearer API key, or the client IP

    Format: "api_key:{key}" or "ip:{address}"
    """
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer ") and auth[7:]:
        return f"api_key:{auth[7:]}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=rate_limit_key,
    storage_uri=settings.REDIS_URL if settings.RATE_LIMIT_ENABLED else "memory://",
    enabled=settings.RATE_LIMIT_ENABLED
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    retry_after = "60"
    if getattr(exc, "headers", None):
        retry_after = exc.headers.get("Retry-After", retry_after)

    key = rate_limit_key(request)
    if key.startswith("api_key:"):
        key = get_safe_api_key_display(key[8:])
    logger.warning(f"Rate limit exceeded for {key} on {request.url.path}")

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "RATE_LIMITED",
            "message": "Too many requests. Please slow down.",
            "details": {"limit": str(exc.detail), "endpoint": request.url.path},
        },
        headers={"Retry-After": retry_after}
    )


def chat_rate_limit():
    """Rate limit for chat and quick-query endpoints"""
    return limiter.limit(settings.RATE_LIMIT_CHAT)


def upload_rate_limit():
    """Rate limit for upload and OCR endpoints"""
    return limiter.limit(settings.RATE_LIMIT_UPLOAD)


def summary_rate_limit():
    return limiter.limit(settings.RATE_LIMIT_SUMMARY)


def auth_rate_limit():
    """Strict limit on registration to prevent abuse"""
    return limiter.limit("5/minute")


def setup_rate_limiting(app):
    """
    Attach the limiter to the app

    The limiter is always attached so decorated routes resolve it; when
    disabled it never rejects a request.
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    if settings.RATE_LIMIT_ENABLED:
        logger.info("Rate limiting enabled with Redis backend")
    else:
        logger.warning("Rate limiting disabled")
