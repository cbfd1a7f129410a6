"""
Unit tests for error mapping and log sanitizing
"""

import json

import pytest
from unittest.mock import MagicMock

from docuchat.core.exceptions import (
    ExtractionError,
    InsufficientContentError,
    InsufficientCreditsError,
    PageOutOfRangeError,
    RateLimitError,
    ResourceNotFoundError,
    SignatureVerificationError,
    UnsupportedFormatError,
    UpstreamProviderError,
    ValidationError,
)
from docuchat.utils.error_handlers import docuchat_error_handler, status_for
from docuchat.utils.sanitize import get_safe_api_key_display, sanitize_headers, sanitize_string


def fake_request():
    request = MagicMock()
    request.method = "POST"
    request.url.path = "/api/v1/documents"
    return request


@pytest.mark.unit
class TestStatusMapping:

    @pytest.mark.parametrize("exc,status_code", [
        (ValidationError("bad"), 400),
        (UnsupportedFormatError("a.zip", [".pdf"]), 400),
        (SignatureVerificationError(), 400),
        (ExtractionError("broken"), 422),
        (InsufficientContentError("empty"), 422),
        (PageOutOfRangeError(5, 3), 422),
        (RateLimitError(RateLimitError.DAILY, "chat", 5), 200),
        (InsufficientCreditsError(10, 2), 402),
        (ResourceNotFoundError("document", "abc"), 404),
        (UpstreamProviderError("openai", "boom"), 500),
    ])
    def test_status_for(self, exc, status_code):
        assert status_for(exc) == status_code

    @pytest.mark.asyncio
    async def test_rate_limit_body(self):
        response = await docuchat_error_handler(fake_request(), RateLimitError(RateLimitError.MONTHLY, "chat", 300))

        assert response.status_code == 200
        body = json.loads(response.body)
        assert body["error"] == "MONTHLY_LIMIT_REACHED"
        assert body["details"] == {"event_type": "chat", "limit": 300}

    @pytest.mark.asyncio
    async def test_upstream_detail_is_hidden(self):
        error = UpstreamProviderError("openai", "401 invalid key sk-abcdefghijklmnopqrstuvwxyz0123456789")

        response = await docuchat_error_handler(fake_request(), error)

        body = json.loads(response.body)
        assert body == {
            "error": "UPSTREAM_ERROR",
            "message": "The AI service is temporarily unavailable. Please try again.",
        }


@pytest.mark.unit
class TestSanitize:

    def test_headers(self):
        headers = {"Authorization": "Bearer dc_x", "X-Paystack-Signature": "abc", "Accept": "json"}

        assert sanitize_headers(headers) == {
            "Authorization": "***REDACTED***",
            "X-Paystack-Signature": "***REDACTED***",
            "Accept": "json",
        }

    @pytest.mark.parametrize("secret", [
        "dc_" + "a" * 40,
        "sk-" + "b" * 40,
        "sk_live_" + "c" * 24,
        "whsec_" + "d" * 24,
    ])
    def test_secrets_are_redacted(self, secret):
        assert secret not in sanitize_string(f"request failed with key {secret}")

    def test_api_key_display(self):
        assert get_safe_api_key_display("dc_AbCdEfGhIjKlMn") == "dc_AbCdEfGh...***"
        assert get_safe_api_key_display("short") == "***REDACTED***"
        assert get_safe_api_key_display(None) == "***INVALID***"
