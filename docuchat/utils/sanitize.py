"""
Security utility for sanitizing sensitive data in logs and errors
Keeps API keys, provider secrets and webhook signatures out of log output
"""

from typing import Dict, Any
import re

# Headers that contain sensitive information
SENSITIVE_HEADERS = {
    "authorization",
    "x-api-key",
    "cookie",
    "x-paystack-signature",
    "stripe-signature",
}

# Patterns to detect and redact sensitive data
SENSITIVE_PATTERNS = [
    (re.compile(r'(dc_[a-zA-Z0-9_\-]{32,})'), 'dc_***REDACTED***'),  # DocuChat API keys
    (re.compile(r'(sk-[a-zA-Z0-9_\-]{32,})'), 'sk-***REDACTED***'),  # OpenAI / Anthropic / DeepSeek keys
    (re.compile(r'(sk_(?:live|test)_[a-zA-Z0-9]{16,})'), 'sk_***REDACTED***'),  # Paystack / Stripe secret keys
    (re.compile(r'(whsec_[a-zA-Z0-9]{16,})'), 'whsec_***REDACTED***'),  # Stripe webhook secrets
    (re.compile(r'(Bearer\s+[a-zA-Z0-9_\-\.]+)'), 'Bearer ***REDACTED***'),
]


def sanitize_headers(headers: Dict[str, Any]) -> Dict[str, Any]:
    """Redact values of sensitive headers"""
    if not isinstance(headers, dict):
        return headers

    return {
        key: "***REDACTED***" if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def sanitize_string(text: str) -> str:
    """
    Remove sensitive patterns from string

    Args:
        text: String that may contain sensitive data

    Returns:
        Sanitized string with patterns redacted
    """
    if not isinstance(text, str):
        return text

    sanitized = text
    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    return sanitized


def get_safe_api_key_display(api_key: str) -> str:
    """
    Get safe version of API key for logging (only prefix)

    Returns:
        Safe display string (e.g., "dc_AbCdEfGh...***")
    """
    if not api_key or not isinstance(api_key, str):
        return "***INVALID***"

    if len(api_key) < 12:
        return "***REDACTED***"

    return f"{api_key[:11]}...***"
