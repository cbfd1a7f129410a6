"""
Security utilities for authentication and webhook verification
API key generation, password hashing, Paystack HMAC and Stripe SDK signature checks
"""

import hashlib
import hmac
import secrets
from typing import Optional

import stripe
from passlib.context import CryptContext

from docuchat.config import settings
from docuchat.core.exceptions import SignatureVerificationError

# Password hashing context (bcrypt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def generate_api_key() -> tuple[str, str]:
    """
    Generate a new API key and its hash

    Returns:
        tuple: (api_key, key_hash)
            - api_key: Full key to show user (only once)
            - key_hash: SHA-256 hash to store in database
    """
    api_key = f"{settings.API_KEY_PREFIX}{secrets.token_urlsafe(32)}"
    return api_key, hash_api_key(api_key)


def hash_api_key(api_key: str) -> str:
    """Hash an API key using SHA-256"""
    return hashlib.sha256(api_key.encode()).hexdigest()


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_paystack_signature(payload: bytes, signature: Optional[str], secret: str) -> None:
    """
    Verify a Paystack webhook

    Paystack sends the hex HMAC-SHA512 of the raw request body, keyed with the
    account secret key, in the x-paystack-signature header.

    Raises:
        SignatureVerificationError: header missing, secret unset, or mismatch
    """
    if not secret or not signature:
        raise SignatureVerificationError("Missing Paystack signature")

    expected = hmac.new(secret.encode(), payload, hashlib.sha512).hexdigest()
    if not hmac.compare_digest(expected, signature.strip()):
        raise SignatureVerificationError("Invalid Paystack signature")


def verify_stripe_signature(
    payload: bytes,
    header: Optional[str],
    secret: str,
    tolerance: int = 300,
) -> None:
    """
    Verify a Stripe webhook with the Stripe SDK

    The Stripe-Signature header carries "t=<timestamp>,v1=<sig>[,v1=<sig>]";
    each v1 value is the HMAC-SHA256 of "<timestamp>.<raw body>". Timestamps
    older than tolerance seconds are rejected.

    Raises:
        SignatureVerificationError: header missing, malformed, stale, or no signature matches
    """
    if not secret or not header:
        raise SignatureVerificationError("Missing Stripe signature")

    try:
        stripe.WebhookSignature.verify_header(payload.decode("utf-8"), header, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        raise SignatureVerificationError("Invalid Stripe signature") from e
    except ValueError as e:
        # Body is not UTF-8
        raise SignatureVerificationError("Stripe payload is not UTF-8") from e
