"""
Unit tests for security helpers

Tests:
- API key generation and hashing
- Paystack and Stripe webhook signatures
"""

import hashlib
import hmac
import time
from unittest.mock import patch

import pytest
import stripe

from docuchat.core.exceptions import SignatureVerificationError
from docuchat.core.security import (
    generate_api_key,
    hash_api_key,
    verify_paystack_signature,
    verify_stripe_signature,
)

PAYSTACK_SECRET = "sk_test_paystack_secret"
STRIPE_SECRET = "whsec_test_stripe_secret"
BODY = b'{"event": "charge.success", "data": {"reference": "ref-1"}}'


def paystack_signature(body: bytes, secret: str = PAYSTACK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()


def stripe_header(body: bytes, timestamp: int, secret: str = STRIPE_SECRET) -> str:
    signature = hmac.new(secret.encode(), f"{timestamp}.".encode() + body, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.mark.unit
class TestApiKeys:

    def test_generated_key_matches_hash(self):
        api_key, key_hash = generate_api_key()

        assert api_key.startswith("dc_")
        assert key_hash == hash_api_key(api_key)
        assert len(key_hash) == 64

    def test_keys_are_unique(self):
        assert generate_api_key()[0] != generate_api_key()[0]


@pytest.mark.unit
class TestPaystackSignature:

    def test_valid(self):
        verify_paystack_signature(BODY, paystack_signature(BODY), PAYSTACK_SECRET)

    def test_tampered_body(self):
        with pytest.raises(SignatureVerificationError):
            verify_paystack_signature(BODY + b" ", paystack_signature(BODY), PAYSTACK_SECRET)

    def test_wrong_secret(self):
        with pytest.raises(SignatureVerificationError):
            verify_paystack_signature(BODY, paystack_signature(BODY, "other"), PAYSTACK_SECRET)

    @pytest.mark.parametrize("signature,secret", [(None, PAYSTACK_SECRET), ("abc", ""), ("", PAYSTACK_SECRET)])
    def test_missing_signature_or_secret(self, signature, secret):
        with pytest.raises(SignatureVerificationError):
            verify_paystack_signature(BODY, signature, secret)


@pytest.mark.unit
class TestStripeSignature:

    def test_valid(self):
        verify_stripe_signature(BODY, stripe_header(BODY, int(time.time())), STRIPE_SECRET)

    def test_any_v1_signature_may_match(self):
        now = int(time.time())
        header = f"t={now},v1=deadbeef," + stripe_header(BODY, now).split(",", 1)[1]
        verify_stripe_signature(BODY, header, STRIPE_SECRET)

    def test_tampered_body(self):
        with pytest.raises(SignatureVerificationError):
            verify_stripe_signature(b"{}", stripe_header(BODY, int(time.time())), STRIPE_SECRET)

    def test_wrong_secret(self):
        header = stripe_header(BODY, int(time.time()), secret="whsec_other")
        with pytest.raises(SignatureVerificationError):
            verify_stripe_signature(BODY, header, STRIPE_SECRET)

    def test_stale_timestamp(self):
        header = stripe_header(BODY, int(time.time()) - 301)
        with pytest.raises(SignatureVerificationError):
            verify_stripe_signature(BODY, header, STRIPE_SECRET, tolerance=300)

    def test_sdk_rejection_is_domain_error(self):
        with patch(
            "docuchat.core.security.stripe.WebhookSignature.verify_header",
            side_effect=stripe.SignatureVerificationError("No signatures found", "t=1,v1=x"),
        ) as verify_header:
            with pytest.raises(SignatureVerificationError):
                verify_stripe_signature(BODY, "t=1,v1=x", STRIPE_SECRET, tolerance=60)

        verify_header.assert_called_once_with(BODY.decode(), "t=1,v1=x", STRIPE_SECRET, 60)

    @pytest.mark.parametrize("header", [None, "", "v1=abc", "t=123", "t=soon,v1=abc"])
    def test_malformed_header(self, header):
        with pytest.raises(SignatureVerificationError):
            verify_stripe_signature(BODY, header, STRIPE_SECRET)

    def test_missing_secret(self):
        with pytest.raises(SignatureVerificationError):
            verify_stripe_signature(BODY, stripe_header(BODY, int(time.time())), "")
