"""
Paystack REST client

Covers what checkout needs: initializing a transaction, verifying it by
reference, and resolving the subscription plan code for a plan and interval.
Every response is Paystack's {"status": bool, "message": str, "data": ...}
envelope; a false status is treated like an HTTP error.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from docuchat.config import settings
from docuchat.core.exceptions import PaymentProviderError

logger = logging.getLogger(__name__)

# Our billing interval -> Paystack plan interval
PAYSTACK_INTERVALS = {"monthly": "monthly", "annual": "annually"}


class PaystackClient:
    """Async calls to the Paystack API with the secret key"""

    name = "paystack"

    def __init__(
        self,
        secret_key: str = None,
        base_url: str = None,
        timeout: int = None,
        currency: str = None,
    ):
        self.secret_key = secret_key or settings.PAYSTACK_SECRET_KEY
        self.base_url = (base_url or settings.PAYSTACK_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.PAYSTACK_TIMEOUT
        self.currency = currency or settings.PAYSTACK_CURRENCY

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        """
        Call the API and unwrap the data field

        Raises:
            PaymentProviderError: transport failure, HTTP error or status false
        """
        if not self.secret_key:
            raise PaymentProviderError("Paystack is not configured", {"provider": self.name})

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method,
                    f"{self.base_url}{path}",
                    json=json,
                    headers={"Authorization": f"Bearer {self.secret_key}"},
                )
        except httpx.HTTPError as e:
            raise PaymentProviderError(f"Paystack request failed: {e}", {"provider": self.name}) from e

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        if response.status_code >= 400 or not body.get("status"):
            message = body.get("message") or response.text[:200]
            logger.error(f"Paystack {method} {path} returned {response.status_code}: {message}")
            raise PaymentProviderError(
                f"Paystack error: {message}",
                {"provider": self.name, "status_code": response.status_code},
            )

        return body.get("data")

    async def plan_code(self, plan: str, interval: str, amount: int) -> str:
        """
        Paystack plan code for one of our plans

        Uses the configured code when there is one, otherwise an existing
        Paystack plan with the same name, amount, currency and interval, and
        creates the plan as a last resort.
        """
        configured = settings.PAYSTACK_PLAN_CODES.get(plan, {}).get(interval)
        if configured:
            return configured

        paystack_interval = PAYSTACK_INTERVALS[interval]
        existing = await self._request("GET", "/plan")
        for candidate in existing if isinstance(existing, list) else []:
            if (
                isinstance(candidate, dict)
                and str(candidate.get("name", "")).lower() == plan.lower()
                and candidate.get("amount") == amount
                and candidate.get("currency") == self.currency
                and candidate.get("interval") == paystack_interval
                and candidate.get("plan_code")
            ):
                logger.info(f"Found Paystack plan {candidate['plan_code']} for {plan}/{interval}")
                return candidate["plan_code"]

        created = await self._request("POST", "/plan", json={
            "name": plan.capitalize(),
            "amount": amount,
            "interval": paystack_interval,
            "currency": self.currency,
        })
        code = created.get("plan_code") if isinstance(created, dict) else None
        if not code:
            raise PaymentProviderError(f"Paystack did not return a plan code for {plan}", {"provider": self.name})
        logger.info(f"Created Paystack plan {code} for {plan}/{interval}")
        return code

    async def initialize_transaction(
        self,
        email: str,
        amount: int,
        reference: str,
        metadata: Dict[str, Any],
        plan_code: Optional[str] = None,
        callback_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Start a hosted checkout; returns authorization_url, access_code and reference"""
        payload = {
            "email": email,
            "amount": amount,
            "currency": self.currency,
            "reference": reference,
            "callback_url": callback_url or settings.PAYSTACK_CALLBACK_URL,
            "metadata": metadata,
        }
        if plan_code:
            payload["plan"] = plan_code

        data = await self._request("POST", "/transaction/initialize", json=payload)
        if not isinstance(data, dict) or not data.get("authorization_url"):
            raise PaymentProviderError("Paystack did not return an authorization URL", {"provider": self.name})
        return data

    async def verify_transaction(self, reference: str) -> Dict[str, Any]:
        """Current state of a transaction, including its status and metadata"""
        data = await self._request("GET", f"/transaction/verify/{quote(reference, safe='')}")
        return data if isinstance(data, dict) else {}
