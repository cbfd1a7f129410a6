"""
Payment Service

Starts checkouts with the payment processors and confirms Paystack payments
when the customer returns from the hosted page.

Prices always come from settings; the client only names a plan and interval
or a credit pack. Granting what was paid for goes through the same path as
the charge.success webhook, so whichever of the two arrives first applies it
and the other is recorded as a duplicate.
"""

from typing import Any, Dict, Optional
from uuid import uuid4
import asyncio
import logging

import stripe
from sqlalchemy.orm import Session

from docuchat.config import settings
from docuchat.core.exceptions import PaymentProviderError, ResourceNotFoundError, ValidationError
from docuchat.models.user import User
from docuchat.payments import PaystackClient
from docuchat.services.webhook_service import WebhookService, as_dict

logger = logging.getLogger(__name__)


class PaymentService:
    """Checkout initialization and payment verification"""

    def __init__(
        self,
        db: Session,
        paystack: Optional[PaystackClient] = None,
        webhooks: Optional[WebhookService] = None,
    ):
        self.db = db
        self.paystack = paystack or PaystackClient()
        self.webhooks = webhooks or WebhookService(db)

    async def initialize_paystack(
        self,
        user: User,
        plan: Optional[str] = None,
        interval: str = "monthly",
        credits: Optional[int] = None,
    ) -> Dict[str, str]:
        """
        Start a Paystack checkout for a plan subscription or a credit pack

        Returns:
            authorization_url, access_code and reference

        Raises:
            ValidationError: neither or both of plan and credits, or an
                unknown plan, interval or pack size
            PaymentProviderError: Paystack rejected the request
        """
        if (plan is None) == (credits is None):
            raise ValidationError("Choose either a plan or a credit pack")

        metadata: Dict[str, Any] = {"user_id": str(user.id)}
        plan_code = None

        if plan is not None:
            prices = settings.PLAN_PRICES.get(plan)
            if prices is None:
                raise ValidationError(f"Unknown plan: {plan}", {"plans": sorted(settings.PLAN_PRICES)})
            if interval not in prices:
                raise ValidationError(f"Unknown billing interval: {interval}", {"intervals": sorted(prices)})
            amount = prices[interval]
            plan_code = await self.paystack.plan_code(plan, interval, amount)
            metadata.update(plan=plan, interval=interval)
        else:
            amount = settings.CREDIT_PACKS.get(credits)
            if amount is None:
                raise ValidationError(
                    f"Unknown credit pack: {credits}",
                    {"packs": sorted(settings.CREDIT_PACKS)},
                )
            metadata["credits"] = credits

        reference = f"dc_{uuid4().hex}"
        data = await self.paystack.initialize_transaction(
            email=user.email,
            amount=amount,
            reference=reference,
            metadata=metadata,
            plan_code=plan_code,
        )
        logger.info(f"Initialized Paystack transaction {reference} for user {user.id} ({metadata})")

        return {
            "authorization_url": data["authorization_url"],
            "access_code": data.get("access_code", ""),
            "reference": data.get("reference") or reference,
        }

    async def verify_paystack(self, user: User, reference: str) -> Dict[str, Any]:
        """
        Confirm a Paystack transaction and grant what it paid for

        Raises:
            ResourceNotFoundError: the transaction belongs to someone else
            ValidationError: the transaction has not succeeded
            PaymentProviderError: Paystack does not know the reference
        """
        data = await self.paystack.verify_transaction(reference)
        metadata = as_dict(data.get("metadata"))
        if str(metadata.get("user_id")) != str(user.id):
            raise ResourceNotFoundError("transaction", reference)

        if data.get("status") != "success":
            raise ValidationError(
                f"Transaction {reference} has not succeeded",
                {"reference": reference, "status": data.get("status")},
            )

        status = self.webhooks.apply_paystack_charge({**data, "reference": data.get("reference") or reference})
        self.db.refresh(user)
        logger.info(f"Verified Paystack transaction {reference} for user {user.id}: {status}")

        return {
            "status": status,
            "reference": reference,
            "plan": user.plan,
            "credit_balance": user.credit_balance,
        }

    async def create_stripe_checkout(self, user: User) -> Dict[str, str]:
        """
        Start a Stripe Checkout subscription for the user

        The Stripe customer is found by email or created. The session carries
        the user id as client_reference_id for the checkout.session.completed
        webhook.

        Raises:
            PaymentProviderError: Stripe is not configured or rejected a call
        """
        if not settings.STRIPE_SECRET_KEY or not settings.STRIPE_PRICE_ID:
            raise PaymentProviderError("Stripe checkout is not configured", {"provider": "stripe"})

        api_key = settings.STRIPE_SECRET_KEY
        email = user.email
        user_id = str(user.id)

        def create_session():
            customers = stripe.Customer.list(email=email, limit=1, api_key=api_key)
            if customers.data:
                customer_id = customers.data[0].id
            else:
                customer_id = stripe.Customer.create(
                    email=email,
                    metadata={"user_id": user_id},
                    api_key=api_key,
                ).id

            return stripe.checkout.Session.create(
                customer=customer_id,
                client_reference_id=user_id,
                line_items=[{"price": settings.STRIPE_PRICE_ID, "quantity": 1}],
                mode="subscription",
                success_url=settings.STRIPE_SUCCESS_URL,
                cancel_url=settings.STRIPE_CANCEL_URL,
                api_key=api_key,
            )

        try:
            session = await asyncio.to_thread(create_session)
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout failed for user {user_id}: {e}")
            raise PaymentProviderError(
                f"Stripe checkout failed: {e.user_message or e}",
                {"provider": "stripe"},
            ) from e

        logger.info(f"Created Stripe checkout session {session.id} for user {user_id}")
        return {"url": session.url, "session_id": session.id}
