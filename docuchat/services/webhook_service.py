"""
Payment Webhook Service

Paystack and Stripe notify us of payments. Every payload is verified against
its HMAC signature before it is parsed, and every state change is keyed by
the processor's reference in payment_transactions so a redelivered event is
applied once.

Paystack events:
- charge.success with metadata.credits: one-off credit purchase (added)
- charge.success otherwise: plan subscription or renewal (balance reset to the
  plan's monthly credits, renewal date pushed one month or one year)
- subscription.disable: back to the free plan
Stripe events:
- checkout.session.completed: subscription to STRIPE_CHECKOUT_PLAN
"""

from calendar import monthrange
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID
import json
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from docuchat.config import settings
from docuchat.core.exceptions import ValidationError
from docuchat.core.security import verify_paystack_signature, verify_stripe_signature
from docuchat.models.payment_transaction import PaymentTransaction
from docuchat.models.user import User
from docuchat.services.credit_ledger import CreditLedger

logger = logging.getLogger(__name__)

IGNORED = "ignored"
PROCESSED = "processed"
DUPLICATE = "duplicate"


def add_months(moment: datetime, months: int) -> datetime:
    """Same day-of-month months later, clamped to the last day of short months"""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def as_dict(value: Any) -> Dict[str, Any]:
    """Paystack metadata arrives as an object, a JSON-encoded string, or empty"""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return {}
    return value if isinstance(value, dict) else {}


def _credit_count(value: Any) -> Optional[int]:
    """
    Whole, non-negative credit count from metadata

    Accepts 10, 10.0, "10" and "10.0". Returns None for anything else
    ("ten", 2.5, -1, true).
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer() or number < 0:
        return None
    return int(number)


def _parse(payload: bytes) -> Dict[str, Any]:
    try:
        event = json.loads(payload)
    except ValueError as e:
        raise ValidationError(f"Webhook payload is not valid JSON: {e}")
    if not isinstance(event, dict):
        raise ValidationError("Webhook payload must be a JSON object")
    return event


class WebhookService:
    """Applies verified payment events to plans and credit balances"""

    def __init__(self, db: Session, now=None):
        self.db = db
        self.ledger = CreditLedger(db)
        self._now = now or (lambda: datetime.now(timezone.utc))

    # Paystack

    def handle_paystack(self, payload: bytes, signature: Optional[str]) -> Dict[str, str]:
        """
        Verify and apply a Paystack webhook

        Raises:
            SignatureVerificationError: before anything is parsed or changed
            ValidationError: payload is not a JSON object
        """
        verify_paystack_signature(payload, signature, settings.PAYSTACK_SECRET_KEY)
        event = _parse(payload)
        name = event.get("event", "")
        data = as_dict(event.get("data"))

        if name == "charge.success":
            status = self.apply_paystack_charge(data)
        elif name == "subscription.disable":
            status = self._paystack_disable(data)
        else:
            logger.info(f"Unhandled Paystack event: {name}")
            status = IGNORED

        return {"status": status, "event": name}

    def apply_paystack_charge(self, data: Dict[str, Any]) -> str:
        """
        Grant what a successful Paystack charge paid for

        Shared by the charge.success webhook and verify-by-reference, so
        whichever arrives first applies the grant and the other sees a
        duplicate.
        """
        reference = data.get("reference")
        metadata = as_dict(data.get("metadata"))
        customer = as_dict(data.get("customer"))

        user = self._find_user(metadata.get("user_id"), customer.get("email"))
        if not reference or user is None:
            logger.error(f"Could not match Paystack charge {reference} to a user")
            return IGNORED

        credits = _credit_count(metadata.get("credits"))
        if credits is None:
            logger.warning(f"Paystack charge {reference} has an unusable credit count: {metadata.get('credits')!r}")
            return IGNORED
        plan = metadata.get("plan") or user.plan

        if credits > 0:
            return self._apply(
                "paystack", reference, "charge.success", user,
                amount=data.get("amount"), currency=data.get("currency"), credits=credits,
                apply=lambda: self.ledger.add(user.id, credits, commit=False),
            )

        if plan not in settings.PLAN_MONTHLY_CREDITS or plan == "free":
            logger.warning(f"Paystack charge {reference} names no paid plan ({plan})")
            return IGNORED

        months = 12 if metadata.get("interval") == "annual" else 1
        return self._apply(
            "paystack", reference, "charge.success", user,
            amount=data.get("amount"), currency=data.get("currency"), plan=plan,
            apply=lambda: self._activate_plan(user, plan, months),
        )

    def _paystack_disable(self, data: Dict[str, Any]) -> str:
        customer = as_dict(data.get("customer"))
        user = self._find_user(as_dict(data.get("metadata")).get("user_id"), customer.get("email"))
        reference = data.get("subscription_code")
        if not reference or user is None:
            logger.error(f"Could not match Paystack subscription {reference} to a user")
            return IGNORED

        return self._apply(
            "paystack", f"disable:{reference}", "subscription.disable", user,
            plan="free",
            apply=lambda: self._downgrade(user),
        )

    # Stripe

    def handle_stripe(self, payload: bytes, header: Optional[str]) -> Dict[str, str]:
        """
        Verify and apply a Stripe webhook

        Raises:
            SignatureVerificationError: before anything is parsed or changed
            ValidationError: payload is not a JSON object
        """
        verify_stripe_signature(
            payload,
            header,
            settings.STRIPE_WEBHOOK_SECRET,
            tolerance=settings.STRIPE_TOLERANCE_SECONDS,
        )
        event = _parse(payload)
        name = event.get("type", "")

        if name != "checkout.session.completed":
            logger.info(f"Unhandled Stripe event: {name}")
            return {"status": IGNORED, "event": name}

        session = as_dict(as_dict(event.get("data")).get("object"))
        customer_details = as_dict(session.get("customer_details"))
        user = self._find_user(session.get("client_reference_id"), customer_details.get("email"))
        reference = session.get("id") or event.get("id")
        if not reference or user is None:
            logger.error(f"Could not match Stripe session {reference} to a user")
            return {"status": IGNORED, "event": name}

        plan = settings.STRIPE_CHECKOUT_PLAN
        status = self._apply(
            "stripe", reference, name, user,
            amount=session.get("amount_total"), currency=session.get("currency"), plan=plan,
            apply=lambda: self._activate_plan(user, plan, 1),
        )
        return {"status": status, "event": name}

    # Shared

    def _find_user(self, user_id: Optional[str], email: Optional[str]) -> Optional[User]:
        if user_id:
            try:
                user = self.db.query(User).filter(User.id == UUID(str(user_id))).first()
            except ValueError:
                user = None
            if user:
                return user
        if email:
            return self.db.query(User).filter(User.email == email).first()
        return None

    def _activate_plan(self, user: User, plan: str, months: int) -> None:
        user.plan = plan
        user.subscription_renews_at = add_months(self._now(), months)
        self.db.flush()
        self.ledger.set_balance(user.id, settings.PLAN_MONTHLY_CREDITS[plan], commit=False)
        logger.info(f"Activated {plan} plan for user {user.id} until {user.subscription_renews_at}")

    def _downgrade(self, user: User) -> None:
        user.plan = "free"
        user.subscription_renews_at = None
        self.db.flush()
        self.ledger.set_balance(user.id, settings.PLAN_MONTHLY_CREDITS["free"], commit=False)
        logger.info(f"Downgraded user {user.id} to free plan")

    def _apply(
        self,
        provider: str,
        reference: str,
        event: str,
        user: User,
        apply,
        amount: Optional[int] = None,
        currency: Optional[str] = None,
        plan: Optional[str] = None,
        credits: int = 0,
    ) -> str:
        """Record the transaction and apply its effect in one commit, once per reference"""
        existing = self.db.query(PaymentTransaction.id).filter(
            PaymentTransaction.reference == reference
        ).first()
        if existing:
            logger.info(f"{provider} event {reference} already processed")
            return DUPLICATE

        self.db.add(PaymentTransaction(
            user_id=user.id,
            provider=provider,
            reference=reference,
            event=event,
            amount=amount,
            currency=currency,
            plan=plan,
            credits=credits,
        ))
        try:
            self.db.flush()
            apply()
            self.db.commit()
        except IntegrityError:
            # A concurrent delivery of the same event won the insert
            self.db.rollback()
            logger.info(f"{provider} event {reference} already processed")
            return DUPLICATE

        return PROCESSED
