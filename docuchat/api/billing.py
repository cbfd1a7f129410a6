"""
Billing API endpoints
Credit balance and usage, checkout, payment processor webhooks
"""

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session
from typing import Optional

from docuchat.config import settings
from docuchat.database import get_db
from docuchat.api.deps import get_current_user
from docuchat.models.user import User
from docuchat.schemas.billing import (
    CheckoutSessionResponse,
    CreditsResponse,
    PaystackInitializeRequest,
    PaystackInitializeResponse,
    PaystackVerifyRequest,
    PaystackVerifyResponse,
    WebhookResponse,
)
from docuchat.services.payment_service import PaymentService
from docuchat.services.quota_service import QuotaService
from docuchat.services.webhook_service import WebhookService

router = APIRouter(tags=["billing"])


@router.get("/credits", response_model=CreditsResponse)
async def get_credits(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Plan, credit balance, and today's / this month's usage against plan limits"""
    quota = QuotaService(db)
    return CreditsResponse(
        plan=current_user.plan,
        credit_balance=quota.ledger.balance(current_user.id),
        subscription_renews_at=current_user.subscription_renews_at,
        credit_costs=settings.CREDIT_COSTS,
        usage=quota.get_usage(current_user),
    )


@router.post("/billing/paystack/initialize", response_model=PaystackInitializeResponse)
async def initialize_paystack(
    request: PaystackInitializeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Start a Paystack checkout for a plan or a credit pack; redirect the user to authorization_url"""
    return await PaymentService(db).initialize_paystack(
        current_user,
        plan=request.plan,
        interval=request.interval,
        credits=request.credits,
    )


@router.post("/billing/paystack/verify", response_model=PaystackVerifyResponse)
async def verify_paystack(
    request: PaystackVerifyRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Confirm a Paystack payment after the redirect back and apply it"""
    return await PaymentService(db).verify_paystack(current_user, request.reference)


@router.post("/billing/stripe/checkout", response_model=CheckoutSessionResponse)
async def create_stripe_checkout(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Stripe Checkout session for the subscription plan"""
    return await PaymentService(db).create_stripe_checkout(current_user)


@router.post("/webhooks/paystack", response_model=WebhookResponse)
async def paystack_webhook(
    request: Request,
    x_paystack_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """Paystack events, authenticated by x-paystack-signature"""
    payload = await request.body()
    return WebhookService(db).handle_paystack(payload, x_paystack_signature)


@router.post("/webhooks/stripe", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """Stripe events, authenticated by Stripe-Signature"""
    payload = await request.body()
    return WebhookService(db).handle_stripe(payload, stripe_signature)
