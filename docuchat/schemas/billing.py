"""
Pydantic Schemas for credits, usage and checkout
"""

from pydantic import BaseModel, Field
from typing import Dict, Literal, Optional
from datetime import datetime


class UsageWindow(BaseModel):
    day: int = 0
    month: int = 0
    day_limit: Optional[int] = None
    month_limit: Optional[int] = None


class CreditsResponse(BaseModel):
    plan: str
    credit_balance: int
    subscription_renews_at: Optional[datetime] = None
    credit_costs: Dict[str, int]
    usage: Dict[str, UsageWindow]


class WebhookResponse(BaseModel):
    status: str
    event: str


class PaystackInitializeRequest(BaseModel):
    """Either a plan (with its billing interval) or a credit pack size"""

    plan: Optional[Literal["basic", "pro", "elite"]] = None
    interval: Literal["monthly", "annual"] = "monthly"
    credits: Optional[int] = Field(None, description="Credit pack size, e.g. 100 or 300")


class PaystackInitializeResponse(BaseModel):
    authorization_url: str
    access_code: str
    reference: str


class PaystackVerifyRequest(BaseModel):
    reference: str = Field(..., min_length=1, max_length=100)


class PaystackVerifyResponse(BaseModel):
    status: str
    reference: str
    plan: str
    credit_balance: int


class CheckoutSessionResponse(BaseModel):
    url: str
    session_id: str
