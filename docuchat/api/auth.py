"""
Authentication API endpoints
User registration with a first API key
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from docuchat.config import settings
from docuchat.database import get_db
from docuchat.models.user import User
from docuchat.models.api_key import APIKey
from docuchat.core.security import generate_api_key, hash_password
from docuchat.core.exceptions import http_409_conflict
from docuchat.middleware.rate_limiter import auth_rate_limit
from docuchat.schemas.auth import RegisterRequest, RegisterResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@auth_rate_limit()
async def register(
    request: Request,
    payload: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Register a new user on the free plan and generate an API key

    **Important**: The API key is only returned once. Save it securely!

    Raises:
        HTTPException: 409 if email already registered
    """
    existing_user = db.query(User).filter(User.email == payload.email).first()
    if existing_user:
        raise http_409_conflict(f"Email '{payload.email}' is already registered")

    user = User(
        email=payload.email,
        hashed_password=hash_password(payload.password),
        is_active=True,
        plan="free",
        credit_balance=settings.PLAN_MONTHLY_CREDITS["free"],
    )
    db.add(user)
    db.flush()

    api_key, key_hash = generate_api_key()
    db.add(APIKey(
        user_id=user.id,
        key_hash=key_hash,
        key_prefix=api_key[:11],
        name="Default API Key",
    ))
    db.commit()
    db.refresh(user)

    logger.info(f"Registered user {user.id}")
    return RegisterResponse(
        user_id=str(user.id),
        email=user.email,
        plan=user.plan,
        api_key=api_key
    )
