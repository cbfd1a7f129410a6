"""
Pydantic Schemas for authentication endpoints
"""

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    """Request schema for user registration"""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")


class RegisterResponse(BaseModel):
    """Response schema for user registration"""
    user_id: str
    email: str
    plan: str
    api_key: str = Field(..., description="API key (save this - only shown once!)")
