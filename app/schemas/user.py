"""
User and token schemas
"""

from pydantic import EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
import re

from app.schemas.base import BaseSchema, IDSchema, TimestampSchema
from app.models.user import UserRole


class UserBase(BaseSchema):
    """Base user schema"""
    email: EmailStr
    display_name: str = Field(..., min_length=1, max_length=255)


class UserCreate(UserBase):
    """User creation schema"""
    password: str = Field(..., min_length=8, max_length=72)

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "diner@trustdiner.app",
                "display_name": "Demo Diner",
                "password": "Demo123!"
            }
        }
    }

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if not re.match(r'^(?=.*[A-Za-z])(?=.*\d)(?=.*[@$!%*#?&])[A-Za-z\d@$!%*#?&]{8,}$', v):
            raise ValueError('Password must contain at least one letter, one number, and one special character')
        return v


class UserLogin(BaseSchema):
    """User login schema"""
    email: EmailStr
    password: str


class UserResponse(UserBase, IDSchema, TimestampSchema):
    """User response schema"""
    role: UserRole
    is_active: bool
    email_verified: bool


class DeletedUserResponse(IDSchema):
    email: str
    display_name: str
    deleted_at: Optional[datetime] = None
    days_remaining: int


class Token(BaseSchema):
    """Token pair with user info"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    refresh_expires_at: datetime
    user: Optional[UserResponse] = None


class TokenRefresh(BaseSchema):
    """Refresh or logout request body"""
    refresh_token: Optional[str] = None
