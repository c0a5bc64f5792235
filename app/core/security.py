"""
Security utilities for authentication and authorization
"""

from datetime import timedelta
from typing import Optional, Dict, Any
import hashlib
import secrets
import time
import logging

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings, Settings
from app.core.context import AppContext, get_context
from app.core.database import get_session
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.models.base import utcnow
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# OAuth2 scheme; missing tokens are reported through our own error envelope
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False)


class SecurityManager:
    """
    Security manager for authentication and authorization
    """

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """
        Verify a plain password against a hashed password
        """
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def hash_password(password: str) -> str:
        """
        Hash a password
        """
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(
        user: User,
        config: Settings = settings,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Create a short-lived JWT access token for a user
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=config.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

        role = user.role.value if isinstance(user.role, UserRole) else user.role
        to_encode = {
            "sub": str(user.id),
            "email": user.email,
            "role": role,
            "type": "access",
            "exp": utcnow() + expires_delta,
            "iat": time.time(),
        }
        return jwt.encode(
            to_encode,
            config.JWT_SECRET_KEY,
            algorithm=config.JWT_ALGORITHM
        )

    @staticmethod
    def decode_access_token(token: str, config: Settings = settings) -> Dict[str, Any]:
        """
        Decode and verify an access token
        """
        try:
            payload = jwt.decode(
                token,
                config.JWT_SECRET_KEY,
                algorithms=[config.JWT_ALGORITHM]
            )
        except JWTError as e:
            logger.info(f"JWT decode error: {e}")
            raise AuthenticationError("Could not validate credentials", code="INVALID_TOKEN")

        if payload.get("type") != "access":
            raise AuthenticationError("Invalid token type. Expected access", code="INVALID_TOKEN")
        return payload

    @staticmethod
    def generate_refresh_token() -> str:
        """
        Opaque refresh token; only its hash is ever stored
        """
        return secrets.token_urlsafe(48)

    @staticmethod
    def hash_refresh_token(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()


# Create global security manager
security_manager = SecurityManager()


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> User:
    """
    Resolve the bearer token to an active user
    """
    if not token:
        raise AuthenticationError("Not authenticated", code="NOT_AUTHENTICATED")

    payload = security_manager.decode_access_token(token, context.settings)
    user_id = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        raise AuthenticationError("Could not validate credentials", code="INVALID_TOKEN")

    result = await db.execute(select(User).where(User.id == int(user_id)))
    user = result.scalar_one_or_none()

    if not user or not user.is_active or user.deleted_at is not None:
        raise AuthenticationError("Could not validate credentials", code="INVALID_TOKEN")

    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """
    Require admin role for endpoint
    """
    if current_user.role != UserRole.ADMIN:
        raise AuthorizationError("Admin access required")
    return current_user
