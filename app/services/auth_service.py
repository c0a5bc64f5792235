"""
Signup, login and refresh-token rotation
"""

from datetime import timedelta
from typing import Any, Dict, Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.core.exceptions import AuthenticationError, ConflictError, ValidationError
from app.core.security import security_manager
from app.models.base import as_utc, utcnow
from app.models.user import RefreshToken, User, UserRole
from app.schemas.user import UserCreate, UserResponse

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    """
    Access tokens are short-lived JWTs; refresh tokens are opaque, stored
    hashed and replaced on every use
    """

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def _issue_tokens(self, user: User) -> Dict[str, Any]:
        refresh_token = security_manager.generate_refresh_token()
        expires_at = utcnow() + timedelta(days=self.settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS)
        self.db.add(RefreshToken(
            user_id=user.id,
            token_hash=security_manager.hash_refresh_token(refresh_token),
            expires_at=expires_at,
        ))
        await self.db.commit()

        return {
            "access_token": security_manager.create_access_token(user, self.settings),
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "refresh_expires_at": expires_at,
            "user": UserResponse.model_validate(user),
        }

    async def signup(self, user_data: UserCreate) -> Dict[str, Any]:
        email = user_data.email.lower()
        existing = await self.db.execute(select(User.id).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("A user with this email already exists")

        user = User(
            email=email,
            display_name=user_data.display_name,
            password_hash=security_manager.hash_password(user_data.password),
            role=UserRole.USER,
            is_active=True,
            email_verified=False,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"User registered: {user.id}")

        return await self._issue_tokens(user)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        result = await self.db.execute(
            select(User).where(
                User.email == email.lower(),
                User.is_active.is_(True),
                User.deleted_at.is_(None)
            )
        )
        user = result.scalar_one_or_none()

        if not user or not security_manager.verify_password(password, user.password_hash):
            # Same message whether or not the email exists
            raise AuthenticationError(INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")

        logger.info(f"User logged in: {user.id}")
        return await self._issue_tokens(user)

    async def refresh(self, token: Optional[str]) -> Dict[str, Any]:
        if not token:
            raise ValidationError("refresh_token is required", field="refresh_token", code="MISSING_REFRESH")

        token_hash = security_manager.hash_refresh_token(token)
        result = await self.db.execute(
            select(RefreshToken, User)
            .join(User, User.id == RefreshToken.user_id)
            .where(RefreshToken.token_hash == token_hash)
        )
        row = result.first()

        if row is None:
            raise AuthenticationError("Invalid refresh token", code="INVALID_REFRESH")

        stored, user = row
        if (
            stored.revoked_at is not None
            or as_utc(stored.expires_at) <= utcnow()
            or not user.is_active
            or user.deleted_at is not None
        ):
            raise AuthenticationError("Invalid refresh token", code="INVALID_REFRESH")

        # Only one concurrent exchange of the same token may win
        revoked = await self.db.execute(
            update(RefreshToken)
            .where(RefreshToken.id == stored.id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if revoked.rowcount != 1:
            await self.db.rollback()
            raise AuthenticationError("Invalid refresh token", code="INVALID_REFRESH")

        logger.info(f"Refresh token rotated for user {user.id}")
        return await self._issue_tokens(user)

    async def logout(self, token: Optional[str]) -> None:
        """Revoke the presented refresh token if it is still live"""
        if not token:
            return
        await self.db.execute(
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == security_manager.hash_refresh_token(token),
                RefreshToken.revoked_at.is_(None)
            )
            .values(revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
