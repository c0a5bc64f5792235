"""
Authentication endpoints
"""

from typing import Any
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.best_effort import best_effort
from app.core.context import AppContext, get_context
from app.core.database import get_session
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.response import MessageResponse
from app.schemas.user import UserCreate, UserLogin, UserResponse, Token, TokenRefresh
from app.services.auth_service import AuthService

router = APIRouter()


@router.post("/signup", response_model=Token, status_code=status.HTTP_201_CREATED)
async def signup(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Register a new user and issue a token pair
    """
    return await AuthService(db, context.settings).signup(user_data)


@router.post("/login", response_model=Token)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Login with email and password
    """
    return await AuthService(db, context.settings).login(credentials.email, credentials.password)


@router.post("/refresh", response_model=Token)
async def refresh_token(
    body: TokenRefresh,
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Exchange a refresh token for a new token pair; the old one is revoked
    """
    return await AuthService(db, context.settings).refresh(body.refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    body: TokenRefresh,
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Revoke the presented refresh token; always succeeds
    """
    await best_effort("Revoking refresh token", AuthService(db, context.settings).logout, body.refresh_token)
    return MessageResponse(message="Successfully logged out")


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
) -> Any:
    """
    Get current user information
    """
    return current_user
