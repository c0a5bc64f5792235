"""
Review endpoints
"""

from typing import Any
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import AppContext, get_context
from app.core.database import get_session
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.response import MessageResponse
from app.schemas.review import ReviewCreate, ReviewResponse, ReviewUpdate
from app.services.review_service import ReviewService

router = APIRouter()


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    review_data: ReviewCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Submit a review; one per user per venue
    """
    review = await ReviewService(db, context.session_factory).create(current_user, review_data)
    return ReviewResponse.from_review(review)


@router.get("/{review_id}", response_model=ReviewResponse)
async def get_review(
    review_id: int,
    db: AsyncSession = Depends(get_session)
) -> Any:
    review = await ReviewService(db).get(review_id)
    return ReviewResponse.from_review(review)


@router.put("/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_id: int,
    review_data: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Update your own review
    """
    review = await ReviewService(db, context.session_factory).update(current_user, review_id, review_data)
    return ReviewResponse.from_review(review)


@router.delete("/{review_id}", response_model=MessageResponse)
async def delete_review(
    review_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Delete a review (author or admin)
    """
    await ReviewService(db, context.session_factory).delete(current_user, review_id)
    return MessageResponse(message="Review deleted")
