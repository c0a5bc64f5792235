"""
Admin management endpoints
"""

from typing import Any, Dict
import math

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import AppContext, get_context
from app.core.database import get_session
from app.core.security import require_admin
from app.models.user import User
from app.schemas.response import MessageResponse, PaginatedResponse, PaginationMeta
from app.schemas.user import DeletedUserResponse, UserResponse
from app.schemas.venue import ChainAssignment, VenueResponse, VenueUpdate
from app.services.admin_service import AdminService
from app.services.review_service import ReviewService

router = APIRouter()


def _admin_service(db: AsyncSession, context: AppContext) -> AdminService:
    return AdminService(db, context.cache, context.settings)


@router.delete("/venues/{venue_id}", response_model=MessageResponse)
async def delete_venue(
    venue_id: int,
    admin_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Delete a venue; refused while it has reviews
    """
    await _admin_service(db, context).delete_venue(venue_id)
    return MessageResponse(message="Venue deleted")


@router.patch("/venues/{venue_id}", response_model=VenueResponse)
async def update_venue(
    venue_id: int,
    venue_data: VenueUpdate,
    admin_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Update venue details
    """
    return await _admin_service(db, context).update_venue(venue_id, venue_data)


@router.put("/venues/{venue_id}/chain", response_model=VenueResponse)
async def assign_venue_chain(
    venue_id: int,
    assignment: ChainAssignment,
    admin_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Assign a venue to a chain, or remove it with chain_id null
    """
    return await _admin_service(db, context).assign_chain(venue_id, assignment.chain_id)


@router.delete("/reviews/{review_id}", response_model=MessageResponse)
async def delete_review(
    review_id: int,
    admin_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    await ReviewService(db, context.session_factory).delete(admin_user, review_id)
    return MessageResponse(message="Review deleted")


@router.delete("/users/{user_id}", response_model=UserResponse)
async def soft_delete_user(
    user_id: int,
    admin_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Soft delete a user; restorable during the grace window
    """
    return await _admin_service(db, context).soft_delete_user(user_id, admin_user)


@router.post("/users/{user_id}/restore", response_model=UserResponse)
async def restore_user(
    user_id: int,
    admin_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    return await _admin_service(db, context).restore_user(user_id)


@router.get("/users/deleted", response_model=PaginatedResponse[DeletedUserResponse])
async def list_deleted_users(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    admin_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Users deleted within the grace window, newest first
    """
    users, total = await _admin_service(db, context).list_deleted_users(page, per_page)
    return PaginatedResponse[DeletedUserResponse](
        data=[DeletedUserResponse(**u) for u in users],
        pagination=PaginationMeta(
            page=page,
            per_page=per_page,
            total=total,
            total_pages=math.ceil(total / per_page),
        ),
    )


@router.post("/users/purge")
async def purge_expired_users(
    admin_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Dict[str, Any]:
    """
    Permanently delete users past the grace window
    """
    deleted = await _admin_service(db, context).purge_expired_users()
    return {"success": True, "deletedCount": deleted}


@router.get("/google-usage")
async def google_usage(
    admin_user: User = Depends(require_admin),
    context: AppContext = Depends(get_context)
) -> Dict[str, Any]:
    """
    Google API usage: today's and this month's per-service summaries plus totals
    """
    tracker = context.usage_tracker
    return {
        "daily": await tracker.daily_usage(),
        "monthly": await tracker.monthly_usage(),
        "stats": await tracker.usage_stats(),
    }


@router.get("/google-usage/billing-cycle")
async def google_billing_cycle(
    admin_user: User = Depends(require_admin),
    context: AppContext = Depends(get_context)
) -> Dict[str, Any]:
    return await context.usage_tracker.billing_cycle_usage()
