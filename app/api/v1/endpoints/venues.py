"""
Venue endpoints
"""

from typing import Any, List
import math
import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.best_effort import best_effort
from app.core.cache import api_cache_key
from app.core.context import AppContext, get_context
from app.core.database import get_session
from app.models.review import Review
from app.models.venue import BusinessStatus, Venue
from app.schemas.response import PaginatedResponse, PaginationMeta
from app.schemas.review import ReviewResponse
from app.schemas.venue import VenueAllergenScores, VenueResponse
from app.services.review_service import ReviewService, allergen_averages, get_venue_by_uuid

router = APIRouter()


@router.get("")
async def list_venues(
    request: Request,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    List operational venues alphabetically; cached briefly
    """
    cache_key = api_cache_key(request.url.path, request.url.query)
    cached = await context.cache.get_json(cache_key)
    if cached is not None:
        return cached

    filters = (Venue.business_status == BusinessStatus.OPERATIONAL,)
    total = await db.scalar(select(func.count(Venue.id)).where(*filters))
    result = await db.execute(
        select(Venue)
        .where(*filters)
        .order_by(Venue.name.asc(), Venue.id.asc())
        .limit(per_page)
        .offset((page - 1) * per_page)
    )
    venues = result.scalars().all()

    response = PaginatedResponse[VenueResponse](
        data=[VenueResponse.model_validate(v) for v in venues],
        pagination=PaginationMeta(
            page=page,
            per_page=per_page,
            total=total or 0,
            total_pages=math.ceil((total or 0) / per_page),
        ),
    ).model_dump(mode="json")

    await best_effort("Caching venue listing", context.cache.set_json, cache_key, response,
                      context.settings.LISTING_CACHE_TTL)
    return response


@router.get("/{venue_uuid}", response_model=VenueResponse)
async def get_venue(
    venue_uuid: uuid.UUID,
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Get venue details
    """
    return await get_venue_by_uuid(db, venue_uuid)


@router.get("/{venue_uuid}/reviews", response_model=List[ReviewResponse])
async def list_venue_reviews(
    venue_uuid: uuid.UUID,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_session)
) -> Any:
    reviews = await ReviewService(db).list_for_venue(venue_uuid, limit=limit, offset=offset)
    return [ReviewResponse.from_review(r) for r in reviews]


@router.get("/{venue_uuid}/allergen-scores", response_model=VenueAllergenScores)
async def get_allergen_scores(
    venue_uuid: uuid.UUID,
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Per-allergen average score and rating count, derived from reviews
    """
    venue = await get_venue_by_uuid(db, venue_uuid)
    review_count = await db.scalar(select(func.count(Review.id)).where(Review.venue_id == venue.id))
    return VenueAllergenScores(
        venue_uuid=venue.uuid,
        review_count=review_count or 0,
        scores=await allergen_averages(db, venue.id),
    )
