"""
Review submission and per-allergen score aggregation
"""

from typing import Dict, List, Optional
import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.allergens import sort_allergen_scores
from app.core.best_effort import best_effort
from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError
from app.models.review import Review, ReviewAllergenScore
from app.models.user import User, UserRole
from app.models.venue import Venue
from app.schemas.review import ReviewCreate, ReviewUpdate

logger = logging.getLogger(__name__)


async def get_venue_by_uuid(db: AsyncSession, venue_uuid: uuid.UUID) -> Venue:
    result = await db.execute(select(Venue).where(Venue.uuid == venue_uuid))
    venue = result.scalar_one_or_none()
    if not venue:
        raise NotFoundError("Venue", venue_uuid)
    return venue


async def allergen_averages(db: AsyncSession, venue_id: int) -> Dict[str, Dict[str, float]]:
    """
    Average and count per allergen across the venue's reviews

    Allergens nobody rated are absent rather than zero.
    """
    result = await db.execute(
        select(
            ReviewAllergenScore.allergen_code,
            func.avg(ReviewAllergenScore.score).label("average"),
            func.count(ReviewAllergenScore.id).label("count"),
        )
        .join(Review, Review.id == ReviewAllergenScore.review_id)
        .where(Review.venue_id == venue_id)
        .group_by(ReviewAllergenScore.allergen_code)
    )
    scores = {
        row.allergen_code: {"average": round(float(row.average), 2), "count": int(row.count)}
        for row in result.all()
    }
    return sort_allergen_scores(scores)


async def refresh_venue_score_cache(session_factory: async_sessionmaker, venue_id: int) -> None:
    """Recompute the denormalized allergen_scores_cache column in its own transaction"""
    async with session_factory() as session:
        venue = await session.get(Venue, venue_id)
        if venue is None:
            return
        venue.allergen_scores_cache = await allergen_averages(session, venue_id)
        await session.commit()


class ReviewService:
    def __init__(self, db: AsyncSession, session_factory: Optional[async_sessionmaker] = None):
        self.db = db
        self.session_factory = session_factory

    async def _reload(self, review_id: int) -> Review:
        result = await self.db.execute(
            select(Review)
            .where(Review.id == review_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def get(self, review_id: int) -> Review:
        review = await self.db.get(Review, review_id)
        if not review:
            raise NotFoundError("Review", review_id)
        return review

    async def list_for_venue(self, venue_uuid: uuid.UUID, limit: int = 20, offset: int = 0) -> List[Review]:
        venue = await get_venue_by_uuid(self.db, venue_uuid)
        result = await self.db.execute(
            select(Review)
            .where(Review.venue_id == venue.id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def _refresh_cache(self, venue_id: int):
        if self.session_factory is None:
            return
        await best_effort(
            f"Refreshing allergen score cache for venue {venue_id}",
            refresh_venue_score_cache,
            self.session_factory,
            venue_id
        )

    async def create(self, user: User, data: ReviewCreate) -> Review:
        venue = await get_venue_by_uuid(self.db, data.venue_uuid)

        existing = await self.db.execute(
            select(Review.id).where(Review.venue_id == venue.id, Review.user_id == user.id)
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("You have already reviewed this establishment")

        review = Review(
            venue_id=venue.id,
            user_id=user.id,
            overall_rating=data.overall_rating,
            comment=data.comment,
            visit_date=data.visit_date,
            allergen_scores=[
                ReviewAllergenScore(allergen_code=code, score=score)
                for code, score in data.allergen_scores.items()
            ],
        )
        self.db.add(review)
        await self.db.commit()
        review = await self._reload(review.id)
        logger.info(f"Review {review.id} created for venue {venue.id} by user {user.id}")

        await self._refresh_cache(venue.id)
        return review

    async def update(self, user: User, review_id: int, data: ReviewUpdate) -> Review:
        review = await self.get(review_id)
        if review.user_id != user.id:
            raise AuthorizationError("You can only edit your own reviews")

        changes = data.model_dump(exclude_unset=True, exclude_none=True, exclude={"allergen_scores"})
        for field, value in changes.items():
            setattr(review, field, value)

        if data.allergen_scores is not None:
            # Update rows in place; removing and re-adding a code would clash on flush
            new_scores = dict(data.allergen_scores)
            for score in list(review.allergen_scores):
                if score.allergen_code in new_scores:
                    score.score = new_scores.pop(score.allergen_code)
                else:
                    review.allergen_scores.remove(score)
            for code, value in new_scores.items():
                review.allergen_scores.append(ReviewAllergenScore(allergen_code=code, score=value))

        await self.db.commit()
        review = await self._reload(review.id)
        logger.info(f"Review {review.id} updated by user {user.id}")

        await self._refresh_cache(review.venue_id)
        return review

    async def delete(self, user: User, review_id: int) -> None:
        review = await self.get(review_id)
        if review.user_id != user.id and user.role != UserRole.ADMIN:
            raise AuthorizationError("You can only delete your own reviews")

        venue_id = review.venue_id
        await self.db.delete(review)
        await self.db.commit()
        logger.info(f"Review {review_id} deleted by user {user.id}")

        await self._refresh_cache(venue_id)
