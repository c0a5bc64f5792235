"""
Admin moderation: venues, chains, reviews and the user deletion lifecycle
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.core.best_effort import best_effort
from app.core.cache import CacheManager, listing_cache_keys, venue_search_keys
from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.models.base import as_utc, utcnow
from app.models.chain import Chain
from app.models.review import Review
from app.models.user import RefreshToken, User, UserRole
from app.models.venue import Venue
from app.schemas.chain import ChainCreate, ChainUpdate
from app.schemas.venue import VenueUpdate

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self, db: AsyncSession, cache: CacheManager, settings: Settings):
        self.db = db
        self.cache = cache
        self.settings = settings

    async def _invalidate(self, keys: List[str], reason: str):
        await best_effort(f"Invalidating caches after {reason}", self.cache.delete, keys)

    # Venues

    async def get_venue(self, venue_id: int) -> Venue:
        venue = await self.db.get(Venue, venue_id)
        if not venue:
            raise NotFoundError("Venue", venue_id)
        return venue

    async def delete_venue(self, venue_id: int) -> None:
        venue = await self.get_venue(venue_id)

        review_count = await self.db.scalar(
            select(func.count(Review.id)).where(Review.venue_id == venue.id)
        )
        if review_count:
            raise ConflictError(
                "Cannot delete establishment with existing reviews",
                details={"review_count": review_count}
            )

        name, address = venue.name, venue.address
        await self.db.delete(venue)
        await self.db.commit()
        logger.info(f"Venue {venue_id} ({name}) deleted")

        await self._invalidate(
            listing_cache_keys(self.settings.API_PREFIX) + venue_search_keys(name, address),
            "venue deletion"
        )

    async def update_venue(self, venue_id: int, data: VenueUpdate) -> Venue:
        venue = await self.get_venue(venue_id)
        old_name, old_address = venue.name, venue.address

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("name", "address", "business_status"):
                continue
            setattr(venue, field, value)

        await self.db.commit()
        await self.db.refresh(venue)
        logger.info(f"Venue {venue.id} updated")

        await self._invalidate(
            listing_cache_keys(self.settings.API_PREFIX)
            + venue_search_keys(old_name, old_address)
            + venue_search_keys(venue.name, venue.address),
            "venue update"
        )
        return venue

    async def assign_chain(self, venue_id: int, chain_id: Optional[int]) -> Venue:
        venue = await self.get_venue(venue_id)
        if chain_id is not None and await self.db.get(Chain, chain_id) is None:
            raise NotFoundError("Chain", chain_id)

        venue.chain_id = chain_id
        await self.db.commit()
        await self.db.refresh(venue)

        action = "assigned to chain" if chain_id else "removed from chain"
        logger.info(f"Venue {venue.name} {action}")
        await self._invalidate(listing_cache_keys(self.settings.API_PREFIX), "chain assignment")
        return venue

    # Chains

    async def list_chains(self) -> List[Tuple[Chain, int]]:
        result = await self.db.execute(
            select(Chain, func.count(Venue.id).label("venue_count"))
            .outerjoin(Venue, Venue.chain_id == Chain.id)
            .group_by(Chain.id)
            .order_by(Chain.name.asc())
        )
        return [(chain, int(count)) for chain, count in result.all()]

    async def get_chain(self, chain_id: int) -> Chain:
        chain = await self.db.get(Chain, chain_id)
        if not chain:
            raise NotFoundError("Chain", chain_id)
        return chain

    async def _ensure_slug_free(self, slug: str, chain_id: Optional[int] = None):
        stmt = select(Chain.id).where(Chain.slug == slug)
        if chain_id is not None:
            stmt = stmt.where(Chain.id != chain_id)
        if (await self.db.execute(stmt)).scalar_one_or_none() is not None:
            raise ConflictError(f"Chain slug '{slug}' is already in use")

    async def create_chain(self, data: ChainCreate) -> Chain:
        await self._ensure_slug_free(data.slug)

        chain = Chain(**data.model_dump())
        self.db.add(chain)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(f"Chain slug '{data.slug}' is already in use")
        await self.db.refresh(chain)
        logger.info(f"Chain created: {chain.slug}")
        return chain

    async def update_chain(self, chain_id: int, data: ChainUpdate) -> Chain:
        chain = await self.get_chain(chain_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("slug"):
            await self._ensure_slug_free(changes["slug"], chain_id)

        for field, value in changes.items():
            if value is None and field in ("name", "slug"):
                continue
            setattr(chain, field, value)

        await self.db.commit()
        await self.db.refresh(chain)
        logger.info(f"Chain updated: {chain.slug}")
        await self._invalidate(listing_cache_keys(self.settings.API_PREFIX), "chain update")
        return chain

    async def delete_chain(self, chain_id: int) -> Dict[str, Any]:
        """
        Unassign member venues, then delete the chain; venues are kept
        """
        chain = await self.get_chain(chain_id)

        result = await self.db.execute(
            update(Venue)
            .where(Venue.chain_id == chain.id)
            .values(chain_id=None)
            .execution_options(synchronize_session=False)
        )
        unassigned = result.rowcount or 0

        await self.db.delete(chain)
        await self.db.commit()
        logger.info(f"Deleted chain {chain.name} (unassigned {unassigned} venues)")

        await self._invalidate(listing_cache_keys(self.settings.API_PREFIX), "chain deletion")
        return {"success": True, "unassignedCount": unassigned}

    # Users

    async def _get_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    def _grace_cutoff(self):
        return utcnow() - timedelta(days=self.settings.USER_DELETION_GRACE_DAYS)

    async def soft_delete_user(self, user_id: int, admin: User) -> User:
        user = await self._get_user(user_id)
        if user.id == admin.id:
            raise ValidationError("Admins cannot delete their own account", code="SELF_DELETE")
        if user.role == UserRole.ADMIN:
            raise AuthorizationError("Admin accounts cannot be deleted")
        if user.deleted_at is not None:
            raise ValidationError("User is already deleted", code="ALREADY_DELETED")

        user.deleted_at = utcnow()
        await self.db.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user.id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"User {user.id} soft deleted by admin {admin.id}")
        return user

    async def restore_user(self, user_id: int) -> User:
        user = await self._get_user(user_id)
        if user.deleted_at is None:
            raise ValidationError("User is not deleted", code="NOT_DELETED")
        if as_utc(user.deleted_at) <= self._grace_cutoff():
            raise ValidationError("Restore window has expired", code="RESTORE_WINDOW_EXPIRED")

        user.deleted_at = None
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"User {user.id} restored")
        return user

    async def list_deleted_users(self, page: int = 1, per_page: int = 50) -> Tuple[List[Dict[str, Any]], int]:
        cutoff = self._grace_cutoff()
        window = (User.deleted_at.is_not(None), User.deleted_at > cutoff)

        total = await self.db.scalar(select(func.count(User.id)).where(*window))
        result = await self.db.execute(
            select(User)
            .where(*window)
            .order_by(User.deleted_at.desc())
            .limit(per_page)
            .offset((page - 1) * per_page)
        )

        now = utcnow()
        grace = self.settings.USER_DELETION_GRACE_DAYS
        users = [
            {
                "id": user.id,
                "email": user.email,
                "display_name": user.display_name,
                "deleted_at": user.deleted_at,
                "days_remaining": max(0, grace - (now - as_utc(user.deleted_at)).days),
            }
            for user in result.scalars().all()
        ]
        return users, int(total or 0)

    async def purge_expired_users(self) -> int:
        """Permanently delete users whose grace window has passed"""
        result = await self.db.execute(
            delete(User)
            .where(User.deleted_at.is_not(None), User.deleted_at <= self._grace_cutoff())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        deleted = result.rowcount or 0
        logger.info(f"Permanently deleted {deleted} expired users")
        return deleted
