"""
Import of Google Places results as local venues
"""

from typing import Any, Dict, Optional, Tuple
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.core.best_effort import best_effort
from app.core.cache import CacheManager, listing_cache_keys, venue_search_keys
from app.core.exceptions import NonDiningVenueError, ProviderConfigurationError, ValidationError
from app.models.base import utcnow
from app.models.venue import BusinessStatus, Venue
from app.schemas.provenance import GooglePlacesProvenance
from app.services.image_storage import ImageStorage
from app.services.places_client import GooglePlacesClient
from app.services.venue_types import validate_place

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class ImportService:
    """
    Fetch details, validate, store the photo and insert the venue once
    """

    def __init__(
        self,
        db: AsyncSession,
        cache: CacheManager,
        places: GooglePlacesClient,
        images: ImageStorage,
        settings: Settings
    ):
        self.db = db
        self.cache = cache
        self.places = places
        self.images = images
        self.settings = settings

    async def find_by_place_id(self, place_id: str) -> Optional[Venue]:
        result = await self.db.execute(
            select(Venue).where(Venue.google_place_id == place_id)
        )
        return result.scalar_one_or_none()

    async def import_place(
        self,
        place_id: Optional[str],
        session_id: Optional[str] = None
    ) -> Tuple[Venue, bool]:
        """
        Returns the venue and whether this call created it
        """
        place_id = (place_id or "").strip()
        if not place_id:
            raise ValidationError("place_id is required", field="place_id", code="PLACE_ID_REQUIRED")

        existing = await self.find_by_place_id(place_id)
        if existing:
            logger.info(f"Place {place_id} already imported as {existing.uuid}")
            return existing, False

        if not self.places.is_configured:
            raise ProviderConfigurationError("google_places")

        details = await self.places.place_details(place_id, session_id=session_id)

        name = details.get("name") or "Unknown"
        place_types = details.get("types") or []
        validation = validate_place(details.get("name"), place_types)
        if not validation.is_valid:
            logger.info(f"Skipping non-dining venue {name} (types: {', '.join(place_types)})")
            raise NonDiningVenueError(name, place_types, validation.excluded_reasons)

        photo_reference = None
        image_ref = None
        photos = details.get("photos") or []
        if photos and photos[0].get("photo_reference"):
            photo_reference = photos[0]["photo_reference"]
            image_ref = await best_effort(
                f"Downloading photo for {name}",
                self._download_photo,
                photo_reference,
                session_id
            )

        provenance = GooglePlacesProvenance(
            place_id=place_id,
            imported_at=utcnow(),
            dining_type=validation.dining_type,
            google_types=place_types,
            rating=details.get("rating"),
            user_ratings_total=details.get("user_ratings_total"),
            opening_hours=(details.get("opening_hours") or {}).get("weekday_text"),
            photo_reference=photo_reference,
            source="google_places",
        )

        location = (details.get("geometry") or {}).get("location") or {}
        latitude, longitude = location.get("lat"), location.get("lng")
        if latitude is None or longitude is None:
            latitude = longitude = None

        values = {
            "uuid": uuid.uuid4(),
            "name": name,
            "address": details.get("formatted_address") or "",
            "latitude": latitude,
            "longitude": longitude,
            "business_status": BusinessStatus.parse(details.get("business_status")),
            "primary_category": validation.primary_category,
            "cuisine": validation.primary_category,
            "price_level": details.get("price_level"),
            "primary_image_ref": image_ref,
            "google_place_id": place_id,
            "tags": provenance.model_dump(mode="json"),
        }

        try:
            venue_id = await self._insert_if_absent(values)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            if image_ref:
                await best_effort("Removing orphaned photo", self.images.delete, image_ref)
            raise

        if venue_id is None:
            # Another request imported the same place between our check and insert
            logger.info(f"Place {place_id} was imported concurrently")
            if image_ref:
                await best_effort("Removing orphaned photo", self.images.delete, image_ref)
            return await self.find_by_place_id(place_id), False

        venue = await self.db.get(Venue, venue_id)
        logger.info(f"Imported place {venue.name} (id={venue.id}, uuid={venue.uuid})")

        await best_effort(
            "Invalidating caches after import",
            self.cache.delete,
            listing_cache_keys(self.settings.API_PREFIX) + venue_search_keys(venue.name, venue.address)
        )
        return venue, True

    async def _insert_if_absent(self, values: Dict[str, Any]) -> Optional[int]:
        """INSERT ... ON CONFLICT (google_place_id) DO NOTHING; None when the row already existed"""
        dialect = self.db.get_bind().dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise RuntimeError(f"Unsupported database dialect for import: {dialect}")

        stmt = (
            insert(Venue)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["google_place_id"])
            .returning(Venue.id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _download_photo(self, photo_reference: str, session_id: Optional[str]) -> str:
        content = await self.places.fetch_photo(photo_reference, session_id=session_id)
        return await self.images.save(content)
