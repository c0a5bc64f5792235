"""
Hybrid venue search: local database first, Google Places fallback
"""

from typing import Any, Dict, Iterable, List, Optional, Set
import logging

from sqlalchemy import select, or_, case
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.core.best_effort import best_effort
from app.core.cache import CacheManager, normalize_search_query, search_cache_key
from app.core.exceptions import ExternalServiceError, ValidationError
from app.models.chain import Chain
from app.models.venue import BusinessStatus, Venue
from app.schemas.provenance import GooglePlacesProvenance
from app.services.places_client import GooglePlacesClient

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


def search_terms(query: str) -> List[str]:
    """Whitespace-split terms longer than one character"""
    normalized = normalize_search_query(query)
    terms = [term for term in normalized.split(" ") if len(term) > 1]
    return terms or [normalized]


def shape_local_venue(venue: Venue, chain_name: Optional[str], relevance: int) -> Dict[str, Any]:
    provenance = venue.provenance
    rating = user_ratings_total = None
    if isinstance(provenance, GooglePlacesProvenance):
        rating = provenance.rating
        user_ratings_total = provenance.user_ratings_total

    status = venue.business_status
    return {
        "place_id": str(venue.uuid),
        "name": venue.name,
        "address": venue.address,
        "latitude": venue.latitude,
        "longitude": venue.longitude,
        "rating": rating,
        "user_ratings_total": user_ratings_total,
        "price_level": venue.price_level,
        "business_status": status.value if isinstance(status, BusinessStatus) else status,
        "primary_category": venue.primary_category,
        "cuisine": venue.cuisine,
        "local_image_url": venue.primary_image_ref,
        "chain_id": venue.chain_id,
        "chain_name": chain_name,
        "google_place_id": venue.google_place_id,
        "relevance_score": relevance,
        "source": "database",
        "inDatabase": True,
        "addable": False,
        "result_type": "local",
    }


def shape_google_place(place: Dict[str, Any]) -> Dict[str, Any]:
    location = (place.get("geometry") or {}).get("location") or {}
    return {
        "place_id": place.get("place_id"),
        "name": place.get("name"),
        "address": place.get("formatted_address"),
        "latitude": location.get("lat"),
        "longitude": location.get("lng"),
        "rating": place.get("rating") or 0,
        "user_ratings_total": place.get("user_ratings_total") or 0,
        "price_level": place.get("price_level") or 0,
        "business_status": place.get("business_status"),
        "types": place.get("types") or [],
        "photos": [
            {
                "photo_reference": photo.get("photo_reference"),
                "width": photo.get("width"),
                "height": photo.get("height"),
            }
            for photo in place.get("photos") or []
        ],
        "source": "google",
        "inDatabase": False,
        "addable": True,
        "result_type": "google",
    }


class SearchService:
    """
    Orchestrates cache lookup, local search, provider fallback and caching
    """

    def __init__(
        self,
        db: AsyncSession,
        cache: CacheManager,
        places: GooglePlacesClient,
        settings: Settings
    ):
        self.db = db
        self.cache = cache
        self.places = places
        self.settings = settings

    async def search(
        self,
        query: Optional[str],
        force_fallback: bool = False,
        session_id: Optional[str] = None
    ) -> Dict[str, Any]:
        term = (query or "").strip()
        if len(term) < MIN_QUERY_LENGTH:
            raise ValidationError(
                "Search query must be at least 2 characters long",
                field="q",
                code="QUERY_TOO_SHORT"
            )

        cache_key = search_cache_key(term)

        if not force_fallback:
            cached = await self.cache.get_json(cache_key)
            if cached is not None:
                logger.info(f"Search cache hit for '{term}' ({len(cached.get('results', []))} results)")
                return {**cached, "cached": True, "query": term}

        local = await self.search_local(term)
        logger.info(f"Local search for '{term}' found {len(local)} venues")

        if len(local) >= self.settings.SEARCH_MIN_LOCAL_RESULTS and not force_fallback:
            payload = {
                "results": local,
                "source": "database",
                "cached": False,
                "query": term,
                "count": len(local),
                "google_available": self.places.is_configured,
            }
            await best_effort("Caching search results", self.cache.set_json, cache_key, payload,
                              self.settings.SEARCH_CACHE_TTL)
            return payload

        if not self.places.is_configured:
            logger.warning("Google Places key not configured, returning local results only")
            return self._local_only(term, local, "API key not configured")

        try:
            places = await self.places.text_search(term, session_id=session_id)
        except ExternalServiceError as e:
            return self._local_only(term, local, e.message)

        external = [shape_google_place(place) for place in places if place.get("place_id")]
        known = await self.existing_place_ids(row["place_id"] for row in external)

        existing = [
            {**row, "inDatabase": True, "addable": False}
            for row in external if row["place_id"] in known
        ]
        new = [row for row in external if row["place_id"] not in known]
        combined = local + existing + new

        payload = {
            "results": combined,
            "source": "hybrid",
            "cached": False,
            "query": term,
            "count": len(combined),
            "google_available": True,
            "breakdown": {
                "database": len(local),
                "google_total": len(external),
                "google_existing": len(existing),
                "google_new": len(new),
            },
        }
        logger.info(
            f"Hybrid search for '{term}': {len(external)} Google results, "
            f"{len(existing)} existing, {len(new)} new"
        )
        await best_effort("Caching search results", self.cache.set_json, cache_key, payload,
                          self.settings.SEARCH_CACHE_TTL)
        return payload

    def _local_only(self, term: str, local: List[Dict[str, Any]], reason: str) -> Dict[str, Any]:
        # Degraded responses are not cached
        return {
            "results": local,
            "source": "database",
            "cached": False,
            "query": term,
            "count": len(local),
            "google_available": False,
            "google_error": reason,
        }

    async def search_local(self, query: str) -> List[Dict[str, Any]]:
        """
        OPERATIONAL venues with coordinates matching any term, best match first
        """
        terms = search_terms(query)

        name_match = or_(*(Venue.name.icontains(t, autoescape=True) for t in terms))
        category_match = or_(
            *(Venue.primary_category.icontains(t, autoescape=True) for t in terms),
            *(Venue.cuisine.icontains(t, autoescape=True) for t in terms)
        )
        address_match = or_(*(Venue.address.icontains(t, autoescape=True) for t in terms))

        relevance = case(
            (name_match, 100),
            (category_match, 75),
            (address_match, 50),
            else_=25
        )

        stmt = (
            select(Venue, Chain.name.label("chain_name"), relevance.label("relevance_score"))
            .outerjoin(Chain, Venue.chain_id == Chain.id)
            .where(
                or_(name_match, category_match, address_match),
                Venue.latitude.is_not(None),
                Venue.longitude.is_not(None),
                Venue.business_status == BusinessStatus.OPERATIONAL
            )
            .order_by(relevance.desc(), Venue.name.asc())
            .limit(self.settings.SEARCH_RESULT_LIMIT)
        )
        result = await self.db.execute(stmt)
        return [
            shape_local_venue(venue, chain_name, int(score))
            for venue, chain_name, score in result.all()
        ]

    async def existing_place_ids(self, place_ids: Iterable[str]) -> Set[str]:
        ids = list(dict.fromkeys(place_ids))
        if not ids:
            return set()
        result = await self.db.execute(
            select(Venue.google_place_id).where(Venue.google_place_id.in_(ids))
        )
        return set(result.scalars().all())
