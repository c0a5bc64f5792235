"""
Google Places API client

Every call made is recorded with the usage tracker; tracking failures never
reach the caller.
"""

from typing import Any, Dict, List, Optional
import logging
import time

import httpx

from app.config import Settings
from app.core.best_effort import best_effort
from app.core.exceptions import ExternalServiceError, PlaceDetailsError, ProviderConfigurationError
from app.services.usage_tracker import ApiUsageTracker
from app.services.venue_types import SEARCH_TYPE

logger = logging.getLogger(__name__)

TEXT_SEARCH_PATH = "/maps/api/place/textsearch/json"
DETAILS_PATH = "/maps/api/place/details/json"
PHOTO_PATH = "/maps/api/place/photo"

DETAILS_FIELDS = (
    "name,formatted_address,geometry,rating,user_ratings_total,price_level,"
    "business_status,types,photos,reviews,opening_hours"
)

# Statuses Google returns with HTTP 200 that still mean the call worked
SUCCESS_STATUSES = {"OK", "ZERO_RESULTS"}


class GooglePlacesClient:
    """
    Async client for text search, place details and photo download
    """

    def __init__(
        self,
        settings: Settings,
        tracker: Optional[ApiUsageTracker] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.settings = settings
        self.tracker = tracker
        self.http = http_client or httpx.AsyncClient(
            base_url=settings.GOOGLE_PLACES_BASE_URL,
            timeout=settings.GOOGLE_PLACES_TIMEOUT
        )

    @property
    def is_configured(self) -> bool:
        return self.settings.google_places_available

    async def close(self):
        await self.http.aclose()

    async def _record(self, api_service: str, endpoint: str, params: Dict[str, Any],
                      status: int, success: bool, started: float, session_id: Optional[str]):
        if self.tracker is None:
            return
        await best_effort(
            f"Tracking {api_service} usage",
            self.tracker.track_call,
            api_service=api_service,
            endpoint=endpoint,
            request_params=params,
            response_status=status,
            success=success,
            response_time_ms=int((time.perf_counter() - started) * 1000),
            session_id=session_id,
        )

    def _require_key(self) -> str:
        if not self.is_configured:
            raise ProviderConfigurationError("google_places")
        return self.settings.GOOGLE_PLACES_API_KEY

    async def text_search(self, query: str, session_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Dining-biased text search around the configured city centre
        """
        key = self._require_key()
        location = f"{self.settings.SEARCH_BIAS_LAT},{self.settings.SEARCH_BIAS_LNG}"
        tracked = {"query": query, "location": location, "radius": self.settings.SEARCH_BIAS_RADIUS}
        params = {**tracked, "type": SEARCH_TYPE, "key": key}

        started = time.perf_counter()
        try:
            response = await self.http.get(TEXT_SEARCH_PATH, params=params)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            await self._record("places_text_search", TEXT_SEARCH_PATH, tracked, 0, False, started, session_id)
            logger.error(f"Google text search request failed: {e}")
            raise ExternalServiceError("google_places", "Google Places request failed")

        api_status = data.get("status")
        success = response.is_success and api_status in SUCCESS_STATUSES
        await self._record(
            "places_text_search", TEXT_SEARCH_PATH, tracked,
            response.status_code, success, started, session_id
        )

        if not success:
            message = data.get("error_message") or api_status or f"HTTP {response.status_code}"
            logger.error(f"Google text search error: {message}")
            raise ExternalServiceError("google_places", message, status=response.status_code)

        return data.get("results", [])

    async def place_details(self, place_id: str, session_id: Optional[str] = None) -> Dict[str, Any]:
        key = self._require_key()
        tracked = {"place_id": place_id, "fields": DETAILS_FIELDS}

        started = time.perf_counter()
        try:
            response = await self.http.get(DETAILS_PATH, params={**tracked, "key": key})
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            await self._record("places_details", DETAILS_PATH, tracked, 0, False, started, session_id)
            logger.error(f"Google details request failed for {place_id}: {e}")
            raise ExternalServiceError("google_places", "Google Places request failed")

        success = response.is_success and data.get("status") == "OK"
        await self._record(
            "places_details", DETAILS_PATH, tracked,
            response.status_code, success, started, session_id
        )

        if not success:
            message = data.get("error_message") or "Google Places API error"
            logger.error(f"Google details error for {place_id}: {message}")
            raise PlaceDetailsError(place_id, message)

        return data.get("result") or {}

    async def fetch_photo(self, photo_reference: str, session_id: Optional[str] = None) -> bytes:
        key = self._require_key()
        tracked = {"maxwidth": self.settings.GOOGLE_PHOTO_MAX_WIDTH, "photo_reference": photo_reference}

        started = time.perf_counter()
        try:
            response = await self.http.get(
                PHOTO_PATH,
                params={**tracked, "key": key},
                follow_redirects=True
            )
        except httpx.HTTPError as e:
            await self._record("places_photos", PHOTO_PATH, tracked, 0, False, started, session_id)
            raise ExternalServiceError("google_places", f"Photo download failed: {e}")

        await self._record(
            "places_photos", PHOTO_PATH, tracked,
            response.status_code, response.is_success, started, session_id
        )

        if not response.is_success:
            raise ExternalServiceError(
                "google_places",
                f"Photo download failed with HTTP {response.status_code}",
                status=response.status_code
            )
        return response.content
