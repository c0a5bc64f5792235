"""
Test configuration and fixtures
Each test gets its own SQLite database file, an in-memory cache and a
stubbed Google Places API
"""

import pytest
import pytest_asyncio
from typing import Any, AsyncGenerator, Dict, List, Optional
from uuid import uuid4
import os

import httpx
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

# Set test environment before the app reads its settings
os.environ["APP_ENV"] = "testing"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-1234"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-that-is-long-enough-1234"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./trustdiner-test.db"
os.environ["PROMETHEUS_ENABLED"] = "false"

from app.config import Settings
from app.core.cache import CacheManager
from app.core.context import AppContext
from app.core.database import create_engine_from_settings, create_session_factory, init_db
from app.core.redis import InMemoryCache
from app.core.security import security_manager
from app.models.chain import Chain
from app.models.review import Review, ReviewAllergenScore
from app.models.user import User, UserRole
from app.models.venue import BusinessStatus, Venue
from app.services.image_storage import ImageStorage
from app.services.places_client import DETAILS_PATH, PHOTO_PATH, TEXT_SEARCH_PATH, GooglePlacesClient
from app.services.usage_tracker import ApiUsageTracker

TEST_PASSWORD = "TestPass123!"
FAKE_JPEG = b"\xff\xd8\xff\xe0fake-jpeg-bytes"


def google_place(place_id: str, name: str, address: str = "1 Test Street, London",
                 types: Optional[List[str]] = None, **extra) -> Dict[str, Any]:
    """A result in the shape Google Places returns"""
    place = {
        "place_id": place_id,
        "name": name,
        "formatted_address": address,
        "geometry": {"location": {"lat": 51.51, "lng": -0.13}},
        "rating": 4.5,
        "user_ratings_total": 120,
        "price_level": 2,
        "business_status": "OPERATIONAL",
        "types": types if types is not None else ["restaurant", "food", "point_of_interest"],
        "photos": [{"photo_reference": f"photo-{place_id}", "width": 1024, "height": 768}],
    }
    place.update(extra)
    return place


class FakeGooglePlaces:
    """
    Stand-in for the Google Places HTTP API, served through httpx.MockTransport
    """

    def __init__(self):
        self.text_results: List[Dict[str, Any]] = []
        self.details: Dict[str, Dict[str, Any]] = {}
        self.fail_text_search = False
        self.fail_photo = False
        self.details_outage: Optional[str] = None
        self.calls = {"text_search": 0, "details": 0, "photo": 0}
        self.requests: List[httpx.Request] = []

    def add_place(self, place: Dict[str, Any], in_search: bool = True, **detail_extra):
        if in_search:
            self.text_results.append(place)
        self.details[place["place_id"]] = {
            **place,
            "opening_hours": {"weekday_text": ["Monday: 12:00 - 22:00"]},
            **detail_extra
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == TEXT_SEARCH_PATH:
            self.calls["text_search"] += 1
            if self.fail_text_search:
                return httpx.Response(500, json={"status": "UNKNOWN_ERROR", "error_message": "Backend error"})
            status = "OK" if self.text_results else "ZERO_RESULTS"
            return httpx.Response(200, json={"status": status, "results": self.text_results})

        if path == DETAILS_PATH:
            self.calls["details"] += 1
            if self.details_outage == "unreachable":
                raise httpx.ConnectError("Connection refused", request=request)
            if self.details_outage == "html":
                return httpx.Response(502, content=b"<html>Bad Gateway</html>")
            result = self.details.get(request.url.params.get("place_id"))
            if result is None:
                return httpx.Response(200, json={"status": "NOT_FOUND"})
            return httpx.Response(200, json={"status": "OK", "result": result})

        if path == PHOTO_PATH:
            self.calls["photo"] += 1
            if self.fail_photo:
                return httpx.Response(403, content=b"")
            return httpx.Response(200, content=FAKE_JPEG, headers={"content-type": "image/jpeg"})

        return httpx.Response(404, json={"status": "INVALID_REQUEST"})


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        GOOGLE_PLACES_API_KEY="test-google-places-key",
        IMAGE_STORAGE_DIR=str(tmp_path / "images"),
    )


@pytest.fixture
def places_stub() -> FakeGooglePlaces:
    return FakeGooglePlaces()


@pytest_asyncio.fixture
async def context(test_settings, places_stub) -> AsyncGenerator[AppContext, None]:
    """Application context wired to test doubles"""
    engine = create_engine_from_settings(test_settings)
    await init_db(engine)
    session_factory = create_session_factory(engine)
    tracker = ApiUsageTracker(session_factory)

    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(places_stub.handler),
        base_url=test_settings.GOOGLE_PLACES_BASE_URL
    )
    ctx = AppContext(
        settings=test_settings,
        engine=engine,
        session_factory=session_factory,
        cache=CacheManager(InMemoryCache()),
        usage_tracker=tracker,
        places=GooglePlacesClient(test_settings, tracker, http_client),
        images=ImageStorage(test_settings.IMAGE_STORAGE_DIR, test_settings.IMAGE_PUBLIC_PREFIX),
    )
    yield ctx
    await ctx.close()


@pytest_asyncio.fixture
async def db_session(context) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with context.session_factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()


@pytest_asyncio.fixture
async def client(context) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the test context attached"""
    from app.main import app

    # ASGITransport does not run the lifespan, so attach the context directly
    app.state.context = context
    try:
        # Use raise_app_exceptions=False so 500 handlers can be asserted on
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
            yield ac
    finally:
        app.state.context = None


# User fixtures

async def create_user(session: AsyncSession, role: UserRole = UserRole.USER, **kwargs) -> User:
    user = User(
        email=kwargs.pop("email", f"user_{uuid4().hex[:8]}@example.com"),
        password_hash=security_manager.hash_password(kwargs.pop("password", TEST_PASSWORD)),
        display_name=kwargs.pop("display_name", "Test Diner"),
        role=role,
        is_active=True,
        **kwargs
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session) -> User:
    return await create_user(db_session)


@pytest_asyncio.fixture
async def test_admin(db_session) -> User:
    return await create_user(
        db_session,
        role=UserRole.ADMIN,
        email=f"admin_{uuid4().hex[:8]}@example.com",
        display_name="Admin User"
    )


def auth_headers_for(user: User, settings: Settings) -> Dict[str, str]:
    token = security_manager.create_access_token(user, settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user, test_settings) -> Dict[str, str]:
    return auth_headers_for(test_user, test_settings)


@pytest.fixture
def admin_headers(test_admin, test_settings) -> Dict[str, str]:
    return auth_headers_for(test_admin, test_settings)


# Venue fixtures

async def create_venue(session: AsyncSession, name: str, **kwargs) -> Venue:
    venue = Venue(
        name=name,
        address=kwargs.pop("address", "10 Test Road, London"),
        latitude=kwargs.pop("latitude", 51.5),
        longitude=kwargs.pop("longitude", -0.12),
        business_status=kwargs.pop("business_status", BusinessStatus.OPERATIONAL),
        primary_category=kwargs.pop("primary_category", "restaurant"),
        tags=kwargs.pop("tags", {"kind": "manual"}),
        **kwargs
    )
    session.add(venue)
    await session.commit()
    await session.refresh(venue)
    return venue


@pytest_asyncio.fixture
async def test_venue(db_session) -> Venue:
    return await create_venue(db_session, "Allergy Aware Kitchen", cuisine="british")


@pytest_asyncio.fixture
async def test_chain(db_session) -> Chain:
    chain = Chain(name="Pizza Palace", slug="pizza-palace", category="pizza")
    db_session.add(chain)
    await db_session.commit()
    await db_session.refresh(chain)
    return chain


async def create_review(session: AsyncSession, venue: Venue, user: User,
                        rating: int = 4, scores: Optional[Dict[str, int]] = None) -> Review:
    review = Review(
        venue_id=venue.id,
        user_id=user.id,
        overall_rating=rating,
        comment="Staff were careful with allergies",
        allergen_scores=[
            ReviewAllergenScore(allergen_code=code, score=score)
            for code, score in (scores or {}).items()
        ],
    )
    session.add(review)
    await session.commit()
    await session.refresh(review)
    return review
