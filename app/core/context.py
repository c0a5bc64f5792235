"""
Application context: the shared connection pool, cache and API clients

Built once by the application lifespan and attached to app.state; request
handlers reach it through the get_context dependency.
"""

from dataclasses import dataclass
import logging

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from app.config import Settings
from app.core.cache import CacheManager
from app.core.database import create_engine_from_settings, create_session_factory, init_db, close_db
from app.core.redis import init_redis
from app.services.image_storage import ImageStorage
from app.services.places_client import GooglePlacesClient
from app.services.usage_tracker import ApiUsageTracker

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker
    cache: CacheManager
    usage_tracker: ApiUsageTracker
    places: GooglePlacesClient
    images: ImageStorage

    @classmethod
    async def open(cls, settings: Settings, create_tables: bool = True) -> "AppContext":
        engine = create_engine_from_settings(settings)
        if create_tables:
            await init_db(engine)
        session_factory = create_session_factory(engine)

        cache = CacheManager(await init_redis(settings))
        tracker = ApiUsageTracker(session_factory)

        context = cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            cache=cache,
            usage_tracker=tracker,
            places=GooglePlacesClient(settings, tracker),
            images=ImageStorage(settings.IMAGE_STORAGE_DIR, settings.IMAGE_PUBLIC_PREFIX),
        )
        logger.info(
            f"Application context opened (google_places={'on' if context.places.is_configured else 'off'})"
        )
        return context

    async def close(self):
        await self.places.close()
        await self.cache.backend.close()
        await close_db(self.engine)
        logger.info("Application context closed")


def get_context(request: Request) -> AppContext:
    return request.app.state.context
