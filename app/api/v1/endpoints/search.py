"""
Hybrid search and Google Places import endpoints
"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import AppContext, get_context
from app.core.database import get_session
from app.schemas.search import ImportRequest, ImportResponse, ImportedPlace
from app.services.import_service import ImportService
from app.services.search_service import SearchService

router = APIRouter()


def _search_service(db: AsyncSession, context: AppContext) -> SearchService:
    return SearchService(db, context.cache, context.places, context.settings)


@router.get("")
async def search(
    q: Optional[str] = Query(None, description="Free-text query, at least 2 characters"),
    google_fallback: bool = Query(False, description="Query Google Places even when local results suffice"),
    x_session_id: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Search local venues, falling back to Google Places when there are fewer than three
    """
    return await _search_service(db, context).search(q, force_fallback=google_fallback, session_id=x_session_id)


@router.get("/external")
async def search_external(
    q: Optional[str] = Query(None),
    x_session_id: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    "Load more" search that always consults Google Places
    """
    return await _search_service(db, context).search(q, force_fallback=True, session_id=x_session_id)


@router.post("/import", response_model=ImportResponse)
async def import_place(
    body: ImportRequest,
    x_session_id: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Persist a Google Places result as a local venue
    """
    service = ImportService(db, context.cache, context.places, context.images, context.settings)
    venue, imported = await service.import_place(body.place_id, session_id=x_session_id)

    return ImportResponse(
        success=True,
        message="Place imported successfully" if imported else "Place already in database",
        place_id=venue.google_place_id,
        imported=imported,
        place=ImportedPlace.from_venue(venue),
    )
