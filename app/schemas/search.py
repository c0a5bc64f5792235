"""
Search and import schemas
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel


class ImportRequest(BaseModel):
    place_id: Optional[str] = None


class ImportedPlace(BaseModel):
    id: int
    uuid: str
    name: str
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    primary_category: Optional[str] = None
    primary_image_ref: Optional[str] = None
    google_place_id: Optional[str] = None
    tags: Dict[str, Any] = {}

    @classmethod
    def from_venue(cls, venue) -> "ImportedPlace":
        return cls(
            id=venue.id,
            uuid=str(venue.uuid),
            name=venue.name,
            address=venue.address,
            latitude=venue.latitude,
            longitude=venue.longitude,
            primary_category=venue.primary_category,
            primary_image_ref=venue.primary_image_ref,
            google_place_id=venue.google_place_id,
            tags=venue.tags or {},
        )


class ImportResponse(BaseModel):
    success: bool = True
    message: str
    place_id: str
    imported: bool
    place: ImportedPlace
