"""
Venue schemas for request/response models
"""

from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, model_validator
from uuid import UUID

from app.models.venue import BusinessStatus


class VenueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: int
    uuid: UUID
    name: str
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    business_status: BusinessStatus
    primary_category: Optional[str] = None
    cuisine: Optional[str] = None
    price_level: Optional[int] = None
    primary_image_ref: Optional[str] = None
    google_place_id: Optional[str] = None
    chain_id: Optional[int] = None
    tags: Dict[str, Any] = {}
    created_at: Optional[datetime] = None


class VenueUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = Field(None, max_length=1000)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    phone: Optional[str] = Field(None, max_length=50)
    website: Optional[str] = Field(None, max_length=500)
    business_status: Optional[BusinessStatus] = None
    primary_category: Optional[str] = Field(None, max_length=100)
    cuisine: Optional[str] = Field(None, max_length=100)
    price_level: Optional[int] = Field(None, ge=0, le=4)

    @model_validator(mode="after")
    def coordinates_paired(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be supplied together")
        return self


class ChainAssignment(BaseModel):
    chain_id: Optional[int] = None


class AllergenScoreSummary(BaseModel):
    average: float
    count: int


class VenueAllergenScores(BaseModel):
    venue_uuid: UUID
    review_count: int
    scores: Dict[str, AllergenScoreSummary]
