"""
Chain schemas
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class ChainBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    logo_path: Optional[str] = Field(None, max_length=500)
    featured_image_path: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=500)


class ChainCreate(ChainBase):
    pass


class ChainUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, min_length=1, max_length=255, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    logo_path: Optional[str] = Field(None, max_length=500)
    featured_image_path: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=500)


class ChainResponse(ChainBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    venue_count: Optional[int] = None


class ChainDeleteResponse(BaseModel):
    success: bool = True
    unassignedCount: int
