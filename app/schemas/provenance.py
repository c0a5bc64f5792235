"""
Venue provenance: where a venue record came from

Stored in Venue.tags. Rows written before provenance existed carry no
"kind" key; those with a Google place id are treated as imports.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class GooglePlacesProvenance(BaseModel):
    model_config = ConfigDict(extra="allow")

    kind: Literal["google_places"] = "google_places"
    place_id: str
    imported_at: datetime
    dining_type: Optional[str] = None
    google_types: List[str] = []
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    opening_hours: Optional[List[str]] = None
    photo_reference: Optional[str] = None


class ManualProvenance(BaseModel):
    model_config = ConfigDict(extra="allow")

    kind: Literal["manual"] = "manual"


Provenance = Annotated[
    Union[GooglePlacesProvenance, ManualProvenance],
    Field(discriminator="kind")
]

_provenance_adapter = TypeAdapter(Provenance)


def parse_provenance(tags: Optional[dict]) -> Union[GooglePlacesProvenance, ManualProvenance]:
    tags = dict(tags or {})
    if "kind" not in tags:
        tags["kind"] = "google_places" if tags.get("place_id") else "manual"
    try:
        return _provenance_adapter.validate_python(tags)
    except ValidationError:
        return ManualProvenance()
