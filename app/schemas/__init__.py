"""
Pydantic schemas for request and response validation
"""

from app.schemas.user import (
    UserCreate,
    UserLogin,
    UserResponse,
    Token,
    TokenRefresh
)
from app.schemas.venue import (
    VenueResponse,
    VenueUpdate,
    VenueAllergenScores
)
from app.schemas.chain import (
    ChainCreate,
    ChainUpdate,
    ChainResponse
)
from app.schemas.review import (
    ReviewCreate,
    ReviewUpdate,
    ReviewResponse
)
from app.schemas.search import (
    ImportRequest,
    ImportResponse
)
from app.schemas.provenance import (
    GooglePlacesProvenance,
    ManualProvenance,
    parse_provenance
)
from app.schemas.response import (
    MessageResponse,
    PaginatedResponse
)

__all__ = [
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "Token",
    "TokenRefresh",
    "VenueResponse",
    "VenueUpdate",
    "VenueAllergenScores",
    "ChainCreate",
    "ChainUpdate",
    "ChainResponse",
    "ReviewCreate",
    "ReviewUpdate",
    "ReviewResponse",
    "ImportRequest",
    "ImportResponse",
    "GooglePlacesProvenance",
    "ManualProvenance",
    "parse_provenance",
    "MessageResponse",
    "PaginatedResponse"
]
