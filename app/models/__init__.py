"""
Database models
"""

from app.models.user import User, UserRole, RefreshToken
from app.models.chain import Chain
from app.models.venue import Venue, BusinessStatus
from app.models.review import Review, ReviewAllergenScore
from app.models.api_usage import ApiUsageLog

__all__ = [
    "User",
    "UserRole",
    "RefreshToken",
    "Chain",
    "Venue",
    "BusinessStatus",
    "Review",
    "ReviewAllergenScore",
    "ApiUsageLog"
]
