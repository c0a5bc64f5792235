"""
API endpoints module
"""

from . import auth, search, venues, chains, reviews, admin, health

__all__ = [
    "auth",
    "search",
    "venues",
    "chains",
    "reviews",
    "admin",
    "health"
]
