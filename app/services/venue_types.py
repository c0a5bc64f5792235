"""
Venue type validation and categorization for dining establishments

Only places that look like somewhere to eat are importable from Google Places.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional


# Google Places types we accept, in priority order
APPROVED_DINING_TYPES = [
    "restaurant",
    "cafe",
    "bakery",
    "bar",
    "meal_takeaway",
    "meal_delivery",
    "food_court",
    "ice_cream_shop",
    "pizza_restaurant",
    "sandwich_shop",
    "food",
]

EXCLUDED_TYPES = {
    "supermarket",
    "grocery_or_supermarket",
    "convenience_store",
    "liquor_store",
    "store",
    "gas_station",
    "beauty_salon",
    "pharmacy",
    "shopping_mall",
    "department_store",
    "electronics_store",
    "clothing_store",
    "bank",
    "atm",
    "hospital",
    "doctor",
    "dentist",
}

DINING_TYPE_MAP = {
    "restaurant": "restaurant",
    "cafe": "cafe",
    "bakery": "bakery",
    "bar": "bar",
    "meal_takeaway": "takeaway",
    "meal_delivery": "delivery",
    "food_court": "food_court",
    "ice_cream_shop": "dessert",
    "pizza_restaurant": "pizza",
    "sandwich_shop": "sandwich",
    "food": "general",
}

EXCLUDED_NAME_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"supermarket",
        r"grocery",
        r"convenience",
        r"pharmacy",
        r"chemist",
        r"boots",
        r"tesco(?!\s+(cafe|express))",
        r"sainsbury(?!s?\s+cafe)",
        r"asda(?!\s+cafe)",
        r"morrisons(?!\s+cafe)",
        r"lidl",
        r"aldi",
        r"co-?op(?!\s+(cafe|deli))",
    )
]

# Type filter sent with text searches
SEARCH_TYPE = "restaurant"

@dataclass
class VenueTypeValidation:
    is_valid: bool
    primary_category: str
    dining_type: str
    excluded_reasons: List[str] = field(default_factory=list)


def validate_venue_types(place_types: Optional[Iterable[str]]) -> VenueTypeValidation:
    types = list(place_types or [])

    excluded = [t for t in types if t in EXCLUDED_TYPES]
    if excluded:
        return VenueTypeValidation(False, "excluded", "excluded", excluded)

    primary = next((t for t in types if t in APPROVED_DINING_TYPES), None)
    if primary is None:
        return VenueTypeValidation(
            False, "unknown", "unknown", ["No recognized dining venue type found"]
        )

    return VenueTypeValidation(True, primary, DINING_TYPE_MAP.get(primary, "general"))


def validate_venue_name(name: Optional[str]) -> bool:
    """False when the name looks like a shop or pharmacy rather than a dining venue"""
    if not name:
        return False
    return not any(pattern.search(name) for pattern in EXCLUDED_NAME_PATTERNS)


def validate_place(name: Optional[str], place_types: Optional[Iterable[str]]) -> VenueTypeValidation:
    """Type and name validation combined"""
    result = validate_venue_types(place_types)
    if not result.is_valid:
        return result
    if not validate_venue_name(name):
        return VenueTypeValidation(False, "excluded", "excluded", ["Invalid venue name pattern"])
    return result
