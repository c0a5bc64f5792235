"""
Allergen codes in their canonical display order
"""

from typing import Dict, TypeVar

T = TypeVar("T")

ALLERGEN_ORDER = (
    "milk",
    "eggs",
    "peanuts",
    "tree_nuts",
    "gluten",
    "fish",
    "crustaceans",
    "molluscs",
    "soybeans",
    "sesame",
    "mustard",
    "celery",
    "sulfites",
    "lupin",
)


def sort_allergen_scores(scores: Dict[str, T]) -> Dict[str, T]:
    """Known allergens first in canonical order, unknown codes after"""
    ordered = {code: scores[code] for code in ALLERGEN_ORDER if code in scores}
    for code, value in scores.items():
        if code not in ordered:
            ordered[code] = value
    return ordered
