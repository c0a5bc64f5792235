"""
Review schemas
"""

from datetime import date, datetime
from typing import Dict, Optional
import uuid

from pydantic import BaseModel, Field, field_validator

from app.core.allergens import ALLERGEN_ORDER, sort_allergen_scores


def _validate_scores(scores: Optional[Dict[str, int]]) -> Optional[Dict[str, int]]:
    if scores is None:
        return None
    unknown = sorted(set(scores) - set(ALLERGEN_ORDER))
    if unknown:
        raise ValueError(f"Unknown allergen codes: {', '.join(unknown)}")
    for code, score in scores.items():
        if not 0 <= score <= 5:
            raise ValueError(f"Score for {code} must be between 0 and 5")
    return scores


class ReviewCreate(BaseModel):
    venue_uuid: uuid.UUID
    overall_rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=5000)
    visit_date: Optional[date] = None
    allergen_scores: Dict[str, int] = {}

    @field_validator("allergen_scores")
    @classmethod
    def check_scores(cls, v):
        return _validate_scores(v)


class ReviewUpdate(BaseModel):
    overall_rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=5000)
    visit_date: Optional[date] = None
    allergen_scores: Optional[Dict[str, int]] = None

    @field_validator("allergen_scores")
    @classmethod
    def check_scores(cls, v):
        return _validate_scores(v)


class ReviewResponse(BaseModel):
    id: int
    venue_id: int
    user_id: int
    overall_rating: int
    comment: Optional[str] = None
    visit_date: Optional[date] = None
    allergen_scores: Dict[str, int] = {}
    created_at: Optional[datetime] = None

    @classmethod
    def from_review(cls, review) -> "ReviewResponse":
        scores = {s.allergen_code: s.score for s in review.allergen_scores}
        return cls(
            id=review.id,
            venue_id=review.venue_id,
            user_id=review.user_id,
            overall_rating=review.overall_rating,
            comment=review.comment,
            visit_date=review.visit_date,
            allergen_scores=sort_allergen_scores(scores),
            created_at=review.created_at,
        )
