"""
Review and per-allergen score models
"""

from sqlalchemy import Column, Integer, Text, Date, ForeignKey, String, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.models.base import BaseModel


class Review(BaseModel):
    """
    One user's assessment of one visit to a venue
    """
    __tablename__ = "reviews"

    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    overall_rating = Column(Integer, nullable=False)
    comment = Column(Text)
    visit_date = Column(Date)

    # Relationships
    venue = relationship("Venue", back_populates="reviews")
    user = relationship("User", back_populates="reviews")
    allergen_scores = relationship(
        "ReviewAllergenScore",
        back_populates="review",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    __table_args__ = (
        CheckConstraint("overall_rating BETWEEN 1 AND 5", name="ck_reviews_overall_rating"),
    )

    def __repr__(self):
        return f"<Review(id={self.id}, venue_id={self.venue_id}, user_id={self.user_id})>"


class ReviewAllergenScore(Base):
    """
    Score 0-5 for one allergen on one review; a missing row means "not rated"
    """
    __tablename__ = "review_allergen_scores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    review_id = Column(Integer, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True)
    allergen_code = Column(String(50), nullable=False)
    score = Column(Integer, nullable=False)

    review = relationship("Review", back_populates="allergen_scores")

    __table_args__ = (
        UniqueConstraint("review_id", "allergen_code", name="uq_review_allergen"),
        CheckConstraint("score BETWEEN 0 AND 5", name="ck_allergen_score_range"),
    )
