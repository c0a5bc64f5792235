"""
Chain model
"""

from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship

from app.models.base import BaseModel


class Chain(BaseModel):
    """
    Brand grouping several venues
    """
    __tablename__ = "chains"

    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text)
    logo_path = Column(String(500))
    featured_image_path = Column(String(500))
    category = Column(String(100))
    website = Column(String(500))

    # Relationships
    venues = relationship("Venue", back_populates="chain")

    def __repr__(self):
        return f"<Chain(id={self.id}, slug={self.slug})>"
