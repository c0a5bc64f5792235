"""
Venue model
"""

import enum
import uuid

from sqlalchemy import Column, String, Integer, Float, Text, ForeignKey, Enum, CheckConstraint, Uuid
from sqlalchemy.orm import relationship

from app.models.base import BaseModel, JSONType


class BusinessStatus(str, enum.Enum):
    OPERATIONAL = "OPERATIONAL"
    CLOSED_TEMPORARILY = "CLOSED_TEMPORARILY"
    CLOSED_PERMANENTLY = "CLOSED_PERMANENTLY"

    @classmethod
    def parse(cls, value) -> "BusinessStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.OPERATIONAL


class Venue(BaseModel):
    """
    A single physical dining establishment
    """
    __tablename__ = "venues"

    uuid = Column(Uuid, unique=True, nullable=False, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False, index=True)
    address = Column(Text, nullable=False, default="")
    latitude = Column(Float)
    longitude = Column(Float)
    phone = Column(String(50))
    website = Column(String(500))
    business_status = Column(
        Enum(BusinessStatus),
        default=BusinessStatus.OPERATIONAL,
        nullable=False,
        index=True
    )
    primary_category = Column(String(100))
    cuisine = Column(String(100))
    price_level = Column(Integer)
    primary_image_ref = Column(String(500))
    google_place_id = Column(String(255), unique=True, index=True)
    tags = Column(JSONType, default=dict, nullable=False)
    allergen_scores_cache = Column(JSONType)
    chain_id = Column(Integer, ForeignKey("chains.id", ondelete="SET NULL"), index=True)

    # Relationships
    chain = relationship("Chain", back_populates="venues")
    reviews = relationship("Review", back_populates="venue")

    __table_args__ = (
        CheckConstraint(
            "(latitude IS NULL) = (longitude IS NULL)",
            name="ck_venues_coordinates_paired"
        ),
    )

    @property
    def provenance(self):
        from app.schemas.provenance import parse_provenance
        return parse_provenance(self.tags)

    def __repr__(self):
        return f"<Venue(id={self.id}, uuid={self.uuid}, name={self.name})>"
