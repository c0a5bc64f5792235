"""
External API usage log model
"""

from sqlalchemy import Column, Integer, String, Boolean, Float, DateTime

from app.core.database import Base
from app.models.base import JSONType, utcnow


class ApiUsageLog(Base):
    """
    One row per call made to a paid external API
    """
    __tablename__ = "google_api_usage"

    id = Column(Integer, primary_key=True, autoincrement=True)
    api_service = Column(String(50), nullable=False, index=True)
    endpoint = Column(String(255), nullable=False)
    request_params = Column(JSONType)
    response_status = Column(Integer, nullable=False)
    success = Column(Boolean, nullable=False, index=True)
    cost_per_request = Column(Float, nullable=False, default=0.0)
    quota_consumed = Column(Integer, nullable=False, default=1)
    response_time_ms = Column(Integer)
    user_id = Column(Integer)
    venue_id = Column(Integer)
    session_id = Column(String(255))
    request_timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self):
        return f"<ApiUsageLog(id={self.id}, service={self.api_service}, success={self.success})>"
