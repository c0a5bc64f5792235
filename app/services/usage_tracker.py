"""
Usage and cost tracking for paid Google API calls
"""

from calendar import monthrange
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.models.api_usage import ApiUsageLog
from app.models.base import utcnow

logger = logging.getLogger(__name__)

# USD per request
API_COSTS = {
    "places_text_search": 0.032,
    "places_nearby_search": 0.032,
    "places_details": 0.017,
    "places_photos": 0.007,
    "maps_static": 0.002,
    "geocoding": 0.005,
    "directions": 0.005,
    "distance_matrix": 0.005,
}

FRIENDLY_NAMES = {
    "places_text_search": "text_search",
    "places_nearby_search": "nearby_search",
    "places_details": "place_details",
    "places_photos": "photos",
    "maps_static": "maps",
    "geocoding": "geocoding",
    "directions": "directions",
    "distance_matrix": "distance_matrix",
}


def _day_bounds(day: date):
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def _month_bounds(year: int, month: int):
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    days = monthrange(year, month)[1]
    return start, start + timedelta(days=days)


class ApiUsageTracker:
    """
    Writes one usage row per provider call through its own session

    Rows are committed independently of the request transaction so a failed
    import still leaves a record of the calls it paid for.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def track_call(
        self,
        api_service: str,
        endpoint: str,
        response_status: int,
        success: bool,
        response_time_ms: Optional[int] = None,
        request_params: Optional[Dict[str, Any]] = None,
        user_id: Optional[int] = None,
        venue_id: Optional[int] = None,
        session_id: Optional[str] = None
    ) -> None:
        cost = API_COSTS.get(api_service, 0.0)
        async with self.session_factory() as session:
            session.add(ApiUsageLog(
                api_service=api_service,
                endpoint=endpoint,
                request_params=request_params,
                response_status=response_status,
                success=success,
                cost_per_request=cost,
                quota_consumed=1,
                response_time_ms=response_time_ms,
                user_id=user_id,
                venue_id=venue_id,
                session_id=session_id,
                request_timestamp=utcnow(),
            ))
            await session.commit()

        logger.info(
            f"API usage tracked: {api_service} ${cost:.4f} {'SUCCESS' if success else 'FAILED'}",
            extra={"api_service": api_service, "response_status": response_status}
        )

    async def _summary_by_service(self, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        stmt = (
            select(
                ApiUsageLog.api_service,
                func.count(ApiUsageLog.id).label("total_requests"),
                func.sum(case((ApiUsageLog.success.is_(True), 1), else_=0)).label("successful_requests"),
                func.sum(case((ApiUsageLog.success.is_(False), 1), else_=0)).label("failed_requests"),
                func.sum(ApiUsageLog.cost_per_request).label("total_cost"),
                func.avg(ApiUsageLog.response_time_ms).label("avg_response_time_ms"),
                func.sum(ApiUsageLog.quota_consumed).label("total_quota_consumed"),
            )
            .where(
                ApiUsageLog.request_timestamp >= start,
                ApiUsageLog.request_timestamp < end
            )
            .group_by(ApiUsageLog.api_service)
            .order_by(func.count(ApiUsageLog.id).desc())
        )
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()

        return [
            {
                "api_service": row.api_service,
                "total_requests": int(row.total_requests or 0),
                "successful_requests": int(row.successful_requests or 0),
                "failed_requests": int(row.failed_requests or 0),
                "total_cost": round(float(row.total_cost or 0), 4),
                "avg_response_time_ms": (
                    round(float(row.avg_response_time_ms), 1)
                    if row.avg_response_time_ms is not None else None
                ),
                "total_quota_consumed": int(row.total_quota_consumed or 0),
            }
            for row in rows
        ]

    async def _successful_totals(self, start: datetime, end: datetime):
        """Request count, cost and per-service breakdown of successful calls"""
        async with self.session_factory() as session:
            rows = (await session.execute(
                select(
                    ApiUsageLog.api_service,
                    func.count(ApiUsageLog.id).label("requests"),
                    func.sum(ApiUsageLog.cost_per_request).label("cost"),
                )
                .where(
                    ApiUsageLog.request_timestamp >= start,
                    ApiUsageLog.request_timestamp < end,
                    ApiUsageLog.success.is_(True)
                )
                .group_by(ApiUsageLog.api_service)
            )).all()

        breakdown = {
            FRIENDLY_NAMES.get(row.api_service, row.api_service): int(row.requests)
            for row in rows
        }
        requests = sum(int(row.requests) for row in rows)
        cost = round(sum(float(row.cost or 0) for row in rows), 4)
        return requests, cost, breakdown

    async def daily_usage(self, day: Optional[date] = None) -> List[Dict[str, Any]]:
        start, end = _day_bounds(day or utcnow().date())
        return await self._summary_by_service(start, end)

    async def monthly_usage(self, year: Optional[int] = None, month: Optional[int] = None) -> List[Dict[str, Any]]:
        now = utcnow()
        start, end = _month_bounds(year or now.year, month or now.month)
        return await self._summary_by_service(start, end)

    async def billing_cycle_usage(self) -> Dict[str, Any]:
        """
        Google bills per calendar month; only successful calls are billed
        """
        now = utcnow()
        start, end = _month_bounds(now.year, now.month)
        requests, cost, breakdown = await self._successful_totals(start, end)

        last_day = (end - timedelta(days=1)).date()
        return {
            "billing_cycle_usage": requests,
            "billing_cycle_cost": cost,
            "billing_cycle_start": start.date().isoformat(),
            "billing_cycle_end": last_day.isoformat(),
            "days_in_cycle": (end - start).days,
            "days_remaining": (last_day - now.date()).days,
            "usage_breakdown": breakdown,
            "last_updated": now.isoformat(),
        }

    async def usage_stats(self) -> Dict[str, Any]:
        now = utcnow()
        day_start, day_end = _day_bounds(now.date())
        month_start, month_end = _month_bounds(now.year, now.month)

        daily_requests, daily_cost, breakdown = await self._successful_totals(day_start, day_end)
        monthly_requests, monthly_cost, _ = await self._successful_totals(month_start, month_end)

        return {
            "daily_usage": daily_requests,
            "monthly_usage": monthly_requests,
            "daily_cost": daily_cost,
            "monthly_cost": monthly_cost,
            "usage_breakdown": breakdown,
            "last_updated": now.isoformat(),
        }
