"""Analytics API endpoints for call volume and lag analysis."""

from typing import List

from fastapi import APIRouter, Depends, Request
from loguru import logger
from slowapi import Limiter
from slowapi.util import get_remote_address

from backend.call_log import CallLogRepository
from backend.dependencies import (
    get_average_mode,
    get_date_range,
    get_excluded_users,
    get_repository,
    get_thresholds,
)
from backend.schemas import DateRange
from lag_analysis import aggregate_lag
from lag_analysis.models import LagThresholds

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


@router.get("/lag")
@limiter.limit("30/minute")
async def get_lag_analytics(
    request: Request,
    date_range: DateRange = Depends(get_date_range),
    exclude_users: List[str] = Depends(get_excluded_users),
    repository: CallLogRepository = Depends(get_repository),
    thresholds: LagThresholds = Depends(get_thresholds),
    average_mode: str = Depends(get_average_mode),
):
    """Lag episodes, daily lag stats, and per-component latency breakdowns.

    Analyzes at most the 500 most recent calls in range that have a transcript.
    """
    calls = await repository.fetch_calls_for_lag(
        date_range.start_date, date_range.end_date, exclude_users
    )
    logger.info(
        f"Lag analysis requested: {date_range.start_date} - {date_range.end_date}, "
        f"{len(calls)} calls, {len(exclude_users)} users excluded"
    )

    report = aggregate_lag(calls, thresholds, average_mode=average_mode)

    response = report.to_response()
    response["dateRange"] = date_range.model_dump(mode="json", by_alias=True)
    return response


@router.get("/summary")
async def get_analytics_summary(
    date_range: DateRange = Depends(get_date_range),
    exclude_users: List[str] = Depends(get_excluded_users),
    repository: CallLogRepository = Depends(get_repository),
    thresholds: LagThresholds = Depends(get_thresholds),
):
    """Daily call metrics plus totals for the range."""
    daily_metrics = await repository.get_daily_metrics(
        date_range.start_date, date_range.end_date, exclude_users
    )
    summary = await repository.get_summary(
        date_range.start_date, date_range.end_date, exclude_users
    )

    return {
        "dailyMetrics": daily_metrics,
        "summary": summary,
        "dateRange": date_range.model_dump(mode="json", by_alias=True),
        "lagThresholds": thresholds.model_dump(),
    }
