"""Dependency injection providers for FastAPI"""
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from fastapi import HTTPException, Query
from pydantic import ValidationError

from backend.call_log import CallLogRepository, get_call_log_repository
from backend.config import get_daily_average_mode, get_internal_user_ids, get_lag_thresholds, split_csv
from backend.constants import DEFAULT_LOOKBACK_DAYS
from backend.schemas import DateRange
from lag_analysis.models import LagThresholds


def get_repository() -> CallLogRepository:
    return get_call_log_repository()


def get_thresholds() -> LagThresholds:
    return get_lag_thresholds()


def get_average_mode() -> str:
    return get_daily_average_mode()


def today() -> date:
    return datetime.now(timezone.utc).date()


def get_date_range(
    start_date: Optional[date] = Query(None, description="First day (inclusive), defaults to 7 days ago"),
    end_date: Optional[date] = Query(None, description="Last day (inclusive), defaults to today"),
) -> DateRange:
    end = end_date or today()
    start = start_date or (end - timedelta(days=DEFAULT_LOOKBACK_DAYS))
    try:
        return DateRange(start_date=start, end_date=end)
    except ValidationError:
        raise HTTPException(status_code=400, detail="start_date must be on or before end_date")


def get_excluded_users(
    exclude_users: Optional[str] = Query(
        None, description="Comma-separated user ids; omit to exclude the configured internal users"
    ),
) -> List[str]:
    if exclude_users is None:
        return get_internal_user_ids()
    return split_csv(exclude_users)
