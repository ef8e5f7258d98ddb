"""Read access to the voice call log collection."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from pydantic import ValidationError
from pymongo.errors import AutoReconnect, PyMongoError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from backend.constants import (
    LAG_ANALYSIS_CALL_LIMIT,
    LONG_CALL_SECONDS,
    MIN_TRANSCRIPT_LENGTH,
    SHORT_CALL_SECONDS,
    CallStatus,
    CallType,
)
from backend.database import get_calls_collection
from backend.exceptions import DataSourceError
from lag_analysis.models import Call

LAG_PROJECTION = {
    "_id": 0,
    "call_id": 1,
    "user_id": 1,
    "initiated_at": 1,
    "duration_seconds": 1,
    "transcript": 1,
    "status": 1,
    "language": 1,
    "is_user_initiated": 1,
}

LISTING_PROJECTION = {
    "_id": 0,
    "call_id": 1,
    "user_id": 1,
    "call_type": 1,
    "language": 1,
    "agent_name": 1,
    "is_new_user": 1,
    "is_user_initiated": 1,
    "initiated_at": 1,
    "answered_at": 1,
    "ended_at": 1,
    "duration_seconds": 1,
    "status": 1,
    "welcome_completed": 1,
    "total_turns": 1,
    "timezone": 1,
    "scheduled_time": 1,
    "transcript": 1,
}

_retry_transient = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
    retry=retry_if_exception_type(AutoReconnect),
    reraise=True
)


def day_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    """UTC [start 00:00, day after end 00:00) for an inclusive date range."""
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return lower, upper


def build_call_filter(
    start: date,
    end: date,
    exclude_users: Optional[List[str]] = None,
) -> Dict[str, Any]:
    lower, upper = day_bounds(start, end)
    query: Dict[str, Any] = {"initiated_at": {"$gte": lower, "$lt": upper}}
    if exclude_users:
        query["user_id"] = {"$nin": list(exclude_users)}
    return query


def _transcript_length_expr() -> Dict[str, Any]:
    return {
        "$cond": [
            {"$eq": [{"$type": "$transcript"}, "string"]},
            {"$strLenCP": "$transcript"},
            0,
        ]
    }


def _call_metrics_group(include_length_buckets: bool) -> Dict[str, Any]:
    group = {
        "total_calls": {"$sum": 1},
        "welcome_calls": {"$sum": {"$cond": [{"$eq": ["$is_new_user", True]}, 1, 0]}},
        "daily_calls": {"$sum": {"$cond": [{"$eq": ["$is_new_user", False]}, 1, 0]}},
        "completed_calls": {
            "$sum": {"$cond": [{"$eq": ["$status", CallStatus.COMPLETED.value]}, 1, 0]}
        },
        "avg_duration": {"$avg": "$duration_seconds"},
        "total_duration": {"$sum": "$duration_seconds"},
        "users": {"$addToSet": "$user_id"},
    }
    if include_length_buckets:
        group["short_calls"] = {
            "$sum": {"$cond": [{"$lt": ["$duration_seconds", SHORT_CALL_SECONDS]}, 1, 0]}
        }
        group["long_calls"] = {
            "$sum": {"$cond": [{"$gte": ["$duration_seconds", LONG_CALL_SECONDS]}, 1, 0]}
        }
    return group


def _finish_metrics_row(row: Dict[str, Any]) -> Dict[str, Any]:
    row["unique_users"] = len(row.pop("users", []) or [])
    return row


def to_calls(rows: List[Dict[str, Any]]) -> List[Call]:
    """Convert stored rows to Call models, skipping rows that can't be read."""
    calls = []
    for row in rows:
        try:
            calls.append(Call.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping unreadable call row {row.get('call_id')}: {e.error_count()} errors")
    return calls


class CallLogRepository:
    """Queries over the voice call analytics collection. Filters are built as documents, never strings."""

    def __init__(self, collection=None):
        self.calls = collection if collection is not None else get_calls_collection()

    @_retry_transient
    async def _find(self, query: Dict, projection: Dict, limit: int, skip: int = 0) -> List[Dict]:
        cursor = self.calls.find(query, projection).sort("initiated_at", -1).skip(skip).limit(limit)
        return await cursor.to_list(length=limit)

    @_retry_transient
    async def _aggregate(self, pipeline: List[Dict], length: Optional[int] = None) -> List[Dict]:
        cursor = self.calls.aggregate(pipeline)
        return await cursor.to_list(length=length)

    async def fetch_calls_for_lag(
        self,
        start: date,
        end: date,
        exclude_users: Optional[List[str]] = None,
        limit: int = LAG_ANALYSIS_CALL_LIMIT,
    ) -> List[Call]:
        """Calls with a non-trivial transcript in [start, end], newest first."""
        query = build_call_filter(start, end, exclude_users)
        query["$expr"] = {"$gt": [_transcript_length_expr(), MIN_TRANSCRIPT_LENGTH]}

        try:
            rows = await self._find(query, LAG_PROJECTION, limit)
        except PyMongoError as e:
            raise DataSourceError(f"Failed to fetch calls for lag analysis: {e}") from e

        logger.debug(f"Fetched {len(rows)} calls for lag analysis ({start} - {end})")
        return to_calls(rows)

    async def get_daily_metrics(
        self,
        start: date,
        end: date,
        exclude_users: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Per-day call counts and durations, newest day first."""
        group = {
            "_id": {"$dateToString": {"format": "%Y-%m-%d", "date": "$initiated_at"}},
            **_call_metrics_group(include_length_buckets=False),
        }
        pipeline = [
            {"$match": build_call_filter(start, end, exclude_users)},
            {"$group": group},
            {"$sort": {"_id": -1}},
        ]

        try:
            results = await self._aggregate(pipeline)
        except PyMongoError as e:
            raise DataSourceError(f"Failed to get daily metrics: {e}") from e

        daily = []
        for row in results:
            row["date"] = row.pop("_id")
            daily.append(_finish_metrics_row(row))
        return daily

    async def get_summary(
        self,
        start: date,
        end: date,
        exclude_users: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Totals over the whole range."""
        pipeline = [
            {"$match": build_call_filter(start, end, exclude_users)},
            {"$group": {"_id": None, **_call_metrics_group(include_length_buckets=True)}},
        ]

        try:
            results = await self._aggregate(pipeline, length=1)
        except PyMongoError as e:
            raise DataSourceError(f"Failed to get call summary: {e}") from e

        if not results:
            return {
                "total_calls": 0,
                "welcome_calls": 0,
                "daily_calls": 0,
                "completed_calls": 0,
                "avg_duration": None,
                "total_duration": 0,
                "unique_users": 0,
                "short_calls": 0,
                "long_calls": 0,
            }

        summary = results[0]
        del summary["_id"]
        return _finish_metrics_row(summary)

    async def list_calls(
        self,
        day: date,
        call_type: CallType = CallType.ALL,
        exclude_users: Optional[List[str]] = None,
        limit: int = 100,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Calls initiated on `day`, newest first, with the day's total count."""
        query = build_call_filter(day, day, exclude_users)
        if call_type == CallType.WELCOME:
            query["is_new_user"] = True
        elif call_type == CallType.DAILY:
            query["is_new_user"] = False

        try:
            rows = await self._find(query, LISTING_PROJECTION, limit)
            total = await self.calls.count_documents(query)
        except PyMongoError as e:
            raise DataSourceError(f"Failed to list calls: {e}") from e

        return rows, total

    async def get_call(self, call_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.calls.find_one({"call_id": call_id}, {"_id": 0})
        except PyMongoError as e:
            raise DataSourceError(f"Failed to fetch call {call_id}: {e}") from e


# Singleton instance
_repository_instance: Optional[CallLogRepository] = None


def get_call_log_repository() -> CallLogRepository:
    """Get the singleton CallLogRepository instance."""
    global _repository_instance
    if _repository_instance is None:
        _repository_instance = CallLogRepository()
    return _repository_instance
