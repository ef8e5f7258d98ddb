"""Call listing and detail endpoints"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from loguru import logger
from pydantic import ValidationError

from backend.call_log import CallLogRepository
from backend.constants import CallType
from backend.dependencies import get_excluded_users, get_repository, get_thresholds, today
from backend.exceptions import CallNotFoundError
from backend.schemas import CallDetailResponse, CallListResponse
from lag_analysis import Call, CallLagSummary, analyze_call, annotate_turns, parse_transcript, summarize_call
from lag_analysis.models import LagThresholds
from lag_analysis.transcript import EmptyTranscript

router = APIRouter()


@router.get("/calls", response_model=CallListResponse)
async def list_calls(
    day: Optional[date] = Query(None, alias="date", description="Defaults to today (UTC)"),
    call_type: CallType = Query(CallType.ALL),
    limit: int = Query(100, ge=1, le=500),
    exclude_users: List[str] = Depends(get_excluded_users),
    repository: CallLogRepository = Depends(get_repository),
    thresholds: LagThresholds = Depends(get_thresholds),
):
    """Calls for one day with their lag columns (max_lag, lag_episodes, lag_type)."""
    day = day or today()
    rows, total = await repository.list_calls(day, call_type, exclude_users, limit)

    calls = []
    for row in rows:
        transcript = row.pop("transcript", None)
        try:
            summary = summarize_call(Call.model_validate({**row, "transcript": transcript}), thresholds)
        except ValidationError as e:
            logger.warning(f"Unreadable call row {row.get('call_id')}: {e.error_count()} errors")
            summary = CallLagSummary()
        calls.append({**row, **summary.model_dump()})

    logger.info(f"Listed {len(calls)}/{total} calls for {day} ({call_type.value})")
    return CallListResponse(calls=calls, total=total, date=day)


@router.get("/calls/{call_id}", response_model=CallDetailResponse)
async def get_call(
    call_id: str,
    repository: CallLogRepository = Depends(get_repository),
    thresholds: LagThresholds = Depends(get_thresholds),
):
    """One call with its transcript turns and per-turn lag severity."""
    row = await repository.get_call(call_id)
    if not row:
        raise CallNotFoundError(call_id)

    call = Call.model_validate(row)
    parsed = parse_transcript(call.transcript)
    analysis = analyze_call(call, thresholds, parsed=parsed)

    return CallDetailResponse(
        call=row,
        items=[item.model_dump(mode="json") for item in parsed.items],
        turn_lag=annotate_turns(parsed, thresholds),
        lag_summary=analysis.summary,
        transcript_status=parsed.reason if isinstance(parsed, EmptyTranscript) else "ok",
    )
