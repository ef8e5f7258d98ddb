import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from lag_analysis.models import CallLagSummary, TurnLagAnnotation


class DateRange(BaseModel):
    start_date: datetime.date = Field(serialization_alias="startDate")
    end_date: datetime.date = Field(serialization_alias="endDate")

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class CallListResponse(BaseModel):
    calls: List[Dict[str, Any]]
    total: int
    date: datetime.date


class CallDetailResponse(BaseModel):
    call: Dict[str, Any]
    items: List[Dict[str, Any]] = Field(default_factory=list)
    turn_lag: List[TurnLagAnnotation] = Field(default_factory=list)
    lag_summary: CallLagSummary = Field(default_factory=CallLagSummary)
    transcript_status: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    request_id: str
