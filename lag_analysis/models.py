"""
Data models for lag analysis.
Uses Pydantic for validation and serialization.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, field_validator, model_serializer


class LagType(str, Enum):
    STT = "stt"
    LLM_TTFT = "llm_ttft"
    TTS_TTFB = "tts_ttfb"
    E2E_LATENCY = "e2e_latency"
    END_OF_TURN = "end_of_turn"


class LagSeverity(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class LagThresholds(BaseModel):
    """Lag thresholds in seconds. A value strictly above its threshold is a lag episode."""

    model_config = ConfigDict(frozen=True)

    e2e_latency: float = Field(default=4.0, gt=0)
    llm_ttft: float = Field(default=3.0, gt=0)
    tts_ttfb: float = Field(default=0.5, gt=0)
    transcription_delay: float = Field(default=1.5, gt=0)
    end_of_turn: float = Field(default=2.0, gt=0)

    def for_type(self, lag_type: LagType) -> float:
        return {
            LagType.STT: self.transcription_delay,
            LagType.LLM_TTFT: self.llm_ttft,
            LagType.TTS_TTFB: self.tts_ttfb,
            LagType.E2E_LATENCY: self.e2e_latency,
            LagType.END_OF_TURN: self.end_of_turn,
        }[lag_type]


# =============================================================================
# TRANSCRIPT ITEMS
# =============================================================================

def _number_or_none(v: Any) -> Optional[float]:
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return float(v)
    if isinstance(v, str):
        try:
            return float(v)
        except ValueError:
            return None
    return None


class TurnMetrics(BaseModel):
    """Per-turn pipeline timings in seconds."""

    model_config = ConfigDict(extra="ignore")

    transcription_delay: Optional[float] = None
    llm_node_ttft: Optional[float] = None
    tts_node_ttfb: Optional[float] = None
    end_of_turn_delay: Optional[float] = None
    e2e_latency: Optional[float] = None
    started_speaking_at: Optional[float] = None
    stopped_speaking_at: Optional[float] = None

    @field_validator("*", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> Optional[float]:
        # Garbage timings become "no sample" instead of failing the whole turn
        return _number_or_none(v)


class _ItemBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        return "" if v is None else str(v)


class MessageItem(_ItemBase):
    type: Literal["message"] = "message"
    role: Literal["user", "assistant"]
    content: List[str] = Field(default_factory=list)
    metrics: Optional[TurnMetrics] = None
    interrupted: bool = False
    transcript_confidence: Optional[float] = None

    @field_validator("content", mode="before")
    @classmethod
    def coerce_content(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, list):
            return [str(part) for part in v]
        return [str(v)]

    # Display-only fields below must never cost the turn its timings

    @field_validator("metrics", mode="before")
    @classmethod
    def drop_unusable_metrics(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, TurnMetrics)) else None

    @field_validator("interrupted", mode="before")
    @classmethod
    def coerce_interrupted(cls, v: Any) -> bool:
        return bool(v)

    @field_validator("transcript_confidence", mode="before")
    @classmethod
    def coerce_confidence(cls, v: Any) -> Optional[float]:
        return _number_or_none(v)


class FunctionCallItem(_ItemBase):
    type: Literal["function_call"] = "function_call"
    name: Optional[str] = None
    arguments: Optional[str] = None


class FunctionCallOutputItem(_ItemBase):
    type: Literal["function_call_output"] = "function_call_output"
    name: Optional[str] = None
    output: Optional[str] = None


class AgentHandoffItem(_ItemBase):
    type: Literal["agent_handoff"] = "agent_handoff"
    new_agent_id: Optional[str] = None


TurnItem = Annotated[
    Union[MessageItem, FunctionCallItem, FunctionCallOutputItem, AgentHandoffItem],
    Field(discriminator="type"),
]


class Transcript(BaseModel):
    items: List[TurnItem] = Field(default_factory=list)


# =============================================================================
# CALLS
# =============================================================================

class Call(BaseModel):
    """One voice session as stored in the call log."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    call_id: str
    user_id: str = ""
    initiated_at: Optional[Union[datetime, str]] = None
    duration_seconds: Optional[float] = None
    language: str = "unknown"
    is_user_initiated: bool = False
    status: Optional[str] = None
    transcript: Optional[Any] = None

    @field_validator("call_id", "user_id", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("duration_seconds", mode="before")
    @classmethod
    def clean_duration(cls, v: Any) -> Optional[float]:
        try:
            duration = float(v)
        except (TypeError, ValueError):
            return None
        return duration if duration >= 0 else None

    @field_validator("language", mode="before")
    @classmethod
    def default_language(cls, v: Any) -> str:
        return str(v) if v else "unknown"

    @field_validator("is_user_initiated", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        if isinstance(v, str):
            return v.strip().lower() in ("true", "1", "yes")
        return bool(v)

    @property
    def call_date(self) -> str:
        """Calendar day (YYYY-MM-DD) the call was initiated on."""
        if isinstance(self.initiated_at, datetime):
            return self.initiated_at.date().isoformat()
        if self.initiated_at:
            return self.initiated_at.split("T")[0]
        return "unknown"

    @property
    def timestamp(self) -> Optional[str]:
        if isinstance(self.initiated_at, datetime):
            return self.initiated_at.isoformat()
        return self.initiated_at


# =============================================================================
# RESULTS
# =============================================================================

class LagEpisode(BaseModel):
    """A single threshold violation inside a call."""

    call_id: str
    user_id: str
    timestamp: Optional[str] = None
    item_id: str
    lag_type: LagType
    lag_value: float
    threshold: float
    is_user_initiated: bool = False
    severity: LagSeverity


class CallLagSummary(BaseModel):
    """Lag columns shown in call listings."""
    max_lag: float = 0.0
    lag_episodes: int = 0
    lag_type: Optional[Literal["e2e", "llm"]] = None


class ComponentLatency(BaseModel):
    avg: float = 0.0
    p50: float = 0.0
    p95: float = 0.0
    count: int = 0
    pct_of_e2e: Optional[float] = Field(default=None, serialization_alias="pctOfE2E")

    @model_serializer(mode="wrap")
    def omit_missing_share(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        # Only LLM and TTS carry a share of E2E; other stages leave the key out
        data = handler(self)
        for key in ("pct_of_e2e", "pctOfE2E"):
            if key in data and data[key] is None:
                del data[key]
        return data


class ResidualLatency(BaseModel):
    """E2E time not explained by LLM and TTS (network, VAD, pipeline overhead)."""
    avg: float = 0.0
    pct_of_e2e: float = Field(default=0.0, serialization_alias="pctOfE2E")


class ComponentBreakdown(BaseModel):
    stt: ComponentLatency = Field(default_factory=ComponentLatency)
    llm: ComponentLatency = Field(default_factory=lambda: ComponentLatency(pct_of_e2e=0.0))
    tts: ComponentLatency = Field(default_factory=lambda: ComponentLatency(pct_of_e2e=0.0))
    e2e: ComponentLatency = Field(default_factory=ComponentLatency)
    end_of_turn: ComponentLatency = Field(default_factory=ComponentLatency, serialization_alias="endOfTurn")
    other: ResidualLatency = Field(default_factory=ResidualLatency)


class DailyLagStat(BaseModel):
    date: str
    high_latency_count: int = 0
    avg_e2e_latency: float = 0.0
    max_e2e_latency: float = 0.0
    dropoff_count: int = 0
    avg_stt: float = 0.0
    avg_llm: float = 0.0
    avg_tts: float = 0.0


class LagReport(BaseModel):
    """Output of one fleet aggregation run."""

    lag_episodes: List[LagEpisode] = Field(default_factory=list, serialization_alias="lagEpisodes")
    daily_stats: List[DailyLagStat] = Field(default_factory=list, serialization_alias="dailyStats")
    component_breakdown: ComponentBreakdown = Field(
        default_factory=ComponentBreakdown, serialization_alias="componentBreakdown"
    )
    language_breakdown: Dict[str, ComponentBreakdown] = Field(
        default_factory=dict, serialization_alias="languageBreakdown"
    )
    thresholds: LagThresholds = Field(default_factory=LagThresholds)
    calls_analyzed: int = Field(default=0, serialization_alias="callsAnalyzed")

    def to_response(self) -> Dict[str, Any]:
        """JSON-ready dict with the dashboard's camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class TurnLagAnnotation(BaseModel):
    """Per-turn severity for the transcript view."""
    item_id: str
    role: Literal["user", "assistant"]
    severity: LagSeverity = LagSeverity.NORMAL
    # Only the metrics above their threshold, name -> seconds
    lagging: Dict[str, float] = Field(default_factory=dict)
    e2e_latency: Optional[float] = None
