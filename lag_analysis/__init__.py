"""
Lag analysis package.
Turns raw call transcripts into latency samples, lag episodes, and fleet rollups.
"""

from .aggregator import LagAggregator, aggregate_lag
from .breakdown import format_component_stats
from .call_analyzer import CallLagAnalysis, analyze_call, annotate_turns, summarize_call
from .models import (
    Call,
    CallLagSummary,
    ComponentBreakdown,
    DailyLagStat,
    LagEpisode,
    LagReport,
    LagSeverity,
    LagThresholds,
    LagType,
    TurnLagAnnotation,
)
from .stats import calculate_percentile, classify_lag
from .transcript import EmptyTranscript, ParsedTranscript, parse_transcript

__all__ = [
    "LagAggregator",
    "aggregate_lag",
    "format_component_stats",
    "CallLagAnalysis",
    "analyze_call",
    "annotate_turns",
    "summarize_call",
    "Call",
    "CallLagSummary",
    "ComponentBreakdown",
    "DailyLagStat",
    "LagEpisode",
    "LagReport",
    "LagSeverity",
    "LagThresholds",
    "LagType",
    "TurnLagAnnotation",
    "calculate_percentile",
    "classify_lag",
    "EmptyTranscript",
    "ParsedTranscript",
    "parse_transcript",
]
