"""
Per-call lag analysis.

Walks one call's transcript, extracts a latency sample for every stage timing
that is present and positive, and flags the samples above their threshold as
lag episodes.

Role attribution:
- user turns: transcription_delay (STT), end_of_turn_delay (VAD)
- assistant turns: llm_node_ttft, tts_node_ttfb
- any turn: e2e_latency
"""

from dataclasses import dataclass, field
from typing import List, Optional

from loguru import logger

from .accumulators import ComponentStats
from .models import (
    Call,
    CallLagSummary,
    LagEpisode,
    LagSeverity,
    LagThresholds,
    LagType,
    MessageItem,
    TurnLagAnnotation,
)
from .stats import classify_lag, worst_severity
from .transcript import TranscriptParseResult, parse_transcript

DROPOFF_MAX_DURATION_SECONDS = 30
DROPOFF_MAX_ITEMS = 5

# (metrics field, role it counts for, accumulator name, lag type)
STAGE_FIELDS = (
    ("transcription_delay", "user", "stt", LagType.STT),
    ("end_of_turn_delay", "user", "end_of_turn", LagType.END_OF_TURN),
    ("llm_node_ttft", "assistant", "llm", LagType.LLM_TTFT),
    ("tts_node_ttfb", "assistant", "tts", LagType.TTS_TTFB),
    ("e2e_latency", None, "e2e", LagType.E2E_LATENCY),
)

# Only these lag types can drive the listing's max_lag column
SUMMARY_LAG_TYPES = {
    LagType.E2E_LATENCY: "e2e",
    LagType.LLM_TTFT: "llm",
}


@dataclass
class CallLagAnalysis:
    """Everything one call contributes to a fleet aggregation."""
    call: Call
    item_count: int = 0
    episodes: List[LagEpisode] = field(default_factory=list)
    samples: ComponentStats = field(default_factory=ComponentStats)
    max_e2e: float = 0.0
    high_latency_count: int = 0
    summary: CallLagSummary = field(default_factory=CallLagSummary)

    @property
    def e2e_sum(self) -> float:
        return self.samples.e2e.sum

    @property
    def e2e_count(self) -> int:
        return self.samples.e2e.count

    @property
    def avg_e2e(self) -> float:
        return self.samples.e2e.average

    @property
    def is_dropoff(self) -> bool:
        return is_dropoff(self.call.duration_seconds, self.item_count)


def is_dropoff(duration_seconds: Optional[float], item_count: int) -> bool:
    """Short call with almost no conversation. A missing or zero duration is unknown, not short."""
    if not duration_seconds:
        return False
    return duration_seconds < DROPOFF_MAX_DURATION_SECONDS and item_count < DROPOFF_MAX_ITEMS


def _make_episode(call: Call, item: MessageItem, lag_type: LagType, value: float, threshold: float) -> LagEpisode:
    return LagEpisode(
        call_id=call.call_id,
        user_id=call.user_id,
        timestamp=call.timestamp,
        item_id=item.id,
        lag_type=lag_type,
        lag_value=value,
        threshold=threshold,
        is_user_initiated=call.is_user_initiated,
        severity=classify_lag(value, threshold),
    )


def analyze_call(
    call: Call,
    thresholds: Optional[LagThresholds] = None,
    parsed: Optional[TranscriptParseResult] = None,
) -> CallLagAnalysis:
    """
    Analyze a single call.

    Args:
        call: Call record with its raw transcript
        thresholds: Lag thresholds (defaults if omitted)
        parsed: Already-parsed transcript, to avoid parsing twice

    Returns:
        CallLagAnalysis with samples, episodes, and the listing summary
    """
    thresholds = thresholds or LagThresholds()
    if parsed is None:
        parsed = parse_transcript(call.transcript)

    analysis = CallLagAnalysis(call=call, item_count=parsed.raw_item_count)
    summary = analysis.summary

    for item in parsed.items:
        if not isinstance(item, MessageItem) or item.metrics is None:
            continue

        for metric_name, role, component, lag_type in STAGE_FIELDS:
            if role is not None and item.role != role:
                continue

            value = getattr(item.metrics, metric_name)
            if value is None or value <= 0:
                continue

            analysis.samples.component(component).add(value)
            if lag_type == LagType.E2E_LATENCY:
                analysis.max_e2e = max(analysis.max_e2e, value)

            threshold = thresholds.for_type(lag_type)
            if value <= threshold:
                continue

            analysis.episodes.append(_make_episode(call, item, lag_type, value, threshold))
            summary.lag_episodes += 1
            if lag_type == LagType.E2E_LATENCY:
                analysis.high_latency_count += 1

            if lag_type in SUMMARY_LAG_TYPES and value > summary.max_lag:
                summary.max_lag = value
                summary.lag_type = SUMMARY_LAG_TYPES[lag_type]

    if summary.lag_episodes:
        logger.debug(
            f"Call {call.call_id}: {summary.lag_episodes} lag episodes, "
            f"max {summary.max_lag:.2f}s ({summary.lag_type})"
        )

    return analysis


def summarize_call(call: Call, thresholds: Optional[LagThresholds] = None) -> CallLagSummary:
    """Lag columns for a call listing row."""
    return analyze_call(call, thresholds).summary


# Metrics the transcript view highlights, in display order
ANNOTATED_METRICS = (
    ("e2e_latency", LagType.E2E_LATENCY),
    ("llm_node_ttft", LagType.LLM_TTFT),
    ("transcription_delay", LagType.STT),
)


def annotate_turns(
    parsed: TranscriptParseResult,
    thresholds: Optional[LagThresholds] = None,
) -> List[TurnLagAnnotation]:
    """Classify every message turn by its worst highlighted metric."""
    thresholds = thresholds or LagThresholds()
    annotations = []

    for item in parsed.items:
        if not isinstance(item, MessageItem):
            continue

        annotation = TurnLagAnnotation(item_id=item.id, role=item.role)
        metrics = item.metrics
        if metrics is not None:
            annotation.e2e_latency = metrics.e2e_latency
            for metric_name, lag_type in ANNOTATED_METRICS:
                value = getattr(metrics, metric_name)
                if not value or value <= 0:
                    continue
                severity = classify_lag(value, thresholds.for_type(lag_type))
                if severity != LagSeverity.NORMAL:
                    annotation.lagging[metric_name] = value
                    annotation.severity = worst_severity(annotation.severity, severity)

        annotations.append(annotation)

    return annotations
