"""Turns accumulated stage samples into the latency breakdown shown on the dashboard."""

from .accumulators import ComponentStats, SampleAccumulator
from .models import ComponentBreakdown, ComponentLatency, ResidualLatency
from .stats import calculate_percentile


def _pct(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole > 0 else 0.0


def _latency(samples: SampleAccumulator, **extra) -> ComponentLatency:
    values = samples.values or []
    return ComponentLatency(
        avg=samples.average,
        p50=calculate_percentile(values, 50),
        p95=calculate_percentile(values, 95),
        count=samples.count,
        **extra,
    )


def format_component_stats(stats: ComponentStats) -> ComponentBreakdown:
    """
    Finalize a ComponentStats bucket.

    LLM and TTS get their share of average E2E latency; whatever E2E time they
    don't explain is reported as "other" (network, VAD, pipeline overhead),
    floored at zero since samples from different turns need not add up.
    """
    avg_e2e = stats.e2e.average
    avg_llm = stats.llm.average
    avg_tts = stats.tts.average
    avg_other = max(0.0, avg_e2e - avg_llm - avg_tts) if avg_e2e > 0 else 0.0

    return ComponentBreakdown(
        stt=_latency(stats.stt),
        llm=_latency(stats.llm, pct_of_e2e=_pct(avg_llm, avg_e2e)),
        tts=_latency(stats.tts, pct_of_e2e=_pct(avg_tts, avg_e2e)),
        e2e=_latency(stats.e2e),
        end_of_turn=_latency(stats.end_of_turn),
        other=ResidualLatency(avg=avg_other, pct_of_e2e=_pct(avg_other, avg_e2e)),
    )
