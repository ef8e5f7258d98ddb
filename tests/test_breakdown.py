"""
Tests for component breakdown formatting.
"""

import pytest

from lag_analysis.accumulators import ComponentStats
from lag_analysis.breakdown import format_component_stats


def _stats(**samples):
    stats = ComponentStats()
    for name, values in samples.items():
        for value in values:
            stats.component(name).add(value)
    return stats


def test_share_of_e2e():
    breakdown = format_component_stats(_stats(e2e=[4.0, 2.0], llm=[1.5], tts=[0.5, 0.1]))

    assert breakdown.e2e.avg == 3.0
    assert breakdown.llm.pct_of_e2e == pytest.approx(50.0)
    assert breakdown.tts.pct_of_e2e == pytest.approx(10.0)
    assert breakdown.other.avg == pytest.approx(1.2)
    assert breakdown.other.pct_of_e2e == pytest.approx(40.0)
    assert breakdown.stt.pct_of_e2e is None
    assert breakdown.end_of_turn.pct_of_e2e is None


def test_other_floored_at_zero():
    """LLM and TTS from different turns can add up to more than average E2E."""
    breakdown = format_component_stats(_stats(e2e=[1.0], llm=[2.5], tts=[0.8]))

    assert breakdown.other.avg == 0
    assert breakdown.other.pct_of_e2e == 0
    assert breakdown.llm.pct_of_e2e == pytest.approx(250.0)


def test_no_e2e_samples():
    breakdown = format_component_stats(_stats(llm=[1.0], tts=[0.3]))

    assert breakdown.llm.avg == 1.0
    assert breakdown.llm.pct_of_e2e == 0
    assert breakdown.tts.pct_of_e2e == 0
    assert breakdown.other.avg == 0


def test_empty_bucket_is_all_zero():
    breakdown = format_component_stats(ComponentStats())

    for name in ("stt", "llm", "tts", "e2e", "end_of_turn"):
        latency = getattr(breakdown, name)
        assert (latency.avg, latency.p50, latency.p95, latency.count) == (0, 0, 0, 0)


def test_percentiles_per_component():
    breakdown = format_component_stats(_stats(stt=[0.2, 0.9, 0.4, 0.1]))

    assert breakdown.stt.count == 4
    assert breakdown.stt.p50 == 0.2
    assert breakdown.stt.p95 == 0.9
