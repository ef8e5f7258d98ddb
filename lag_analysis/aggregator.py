"""
Fleet-level lag aggregation.
Folds many calls into episode lists, daily rollups, and component breakdowns.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from loguru import logger

from .accumulators import (
    AVERAGE_MODE_BIASED,
    AVERAGE_MODES,
    ComponentStats,
    DailyLagAccumulator,
)
from .breakdown import format_component_stats
from .call_analyzer import CallLagAnalysis, analyze_call
from .models import Call, DailyLagStat, LagEpisode, LagReport, LagThresholds

MAX_LAG_EPISODES = 100


class LagAggregator:
    """
    Accumulates lag statistics over a collection of calls.

    One instance is one aggregation run: create it, feed calls in display
    order (most recent first), then finalize. Instances over disjoint shards
    of the same collection can be merged before finalizing.
    """

    def __init__(
        self,
        thresholds: Optional[LagThresholds] = None,
        max_episodes: int = MAX_LAG_EPISODES,
        average_mode: str = AVERAGE_MODE_BIASED,
    ):
        """
        Initialize aggregator.

        Args:
            thresholds: Lag thresholds in seconds
            max_episodes: How many episodes the report keeps (head of the list)
            average_mode: "biased" halves the running daily E2E average per call,
                "mean" reports the true mean of the day's E2E samples
        """
        if average_mode not in AVERAGE_MODES:
            raise ValueError(f"average_mode must be one of {AVERAGE_MODES}, got {average_mode!r}")

        self.thresholds = thresholds or LagThresholds()
        self.max_episodes = max_episodes
        self.average_mode = average_mode

        self._episodes: List[LagEpisode] = []
        self._daily: Dict[str, DailyLagAccumulator] = {}
        self._components = ComponentStats()
        self._languages: Dict[str, ComponentStats] = defaultdict(ComponentStats)
        self._calls_analyzed = 0

    @property
    def calls_analyzed(self) -> int:
        return self._calls_analyzed

    def _day(self, date: str) -> DailyLagAccumulator:
        if date not in self._daily:
            self._daily[date] = DailyLagAccumulator(date=date, average_mode=self.average_mode)
        return self._daily[date]

    def add_call(self, call: Call) -> CallLagAnalysis:
        """Analyze one call and fold it into every bucket."""
        analysis = analyze_call(call, self.thresholds)
        self.add_analysis(analysis)
        return analysis

    def add_analysis(self, analysis: CallLagAnalysis) -> None:
        call = analysis.call
        day = self._day(call.call_date)
        samples = analysis.samples

        self._episodes.extend(analysis.episodes)

        self._components.merge(samples)
        self._languages[call.language].merge(samples)

        day.stt.merge(samples.stt)
        day.llm.merge(samples.llm)
        day.tts.merge(samples.tts)
        day.observe_e2e(analysis.max_e2e)
        day.high_latency_count += analysis.high_latency_count
        day.add_call_e2e(analysis.e2e_sum, analysis.e2e_count)
        if analysis.is_dropoff:
            day.dropoff_count += 1

        self._calls_analyzed += 1

    def add_calls(self, calls: Iterable[Call]) -> "LagAggregator":
        for call in calls:
            self.add_call(call)
        return self

    def merge(self, other: "LagAggregator") -> "LagAggregator":
        """
        Merge another shard into this one. Episodes of `other` go after ours,
        so merge shards in the same order the calls were split.
        """
        if other.thresholds != self.thresholds:
            logger.warning("Merging lag aggregators built with different thresholds")

        self._episodes.extend(other._episodes)
        self._components.merge(other._components)
        for language, stats in other._languages.items():
            self._languages[language].merge(stats)
        for date, day in other._daily.items():
            self._day(date).merge(day)
        self._calls_analyzed += other._calls_analyzed
        return self

    def daily_stats(self) -> List[DailyLagStat]:
        stats = [
            DailyLagStat(
                date=day.date,
                high_latency_count=day.high_latency_count,
                avg_e2e_latency=day.avg_e2e_latency,
                max_e2e_latency=day.max_e2e_latency,
                dropoff_count=day.dropoff_count,
                avg_stt=day.stt.average,
                avg_llm=day.llm.average,
                avg_tts=day.tts.average,
            )
            for day in self._daily.values()
        ]
        # ISO dates sort chronologically as strings
        return sorted(stats, key=lambda s: s.date, reverse=True)

    def finalize(self) -> LagReport:
        report = LagReport(
            lag_episodes=self._episodes[: self.max_episodes],
            daily_stats=self.daily_stats(),
            component_breakdown=format_component_stats(self._components),
            language_breakdown={
                language: format_component_stats(stats)
                for language, stats in self._languages.items()
            },
            thresholds=self.thresholds,
            calls_analyzed=self._calls_analyzed,
        )

        logger.info(
            f"Lag analysis complete: {self._calls_analyzed} calls, "
            f"{len(self._episodes)} episodes, {len(self._daily)} days, "
            f"{len(self._languages)} languages"
        )
        return report


def aggregate_lag(
    calls: Iterable[Call],
    thresholds: Optional[LagThresholds] = None,
    **kwargs,
) -> LagReport:
    """Run a full aggregation over `calls` and return the finalized report."""
    return LagAggregator(thresholds, **kwargs).add_calls(calls).finalize()
