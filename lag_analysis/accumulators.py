"""
Mergeable accumulators for one aggregation run.

Every accumulator merges associatively: sums and counts add, maxima take the
max, sample lists concatenate. Averages and percentages are only computed at
finalize time, never merged.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from loguru import logger

COMPONENTS = ("stt", "llm", "tts", "e2e", "end_of_turn")

AVERAGE_MODE_BIASED = "biased"
AVERAGE_MODE_MEAN = "mean"
AVERAGE_MODES = (AVERAGE_MODE_BIASED, AVERAGE_MODE_MEAN)


@dataclass
class SampleAccumulator:
    """Running sum/count for one pipeline stage, optionally keeping every sample."""
    sum: float = 0.0
    count: int = 0
    values: Optional[List[float]] = field(default_factory=list)

    def add(self, value: float) -> None:
        self.sum += value
        self.count += 1
        if self.values is not None:
            self.values.append(value)

    def merge(self, other: "SampleAccumulator") -> None:
        self.sum += other.sum
        self.count += other.count
        if self.values is not None and other.values is not None:
            self.values.extend(other.values)

    @property
    def average(self) -> float:
        return self.sum / self.count if self.count > 0 else 0.0

    @classmethod
    def totals_only(cls) -> "SampleAccumulator":
        return cls(values=None)


@dataclass
class ComponentStats:
    """Per-stage accumulators for one bucket (global, one language, one call)."""
    stt: SampleAccumulator = field(default_factory=SampleAccumulator)
    llm: SampleAccumulator = field(default_factory=SampleAccumulator)
    tts: SampleAccumulator = field(default_factory=SampleAccumulator)
    e2e: SampleAccumulator = field(default_factory=SampleAccumulator)
    end_of_turn: SampleAccumulator = field(default_factory=SampleAccumulator)

    def component(self, name: str) -> SampleAccumulator:
        return getattr(self, name)

    def merge(self, other: "ComponentStats") -> None:
        for name in COMPONENTS:
            self.component(name).merge(other.component(name))


@dataclass
class DailyLagAccumulator:
    """One calendar day. Stage averages keep sum/count only, no percentiles."""
    date: str
    average_mode: str = AVERAGE_MODE_BIASED
    high_latency_count: int = 0
    max_e2e_latency: float = 0.0
    dropoff_count: int = 0
    stt: SampleAccumulator = field(default_factory=SampleAccumulator.totals_only)
    llm: SampleAccumulator = field(default_factory=SampleAccumulator.totals_only)
    tts: SampleAccumulator = field(default_factory=SampleAccumulator.totals_only)

    # Biased mode: halved running mean of per-call averages
    running_e2e_avg: float = 0.0
    # Mean mode: true cumulative mean over every E2E sample of the day
    e2e_sum: float = 0.0
    e2e_count: int = 0

    def add_call_e2e(self, e2e_sum: float, e2e_count: int) -> None:
        """Fold one call's E2E samples into the day's average."""
        if e2e_count <= 0:
            return
        self.e2e_sum += e2e_sum
        self.e2e_count += e2e_count
        self.running_e2e_avg = (self.running_e2e_avg + e2e_sum / e2e_count) / 2

    def observe_e2e(self, value: float) -> None:
        if value > self.max_e2e_latency:
            self.max_e2e_latency = value

    @property
    def avg_e2e_latency(self) -> float:
        if self.average_mode == AVERAGE_MODE_MEAN:
            return self.e2e_sum / self.e2e_count if self.e2e_count > 0 else 0.0
        return self.running_e2e_avg

    def merge(self, other: "DailyLagAccumulator") -> None:
        self.high_latency_count += other.high_latency_count
        self.dropoff_count += other.dropoff_count
        self.max_e2e_latency = max(self.max_e2e_latency, other.max_e2e_latency)
        self.stt.merge(other.stt)
        self.llm.merge(other.llm)
        self.tts.merge(other.tts)

        if self.average_mode == AVERAGE_MODE_BIASED and self.e2e_count and other.e2e_count:
            logger.warning(
                f"Merging biased running averages for {self.date}: result depends on shard order"
            )
            self.running_e2e_avg = (self.running_e2e_avg + other.running_e2e_avg) / 2
        elif other.e2e_count:
            self.running_e2e_avg = other.running_e2e_avg
        self.e2e_sum += other.e2e_sum
        self.e2e_count += other.e2e_count
