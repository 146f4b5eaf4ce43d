"""
Comparison and summary helpers over finished probe outputs
"""

from dataclasses import dataclass, field
from statistics import mean
from typing import Dict, List, Optional, Sequence

from .information_metrics import temporal_metrics
from .types import ClassificationOutput, DimensionScores, RunRecord, TemporalMetrics

NOTABLE_GAP = 0.1
MIN_POOLED_SAMPLES = 3


@dataclass
class DimensionGap:
    assumed: float
    actual: float
    diff: float  # actual - assumed

    @property
    def notable(self) -> bool:
        return abs(self.diff) > NOTABLE_GAP


@dataclass
class AssumptionComparison:
    assumed_level: Optional[int] = None
    actual_level: Optional[int] = None
    level_gap: Optional[int] = None
    # True when the assumption was more predictable (lower level) than reality
    level_worse_than_assumed: Optional[bool] = None
    dimensions: Dict[str, DimensionGap] = field(default_factory=dict)


@dataclass
class HistorySummary:
    total: int
    avg_T: float
    avg_C: float
    avg_L: float
    levels: List[int]


def compare_with_assumptions(output: ClassificationOutput,
                             assumed_level: Optional[int] = None,
                             assumed_dims: Optional[DimensionScores] = None) -> AssumptionComparison:
    comparison = AssumptionComparison(actual_level=output.level)

    if assumed_level is not None:
        comparison.assumed_level = assumed_level
        comparison.level_gap = abs(assumed_level - output.level)
        comparison.level_worse_than_assumed = assumed_level < output.level

    if assumed_dims is not None:
        actual = output.dimensions.to_dict()
        for key, assumed in assumed_dims.to_dict().items():
            comparison.dimensions[key] = DimensionGap(assumed=assumed, actual=actual[key],
                                                      diff=actual[key] - assumed)
    return comparison


def compare_runs(baseline: ClassificationOutput, variant: ClassificationOutput) -> Dict[str, float]:
    """Variant minus baseline for level and each dimension."""
    return {
        'level': variant.level - baseline.level,
        'T': variant.dimensions.T - baseline.dimensions.T,
        'C': variant.dimensions.C - baseline.dimensions.C,
        'L': variant.dimensions.L - baseline.dimensions.L,
    }


def summarize_history(outputs: Sequence[ClassificationOutput]) -> Optional[HistorySummary]:
    if not outputs:
        return None
    return HistorySummary(
        total=len(outputs),
        avg_T=mean(o.dimensions.T for o in outputs),
        avg_C=mean(o.dimensions.C for o in outputs),
        avg_L=mean(o.dimensions.L for o in outputs),
        levels=[o.level for o in outputs],
    )


def pooled_temporal_metrics(records: Sequence[RunRecord], prompt: str) -> Optional[TemporalMetrics]:
    """Temporal metrics over every sample collected for the same prompt.

    Needs at least three samples in total, otherwise returns None.
    """
    pooled = [s for r in records if r.prompt == prompt for s in r.samples]
    if len(pooled) < MIN_POOLED_SAMPLES:
        return None
    return temporal_metrics(pooled)
