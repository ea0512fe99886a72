"""
Improvement / regression verdicts.

The metric is actual time when both sides were executed, otherwise total
estimated cost. The whole-plan verdict and the per-node verdict use
different tolerance bands; they are tuned separately.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from plandelta.parser.models import PlanNode

# Whole-plan banner: +/-5% counts as similar
GLOBAL_IMPROVED_RATIO = 0.95
GLOBAL_REGRESSED_RATIO = 1.05

# Node detail: +/-10% counts as similar
NODE_IMPROVED_RATIO = 0.9
NODE_REGRESSED_RATIO = 1.1


class Verdict(str, Enum):
    """Outcome of comparing two plans."""

    IMPROVED = "Improved"
    REGRESSED = "Regressed"
    SIMILAR = "Similar"


class NodeVerdict(str, Enum):
    """Outcome of comparing one node pair, including one-sided nodes."""

    IMPROVED = "Improved"
    REGRESSED = "Regressed"
    SIMILAR = "Similar"
    NEW = "New"
    REMOVED = "Removed"


class MetricKind(str, Enum):
    """Which value drove the verdict."""

    ACTUAL_TIME = "actual_time"
    TOTAL_COST = "total_cost"


def primary_metric(left: PlanNode, right: PlanNode) -> tuple[float, float, MetricKind]:
    """
    Pick the comparison metric for a pair of nodes.

    Returns:
        (left value, right value, metric kind)
    """
    if left.actual_time is not None and right.actual_time is not None:
        return left.actual_time, right.actual_time, MetricKind.ACTUAL_TIME
    return left.total_cost, right.total_cost, MetricKind.TOTAL_COST


def _classify(before: float, after: float, improved_ratio: float, regressed_ratio: float) -> Verdict:
    if after < before * improved_ratio:
        return Verdict.IMPROVED
    if after > before * regressed_ratio:
        return Verdict.REGRESSED
    return Verdict.SIMILAR


def classify_change(before: float, after: float) -> Verdict:
    """
    Classify a raw metric change with the whole-plan bands.

    >>> classify_change(100, 94)
    <Verdict.IMPROVED: 'Improved'>
    >>> classify_change(100, 96)
    <Verdict.SIMILAR: 'Similar'>
    """
    return _classify(before, after, GLOBAL_IMPROVED_RATIO, GLOBAL_REGRESSED_RATIO)


def plan_verdict(left_root: PlanNode, right_root: PlanNode) -> Verdict:
    """
    Overall verdict for a before/after plan pair.

    Callers must only invoke this when both plans parsed.
    """
    before, after, _ = primary_metric(left_root, right_root)
    return classify_change(before, after)


def node_verdict(left: PlanNode | None, right: PlanNode | None) -> NodeVerdict:
    """
    Verdict for one matched pair, or for a node present on one side only.
    """
    if left is None and right is None:
        raise ValueError("node_verdict needs at least one node")
    if left is None:
        return NodeVerdict.NEW
    if right is None:
        return NodeVerdict.REMOVED

    before, after, _ = primary_metric(left, right)
    verdict = _classify(before, after, NODE_IMPROVED_RATIO, NODE_REGRESSED_RATIO)
    return NodeVerdict(verdict.value)


@dataclass(frozen=True)
class MetricDelta:
    """Before/after values of one metric."""

    before: float
    after: float

    @property
    def diff(self) -> float:
        return self.after - self.before

    @property
    def change_percent(self) -> float:
        """Relative change in percent; 0 when the before value is 0."""
        if self.before <= 0:
            return 0.0
        return self.diff / self.before * 100


def metric_delta(before: float | None, after: float | None) -> MetricDelta | None:
    """Build a MetricDelta, or None when either side is unknown."""
    if before is None or after is None:
        return None
    return MetricDelta(before=before, after=after)
