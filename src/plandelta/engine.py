"""
ComparisonService - orchestration layer for PlanDelta.

This is the single entry point for a before/after comparison. The CLI and
renderers use this service rather than wiring parser, matcher, risk rules
and verdicts together themselves.

Every call builds everything from scratch: fresh trees, a fresh MatchMap,
fresh risk tags and a fresh verdict. Nothing is cached or patched between
calls.

Usage:
    from plandelta.engine import ComparisonService

    service = ComparisonService()

    # Two separate plan texts
    comparison = service.compare_texts(before_text, after_text)

    # One pasted blob holding both plans
    comparison = service.compare_unified(pasted_text)

    if comparison.is_complete:
        print(comparison.verdict.value)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from plandelta.diff.matcher import MatchMap, NodePair, match_nodes, pair_nodes
from plandelta.diff.risk import RiskDelta, RiskTag, RiskThresholds, assess_tree, diff_risks
from plandelta.diff.verdict import (
    MetricDelta,
    MetricKind,
    NodeVerdict,
    Verdict,
    metric_delta,
    node_verdict,
    plan_verdict,
    primary_metric,
)
from plandelta.exceptions import ComparisonError
from plandelta.parser.splitter import SplitResult, detect_and_split
from plandelta.parser.text_parser import parse_plan

if TYPE_CHECKING:
    from plandelta.config import Config
    from plandelta.parser.config import ParserConfig
    from plandelta.parser.models import PlanNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeComparison:
    """
    Detail for one node pair (or one-sided node).

    Metric deltas are None when a side is missing or, for actual time and
    actual rows, when either side was not executed.
    """

    left: "PlanNode | None"
    right: "PlanNode | None"
    verdict: NodeVerdict
    risks: RiskDelta
    cost: MetricDelta | None = None
    rows: MetricDelta | None = None
    actual_time: MetricDelta | None = None
    actual_rows: MetricDelta | None = None

    @property
    def operation(self) -> str:
        """Label to show for this pair (after side preferred)."""
        node = self.right or self.left
        return node.operation if node is not None else "Unknown"

    @property
    def details(self) -> str:
        for node in (self.right, self.left):
            if node is not None and node.details:
                return node.details
        return ""


@dataclass(frozen=True)
class PlanComparison:
    """
    Complete result of comparing two plans.

    ``left``/``right`` are None when a side could not be parsed; in that case
    no matching, verdict or node detail is computed.
    """

    left: "PlanNode | None"
    right: "PlanNode | None"
    match_map: MatchMap = field(default_factory=MatchMap)
    left_risks: dict[str, list[RiskTag]] = field(default_factory=dict)
    right_risks: dict[str, list[RiskTag]] = field(default_factory=dict)
    verdict: Verdict | None = None
    metric: MetricKind | None = None
    nodes: tuple[NodeComparison, ...] = ()
    split: SplitResult | None = None

    @property
    def is_complete(self) -> bool:
        """Whether both plans parsed and were compared."""
        return self.left is not None and self.right is not None

    @property
    def root_delta(self) -> MetricDelta | None:
        """Before/after value of the verdict metric at the root."""
        if self.left is None or self.right is None:
            return None
        before, after, _ = primary_metric(self.left, self.right)
        return MetricDelta(before=before, after=after)

    @property
    def matched_count(self) -> int:
        return len(self.match_map)

    def risks_for(self, uid: str, side: str) -> list[RiskTag]:
        """Risk tags of a node on the "left" or "right" side."""
        risks = self.left_risks if side == "left" else self.right_risks
        return risks.get(uid, [])

    def nodes_by_verdict(self, verdict: NodeVerdict) -> list[NodeComparison]:
        return [n for n in self.nodes if n.verdict == verdict]


def compare_pair(pair: NodePair, config: "Config | None" = None) -> NodeComparison:
    """Build the node-level detail for one pair."""
    thresholds = config.risk if config else None
    left, right = pair.left, pair.right

    cost = rows = actual_time = actual_rows = None
    if left is not None and right is not None:
        cost = metric_delta(left.total_cost, right.total_cost)
        rows = metric_delta(float(left.rows), float(right.rows))
        actual_time = metric_delta(left.actual_time, right.actual_time)
        actual_rows = metric_delta(
            float(left.actual_rows) if left.actual_rows is not None else None,
            float(right.actual_rows) if right.actual_rows is not None else None,
        )

    return NodeComparison(
        left=left,
        right=right,
        verdict=node_verdict(left, right),
        risks=diff_risks(left, right, thresholds),
        cost=cost,
        rows=rows,
        actual_time=actual_time,
        actual_rows=actual_rows,
    )


class ComparisonService:
    """
    Orchestrates parse -> match + risk -> verdict.

    Args:
        config: Configuration (risk thresholds, parser settings). If None,
            library defaults are used.
    """

    def __init__(self, config: "Config | None" = None) -> None:
        self.config = config

    @property
    def _parser_config(self) -> "ParserConfig | None":
        return self.config.parser if self.config else None

    @property
    def _thresholds(self) -> "RiskThresholds | None":
        return self.config.risk if self.config else None

    def compare(
        self,
        left: "PlanNode",
        right: "PlanNode",
        split: SplitResult | None = None,
    ) -> PlanComparison:
        """
        Compare two parsed plans.

        Raises:
            ComparisonError: If either tree is None.
        """
        if left is None or right is None:
            side = "both" if left is None and right is None else ("left" if left is None else "right")
            raise ComparisonError(f"Cannot compare: no {side} plan", side=side)

        match_map = match_nodes(left, right)
        _, _, metric = primary_metric(left, right)
        verdict = plan_verdict(left, right)

        nodes = tuple(
            compare_pair(pair, self.config)
            for pair in pair_nodes(left, right, match_map)
        )

        logger.debug(
            "Compared plans: %s by %s, %d matched node(s)",
            verdict.value, metric.value, len(match_map),
        )

        return PlanComparison(
            left=left,
            right=right,
            match_map=match_map,
            left_risks=assess_tree(left, self._thresholds),
            right_risks=assess_tree(right, self._thresholds),
            verdict=verdict,
            metric=metric,
            nodes=nodes,
            split=split,
        )

    def compare_texts(
        self,
        left_text: str | None,
        right_text: str | None,
        split: SplitResult | None = None,
    ) -> PlanComparison:
        """
        Parse two plan texts and compare them.

        When either text yields no plan, the result carries whichever tree
        parsed and no verdict.
        """
        left = parse_plan(left_text, self._parser_config)
        right = parse_plan(right_text, self._parser_config)

        if left is None or right is None:
            logger.info(
                "Skipping comparison: left plan %s, right plan %s",
                "parsed" if left else "missing",
                "parsed" if right else "missing",
            )
            return PlanComparison(left=left, right=right, split=split)

        return self.compare(left, right, split=split)

    def compare_unified(self, text: str) -> PlanComparison:
        """Split one blob into two plans, then compare them."""
        split = detect_and_split(text)
        return self.compare_texts(split.left, split.right, split=split)


def compare_texts(
    left_text: str | None,
    right_text: str | None,
    config: "Config | None" = None,
) -> PlanComparison:
    """Convenience wrapper around ComparisonService.compare_texts()."""
    return ComparisonService(config).compare_texts(left_text, right_text)
