"""Tests for plan-level and node-level verdicts."""

from __future__ import annotations

import pytest

from plandelta.diff import (
    MetricKind,
    NodeVerdict,
    Verdict,
    classify_change,
    metric_delta,
    node_verdict,
    plan_verdict,
    primary_metric,
)
from plandelta.parser import PlanNode, parse_plan


def node(total_cost: float = 100.0, actual_time: float | None = None) -> PlanNode:
    return PlanNode(uid="n_0", operation="Seq Scan on t", total_cost=total_cost, actual_time=actual_time)


class TestPlanVerdict:
    """Whole-plan verdict with the 5% band."""

    @pytest.mark.parametrize(
        ("after", "expected"),
        [
            (94.0, Verdict.IMPROVED),
            (96.0, Verdict.SIMILAR),
            (100.0, Verdict.SIMILAR),
            (104.0, Verdict.SIMILAR),
            (106.0, Verdict.REGRESSED),
        ],
    )
    def test_cost_bands(self, after: float, expected: Verdict) -> None:
        assert plan_verdict(node(100.0), node(after)) == expected

    def test_classify_change(self) -> None:
        assert classify_change(100, 94) == Verdict.IMPROVED
        assert classify_change(100, 106) == Verdict.REGRESSED

    def test_actual_time_preferred(self) -> None:
        """Cost went up but the query ran faster."""
        before = node(total_cost=100.0, actual_time=50.0)
        after = node(total_cost=500.0, actual_time=10.0)

        assert plan_verdict(before, after) == Verdict.IMPROVED
        assert primary_metric(before, after) == (50.0, 10.0, MetricKind.ACTUAL_TIME)

    def test_cost_used_when_one_side_not_executed(self) -> None:
        before = node(total_cost=100.0, actual_time=50.0)
        after = node(total_cost=500.0)

        assert plan_verdict(before, after) == Verdict.REGRESSED
        assert primary_metric(before, after)[2] == MetricKind.TOTAL_COST

    def test_zero_cost_plans_are_similar(self) -> None:
        assert plan_verdict(node(0.0), node(0.0)) == Verdict.SIMILAR

    def test_seq_scan_to_index_scan(self) -> None:
        before = parse_plan("Seq Scan on users  (cost=0.00..183.00 rows=10000 width=45)")
        after = parse_plan("Index Scan using idx_users_id on users  (cost=0.00..8.27 rows=1 width=45)")

        assert plan_verdict(before, after) == Verdict.IMPROVED


class TestNodeVerdict:
    """Per-node verdict with the 10% band."""

    @pytest.mark.parametrize(
        ("after", "expected"),
        [
            (89.0, NodeVerdict.IMPROVED),
            (94.0, NodeVerdict.SIMILAR),
            (106.0, NodeVerdict.SIMILAR),
            (111.0, NodeVerdict.REGRESSED),
        ],
    )
    def test_node_bands(self, after: float, expected: NodeVerdict) -> None:
        assert node_verdict(node(100.0), node(after)) == expected

    def test_bands_differ_from_plan_verdict(self) -> None:
        """A 6% drop improves the plan but is noise for one node."""
        assert plan_verdict(node(100.0), node(94.0)) == Verdict.IMPROVED
        assert node_verdict(node(100.0), node(94.0)) == NodeVerdict.SIMILAR

    def test_one_sided(self) -> None:
        assert node_verdict(None, node()) == NodeVerdict.NEW
        assert node_verdict(node(), None) == NodeVerdict.REMOVED

    def test_requires_a_node(self) -> None:
        with pytest.raises(ValueError):
            node_verdict(None, None)


class TestMetricDelta:
    """Before/after metric values."""

    def test_change_percent(self) -> None:
        delta = metric_delta(200.0, 50.0)

        assert delta.diff == pytest.approx(-150.0)
        assert delta.change_percent == pytest.approx(-75.0)

    def test_zero_before(self) -> None:
        assert metric_delta(0.0, 10.0).change_percent == 0.0

    def test_missing_side(self) -> None:
        assert metric_delta(None, 1.0) is None
        assert metric_delta(1.0, None) is None
