"""Tests for per-node risk tags and risk deltas."""

from __future__ import annotations

import pytest

from plandelta.diff import (
    RiskKind,
    RiskThresholds,
    assess_risks,
    assess_tree,
    diff_risks,
)
from plandelta.parser import PlanNode, parse_plan


def node(operation: str, **fields) -> PlanNode:
    return PlanNode(uid="n_0", operation=operation, **fields)


def kinds(plan_node: PlanNode, thresholds: RiskThresholds | None = None) -> list[RiskKind]:
    return [tag.kind for tag in assess_risks(plan_node, thresholds)]


class TestRiskRules:
    """Each rule in isolation."""

    def test_large_seq_scan(self) -> None:
        assert kinds(node("Seq Scan on events", rows=50_000)) == [RiskKind.LARGE_SEQ_SCAN]
        assert kinds(node("Seq Scan on events", rows=500)) == []

    def test_large_seq_scan_boundary(self) -> None:
        """The row limit itself does not fire."""
        assert kinds(node("Seq Scan on events", rows=10_000)) == []
        assert kinds(node("Seq Scan on events", rows=10_001)) == [RiskKind.LARGE_SEQ_SCAN]

    def test_large_scan_needs_seq_scan(self) -> None:
        assert kinds(node("Index Scan using pk on events", rows=50_000)) == []

    def test_disk_spill(self) -> None:
        sort = node(
            "Sort",
            details="Sort Key: created_at\nSort Method: external merge  Disk: 10240kB",
        )
        assert kinds(sort) == [RiskKind.DISK_SPILL]

    @pytest.mark.parametrize("details", ["Spill to temp files", "written to DISK", "External Merge"])
    def test_spill_markers_case_insensitive(self, details: str) -> None:
        assert RiskKind.DISK_SPILL in kinds(node("Sort", details=details))

    def test_high_cost(self) -> None:
        assert kinds(node("Aggregate", total_cost=10_000.5)) == [RiskKind.HIGH_COST]
        assert kinds(node("Aggregate", total_cost=10_000.0)) == []

    def test_nested_loop(self) -> None:
        assert kinds(node("Nested Loop", rows=20_000)) == [RiskKind.NESTED_LOOP]
        assert kinds(node("Nested Loop Left Join", rows=20_000)) == [RiskKind.NESTED_LOOP]
        assert kinds(node("Nested Loop", rows=200)) == []

    def test_bad_estimate_over(self) -> None:
        assert kinds(node("Hash", rows=10, actual_rows=5_000)) == [RiskKind.BAD_ESTIMATE]

    def test_bad_estimate_under(self) -> None:
        assert kinds(node("Hash", rows=5_000, actual_rows=400)) == [RiskKind.BAD_ESTIMATE]

    def test_bad_estimate_within_band(self) -> None:
        assert kinds(node("Hash", rows=5_000, actual_rows=500)) == []
        assert kinds(node("Hash", rows=100, actual_rows=1_000)) == []

    def test_bad_estimate_needs_actuals(self) -> None:
        assert kinds(node("Hash", rows=0, actual_rows=5_000)) == []
        assert kinds(node("Hash", rows=10)) == []

    def test_multiple_rules_fire(self) -> None:
        scan = node(
            "Seq Scan on events",
            rows=1_000_000,
            total_cost=25_000.0,
            actual_rows=10,
        )
        assert kinds(scan) == [RiskKind.LARGE_SEQ_SCAN, RiskKind.HIGH_COST, RiskKind.BAD_ESTIMATE]

    def test_messages(self) -> None:
        (tag,) = assess_risks(node("Seq Scan on events", rows=50_000))
        assert tag.message == "Sequential scan over 50.0k estimated rows"

    def test_custom_thresholds(self) -> None:
        strict = RiskThresholds(large_scan_rows=100)

        assert kinds(node("Seq Scan on events", rows=500), strict) == [RiskKind.LARGE_SEQ_SCAN]

    def test_thresholds_validate(self) -> None:
        with pytest.raises(ValueError):
            RiskThresholds(bad_estimate_ratio=1.0)


class TestAssessTree:
    """Risk map for a whole tree."""

    def test_only_flagged_nodes(self) -> None:
        root = parse_plan(
            "Hash Join  (cost=100.00..2500.00 rows=100 width=8)\n"
            "  ->  Seq Scan on events  (cost=0.00..2000.00 rows=50000 width=8)\n"
            "  ->  Hash  (cost=50.00..50.00 rows=100 width=8)\n"
        )

        risks = assess_tree(root)

        assert list(risks) == ["n_1"]
        assert [t.kind for t in risks["n_1"]] == [RiskKind.LARGE_SEQ_SCAN]

    def test_does_not_touch_nodes(self) -> None:
        root = parse_plan("Seq Scan on events  (cost=0.00..2000.00 rows=50000 width=8)")
        before = root.model_dump()

        assess_tree(root)

        assert root.model_dump() == before


class TestDiffRisks:
    """Risk changes between a before and an after node."""

    def test_resolved(self) -> None:
        delta = diff_risks(
            node("Seq Scan on users", rows=50_000),
            node("Index Scan using pk on users", rows=1),
        )

        assert delta.resolved == (RiskKind.LARGE_SEQ_SCAN,)
        assert delta.new == ()
        assert delta.has_changes

    def test_new(self) -> None:
        delta = diff_risks(
            node("Hash Join", rows=1_000),
            node("Nested Loop", rows=50_000),
        )

        assert delta.new == (RiskKind.NESTED_LOOP,)
        assert delta.resolved == ()

    def test_persisting(self) -> None:
        scan = node("Seq Scan on users", rows=50_000)

        delta = diff_risks(scan, scan)

        assert delta.persisting == (RiskKind.LARGE_SEQ_SCAN,)
        assert not delta.has_changes

    def test_one_sided(self) -> None:
        scan = node("Seq Scan on users", rows=50_000)

        assert diff_risks(None, scan).new == (RiskKind.LARGE_SEQ_SCAN,)
        assert diff_risks(scan, None).resolved == (RiskKind.LARGE_SEQ_SCAN,)
        assert not diff_risks(None, node("Result")).has_changes
