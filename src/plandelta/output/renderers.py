"""
Output renderers for different formats.

Separates presentation logic from comparison logic.
Uses schema.py Pydantic models as the single source of truth
for JSON serialization - no manual dict construction.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import TYPE_CHECKING, Any

from plandelta.diff.verdict import NodeVerdict
from plandelta.output.schema import (
    SCHEMA_VERSION,
    ComparisonResultSchema,
    MetricDeltaSchema,
    NodeComparisonSchema,
    PlanNodeSchema,
    RiskDeltaSchema,
    RiskTagSchema,
    SummarySchema,
)

if TYPE_CHECKING:
    from plandelta.diff.risk import RiskTag
    from plandelta.diff.verdict import MetricDelta
    from plandelta.engine import NodeComparison, PlanComparison
    from plandelta.parser.models import PlanNode


class OutputFormat(str, Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"


def render(comparison: "PlanComparison", format: OutputFormat = OutputFormat.TEXT) -> str:
    """
    Render a comparison in the specified format.

    Args:
        comparison: Comparison to render
        format: Output format (text, json)

    Returns:
        Formatted string
    """
    if format == OutputFormat.TEXT:
        return render_text(comparison)
    elif format == OutputFormat.JSON:
        return render_comparison(comparison)
    else:
        raise ValueError(f"Unknown output format: {format}")


# =============================================================================
# Schema-based serialization (single source of truth)
# =============================================================================


def _delta_to_schema(delta: "MetricDelta | None") -> MetricDeltaSchema | None:
    if delta is None:
        return None
    return MetricDeltaSchema(
        before=delta.before,
        after=delta.after,
        diff=delta.diff,
        change_percent=delta.change_percent,
    )


def _node_to_schema(
    node: "PlanNode",
    risks: "dict[str, list[RiskTag]] | None" = None,
) -> PlanNodeSchema:
    """Convert a PlanNode subtree to the schema model."""
    risks = risks or {}
    return PlanNodeSchema(
        uid=node.uid,
        node_id=node.node_id,
        operation=node.operation,
        total_cost=node.total_cost,
        self_cost=node.self_cost,
        rows=node.rows,
        width=node.width,
        actual_time=node.actual_time,
        actual_rows=node.actual_rows,
        loops=node.loops,
        percentage=node.percentage,
        details=node.details,
        cte_name=node.cte_name,
        risks=[RiskTagSchema(kind=t.kind.value, message=t.message) for t in risks.get(node.uid, [])],
        children=[_node_to_schema(child, risks) for child in node.children],
    )


def _node_comparison_to_schema(item: "NodeComparison") -> NodeComparisonSchema:
    return NodeComparisonSchema(
        operation=item.operation,
        left_uid=item.left.uid if item.left else None,
        right_uid=item.right.uid if item.right else None,
        verdict=item.verdict.value,
        cost=_delta_to_schema(item.cost),
        rows=_delta_to_schema(item.rows),
        actual_time=_delta_to_schema(item.actual_time),
        actual_rows=_delta_to_schema(item.actual_rows),
        risks=RiskDeltaSchema(
            new=[k.value for k in item.risks.new],
            resolved=[k.value for k in item.risks.resolved],
            persisting=[k.value for k in item.risks.persisting],
        ),
    )


def _comparison_to_schema(comparison: "PlanComparison") -> ComparisonResultSchema:
    """Convert PlanComparison to the Pydantic schema model."""
    left, right = comparison.left, comparison.right

    return ComparisonResultSchema(
        version=SCHEMA_VERSION,
        verdict=comparison.verdict.value if comparison.verdict else None,
        metric=comparison.metric.value if comparison.metric else None,
        root=_delta_to_schema(comparison.root_delta),
        split_strategy=comparison.split.strategy.value if comparison.split else None,
        summary=SummarySchema(
            left_nodes=left.node_count() if left else 0,
            right_nodes=right.node_count() if right else 0,
            matched=comparison.matched_count,
            improved=len(comparison.nodes_by_verdict(NodeVerdict.IMPROVED)),
            regressed=len(comparison.nodes_by_verdict(NodeVerdict.REGRESSED)),
            new=len(comparison.nodes_by_verdict(NodeVerdict.NEW)),
            removed=len(comparison.nodes_by_verdict(NodeVerdict.REMOVED)),
        ),
        matches=comparison.match_map.as_dict(),
        nodes=[_node_comparison_to_schema(n) for n in comparison.nodes],
        left=_node_to_schema(left, comparison.left_risks) if left else None,
        right=_node_to_schema(right, comparison.right_risks) if right else None,
    )


def comparison_to_dict(comparison: "PlanComparison") -> dict[str, Any]:
    """Convert a comparison to a dictionary via the schema model."""
    return _comparison_to_schema(comparison).model_dump(mode="json")


def render_comparison(comparison: "PlanComparison", indent: int = 2) -> str:
    """Render a comparison as stable JSON."""
    return json.dumps(comparison_to_dict(comparison), indent=indent)


def render_tree_json(root: "PlanNode", indent: int = 2) -> str:
    """Render a single parsed plan tree as JSON."""
    return json.dumps(_node_to_schema(root).model_dump(mode="json"), indent=indent)


# =============================================================================
# Text renderer (plain terminal / log friendly)
# =============================================================================


def _format_delta(delta: "MetricDelta") -> str:
    return f"{delta.before:,.2f} -> {delta.after:,.2f} ({delta.change_percent:+.1f}%)"


def render_text(comparison: "PlanComparison") -> str:
    """
    Render a comparison as plain text.

    The CLI uses rich for the interactive view; this format is meant for
    logs and piping.
    """
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append("PlanDelta Comparison")
    lines.append("=" * 60)
    lines.append("")

    if not comparison.is_complete:
        missing = "before" if comparison.left is None else "after"
        lines.append(f"No {missing} plan found; nothing to compare.")
        return "\n".join(lines)

    metric = comparison.metric.value if comparison.metric else "total_cost"
    lines.append(f"Verdict: {comparison.verdict.value}")
    if comparison.root_delta is not None:
        lines.append(f"  {metric}: {_format_delta(comparison.root_delta)}")
    lines.append(f"  Matched nodes: {comparison.matched_count}")
    lines.append("")

    lines.append("Nodes:")
    for item in comparison.nodes:
        line = f"  [{item.verdict.value}] {item.operation}"
        if item.cost is not None:
            line += f"  cost {_format_delta(item.cost)}"
        lines.append(line)
        for kind in item.risks.new:
            lines.append(f"      + risk: {kind.value}")
        for kind in item.risks.resolved:
            lines.append(f"      - risk: {kind.value}")

    return "\n".join(lines)
