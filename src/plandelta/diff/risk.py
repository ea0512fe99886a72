"""
Per-node structural risk tags.

Each rule looks at one node in isolation and any subset may fire:

- DISK_SPILL: detail text mentions spill, disk or external merge
- LARGE_SEQ_SCAN: sequential scan estimated to read many rows
- HIGH_COST: total cost above a fixed ceiling
- NESTED_LOOP: nested loop estimated over many rows
- BAD_ESTIMATE: actual rows off from the estimate by 10x either way

Tags are recomputed for every comparison and never stored on the node.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from plandelta.diff.normalize import normalize_operation
from plandelta.parser.models import PlanNode

_SPILL_MARKERS = ("spill", "disk", "external merge")


class RiskKind(str, Enum):
    """Kinds of per-node risk."""

    DISK_SPILL = "disk_spill"
    LARGE_SEQ_SCAN = "large_seq_scan"
    HIGH_COST = "high_cost"
    NESTED_LOOP = "nested_loop"
    BAD_ESTIMATE = "bad_estimate"


class RiskThresholds(BaseModel):
    """
    Configurable limits for the risk rules.

    Attributes:
        large_scan_rows: Estimated rows above which a Seq Scan is flagged.
        nested_loop_rows: Estimated rows above which a Nested Loop is flagged.
        high_cost: Total cost above which any node is flagged.
        bad_estimate_ratio: actual/estimated ratio above this (or below its
            inverse) is a bad estimate.
    """

    model_config = ConfigDict(frozen=True)

    large_scan_rows: int = Field(
        default=10_000,
        ge=0,
        description="Seq Scan row estimate that triggers a warning",
    )

    nested_loop_rows: int = Field(
        default=10_000,
        ge=0,
        description="Nested Loop row estimate that triggers a warning",
    )

    high_cost: float = Field(
        default=10_000.0,
        ge=0,
        description="Total cost that triggers a warning",
    )

    bad_estimate_ratio: float = Field(
        default=10.0,
        gt=1.0,
        description="Actual/estimated row ratio considered a bad estimate",
    )


DEFAULT_THRESHOLDS = RiskThresholds()


@dataclass(frozen=True)
class RiskTag:
    """A risk detected on one node."""

    kind: RiskKind
    message: str


def assess_risks(node: PlanNode, thresholds: RiskThresholds | None = None) -> list[RiskTag]:
    """
    Evaluate all risk rules against a single node.

    Args:
        node: Plan node to inspect.
        thresholds: Rule limits. If None, uses DEFAULT_THRESHOLDS.

    Returns:
        Risk tags in rule order; empty when nothing fires.
    """
    limits = thresholds or DEFAULT_THRESHOLDS
    label = normalize_operation(node.operation)
    details = node.details.lower()
    tags: list[RiskTag] = []

    if any(marker in details for marker in _SPILL_MARKERS):
        tags.append(RiskTag(
            RiskKind.DISK_SPILL,
            "Operator spills to disk; consider raising work_mem",
        ))

    if "seq scan" in label and node.rows > limits.large_scan_rows:
        tags.append(RiskTag(
            RiskKind.LARGE_SEQ_SCAN,
            f"Sequential scan over {node.rows / 1000:.1f}k estimated rows",
        ))

    if node.total_cost > limits.high_cost:
        tags.append(RiskTag(
            RiskKind.HIGH_COST,
            f"High total cost ({node.total_cost:,.2f})",
        ))

    if "nested loop" in label and node.rows > limits.nested_loop_rows:
        tags.append(RiskTag(
            RiskKind.NESTED_LOOP,
            f"Nested loop over {node.rows:,} estimated rows",
        ))

    ratio = node.row_estimate_ratio
    if ratio is not None and (ratio > limits.bad_estimate_ratio or ratio < 1 / limits.bad_estimate_ratio):
        tags.append(RiskTag(
            RiskKind.BAD_ESTIMATE,
            f"Row estimate off by {ratio:.2f}x (estimated {node.rows:,}, actual {node.actual_rows:,})",
        ))

    return tags


def assess_tree(root: PlanNode, thresholds: RiskThresholds | None = None) -> dict[str, list[RiskTag]]:
    """
    Assess every node in a tree.

    Returns:
        Mapping of node uid -> risk tags, for nodes with at least one tag.
    """
    result: dict[str, list[RiskTag]] = {}
    for node in root.iter_nodes():
        tags = assess_risks(node, thresholds)
        if tags:
            result[node.uid] = tags
    return result


@dataclass(frozen=True)
class RiskDelta:
    """
    How risks changed between a before node and an after node.

    Attributes:
        new: Risk kinds present only after.
        resolved: Risk kinds present only before.
        persisting: Risk kinds present on both sides.
    """

    new: tuple[RiskKind, ...] = field(default_factory=tuple)
    resolved: tuple[RiskKind, ...] = field(default_factory=tuple)
    persisting: tuple[RiskKind, ...] = field(default_factory=tuple)

    @property
    def has_changes(self) -> bool:
        return bool(self.new or self.resolved)


def diff_risks(
    left: PlanNode | None,
    right: PlanNode | None,
    thresholds: RiskThresholds | None = None,
) -> RiskDelta:
    """
    Compare the risks of a before node and an after node.

    Either side may be None (node added or removed).
    """
    before = [tag.kind for tag in assess_risks(left, thresholds)] if left else []
    after = [tag.kind for tag in assess_risks(right, thresholds)] if right else []

    return RiskDelta(
        new=tuple(kind for kind in after if kind not in before),
        resolved=tuple(kind for kind in before if kind not in after),
        persisting=tuple(kind for kind in before if kind in after),
    )
