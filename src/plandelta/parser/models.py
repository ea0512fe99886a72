"""
Pydantic models for parsed execution plan text.

A plan is a tree of PlanNode objects. Each node owns its children
exclusively; the root is the first node line of the input. Nodes are built
fresh on every parse and must be treated as read-only by consumers once the
parser has returned them.

Fields are divided into:
- Identity: per-parse uid plus the optional database-assigned node id
- Estimates: cost, rows and width from ``(cost=A..B rows=R width=W)``
- Actuals: time, rows and loops from ``(actual time=A..B rows=R loops=L)``
- Derived: self cost and percentage of root cost
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field


class PlanDialect(str, Enum):
    """Input layouts the parser understands."""

    INDENTED = "indented"
    TABULAR = "tabular"


class PlanNode(BaseModel):
    """
    A single operator in a parsed execution plan.

    ``uid`` is unique within one parse only; parsing the same text again
    yields the same uids, but uids from different blobs are unrelated.
    """

    model_config = ConfigDict(validate_assignment=False)

    # =========================================================================
    # Identity
    # =========================================================================

    uid: str = Field(
        ...,
        description="Identifier generated by the parser, unique within one parse",
    )

    node_id: str | None = Field(
        default=None,
        description="Database-assigned sequential plan id (tabular dialect)",
    )

    operation: str = Field(
        ...,
        description="Operator label, e.g. 'Seq Scan on users'",
    )

    # =========================================================================
    # Estimates
    # =========================================================================

    total_cost: float = Field(
        default=0.0,
        description="Estimated cumulative cost to return all rows",
    )

    self_cost: float = Field(
        default=0.0,
        description="Total cost minus the total cost of direct children",
    )

    rows: int = Field(
        default=0,
        description="Estimated number of rows",
    )

    width: int = Field(
        default=0,
        description="Estimated average row width in bytes",
    )

    # =========================================================================
    # Actuals (only when the plan was executed)
    # =========================================================================

    actual_time: float | None = Field(
        default=None,
        description="Actual time in ms to return all rows",
    )

    actual_rows: int | None = Field(
        default=None,
        description="Actual number of rows returned",
    )

    loops: int | None = Field(
        default=None,
        description="Number of times the node was executed",
    )

    # =========================================================================
    # Derived and free-form
    # =========================================================================

    percentage: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        description="Total cost as a percentage of the root's total cost",
    )

    details: str = Field(
        default="",
        description="Continuation lines under the node (filters, conditions, sort keys)",
    )

    is_cte_definition: bool = Field(
        default=False,
        description="Node introduces a CTE ('CTE name')",
    )

    is_cte_scan: bool = Field(
        default=False,
        description="Node reads a CTE ('CTE Scan on name')",
    )

    cte_name: str | None = Field(
        default=None,
        description="CTE name for CTE definitions and CTE scans",
    )

    children: list[PlanNode] = Field(
        default_factory=list,
        description="Child plan nodes in source order",
    )

    # =========================================================================
    # Computed properties
    # =========================================================================

    @property
    def has_actuals(self) -> bool:
        """Check if the plan was executed (actual time is present)."""
        return self.actual_time is not None

    @property
    def row_estimate_ratio(self) -> float | None:
        """
        Ratio of actual to estimated rows.

        Returns None when actual rows are unknown or the estimate is 0.
        """
        if self.actual_rows is None or self.rows <= 0:
            return None
        return self.actual_rows / self.rows

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def iter_nodes(self) -> Iterator[PlanNode]:
        """Iterate through this node and all descendants (depth-first, pre-order)."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, uid: str) -> PlanNode | None:
        """Find a node in this subtree by uid."""
        for node in self.iter_nodes():
            if node.uid == uid:
                return node
        return None

    def node_count(self) -> int:
        """Count nodes in this subtree."""
        return sum(1 for _ in self.iter_nodes())
