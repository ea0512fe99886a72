"""
JSON Schema definitions for stable comparison output.

Provides versioned schema for:
- CI/CD integration (diffing plans in a pipeline)
- Documentation generation

The schema is stable across minor versions.
Breaking changes only in major versions.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RiskTagSchema(BaseModel):
    """Schema for a single risk tag."""

    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., description="Risk kind identifier")
    message: str = Field(..., description="Human-readable explanation")


class PlanNodeSchema(BaseModel):
    """Schema for one plan node and its subtree."""

    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., description="Parser-generated id, unique within one plan")
    node_id: str | None = Field(None, description="Database-assigned node id")
    operation: str = Field(..., description="Operator label")
    total_cost: float = Field(0.0, description="Estimated total cost")
    self_cost: float = Field(0.0, description="Total cost minus direct children")
    rows: int = Field(0, description="Estimated rows")
    width: int = Field(0, description="Estimated row width")
    actual_time: float | None = Field(None, description="Actual time in ms")
    actual_rows: int | None = Field(None, description="Actual rows")
    loops: int | None = Field(None, description="Executions of the node")
    percentage: float = Field(0.0, description="Share of root cost in percent")
    details: str = Field("", description="Continuation detail lines")
    cte_name: str | None = Field(None, description="CTE name for CTE nodes")
    risks: list[RiskTagSchema] = Field(default_factory=list, description="Risk tags on this node")
    children: list[PlanNodeSchema] = Field(default_factory=list, description="Child nodes")


class MetricDeltaSchema(BaseModel):
    """Schema for a before/after metric."""

    model_config = ConfigDict(frozen=True)

    before: float = Field(..., description="Value in the before plan")
    after: float = Field(..., description="Value in the after plan")
    diff: float = Field(..., description="after - before")
    change_percent: float = Field(..., description="Relative change in percent")


class RiskDeltaSchema(BaseModel):
    """Schema for risk changes on one node pair."""

    model_config = ConfigDict(frozen=True)

    new: list[str] = Field(default_factory=list, description="Risks only in the after plan")
    resolved: list[str] = Field(default_factory=list, description="Risks only in the before plan")
    persisting: list[str] = Field(default_factory=list, description="Risks in both plans")


class NodeComparisonSchema(BaseModel):
    """Schema for one node pair (or one-sided node)."""

    model_config = ConfigDict(frozen=True)

    operation: str = Field(..., description="Operator label (after side preferred)")
    left_uid: str | None = Field(None, description="Node uid in the before plan")
    right_uid: str | None = Field(None, description="Node uid in the after plan")
    verdict: str = Field(..., description="Improved/Regressed/Similar/New/Removed")
    cost: MetricDeltaSchema | None = Field(None, description="Total cost change")
    rows: MetricDeltaSchema | None = Field(None, description="Estimated rows change")
    actual_time: MetricDeltaSchema | None = Field(None, description="Actual time change")
    actual_rows: MetricDeltaSchema | None = Field(None, description="Actual rows change")
    risks: RiskDeltaSchema = Field(default_factory=RiskDeltaSchema, description="Risk changes")


class SummarySchema(BaseModel):
    """Schema for comparison summary counts."""

    model_config = ConfigDict(frozen=True)

    left_nodes: int = Field(0, description="Nodes in the before plan")
    right_nodes: int = Field(0, description="Nodes in the after plan")
    matched: int = Field(0, description="Matched node pairs")
    improved: int = Field(0, description="Node pairs that improved")
    regressed: int = Field(0, description="Node pairs that regressed")
    new: int = Field(0, description="Nodes only in the after plan")
    removed: int = Field(0, description="Nodes only in the before plan")


class ComparisonResultSchema(BaseModel):
    """
    Top-level schema for comparison results.

    This schema is stable across minor versions.
    Breaking changes require major version bump.
    """

    model_config = ConfigDict(frozen=True)

    version: str = Field("1.0", description="Schema version")
    verdict: str | None = Field(None, description="Overall verdict, null when a plan is missing")
    metric: str | None = Field(None, description="Metric that drove the verdict")
    root: MetricDeltaSchema | None = Field(None, description="Root metric before/after")
    split_strategy: str | None = Field(None, description="How a unified input was split")
    summary: SummarySchema = Field(default_factory=SummarySchema, description="Summary counts")
    matches: dict[str, str] = Field(default_factory=dict, description="Before uid -> after uid")
    nodes: list[NodeComparisonSchema] = Field(default_factory=list, description="Node detail")
    left: PlanNodeSchema | None = Field(None, description="Before plan tree")
    right: PlanNodeSchema | None = Field(None, description="After plan tree")


def get_json_schema() -> dict[str, Any]:
    """Get the JSON Schema for documentation."""
    return ComparisonResultSchema.model_json_schema()


# Schema version - increment on breaking changes
SCHEMA_VERSION = "1.0"
