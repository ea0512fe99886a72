"""
Output module - Separates rendering from comparison.

Provides two output formats:
- render_text: Plain text summary for logs and pipes
- render_comparison: Stable JSON schema for CI integration

Usage:
    from plandelta.output import render_comparison

    comparison = service.compare_unified(text)
    print(render_comparison(comparison))
"""

from plandelta.output.renderers import (
    OutputFormat,
    comparison_to_dict,
    render,
    render_comparison,
    render_text,
    render_tree_json,
)
from plandelta.output.schema import (
    ComparisonResultSchema,
    PlanNodeSchema,
    get_json_schema,
)

__all__ = [
    "OutputFormat",
    "render",
    "render_text",
    "render_comparison",
    "render_tree_json",
    "comparison_to_dict",
    "ComparisonResultSchema",
    "PlanNodeSchema",
    "get_json_schema",
]
