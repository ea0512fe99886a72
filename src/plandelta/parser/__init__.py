"""Execution plan text parsing module."""

from plandelta.parser.config import DEFAULT_CONFIG, ParserConfig
from plandelta.parser.models import PlanDialect, PlanNode
from plandelta.parser.splitter import SplitResult, SplitStrategy, detect_and_split
from plandelta.parser.text_parser import (
    PlanTextParser,
    detect_dialect,
    parse_numeric_cell,
    parse_plan,
    parse_plan_file,
    read_plan_text,
)

__all__ = [
    "PlanDialect",
    "PlanNode",
    "PlanTextParser",
    "parse_plan",
    "parse_plan_file",
    "read_plan_text",
    "detect_dialect",
    "parse_numeric_cell",
    "detect_and_split",
    "SplitResult",
    "SplitStrategy",
    "ParserConfig",
    "DEFAULT_CONFIG",
]
