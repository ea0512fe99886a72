"""PlanDelta - Execution plan text parser and before/after plan diff."""

__version__ = "0.1.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from plandelta.exceptions import (
    ComparisonError,
    ConfigurationError,
    ParseError,
    PlanDeltaError,
)

# Parsing
from plandelta.parser import (
    PlanDialect,
    PlanNode,
    PlanTextParser,
    SplitResult,
    SplitStrategy,
    detect_and_split,
    parse_plan,
    parse_plan_file,
)

# Differential analysis
from plandelta.diff import (
    MatchMap,
    MetricKind,
    NodeMatcher,
    NodeVerdict,
    RiskKind,
    RiskTag,
    RiskThresholds,
    Verdict,
    assess_risks,
    match_nodes,
    plan_verdict,
)

# Orchestration
from plandelta.config import Config, get_config
from plandelta.engine import (
    ComparisonService,
    NodeComparison,
    PlanComparison,
    compare_texts,
)

__all__ = [
    "__version__",
    # Exceptions
    "PlanDeltaError",
    "ParseError",
    "ConfigurationError",
    "ComparisonError",
    # Parsing
    "PlanDialect",
    "PlanNode",
    "PlanTextParser",
    "SplitResult",
    "SplitStrategy",
    "detect_and_split",
    "parse_plan",
    "parse_plan_file",
    # Differential analysis
    "MatchMap",
    "MetricKind",
    "NodeMatcher",
    "NodeVerdict",
    "RiskKind",
    "RiskTag",
    "RiskThresholds",
    "Verdict",
    "assess_risks",
    "match_nodes",
    "plan_verdict",
    # Orchestration
    "Config",
    "get_config",
    "ComparisonService",
    "NodeComparison",
    "PlanComparison",
    "compare_texts",
]
