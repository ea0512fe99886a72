"""Plan differential analysis: node matching, risk tags and verdicts."""

from plandelta.diff.matcher import (
    MATCH_THRESHOLD,
    MatchMap,
    NodeMatcher,
    NodePair,
    match_nodes,
    pair_nodes,
    score_pair,
)
from plandelta.diff.normalize import (
    NodeCategory,
    classify_operation,
    extract_target,
    normalize_operation,
)
from plandelta.diff.risk import (
    RiskDelta,
    RiskKind,
    RiskTag,
    RiskThresholds,
    assess_risks,
    assess_tree,
    diff_risks,
)
from plandelta.diff.verdict import (
    GLOBAL_IMPROVED_RATIO,
    GLOBAL_REGRESSED_RATIO,
    NODE_IMPROVED_RATIO,
    NODE_REGRESSED_RATIO,
    MetricDelta,
    MetricKind,
    NodeVerdict,
    Verdict,
    classify_change,
    metric_delta,
    node_verdict,
    plan_verdict,
    primary_metric,
)

__all__ = [
    # Matching
    "MATCH_THRESHOLD",
    "MatchMap",
    "NodeMatcher",
    "NodePair",
    "match_nodes",
    "pair_nodes",
    "score_pair",
    # Normalization
    "NodeCategory",
    "classify_operation",
    "extract_target",
    "normalize_operation",
    # Risk
    "RiskDelta",
    "RiskKind",
    "RiskTag",
    "RiskThresholds",
    "assess_risks",
    "assess_tree",
    "diff_risks",
    # Verdict
    "GLOBAL_IMPROVED_RATIO",
    "GLOBAL_REGRESSED_RATIO",
    "NODE_IMPROVED_RATIO",
    "NODE_REGRESSED_RATIO",
    "MetricDelta",
    "MetricKind",
    "NodeVerdict",
    "Verdict",
    "classify_change",
    "metric_delta",
    "node_verdict",
    "plan_verdict",
    "primary_metric",
]
