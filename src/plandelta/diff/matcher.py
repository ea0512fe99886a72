"""
Heuristic node correspondence between two plan trees.

Optimizers rewrite plans: a Seq Scan becomes an Index Scan on the same
table, a Hash Join becomes a Nested Loop, stream numbers shift. There is no
stable key shared by the two trees, so each pair is scored on label
similarity, database node id and target object, and the best candidate
above a threshold is taken greedily.

Nodes are visited in descending total cost so the expensive parts of the
plan (where a wrong match matters most) pick first. Each right node can be
used once; ties go to the earliest candidate.

Usage:
    from plandelta.diff.matcher import match_nodes, pair_nodes

    match_map = match_nodes(before_root, after_root)
    for pair in pair_nodes(before_root, after_root, match_map):
        print(pair.left, "->", pair.right)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, Mapping

from plandelta.diff.normalize import (
    NodeCategory,
    classify_operation,
    extract_target,
    normalize_operation,
)
from plandelta.parser.models import PlanNode

logger = logging.getLogger(__name__)


SCORE_EXACT_LABEL = 50
SCORE_PARTIAL_LABEL = 25
SCORE_NODE_ID = 30
SCORE_TARGET = 60
SCORE_JOIN_CATEGORY = 20
SCORE_SCAN_SAME_TARGET = 20

# Minimum score to accept a candidate
MATCH_THRESHOLD = 40


@dataclass(frozen=True)
class _NodeKey:
    """Precomputed comparison features for one node."""

    node: PlanNode
    label: str
    target: str | None
    category: NodeCategory

    @classmethod
    def of(cls, node: PlanNode) -> "_NodeKey":
        return cls(
            node=node,
            label=normalize_operation(node.operation),
            target=extract_target(node.operation),
            category=classify_operation(node.operation),
        )


def _score_keys(left: _NodeKey, right: _NodeKey) -> int:
    score = 0

    if left.label == right.label:
        score += SCORE_EXACT_LABEL
    elif left.label in right.label or right.label in left.label:
        score += SCORE_PARTIAL_LABEL

    left_id, right_id = left.node.node_id, right.node.node_id
    if left_id and right_id and left_id == right_id:
        score += SCORE_NODE_ID

    if left.target is not None and left.target == right.target:
        score += SCORE_TARGET

    if left.category == right.category:
        if left.category == NodeCategory.JOIN:
            score += SCORE_JOIN_CATEGORY
        # Two scans without an "on <obj>" clause count as the same target
        elif left.category == NodeCategory.SCAN and left.target == right.target:
            score += SCORE_SCAN_SAME_TARGET

    return score


def score_pair(left: PlanNode, right: PlanNode) -> int:
    """
    Score how likely two nodes represent the same logical operation.

    A Seq Scan and an Index Scan on the same table score 80: 60 for the
    shared target plus 20 for being scans of that target.
    """
    return _score_keys(_NodeKey.of(left), _NodeKey.of(right))


@dataclass(frozen=True)
class MatchMap:
    """
    Left uid -> right uid correspondence.

    Injective in both directions. Built once per comparison and never
    patched; compute a new one when either tree changes.
    """

    forward: Mapping[str, str] = field(default_factory=dict)
    reverse: Mapping[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        reverse = {right: left for left, right in self.forward.items()}
        if len(reverse) != len(self.forward):
            raise ValueError("MatchMap must map each right node at most once")
        object.__setattr__(self, "forward", dict(self.forward))
        object.__setattr__(self, "reverse", reverse)

    def get(self, left_uid: str) -> str | None:
        """Right uid matched to a left uid."""
        return self.forward.get(left_uid)

    def left_for(self, right_uid: str) -> str | None:
        """Left uid matched to a right uid."""
        return self.reverse.get(right_uid)

    def pairs(self) -> Iterator[tuple[str, str]]:
        return iter(self.forward.items())

    def as_dict(self) -> dict[str, str]:
        return dict(self.forward)

    def __contains__(self, left_uid: object) -> bool:
        return left_uid in self.forward

    def __len__(self) -> int:
        return len(self.forward)


class NodeMatcher:
    """
    Greedy best-first matcher.

    One matcher run owns its consumed set; nothing is shared between calls.
    """

    def __init__(self, threshold: int = MATCH_THRESHOLD) -> None:
        self.threshold = threshold

    def match(self, left_root: PlanNode, right_root: PlanNode) -> MatchMap:
        """
        Compute the correspondence between two trees.

        Returns:
            MatchMap of accepted pairs. Unmatched nodes are simply absent.
        """
        left_keys = self._ordered_keys(left_root)
        right_keys = self._ordered_keys(right_root)

        matches: dict[str, str] = {}
        consumed: set[str] = set()

        for left in left_keys:
            best, consumed = self._best_candidate(left, right_keys, consumed)
            if best is not None:
                matches[left.node.uid] = best.node.uid

        logger.debug(
            "Matched %d of %d left node(s) against %d right node(s)",
            len(matches), len(left_keys), len(right_keys),
        )
        return MatchMap(matches)

    def _best_candidate(
        self,
        left: _NodeKey,
        right_keys: list[_NodeKey],
        consumed: set[str],
    ) -> tuple[_NodeKey | None, set[str]]:
        """Pick the best unconsumed right node and return the updated consumed set."""
        best: _NodeKey | None = None
        best_score = -1

        for right in right_keys:
            if right.node.uid in consumed:
                continue
            score = _score_keys(left, right)
            if score > best_score:
                best, best_score = right, score

        if best is None or best_score < self.threshold:
            return None, consumed
        return best, consumed | {best.node.uid}

    @staticmethod
    def _ordered_keys(root: PlanNode) -> list[_NodeKey]:
        nodes = sorted(root.iter_nodes(), key=lambda n: n.total_cost, reverse=True)
        return [_NodeKey.of(node) for node in nodes]


def match_nodes(left_root: PlanNode, right_root: PlanNode) -> MatchMap:
    """
    Build a MatchMap between a "before" and an "after" plan.

    Args:
        left_root: Root of the before plan.
        right_root: Root of the after plan.

    Returns:
        Partial injective MatchMap (left uid -> right uid).
    """
    return NodeMatcher().match(left_root, right_root)


@dataclass(frozen=True)
class NodePair:
    """A matched pair, or a node present on only one side."""

    left: PlanNode | None
    right: PlanNode | None

    @property
    def is_matched(self) -> bool:
        return self.left is not None and self.right is not None


def pair_nodes(left_root: PlanNode, right_root: PlanNode, match_map: MatchMap) -> list[NodePair]:
    """
    Expand a MatchMap into node pairs.

    Order: matched pairs in left-tree order, then left-only nodes, then
    right-only nodes in right-tree order.
    """
    right_by_uid = {node.uid: node for node in right_root.iter_nodes()}

    matched: list[NodePair] = []
    removed: list[NodePair] = []
    for node in left_root.iter_nodes():
        right_uid = match_map.get(node.uid)
        if right_uid is not None and right_uid in right_by_uid:
            matched.append(NodePair(left=node, right=right_by_uid[right_uid]))
        else:
            removed.append(NodePair(left=node, right=None))

    added = [
        NodePair(left=None, right=node)
        for node in right_root.iter_nodes()
        if match_map.left_for(node.uid) is None
    ]

    return matched + removed + added
