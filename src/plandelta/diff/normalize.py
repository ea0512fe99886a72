"""
Operator label normalization used by matching and risk rules.

Plan printers decorate labels with arrows, stream/worker numbers like
``(4,5)`` and uneven spacing. These helpers reduce a label to a stable
comparable form.
"""

from __future__ import annotations

import re
from enum import Enum

_PAREN_NUMBERS_RE = re.compile(r"\(\d+(,\d+)*\)")
_WHITESPACE_RE = re.compile(r"\s+")
_TARGET_RE = re.compile(r"\s+on\s+([^\s()]+)", re.IGNORECASE)


class NodeCategory(str, Enum):
    """Coarse operator families."""

    SCAN = "Scan"
    JOIN = "Join"
    SORT = "Sort"
    AGG = "Agg"
    OTHER = "Other"


def normalize_operation(operation: str) -> str:
    """
    Normalize an operator label for comparison.

    >>> normalize_operation("->  Vector Sonic Hash Join (4,5)")
    'vector sonic hash join'
    """
    label = operation.strip()
    if label.startswith("->"):
        label = label[2:]
    label = _PAREN_NUMBERS_RE.sub("", label)
    label = _WHITESPACE_RE.sub(" ", label)
    return label.strip().lower()


def extract_target(operation: str) -> str | None:
    """
    Extract the object an operator acts on (``... on <name>``).

    >>> extract_target("Seq Scan on public.Users u")
    'public.users'
    """
    match = _TARGET_RE.search(operation)
    return match.group(1).lower() if match else None


def classify_operation(operation: str) -> NodeCategory:
    """Classify an operator label into a coarse category."""
    lowered = operation.lower()
    if "scan" in lowered:
        return NodeCategory.SCAN
    if "join" in lowered or "loop" in lowered:
        return NodeCategory.JOIN
    if "sort" in lowered:
        return NodeCategory.SORT
    if "agg" in lowered or "group" in lowered:
        return NodeCategory.AGG
    return NodeCategory.OTHER
