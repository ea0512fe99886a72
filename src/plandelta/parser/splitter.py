"""
Split one pasted blob into a "before" and an "after" plan.

Users often paste both plans into a single box. There is no delimiter
contract, so a short list of heuristics is tried in order and the first one
that finds two plans wins:

1. Two EXPLAIN directives (``EXPLAIN ANALYZE ...``)
2. Two tabular headers (``id | operation | ...``)
3. Two plan roots, at least 10 lines apart
4. A separator line (``-----``, ``=====``, ``Plan 2``, ``Optimized Plan``)

If none applies the whole text is the left plan and the right is empty.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


_EXPLAIN_RE = re.compile(r"^\s*explain\s+(performance|analyze|verbose)?", re.IGNORECASE)
_TABULAR_HEADER_RE = re.compile(r"id\s*\|\s*operation", re.IGNORECASE)
_TEXT_ROOT_RE = re.compile(r"^\s{0,2}[a-zA-Z].+\((cost|actual time)=")
_TABULAR_ROOT_RE = re.compile(r"^\s*1\s*\|\s*(->)?")
_RULE_LINE_RE = re.compile(r"^(-+|=+)$")

_SEPARATOR_PATTERNS = (
    re.compile(r"^-{10,}$", re.MULTILINE),
    re.compile(r"^={10,}$", re.MULTILINE),
    re.compile(r"^Plan\s*2:?$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^Optimized\s*Plan:?$", re.IGNORECASE | re.MULTILINE),
)

# Roots closer than this are treated as nested nodes printed at column 0
ROOT_MIN_LINE_GAP = 10

# A separator piece shorter than this is a header or label, not a plan
MIN_SEGMENT_CHARS = 20


class SplitStrategy(str, Enum):
    """Which heuristic produced a split."""

    EXPLAIN_DIRECTIVE = "explain_directive"
    TABULAR_HEADER = "tabular_header"
    PLAN_ROOT = "plan_root"
    SEPARATOR = "separator"
    NONE = "none"


@dataclass(frozen=True)
class SplitResult:
    """
    Two trimmed plan text segments.

    An empty ``right`` means no second plan was found; callers must not
    compare in that case.
    """

    left: str
    right: str
    strategy: SplitStrategy = SplitStrategy.NONE

    @property
    def has_second_plan(self) -> bool:
        return bool(self.right)


def _split_lines(lines: list[str], at: int, strategy: SplitStrategy) -> SplitResult:
    return SplitResult(
        left="\n".join(lines[:at]).strip(),
        right="\n".join(lines[at:]).strip(),
        strategy=strategy,
    )


def _split_on_explain(lines: list[str]) -> SplitResult | None:
    indices = [i for i, line in enumerate(lines) if _EXPLAIN_RE.match(line)]
    if len(indices) < 2:
        return None
    return _split_lines(lines, indices[1], SplitStrategy.EXPLAIN_DIRECTIVE)


def _split_on_tabular_header(text: str) -> SplitResult | None:
    matches = list(_TABULAR_HEADER_RE.finditer(text))
    if len(matches) < 2:
        return None

    second = matches[1].start()
    cut = text.rfind("\n", 0, second)
    if cut == -1:
        cut = second
    return SplitResult(
        left=text[:cut].strip(),
        right=text[cut:].strip(),
        strategy=SplitStrategy.TABULAR_HEADER,
    )


def _find_roots(lines: list[str]) -> list[int]:
    roots: list[int] = []
    for i, line in enumerate(lines):
        if not (_TEXT_ROOT_RE.match(line) or _TABULAR_ROOT_RE.match(line)):
            continue
        if not roots or i > roots[-1] + ROOT_MIN_LINE_GAP:
            roots.append(i)
    return roots


def _split_on_roots(lines: list[str]) -> SplitResult | None:
    roots = _find_roots(lines)
    if len(roots) < 2:
        return None

    first, second = roots[0], roots[1]
    split_at = second
    # Pull the contiguous preamble (blank, set explain, comments) above the
    # second root into the right plan; a rule line or plan line ends it
    for i in range(second - 1, first, -1):
        stripped = lines[i].strip()
        if _RULE_LINE_RE.match(stripped):
            break
        if not stripped or stripped.lower().startswith("set explain") or stripped.startswith("--"):
            split_at = i
        else:
            break

    return _split_lines(lines, split_at, SplitStrategy.PLAN_ROOT)


def _split_on_separator(text: str) -> SplitResult | None:
    for pattern in _SEPARATOR_PATTERNS:
        pieces = [p.strip() for p in pattern.split(text) if len(p.strip()) > MIN_SEGMENT_CHARS]
        if len(pieces) >= 2:
            return SplitResult(left=pieces[0], right=pieces[1], strategy=SplitStrategy.SEPARATOR)
    return None


def detect_and_split(text: str) -> SplitResult:
    """
    Divide a blob suspected to hold two concatenated plans.

    Args:
        text: Combined plan text.

    Returns:
        SplitResult with trimmed left/right segments. When no heuristic
        applies, left is the full text and right is empty.

    Example:
        result = detect_and_split(pasted)
        if result.has_second_plan:
            left, right = parse_plan(result.left), parse_plan(result.right)
    """
    lines = text.splitlines()

    result = (
        _split_on_explain(lines)
        or _split_on_tabular_header(text)
        or _split_on_roots(lines)
        or _split_on_separator(text)
    )

    if result is None:
        logger.debug("No split point found in %d line(s)", len(lines))
        return SplitResult(left=text, right="", strategy=SplitStrategy.NONE)

    logger.debug("Split input using %s heuristic", result.strategy.value)
    return result
