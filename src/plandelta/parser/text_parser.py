"""
Parser for textual execution plan dumps.

Two layouts are accepted:

- Indented: one operator per line, depth shown by indentation and ``->``
  arrows, statistics in ``(cost=A..B rows=R width=W)`` and optional
  ``(actual time=A..B rows=R loops=L)`` annotations (PostgreSQL / GaussDB
  text EXPLAIN).
- Tabular: pipe-delimited rows ``id | operation | actual_time |
  actual_rows | estimated_rows | ... | cost`` (GaussDB EXPLAIN PERFORMANCE
  style), numeric cells possibly written as ranges like ``[12.5,378.601]``.

There is no grammar here. The tree is recovered from indentation: a node's
parent is the closest earlier node with a strictly smaller indent.

Error handling philosophy: this parser never raises for plan text. Blank or
unrecognisable input yields None, missing numbers default to 0 and missing
actuals stay None. Only parse_plan_file() raises, for file problems.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from plandelta.exceptions import ParseError
from plandelta.parser.config import DEFAULT_CONFIG, ParserConfig
from plandelta.parser.models import PlanDialect, PlanNode

logger = logging.getLogger(__name__)


_STATEMENT_PREFIXES = (
    "set ",
    "explain ",
    "select ",
    "insert ",
    "update ",
    "delete ",
    "create ",
    "drop ",
)

_DASH_LINE_RE = re.compile(r"^-+$")
_TABULAR_ROW_RE = re.compile(r"^\s*\d+\s*\|", re.MULTILINE)

_NUMBER = r"(\d+(?:\.\d+)?)"
_COST_RE = re.compile(
    rf"\(cost={_NUMBER}\.\.{_NUMBER}(?:\s+rows={_NUMBER})?(?:\s+width={_NUMBER})?"
)
_ACTUAL_RE = re.compile(
    rf"\(actual time={_NUMBER}\.\.{_NUMBER}(?:\s+rows={_NUMBER})?(?:\s+loops={_NUMBER})?"
)
_RANGE_RE = re.compile(rf"{_NUMBER}\.\.{_NUMBER}")
_CELL_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")

_ARROW = "->"


# =============================================================================
# Line helpers
# =============================================================================


def is_ignored_line(line: str) -> bool:
    """
    Check whether a line is a SQL preamble, comment or dash rule.

    These lines surround pasted plans (``SET explain_perf_mode``,
    ``EXPLAIN ANALYZE SELECT ...``, ``-- baseline``) and never carry nodes.
    A statement-keyword line that carries a cost annotation is an operator
    (``Update on users  (cost=...)``) and is kept.
    """
    lowered = line.strip().lower()
    if lowered.startswith("--") or _DASH_LINE_RE.match(lowered):
        return True
    if lowered.startswith(_STATEMENT_PREFIXES):
        return not (_COST_RE.search(line) or _ACTUAL_RE.search(line))
    return False


def detect_dialect(text: str) -> PlanDialect:
    """
    Decide whether text is a tabular or an indented plan.

    Tabular if it contains ``|`` and either the word "operation" or a line
    starting with a numeric id followed by ``|``.
    """
    if "|" in text and ("operation" in text or _TABULAR_ROW_RE.search(text)):
        return PlanDialect.TABULAR
    return PlanDialect.INDENTED


def parse_numeric_cell(cell: str | None) -> float | None:
    """
    Read a number from a tabular cell.

    ``[a,b]`` gives b, ``[a]`` gives a, a plain number gives itself.
    Returns None for empty or non-numeric cells.

    >>> parse_numeric_cell("[378.601,378.601]")
    378.601
    >>> parse_numeric_cell("[120]")
    120.0
    """
    if cell is None:
        return None
    value = cell.strip()
    if not value:
        return None

    if value.startswith("["):
        parts = [p for p in value.strip("[]").split(",") if p.strip()]
        if not parts:
            return None
        value = parts[1] if len(parts) > 1 else parts[0]

    match = _CELL_NUMBER_RE.search(value)
    if match is None:
        return None
    return float(match.group(0))


def _cell_or_zero(cell: str | None) -> float:
    number = parse_numeric_cell(cell)
    return number if number is not None else 0.0


def _int_or_none(value: float | None) -> int | None:
    return int(round(value)) if value is not None else None


def _leading_offset(text: str, strip_chars: str | None = None) -> int:
    """Offset of the first character not in strip_chars (whitespace by default)."""
    return len(text) - len(text.lstrip(strip_chars))


def _clean_operation(raw: str) -> str:
    operation = raw.strip()
    if operation.startswith(_ARROW):
        operation = operation[len(_ARROW):].strip()
    return operation


# =============================================================================
# Tree construction
# =============================================================================


class _TreeBuilder:
    """
    Mutable state for one parse invocation.

    Holds the node stack, the root and the uid counter. A fresh builder is
    created per parse so uids restart at ``n_0`` every time.
    """

    def __init__(self, config: ParserConfig) -> None:
        self.config = config
        self.root: PlanNode | None = None
        self.last: PlanNode | None = None
        self._stack: list[tuple[PlanNode, int]] = []
        self._counter = 0
        self._truncated = False

    @property
    def full(self) -> bool:
        if self._counter >= self.config.max_nodes:
            if not self._truncated:
                logger.warning(
                    "Plan exceeds %d nodes, ignoring remaining node lines",
                    self.config.max_nodes,
                )
                self._truncated = True
            return True
        return False

    def make_node(self, operation: str, **fields: object) -> PlanNode:
        node = PlanNode(uid=f"n_{self._counter}", operation=operation, **fields)
        self._counter += 1

        if operation.startswith("CTE Scan on"):
            node.is_cte_scan = True
            remainder = operation[len("CTE Scan on"):].split()
            node.cte_name = remainder[0] if remainder else None
        elif operation.startswith("CTE "):
            node.is_cte_definition = True
            node.cte_name = operation[len("CTE "):].strip() or None

        return node

    def attach(self, node: PlanNode, indent: int) -> None:
        """Attach node under the closest stacked node with a smaller indent."""
        self.last = node

        if self.root is None:
            self.root = node
            self._stack.append((node, -1))
            return

        parent = self.root
        for candidate, candidate_indent in reversed(self._stack):
            if candidate_indent < indent:
                parent = candidate
                break

        parent.children.append(node)
        self._stack.append((node, indent))


def _finalize(root: PlanNode) -> None:
    """
    Compute percentage of root cost and self cost for every node.

    Each node only needs its own total, its direct children's totals and the
    fixed root total, so one pass in any order is enough.
    """
    root_total = root.total_cost
    for node in root.iter_nodes():
        if root_total > 0:
            node.percentage = min(100.0, max(0.0, node.total_cost / root_total * 100))
        else:
            node.percentage = 0.0

        if node.children:
            child_total = sum(child.total_cost for child in node.children)
            node.self_cost = max(0.0, node.total_cost - child_total)
        else:
            node.self_cost = max(0.0, node.total_cost)


# =============================================================================
# Dialect parsers
# =============================================================================


def _parse_indented(lines: list[str], builder: _TreeBuilder) -> None:
    for line in lines:
        cost_match = _COST_RE.search(line)
        actual_match = _ACTUAL_RE.search(line)
        # Any "->" counts, so a filter using the JSON "->>" operator is read as a node
        has_arrow = _ARROW in line

        if not cost_match and not actual_match and not has_arrow:
            # Continuation text: filters, conditions, CTE / SubPlan markers
            if builder.last is not None:
                extra = line.strip()
                builder.last.details = (
                    f"{builder.last.details}\n{extra}" if builder.last.details else extra
                )
            continue

        if builder.full:
            continue

        clean_line = line[_leading_offset(line, " \t|"):]
        operation = _clean_operation(clean_line.split("(")[0])
        if not operation:
            continue

        indent = line.index(_ARROW) if has_arrow else _leading_offset(line, " \t|")

        fields: dict[str, object] = {}
        if cost_match:
            fields["total_cost"] = float(cost_match.group(2))
            if cost_match.group(3) is not None:
                fields["rows"] = int(float(cost_match.group(3)))
            if cost_match.group(4) is not None:
                fields["width"] = int(float(cost_match.group(4)))
        if actual_match:
            fields["actual_time"] = float(actual_match.group(2))
            if actual_match.group(3) is not None:
                fields["actual_rows"] = int(float(actual_match.group(3)))
            if actual_match.group(4) is not None:
                fields["loops"] = int(float(actual_match.group(4)))

        builder.attach(builder.make_node(operation, **fields), indent)


def _parse_tabular(lines: list[str], builder: _TreeBuilder) -> None:
    for line in lines:
        if line.lstrip().startswith("---"):
            continue

        cells = line.split("|")
        if len(cells) > 2 and not cells[-1].strip():
            cells = cells[:-1]
        if len(cells) < 2:
            continue

        if "id" in cells[0].lower() and "operation" in cells[1].lower():
            continue

        node_id = cells[0].strip()
        if not node_id.isdigit():
            continue

        if builder.full:
            continue

        raw_operation = cells[1]
        operation = _clean_operation(raw_operation)
        if not operation:
            continue

        cost_cell = cells[-1].strip()
        total_cost = _cell_or_zero(cost_cell)
        range_match = _RANGE_RE.search(cost_cell)
        if range_match:
            total_cost = float(range_match.group(2))

        # Interior cells only: with a short row the last cell is the cost
        last = len(cells) - 1
        actual_time = parse_numeric_cell(cells[2]) if 2 < last else None
        actual_rows = parse_numeric_cell(cells[3]) if 3 < last else None
        estimated_rows = _cell_or_zero(cells[4]) if 4 < last else 0.0

        if _ARROW in raw_operation:
            indent = raw_operation.index(_ARROW)
        else:
            indent = _leading_offset(raw_operation)

        node = builder.make_node(
            operation,
            node_id=node_id,
            total_cost=total_cost,
            rows=int(round(estimated_rows)),
            actual_time=actual_time,
            actual_rows=_int_or_none(actual_rows),
        )
        builder.attach(node, indent)


# =============================================================================
# Public API
# =============================================================================


class PlanTextParser:
    """
    Turns one plan text blob into a PlanNode tree.

    The parser object holds configuration only; all per-parse state lives
    in a builder created inside parse(), so one instance can be reused.

    Example:
        >>> parser = PlanTextParser()
        >>> root = parser.parse("Seq Scan on users  (cost=0.00..183.00 rows=10000 width=45)")
        >>> root.operation, root.total_cost, root.rows
        ('Seq Scan on users', 183.0, 10000)
    """

    def __init__(self, config: ParserConfig | None = None) -> None:
        self.config = config or DEFAULT_CONFIG

    def parse(self, text: str | None) -> PlanNode | None:
        """
        Parse plan text into a tree.

        Returns:
            Root PlanNode, or None when no node line was found.
        """
        if not text or not text.strip():
            return None

        expanded = text.expandtabs(self.config.tab_width)
        dialect = detect_dialect(expanded)
        lines = [
            line for line in expanded.splitlines()
            if line.strip() and not is_ignored_line(line)
        ]

        builder = _TreeBuilder(self.config)
        if dialect == PlanDialect.TABULAR:
            _parse_tabular(lines, builder)
        else:
            _parse_indented(lines, builder)

        root = builder.root
        if root is None:
            logger.debug("No plan nodes found in %d %s line(s)", len(lines), dialect.value)
            return None

        _finalize(root)
        logger.debug("Parsed %s plan with %d node(s)", dialect.value, root.node_count())
        return root


def parse_plan(text: str | None, config: ParserConfig | None = None) -> PlanNode | None:
    """
    Parse one execution plan text blob.

    Args:
        text: Plan text in indented or tabular layout.
        config: Parser configuration. If None, uses DEFAULT_CONFIG.

    Returns:
        Root PlanNode, or None for blank or unrecognisable input.

    Example:
        root = parse_plan(Path("plan.txt").read_text())
        for node in root.iter_nodes():
            print(node.operation, node.percentage)
    """
    return PlanTextParser(config).parse(text)


def read_plan_text(path: str | Path) -> str:
    """
    Read raw plan text from a file.

    Raises:
        ParseError: If the file does not exist or cannot be read.
    """
    filepath = Path(path)

    if not filepath.is_file():
        raise ParseError(
            f"File not found: {filepath}",
            source="file_read",
        )

    try:
        return filepath.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(
            f"Cannot read file: {filepath}",
            detail=str(e),
            source="file_read",
        ) from e


def parse_plan_file(path: str | Path, config: ParserConfig | None = None) -> PlanNode | None:
    """
    Read a plan text file and parse it.

    Convenience wrapper around parse_plan() with file-specific errors.

    Raises:
        ParseError: If the file does not exist, cannot be read or is empty.
    """
    content = read_plan_text(path)

    if not content.strip():
        raise ParseError(
            f"File is empty: {path}",
            source="file_read",
        )

    return parse_plan(content, config)
