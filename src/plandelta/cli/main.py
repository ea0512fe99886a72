"""
PlanDelta CLI - Execution plan comparison.

Reads text EXPLAIN output (indented trees or pipe-delimited tables) and
shows what changed between a before and an after plan.

Usage:
    plandelta parse plan.txt
    plandelta split both_plans.txt
    plandelta compare before.txt after.txt
    plandelta compare both_plans.txt --json
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from plandelta import __version__
from plandelta.config import Config, get_config, load_config_strict
from plandelta.diff.matcher import NodePair
from plandelta.diff.risk import RiskTag, assess_tree
from plandelta.diff.verdict import MetricDelta, NodeVerdict, Verdict
from plandelta.engine import ComparisonService, NodeComparison, PlanComparison, compare_pair
from plandelta.exceptions import ComparisonError, ParseError, PlanDeltaError
from plandelta.output.renderers import render_comparison, render_tree_json
from plandelta.parser.models import PlanNode
from plandelta.parser.splitter import detect_and_split
from plandelta.parser.text_parser import parse_plan, read_plan_text

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="plandelta",
    help="Execution plan parser and before/after diff",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

_VERDICT_STYLES = {
    Verdict.IMPROVED: "green",
    Verdict.REGRESSED: "red",
    Verdict.SIMILAR: "yellow",
}

_NODE_VERDICT_STYLES = {
    NodeVerdict.IMPROVED: "green",
    NodeVerdict.REGRESSED: "red",
    NodeVerdict.SIMILAR: "dim",
    NodeVerdict.NEW: "cyan",
    NodeVerdict.REMOVED: "magenta",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"PlanDelta version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, level: str = "WARNING") -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_path=False)],
    )


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
) -> None:
    """PlanDelta - Execution plan parser and before/after diff."""
    configure_logging(verbose, get_config().log_level)


def _fail(error: PlanDeltaError) -> NoReturn:
    """Print an error to stderr and exit 1."""
    error_console.print(f"[red]Error:[/red] {escape(error.message)}")
    detail = getattr(error, "detail", None)
    if detail:
        error_console.print(f"\n[dim]{escape(detail)}[/dim]")
    raise typer.Exit(code=1)


def _load_config(config_path: Path | None) -> Config:
    if config_path is None:
        return get_config()
    return load_config_strict(config_path)


# =============================================================================
# Tree rendering
# =============================================================================


def _node_label(node: PlanNode, tags: list[RiskTag]) -> str:
    label = f"[bold]{escape(node.operation)}[/bold]"
    stats = f"cost={node.total_cost:,.2f} rows={node.rows:,} {node.percentage:.1f}%"
    if node.actual_time is not None:
        stats += f" time={node.actual_time:,.3f}ms"
    label += f"  [dim]{stats}[/dim]"
    for tag in tags:
        label += f"\n[yellow]! {escape(tag.message)}[/yellow]"
    return label


def build_tree(root: PlanNode, risks: dict[str, list[RiskTag]]) -> Tree:
    """Build a rich Tree for a parsed plan, annotated with risk tags."""
    tree = Tree(_node_label(root, risks.get(root.uid, [])))
    stack = [(root, tree)]
    while stack:
        node, branch = stack.pop()
        for child in node.children:
            child_branch = branch.add(_node_label(child, risks.get(child.uid, [])))
            stack.append((child, child_branch))
    return tree


# =============================================================================
# Comparison rendering
# =============================================================================


def _format_change(delta: MetricDelta | None) -> str:
    if delta is None:
        return "-"
    style = "green" if delta.diff < 0 else "red" if delta.diff > 0 else "dim"
    return f"[{style}]{delta.change_percent:+.1f}%[/{style}]"


def _format_risks(item: NodeComparison) -> str:
    parts = [f"[red]+{kind.value}[/red]" for kind in item.risks.new]
    parts += [f"[green]-{kind.value}[/green]" for kind in item.risks.resolved]
    parts += [f"[dim]{kind.value}[/dim]" for kind in item.risks.persisting]
    return " ".join(parts)


def print_comparison(comparison: PlanComparison) -> None:
    """Print verdict banner, root metrics and the node table."""
    verdict = comparison.verdict
    style = _VERDICT_STYLES.get(verdict, "white")
    root = comparison.root_delta

    body = f"[{style} bold]{verdict.value}[/{style} bold]"
    if root is not None and comparison.metric is not None:
        body += (
            f"\n\n{comparison.metric.value}: {root.before:,.2f} -> {root.after:,.2f} "
            f"({_format_change(root)})"
        )
    console.print(Panel(body, title="PlanDelta", border_style=style))

    metrics = Table(title="Root metrics")
    metrics.add_column("Metric", style="cyan")
    metrics.add_column("Before", justify="right")
    metrics.add_column("After", justify="right")
    metrics.add_column("Change", justify="right")

    roots = compare_pair(NodePair(left=comparison.left, right=comparison.right))
    for name, delta in (
        ("Total cost", roots.cost),
        ("Rows", roots.rows),
        ("Actual time (ms)", roots.actual_time),
        ("Actual rows", roots.actual_rows),
    ):
        if delta is not None:
            metrics.add_row(name, f"{delta.before:,.2f}", f"{delta.after:,.2f}", _format_change(delta))
    console.print(metrics)

    table = Table(title=f"Nodes ({comparison.matched_count} matched)")
    table.add_column("Verdict")
    table.add_column("Operation")
    table.add_column("Cost", justify="right")
    table.add_column("Risks")

    for item in comparison.nodes:
        node_style = _NODE_VERDICT_STYLES[item.verdict]
        table.add_row(
            f"[{node_style}]{item.verdict.value}[/{node_style}]",
            escape(item.operation),
            _format_change(item.cost),
            _format_risks(item),
        )
    console.print(table)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def parse(
    plan_file: Annotated[
        Path,
        typer.Argument(help="Path to a text EXPLAIN output file"),
    ],
    json_output: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output the parsed tree as JSON"),
    ] = False,
) -> None:
    """
    Parse a plan and show its operator tree.

    Examples:

        $ psql -c "EXPLAIN ANALYZE SELECT * FROM users" > plan.txt
        $ plandelta parse plan.txt
    """
    config = get_config()
    try:
        text = read_plan_text(plan_file)
    except PlanDeltaError as e:
        _fail(e)

    root = parse_plan(text, config.parser)
    if root is None:
        _fail(ParseError(f"No plan found in {plan_file}", source="parse"))

    if json_output:
        typer.echo(render_tree_json(root))
        return

    risks = assess_tree(root, config.risk)
    console.print(build_tree(root, risks))
    console.print(f"[dim]{root.node_count()} node(s), {len(risks)} with risks[/dim]")


@app.command()
def split(
    plan_file: Annotated[
        Path,
        typer.Argument(help="File holding two plans pasted together"),
    ],
) -> None:
    """Show how a pasted blob would be split into before and after plans."""
    try:
        text = read_plan_text(plan_file)
    except PlanDeltaError as e:
        _fail(e)

    result = detect_and_split(text)
    console.print(f"[bold]Strategy:[/bold] {result.strategy.value}")
    console.print(Panel(escape(result.left) or "[dim](empty)[/dim]", title="Before"))
    if result.has_second_plan:
        console.print(Panel(escape(result.right), title="After"))
    else:
        console.print("[yellow]No second plan found.[/yellow]")


@app.command()
def compare(
    left_file: Annotated[
        Path,
        typer.Argument(help="Before plan, or a file holding both plans"),
    ],
    right_file: Annotated[
        Optional[Path],
        typer.Argument(help="After plan (omit to split LEFT_FILE)"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output the comparison as JSON"),
    ] = False,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="JSON or YAML config file with risk thresholds"),
    ] = None,
) -> None:
    """
    Compare a before plan with an after plan.

    With one file the two plans are split out of it automatically.

    Examples:

        $ plandelta compare before.txt after.txt
        $ plandelta compare both.txt --json
    """
    try:
        config = _load_config(config_path)
        service = ComparisonService(config)

        if right_file is None:
            comparison = service.compare_unified(read_plan_text(left_file))
        else:
            comparison = service.compare_texts(
                read_plan_text(left_file),
                read_plan_text(right_file),
            )

        if json_output:
            typer.echo(render_comparison(comparison))
            if not comparison.is_complete:
                raise typer.Exit(code=1)
            return

        if not comparison.is_complete:
            side = "before" if comparison.left is None else "after"
            raise ComparisonError(f"No {side} plan found; nothing to compare", side=side)

        logger.debug("Comparison config hash %s", config.config_hash())
        print_comparison(comparison)

    except PlanDeltaError as e:
        _fail(e)


if __name__ == "__main__":
    app()
