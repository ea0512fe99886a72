"""Tests for JSON and text renderers."""

from __future__ import annotations

import json

import pytest

from plandelta.engine import compare_texts
from plandelta.output import (
    OutputFormat,
    comparison_to_dict,
    get_json_schema,
    render,
    render_comparison,
    render_text,
    render_tree_json,
)
from plandelta.parser import parse_plan

SEQ_SCAN = "Seq Scan on users  (cost=0.00..183.00 rows=50000 width=45)"
INDEX_SCAN = "Index Scan using idx_users_id on users  (cost=0.00..8.27 rows=1 width=45)"


class TestJsonRendering:
    """Schema-backed JSON output."""

    def test_comparison_json(self) -> None:
        data = json.loads(render_comparison(compare_texts(SEQ_SCAN, INDEX_SCAN)))

        assert data["version"] == "1.0"
        assert data["verdict"] == "Improved"
        assert data["metric"] == "total_cost"
        assert data["root"]["before"] == pytest.approx(183.0)
        assert data["matches"] == {"n_0": "n_0"}
        assert data["summary"]["matched"] == 1
        assert data["summary"]["improved"] == 1

    def test_node_detail(self) -> None:
        data = comparison_to_dict(compare_texts(SEQ_SCAN, INDEX_SCAN))

        (item,) = data["nodes"]
        assert item["verdict"] == "Improved"
        assert item["left_uid"] == "n_0"
        assert item["risks"]["resolved"] == ["large_seq_scan"]
        assert item["actual_time"] is None

    def test_trees_carry_risks(self) -> None:
        data = comparison_to_dict(compare_texts(SEQ_SCAN, INDEX_SCAN))

        assert data["left"]["operation"] == "Seq Scan on users"
        assert data["left"]["risks"][0]["kind"] == "large_seq_scan"
        assert data["right"]["risks"] == []

    def test_incomplete_comparison(self) -> None:
        data = comparison_to_dict(compare_texts(SEQ_SCAN, ""))

        assert data["verdict"] is None
        assert data["right"] is None
        assert data["nodes"] == []
        assert data["summary"]["left_nodes"] == 1

    def test_tree_json(self) -> None:
        root = parse_plan(
            "Sort  (cost=20.00..21.00 rows=100 width=4)\n"
            "  Sort Key: id\n"
            "  ->  Seq Scan on t  (cost=0.00..15.00 rows=100 width=4)\n"
        )

        data = json.loads(render_tree_json(root))

        assert data["operation"] == "Sort"
        assert data["details"] == "Sort Key: id"
        assert data["children"][0]["operation"] == "Seq Scan on t"
        assert data["children"][0]["percentage"] == pytest.approx(15.0 / 21.0 * 100)

    def test_json_schema(self) -> None:
        schema = get_json_schema()
        assert "verdict" in schema["properties"]


class TestTextRendering:
    """Plain text output."""

    def test_text(self) -> None:
        text = render_text(compare_texts(SEQ_SCAN, INDEX_SCAN))

        assert "Verdict: Improved" in text
        assert "[Improved] Index Scan using idx_users_id on users" in text
        assert "- risk: large_seq_scan" in text

    def test_text_incomplete(self) -> None:
        text = render_text(compare_texts(SEQ_SCAN, None))
        assert "No after plan found" in text

    def test_dispatch(self) -> None:
        comparison = compare_texts(SEQ_SCAN, INDEX_SCAN)

        assert render(comparison, OutputFormat.TEXT) == render_text(comparison)
        assert render(comparison, OutputFormat.JSON) == render_comparison(comparison)
