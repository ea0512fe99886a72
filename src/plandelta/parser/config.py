"""
Parser configuration.

Plan text has no tab-width contract, so tabs are expanded to a fixed width
before indentation is measured. Only the relative order of indents matters
for tree construction.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ParserConfig(BaseModel):
    """
    Configuration for the plan text parser.

    Attributes:
        tab_width: Number of columns a tab character expands to when
            measuring indentation.
        max_nodes: Maximum number of plan nodes built from one blob. Node
            lines beyond the limit are ignored (with a logged warning).

    Example:
        config = ParserConfig(tab_width=8)
        root = parse_plan(text, config=config)
    """

    model_config = ConfigDict(frozen=True)

    tab_width: int = Field(
        default=4,
        ge=1,
        le=16,
        description="Columns per tab when measuring indentation",
    )

    max_nodes: int = Field(
        default=50_000,
        gt=0,
        description="Maximum number of plan nodes per parse",
    )


DEFAULT_CONFIG = ParserConfig()
