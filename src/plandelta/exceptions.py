"""
Package-level exception hierarchy for PlanDelta.

The parsing, matching, risk and verdict core never raises for bad plan
text: unparseable input becomes ``None`` and missing data becomes a default.
These exceptions are used only at the edges (file loading, configuration,
CLI orchestration).

Hierarchy:
    PlanDeltaError
    ├── ParseError          – A plan file could not be read or was empty
    ├── ConfigurationError  – Invalid configuration value or file
    └── ComparisonError     – A comparison was requested without two plans
"""

from __future__ import annotations

from typing import Any


class PlanDeltaError(Exception):
    """
    Base exception for all PlanDelta errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON error output."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


# ── Parse Errors ─────────────────────────────────────────────────────────


class ParseError(PlanDeltaError):
    """
    A plan source could not be loaded.

    Attributes:
        detail: Technical details for debugging (optional).
        source: Where the error occurred (e.g., "file_read").
    """

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        source: str = "unknown",
    ) -> None:
        self.detail = detail
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}\n\nDetails: {self.detail}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["detail"] = self.detail
        result["source"] = self.source
        return result


# ── Configuration Errors ─────────────────────────────────────────────────


class ConfigurationError(PlanDeltaError):
    """
    Error in configuration.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result


# ── Comparison Errors ────────────────────────────────────────────────────


class ComparisonError(PlanDeltaError):
    """
    A comparison needs two parsed plans but at least one side is missing.

    Attributes:
        side: Which side had no plan ("left", "right" or "both").
    """

    def __init__(self, message: str, side: str | None = None) -> None:
        self.side = side
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["side"] = self.side
        return result
