from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class DataQualityWarning(UserWarning):
    """A snapshot row that was dropped or repaired during normalization."""

    def __init__(self, reason: str, record: Mapping[str, Any] | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.record = dict(record) if record is not None else {}


class ConflictError(ValueError):
    """Raised when an install targets a contract line or unit that is already bound."""


class GuardRejected(ValueError):
    """Raised when a loss/breakage flag is requested for customer-owned equipment."""


class ValidationError(ValueError):
    """Raised when a commit payload would violate a cross-field invariant."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = list(violations)
        summary = "; ".join(self.violations)
        super().__init__(f"Commit payload failed validation ({len(self.violations)}): {summary}")


class CommitInProgressError(RuntimeError):
    """Raised when a second commit is issued for a work item that is still committing."""
