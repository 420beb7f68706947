"""
Completeness status for an intake session, reported in each turn's debug info.
Complete | Actionable (1–2 missing) | Incomplete.
"""

from enum import Enum
from typing import Any

from intake.state.follow_up import missing_fields
from intake.state.schema_registry import CategorySchema


class CompletenessStatus(str, Enum):
    COMPLETE = "complete"
    ACTIONABLE = "actionable"  # minor missing
    INCOMPLETE = "incomplete"


def compute_completeness(schema: CategorySchema, answers: dict[str, Any]) -> tuple[int, list[str], CompletenessStatus]:
    """Returns (completeness_pct 0–100, askable fields still missing, status)."""
    askable = schema.askable_fields()
    missing = missing_fields(schema, answers)
    pct = round(((len(askable) - len(missing)) / len(askable)) * 100) if askable else 100
    pct = min(100, max(0, pct))

    if not missing:
        status = CompletenessStatus.COMPLETE
    elif len(missing) <= 2:
        status = CompletenessStatus.ACTIONABLE
    else:
        status = CompletenessStatus.INCOMPLETE
    return pct, missing, status


def completeness_summary(schema: CategorySchema | None, answers: dict[str, Any]) -> dict[str, Any]:
    if schema is None:
        return {"completeness_pct": 0, "missing_fields": [], "status": CompletenessStatus.INCOMPLETE.value}
    pct, missing, status = compute_completeness(schema, answers)
    return {
        "completeness_pct": pct,
        "missing_fields": missing,
        "status": status.value,
    }
