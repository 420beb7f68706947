"""
Merge newly learned values into a session's answers.
No blind overwrite: a filled answer only changes when the visitor is
answering that exact question again.
"""

import logging
from typing import Any

from intake.state.follow_up import is_missing
from intake.state.schema_registry import CategorySchema
from intake.state.validation import parse_direct_answer

logger = logging.getLogger(__name__)


def merge_answers(
    answers: dict[str, Any],
    new_values: dict[str, Any],
    *,
    asked_field: str | None = None,
) -> tuple[dict[str, Any], list[str]]:
    """Returns (merged answers, names of fields that changed)."""
    merged = dict(answers)
    changed: list[str] = []
    for name, value in new_values.items():
        if is_missing(value):
            continue
        if not is_missing(merged.get(name)) and name != asked_field:
            continue
        if merged.get(name) != value:
            merged[name] = value
            changed.append(name)
    return merged, changed


def fill_from_reply(
    schema: CategorySchema,
    answers: dict[str, Any],
    asked_field: str | None,
    message: str,
    misses: dict[str, int],
    *,
    max_misses: int,
) -> tuple[dict[str, Any], str | None]:
    """
    Read the reply as a direct answer to the question just asked when extraction
    left it empty. Free-text fields are taken verbatim only after ``max_misses``
    consecutive misses on that field.
    """
    if not asked_field or not is_missing(answers.get(asked_field)):
        return answers, None
    spec = schema.field(asked_field)
    if spec is None:
        return answers, None
    force = misses.get(asked_field, 0) >= max_misses
    value = parse_direct_answer(spec, message, accept_free_text=force)
    if value is None:
        return answers, None
    logger.info("Direct answer accepted for %s (misses=%d)", asked_field, misses.get(asked_field, 0))
    return {**answers, asked_field: value}, asked_field


def update_misses(
    misses: dict[str, int],
    asked_field: str | None,
    answers: dict[str, Any],
) -> dict[str, int]:
    """Count consecutive turns where the field just asked stayed empty."""
    updated = dict(misses)
    if not asked_field:
        return updated
    if is_missing(answers.get(asked_field)):
        updated[asked_field] = updated.get(asked_field, 0) + 1
    else:
        updated.pop(asked_field, None)
    return updated
