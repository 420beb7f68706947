"""
Conversation flow: which field to ask next and how to phrase it.
Pure over the catalog and the answers collected so far; field order in the
catalog decides the question sequence.
"""

import re
from dataclasses import dataclass
from typing import Any

from intake.state.schema_registry import (
    CategorySchema,
    ContextualQuestion,
    PlainQuestion,
    PracticeAreaCatalog,
    get_catalog,
)


@dataclass
class NextQuestion:
    has_next: bool
    field: str | None = None
    question: str | None = None


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def _mentions(key: str, haystack: str) -> bool:
    return bool(re.search(rf"\b{re.escape(key.lower())}\b", haystack))


def resolve_template(
    template: PlainQuestion | ContextualQuestion,
    *,
    category: str | None = None,
    subcategory: str | None = None,
    describe: str | None = None,
) -> str | None:
    """
    Contextual variants resolve by exact subcategory, then a variant key
    mentioned in the subcategory or description, then the category id,
    then ``default``.
    """
    if isinstance(template, PlainQuestion):
        return template.text
    variants = template.variants
    if subcategory and subcategory in variants:
        return variants[subcategory]
    haystack = f"{subcategory or ''} {describe or ''}".lower()
    for key, text in variants.items():
        if key != category and _mentions(key, haystack):
            return text
    if category and category in variants:
        return variants[category]
    return template.default


def compassionate_intro(schema: CategorySchema, subcategory: str | None, describe: str | None) -> str:
    haystack = f"{subcategory or ''} {describe or ''}".lower()
    for key, intro in schema.personality.context_intros.items():
        if _mentions(key, haystack):
            return intro
    return schema.personality.compassionate_intro


def generic_question(field_name: str) -> str:
    return f"What is your {field_name.replace('_', ' ')}?"


def _fill(text: str, schema: CategorySchema, answers: dict[str, Any], subcategory: str | None) -> str:
    first_name = str(answers.get("first_name") or "").strip()
    out = text.replace("{name_prefix}", f"{first_name}, " if first_name else "")
    out = out.replace("{first_name}", first_name)
    if "{compassionate_intro}" in out:
        intro = compassionate_intro(schema, subcategory, answers.get("describe"))
        out = out.replace("{compassionate_intro}", intro)
    out = " ".join(out.split())
    return out[:1].upper() + out[1:]


def question_for(
    schema: CategorySchema,
    field_name: str,
    answers: dict[str, Any],
    subcategory: str | None = None,
) -> str:
    template = schema.field_questions.get(field_name)
    text = None
    if template is not None:
        text = resolve_template(
            template,
            category=schema.id,
            subcategory=subcategory,
            describe=answers.get("describe"),
        )
    if not text:
        return generic_question(field_name)
    return _fill(text, schema, answers, subcategory)


def missing_fields(schema: CategorySchema, answers: dict[str, Any]) -> list[str]:
    return [f.name for f in schema.askable_fields() if is_missing(answers.get(f.name))]


def next_question(
    answers: dict[str, Any],
    category: str,
    subcategory: str | None = None,
    *,
    catalog: PracticeAreaCatalog | None = None,
) -> NextQuestion:
    """
    First askable field still missing, with its question text; ``has_next``
    is False once everything the visitor must answer is present.
    Raises UnknownCategoryError for a category not in the catalog.
    """
    schema = (catalog or get_catalog()).require(category)
    missing = missing_fields(schema, answers)
    if not missing:
        return NextQuestion(has_next=False)
    field_name = missing[0]
    sub = subcategory or answers.get("sub_category")
    return NextQuestion(has_next=True, field=field_name, question=question_for(schema, field_name, answers, sub))


def completion_message(answers: dict[str, Any], schema: CategorySchema) -> str:
    """Consent prompt shown once intake is complete."""
    first_name = str(answers.get("first_name") or "").strip()
    thanks = f"Thank you, {first_name}." if first_name else "Thank you."
    return (
        f"{thanks} May we share your information with a qualified attorney in your area "
        f"who handles {schema.name} cases?"
    )
