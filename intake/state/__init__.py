from intake.state.follow_up import (
    NextQuestion,
    completion_message,
    missing_fields,
    next_question,
    question_for,
    resolve_template,
)
from intake.state.models import IntakeSession, IntakeStage, new_session, reset_session
from intake.state.schema_registry import (
    CategorySchema,
    FieldSource,
    FieldSpec,
    FieldType,
    PracticeAreaCatalog,
    get_catalog,
    load_catalog,
)
from intake.state.validation import parse_direct_answer, validate_field

__all__ = [
    "NextQuestion",
    "completion_message",
    "missing_fields",
    "next_question",
    "question_for",
    "resolve_template",
    "IntakeSession",
    "IntakeStage",
    "new_session",
    "reset_session",
    "CategorySchema",
    "FieldSource",
    "FieldSpec",
    "FieldType",
    "PracticeAreaCatalog",
    "get_catalog",
    "load_catalog",
    "parse_direct_answer",
    "validate_field",
]
