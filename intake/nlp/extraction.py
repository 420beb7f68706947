"""
Field extraction: one model call per turn harvests every requested field the
visitor has stated. Conservative by contract: unknown means null. Every value
still passes the field validator; a postal code without city/state is enriched
afterwards.
"""

import logging
from datetime import date
from typing import Any, Callable

from intake.location.zip_lookup import Location, enrich_location, lookup_zip
from intake.nlp.llm_client import ModelError, complete_json
from intake.schemas.contract import ExtractionResult
from intake.state.schema_registry import FieldSpec, PracticeAreaCatalog, get_catalog
from intake.state.validation import validate_field

logger = logging.getLogger(__name__)

EXTRACTION_SYSTEM_PROMPT = """You extract intake details for a legal referral service from what a visitor wrote.

Rules:
- Only extract facts the visitor actually stated. Never guess, infer or fill in typical values.
- If a field is not mentioned, return null for it. Null is always better than a guess.
- Today's date is {today}. Write dates as YYYY-MM-DD; resolve relative dates ("yesterday", "2 weeks ago") against today.
- Yes/no fields are "yes" or "no".
- "category" is the practice area that best fits the visitor's problem, chosen from: {categories}; or null if unclear.
- "subcategory" is a more specific type of matter in a few words, or null.
- "isLegalQuestion" is true when the visitor describes a legal problem or asks for legal help.

Reply with JSON only, in this shape:
{{"extractedFields": {{"<field>": <value or null>, ...}}, "category": <string or null>, "subcategory": <string or null>, "confidence": <0.0 to 1.0>, "isLegalQuestion": <true or false>}}"""

_WORD_CONFIDENCE = {"high": 0.9, "medium": 0.6, "low": 0.3}


def _describe_field(spec: FieldSpec) -> str:
    parts = [spec.type.value]
    if spec.allowed_values:
        parts.append("one of: " + " | ".join(spec.allowed_values))
    line = f"- {spec.name} ({', '.join(parts)})"
    if spec.description:
        line += f": {spec.description}"
    return line


def _build_user_content(message: str, fields: list[FieldSpec], current_field: str | None) -> str:
    lines = ["Fields to extract:"]
    lines += [_describe_field(f) for f in fields]
    if current_field:
        lines.append(f"\nThe visitor is answering a question about: {current_field}")
    lines.append(f"\nVisitor message:\n{message}")
    return "\n".join(lines)


def _confidence(raw: Any) -> float:
    if isinstance(raw, str):
        if raw.strip().lower() in _WORD_CONFIDENCE:
            return _WORD_CONFIDENCE[raw.strip().lower()]
        try:
            raw = float(raw)
        except ValueError:
            return 0.0
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return 0.0
    return max(0.0, min(1.0, float(raw)))


def _truthy(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    return isinstance(raw, str) and raw.strip().lower() in ("true", "yes")


def _match(value: Any, vocabulary: list[str]) -> str | None:
    if not isinstance(value, str):
        return None
    key = value.strip().lower().replace("_", " ")
    for v in vocabulary:
        if v.lower().replace("_", " ") == key:
            return v
    return None


def empty_result(fields: list[FieldSpec]) -> ExtractionResult:
    return ExtractionResult(extracted_fields={f.name: None for f in fields})


def extract_fields(
    message: str,
    history: list[dict[str, str]] | None,
    required_fields: list[FieldSpec],
    current_field: str | None = None,
    *,
    category: str | None = None,
    catalog: PracticeAreaCatalog | None = None,
    chat=None,
    lookup: Callable[[str], Location | None] | None = None,
    session_id: str | None = None,
    today: date | None = None,
) -> ExtractionResult:
    """
    Extract ``required_fields`` from ``message``. Soft-fails to an all-null
    result (confidence 0.0, not a legal question) on any model problem.
    """
    catalog = catalog or get_catalog()
    today = today or date.today()
    if not message or not message.strip() or not required_fields:
        return empty_result(required_fields)

    system = EXTRACTION_SYSTEM_PROMPT.format(today=today.isoformat(), categories=", ".join(catalog.vocabulary))
    try:
        reply = complete_json(
            system,
            _build_user_content(message, required_fields, current_field),
            history=history,
            chat=chat,
        )
    except ModelError as e:
        logger.warning("Extraction failed (session=%s): %s", session_id, e)
        return empty_result(required_fields)

    raw_fields = reply.get("extractedFields", reply.get("extracted_fields"))
    if not isinstance(raw_fields, dict):
        logger.warning("Extraction reply has no extractedFields object (session=%s)", session_id)
        return empty_result(required_fields)

    extracted: dict[str, Any] = {}
    for spec in required_fields:
        raw = raw_fields.get(spec.name)
        extracted[spec.name] = validate_field(spec, raw, today=today) if raw not in ("", None) else None

    requested = {f.name for f in required_fields}
    if {"city", "state"} & requested:
        enriched = enrich_location(extracted, lookup=lookup or lookup_zip)
        extracted = {k: v for k, v in enriched.items() if k in requested}

    detected_category = _match(reply.get("category"), catalog.vocabulary)
    sub_schema = catalog.get(detected_category or category)
    detected_subcategory = _match(reply.get("subcategory"), sub_schema.subcategory_vocabulary) if sub_schema else None

    return ExtractionResult(
        extracted_fields=extracted,
        detected_category=detected_category,
        detected_subcategory=detected_subcategory,
        confidence=_confidence(reply.get("confidence")),
        is_legal_question=_truthy(reply.get("isLegalQuestion", reply.get("is_legal_question"))),
    )
