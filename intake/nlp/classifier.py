"""
Two-stage category / subcategory detection.
Stage 1: ordered keyword rules, first hit wins (regex, always high).
Stage 2: one model call over the full vocabulary.
Failures never propagate; ``method`` records whether the answer is signal or fallback.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Iterable

from intake.nlp.llm_client import (
    ModelCallError,
    ModelError,
    ModelUnavailableError,
    complete_json,
)
from intake.schemas.contract import ClassificationResult, Confidence, Method
from intake.state.schema_registry import OTHER_SUBCATEGORY, PracticeAreaCatalog, get_catalog

logger = logging.getLogger(__name__)

CLASSIFY_SYSTEM_PROMPT = """You sort messages from people looking for a lawyer.
Pick exactly one {kind} for the message from this list:
{options}

If none fits, answer "{fallback}". Do not invent new values.
Reply with JSON only: {{"{kind}": "<one value from the list>", "confidence": "high" | "medium" | "low"}}"""


@dataclass(frozen=True)
class KeywordRule:
    target: str
    pattern: re.Pattern


def keyword_pattern(keywords: Iterable[str]) -> re.Pattern:
    """Word-boundary alternation; spaces in a keyword match any whitespace."""
    parts = [r"\s+".join(re.escape(w) for w in kw.lower().split()) for kw in keywords if kw.strip()]
    if not parts:
        return re.compile(r"(?!x)x")
    return re.compile(r"\b(?:" + "|".join(parts) + r")\b")


def category_rules(catalog: PracticeAreaCatalog) -> list[KeywordRule]:
    return [KeywordRule(r.category, keyword_pattern(r.keywords)) for r in catalog.keyword_rules]


def subcategory_rules(catalog: PracticeAreaCatalog, category: str) -> list[KeywordRule]:
    """Subcategory names first, then each subcategory's extra keywords, in declared order."""
    schema = catalog.require(category)
    names = [s for s in schema.subcategories if s != OTHER_SUBCATEGORY]
    rules = [KeywordRule(s, keyword_pattern([s])) for s in names]
    rules += [KeywordRule(s, keyword_pattern(schema.subcategories[s])) for s in names if schema.subcategories[s]]
    return rules


def _default_fallback(vocabulary: list[str]) -> str:
    for candidate in ("general", OTHER_SUBCATEGORY):
        if candidate in vocabulary:
            return candidate
    return vocabulary[0] if vocabulary else OTHER_SUBCATEGORY


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def _clamp_confidence(raw: Any) -> Confidence:
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        if raw >= 0.8:
            return Confidence.HIGH
        if raw >= 0.5:
            return Confidence.MEDIUM
        return Confidence.LOW
    try:
        return Confidence(str(raw).strip().lower())
    except ValueError:
        return Confidence.LOW


def _match_vocabulary(value: Any, vocabulary: list[str]) -> str | None:
    if not isinstance(value, str):
        return None
    key = value.strip().lower().replace("_", " ")
    for v in vocabulary:
        if v.lower().replace("_", " ") == key:
            return v
    return None


def classify(
    text: str | None,
    vocabulary: list[str],
    *,
    rules: list[KeywordRule] | None = None,
    fallback: str | None = None,
    kind: str = "category",
    chat=None,
    session_id: str | None = None,
) -> ClassificationResult:
    start = time.perf_counter()
    fallback = fallback or _default_fallback(vocabulary)
    text = (text or "").strip()
    if not text or len(vocabulary) <= 1:
        return ClassificationResult(value=fallback, confidence=Confidence.LOW, method=Method.FALLBACK, detection_time_ms=0.0)

    lowered = text.lower()
    for rule in rules or []:
        if rule.pattern.search(lowered):
            return ClassificationResult(
                value=rule.target,
                confidence=Confidence.HIGH,
                method=Method.REGEX,
                detection_time_ms=_elapsed_ms(start),
            )

    system = CLASSIFY_SYSTEM_PROMPT.format(
        kind=kind,
        options="\n".join(f"- {v}" for v in vocabulary),
        fallback=fallback,
    )
    try:
        reply = complete_json(system, text, chat=chat)
    except ModelCallError as e:
        logger.warning("%s classification model call failed (session=%s): %s", kind, session_id, e)
        return ClassificationResult(value=fallback, confidence=Confidence.LOW, method=Method.AI, detection_time_ms=_elapsed_ms(start))
    except ModelUnavailableError:
        return ClassificationResult(value=fallback, confidence=Confidence.LOW, method=Method.FALLBACK, detection_time_ms=_elapsed_ms(start))
    except ModelError as e:
        logger.warning("%s classification reply unusable (session=%s): %s", kind, session_id, e)
        return ClassificationResult(value=fallback, confidence=Confidence.LOW, method=Method.FALLBACK, detection_time_ms=_elapsed_ms(start))

    value = _match_vocabulary(reply.get(kind) or reply.get("category"), vocabulary)
    if value is None:
        logger.info("%s classification out of vocabulary (session=%s): %r", kind, session_id, reply)
        return ClassificationResult(value=fallback, confidence=Confidence.LOW, method=Method.FALLBACK, detection_time_ms=_elapsed_ms(start))
    return ClassificationResult(
        value=value,
        confidence=_clamp_confidence(reply.get("confidence")),
        method=Method.AI,
        detection_time_ms=_elapsed_ms(start),
    )


def detect_category(
    text: str | None,
    *,
    catalog: PracticeAreaCatalog | None = None,
    chat=None,
    session_id: str | None = None,
) -> ClassificationResult:
    catalog = catalog or get_catalog()
    return classify(
        text,
        catalog.vocabulary,
        rules=category_rules(catalog),
        fallback=catalog.fallback_category,
        kind="category",
        chat=chat,
        session_id=session_id,
    )


def detect_subcategory(
    text: str | None,
    category: str | None,
    *,
    catalog: PracticeAreaCatalog | None = None,
    chat=None,
    session_id: str | None = None,
) -> ClassificationResult:
    catalog = catalog or get_catalog()
    schema = catalog.get(category)
    if schema is None:
        logger.info("Subcategory skipped for unknown category %r (session=%s)", category, session_id)
        return ClassificationResult(value=OTHER_SUBCATEGORY, confidence=Confidence.LOW, method=Method.FALLBACK)
    return classify(
        text,
        schema.subcategory_vocabulary,
        rules=subcategory_rules(catalog, schema.id),
        fallback=OTHER_SUBCATEGORY,
        kind="subcategory",
        chat=chat,
        session_id=session_id,
    )
