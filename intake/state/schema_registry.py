"""
Practice-area catalog: per-category required fields, question templates,
subcategory vocabulary, keyword rules and marketplace routing.
Loaded from JSON once and validated up front; a bad catalog stops startup.
"""

import json
import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from intake import settings
from intake.errors import SchemaConfigError, UnknownCategoryError

logger = logging.getLogger(__name__)

OTHER_SUBCATEGORY = "other"


class FieldSource(str, Enum):
    USER = "user"
    SERVER = "server"
    CONFIG = "config"


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    ZIP = "zip"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    ENUM = "enum"
    STATE = "state"


class FieldSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: FieldType = FieldType.TEXT
    required: bool = True
    source: FieldSource = FieldSource.USER
    auto_populated: bool = False
    value: Any = None  # config-sourced fields only
    format: str | None = None
    allowed_values: list[str] | None = None
    description: str | None = None

    @property
    def askable(self) -> bool:
        """Asked of the visitor (not server/config supplied, not derived)."""
        return self.required and self.source == FieldSource.USER and not self.auto_populated


class PlainQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["plain"] = "plain"
    text: str


class ContextualQuestion(BaseModel):
    """Variants keyed by subcategory, context keyword or category id."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["contextual"] = "contextual"
    variants: dict[str, str]
    default: str | None = None


QuestionTemplate = Annotated[PlainQuestion | ContextualQuestion, Field(discriminator="kind")]


class Personality(BaseModel):
    model_config = ConfigDict(frozen=True)

    compassionate_intro: str = "I'm here to help you find the right attorney."
    context_intros: dict[str, str] = Field(default_factory=dict)


class MarketplaceRouting(BaseModel):
    model_config = ConfigDict(frozen=True)

    lp_campaign_id: int
    lp_supplier_id: int
    lp_key: str


class CategorySchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    personality: Personality = Field(default_factory=Personality)
    subcategories: dict[str, list[str]]  # subcategory -> extra keywords
    required_fields: list[FieldSpec]
    field_questions: dict[str, QuestionTemplate] = Field(default_factory=dict)
    lead_prosper_config: MarketplaceRouting

    @field_validator("field_questions", mode="before")
    @classmethod
    def _tag_questions(cls, raw: Any) -> Any:
        if not isinstance(raw, dict):
            return raw
        tagged: dict[str, Any] = {}
        for field_name, q in raw.items():
            if isinstance(q, str):
                tagged[field_name] = {"kind": "plain", "text": q}
            elif isinstance(q, dict) and "kind" not in q:
                variants = {k: v for k, v in q.items() if k != "default"}
                tagged[field_name] = {"kind": "contextual", "variants": variants, "default": q.get("default")}
            else:
                tagged[field_name] = q
        return tagged

    @model_validator(mode="after")
    def _check_fields(self) -> "CategorySchema":
        names = [f.name for f in self.required_fields]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"{self.id}: duplicate field names {dupes}")
        unknown = sorted(set(self.field_questions) - set(names))
        if unknown:
            raise ValueError(f"{self.id}: question templates for undeclared fields {unknown}")
        for f in self.required_fields:
            if f.source == FieldSource.CONFIG and f.value is None:
                raise ValueError(f"{self.id}: config field {f.name!r} has no value")
            if f.type == FieldType.ENUM and not f.allowed_values:
                raise ValueError(f"{self.id}: enum field {f.name!r} has no allowed_values")
        if OTHER_SUBCATEGORY not in self.subcategories:
            raise ValueError(f"{self.id}: subcategory vocabulary must include {OTHER_SUBCATEGORY!r}")
        return self

    def field(self, name: str) -> FieldSpec | None:
        for f in self.required_fields:
            if f.name == name:
                return f
        return None

    def askable_fields(self) -> list[FieldSpec]:
        """User-answered required fields in declared order."""
        return [f for f in self.required_fields if f.askable]

    def user_fields(self) -> list[FieldSpec]:
        return [f for f in self.required_fields if f.source == FieldSource.USER]

    @property
    def subcategory_vocabulary(self) -> list[str]:
        return list(self.subcategories)


class KeywordRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    keywords: list[str]


class PracticeAreaCatalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    fallback_category: str = "general"
    keyword_rules: list[KeywordRule] = Field(default_factory=list)
    categories: dict[str, CategorySchema]

    @field_validator("categories", mode="before")
    @classmethod
    def _inject_ids(cls, raw: Any) -> Any:
        if not isinstance(raw, dict):
            return raw
        return {
            key: ({**value, "id": key} if isinstance(value, dict) else value)
            for key, value in raw.items()
        }

    @model_validator(mode="after")
    def _check_rules(self) -> "PracticeAreaCatalog":
        if self.fallback_category not in self.categories:
            raise ValueError(f"fallback category {self.fallback_category!r} is not declared")
        for rule in self.keyword_rules:
            if rule.category not in self.categories:
                raise ValueError(f"keyword rule targets undeclared category {rule.category!r}")
        return self

    @property
    def vocabulary(self) -> list[str]:
        return list(self.categories)

    def get(self, category: str | None) -> CategorySchema | None:
        if not category:
            return None
        return self.categories.get(category)

    def require(self, category: str | None) -> CategorySchema:
        schema = self.get(category)
        if schema is None:
            raise UnknownCategoryError(str(category))
        return schema

    def display_name(self, category: str | None) -> str:
        schema = self.get(category)
        return schema.name if schema else "legal"


def _reject_duplicate_keys(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in pairs:
        if key in out:
            raise SchemaConfigError(f"Duplicate key in practice-area catalog: {key!r}")
        out[key] = value
    return out


def parse_catalog(raw: dict[str, Any]) -> PracticeAreaCatalog:
    try:
        return PracticeAreaCatalog.model_validate(raw)
    except ValidationError as e:
        raise SchemaConfigError(f"Invalid practice-area catalog: {e}") from e


def load_catalog(path: Path | str) -> PracticeAreaCatalog:
    """Read and validate a catalog file. Raises SchemaConfigError on any problem."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SchemaConfigError(f"Cannot read practice-area catalog {path}: {e}") from e
    try:
        raw = json.loads(text, object_pairs_hook=_reject_duplicate_keys)
    except json.JSONDecodeError as e:
        raise SchemaConfigError(f"Practice-area catalog {path} is not valid JSON: {e}") from e
    catalog = parse_catalog(raw)
    logger.info("Loaded %d practice areas from %s", len(catalog.categories), path)
    return catalog


@lru_cache(maxsize=1)
def get_catalog() -> PracticeAreaCatalog:
    return load_catalog(settings.PRACTICE_AREAS_PATH)
