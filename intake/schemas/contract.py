"""
Records passed between the intake stages and returned over the API.
Classification and extraction results keep "the model said X" apart from
"nothing worked, so we fell back" through ``method``.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Method(str, Enum):
    REGEX = "regex"
    AI = "ai"
    FALLBACK = "fallback"


class ClassificationResult(BaseModel):
    """Category or subcategory decision for one piece of text."""

    value: str
    confidence: Confidence
    method: Method
    detection_time_ms: float = 0.0


class ExtractionResult(BaseModel):
    """
    One extraction call. ``extracted_fields`` holds every requested field;
    unknown values are None, never missing keys.
    """

    extracted_fields: dict[str, Any] = Field(default_factory=dict)
    detected_category: str | None = None
    detected_subcategory: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    is_legal_question: bool = False

    def filled(self) -> dict[str, Any]:
        return {k: v for k, v in self.extracted_fields.items() if v is not None}


# --- Submission ---


class ClientContext(BaseModel):
    """Request metadata captured by the HTTP layer for server-sourced fields."""

    ip_address: str | None = None
    user_agent: str | None = None
    landing_page_url: str | None = None


class CompliancePayload(BaseModel):
    tcpa_text: str
    jornaya_leadid: str | None = None
    trustedform_cert_url: str | None = None


class SubmissionStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ERROR = "error"


class SubmissionError(BaseModel):
    code: str
    message: str


class SubmissionResult(BaseModel):
    status: SubmissionStatus
    lead_id: str | None = None
    error: SubmissionError | None = None

    @property
    def accepted(self) -> bool:
        return self.status == SubmissionStatus.ACCEPTED


class LeadRecord(BaseModel):
    """What the marketplace accepted. Never mutated; a resubmission is a new record."""

    model_config = ConfigDict(frozen=True)

    lead_id: str
    session_id: str
    category: str
    subcategory: str | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    compliance: CompliancePayload
    routing: dict[str, Any] = Field(default_factory=dict)
    submitted_at: datetime


# --- Turn API ---


class TurnResponse(BaseModel):
    reply_text: str
    complete: bool
    session_id: str
    debug_info: dict[str, Any] = Field(default_factory=dict)
