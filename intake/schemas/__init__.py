from intake.schemas.contract import (
    ClassificationResult,
    ClientContext,
    CompliancePayload,
    Confidence,
    ExtractionResult,
    LeadRecord,
    Method,
    SubmissionError,
    SubmissionResult,
    SubmissionStatus,
    TurnResponse,
)

__all__ = [
    "ClassificationResult",
    "ClientContext",
    "CompliancePayload",
    "Confidence",
    "ExtractionResult",
    "LeadRecord",
    "Method",
    "SubmissionError",
    "SubmissionResult",
    "SubmissionStatus",
    "TurnResponse",
]
