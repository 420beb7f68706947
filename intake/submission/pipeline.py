"""
Lead submission pipeline.
Completed session + compliance metadata -> marketplace payload -> one POST ->
typed result. Every attempt lands in the append-only submission log; nothing
is retried automatically.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Callable

from intake.errors import LeadAlreadySubmittedError, SessionNotReadyError
from intake.registry import store as registry
from intake.schemas.contract import (
    ClientContext,
    CompliancePayload,
    LeadRecord,
    SubmissionError,
    SubmissionResult,
    SubmissionStatus,
)
from intake.state.models import IntakeSession, IntakeStage, utcnow
from intake.state.schema_registry import (
    CategorySchema,
    FieldSource,
    FieldSpec,
    FieldType,
    PracticeAreaCatalog,
    get_catalog,
)
from intake.state.validation import validate_field
from intake.submission.marketplace import MarketplaceResponse, MarketplaceUnavailable, post_lead

logger = logging.getLogger(__name__)

ROUTING_KEYS = ("lp_campaign_id", "lp_supplier_id", "lp_key")
COMPLIANCE_KEYS = ("tcpa_text", "jornaya_leadid", "trustedform_cert_url")
_FORMATTED_TYPES = (FieldType.DATE, FieldType.PHONE, FieldType.ENUM, FieldType.STATE, FieldType.ZIP)


def format_for_marketplace(spec: FieldSpec, value: Any) -> Any:
    """Field value in the shape the marketplace expects (per the field's format)."""
    if value is None or spec.type not in _FORMATTED_TYPES:
        return value
    formatted = validate_field(spec, value)
    return formatted if formatted is not None else value


def _server_value(name: str, client: ClientContext) -> Any:
    return getattr(client, name, None)


def build_payload(
    session: IntakeSession,
    schema: CategorySchema,
    compliance: CompliancePayload,
    client: ClientContext | None = None,
) -> dict[str, Any]:
    client = client or session.client
    routing = schema.lead_prosper_config
    payload: dict[str, Any] = {
        "lp_campaign_id": routing.lp_campaign_id,
        "lp_supplier_id": routing.lp_supplier_id,
        "lp_key": routing.lp_key,
    }
    for spec in schema.required_fields:
        if spec.source == FieldSource.CONFIG:
            value = spec.value
        elif spec.source == FieldSource.SERVER:
            value = _server_value(spec.name, client)
        else:
            value = format_for_marketplace(spec, session.answers.get(spec.name))
        if value is not None:
            payload[spec.name] = value
    if session.subcategory and "sub_category" not in payload:
        payload["sub_category"] = session.subcategory
    for key in COMPLIANCE_KEYS:
        value = getattr(compliance, key)
        if value:
            payload[key] = value
    return payload


def _redacted(payload: dict[str, Any]) -> dict[str, Any]:
    return {k: ("***" if k == "lp_key" else v) for k, v in payload.items()}


def interpret_response(resp: MarketplaceResponse) -> SubmissionResult:
    """Map an HTTP response onto accepted / rejected / error."""
    if not resp.ok:
        message = str(resp.body.get("message") or f"Marketplace returned HTTP {resp.http_status}")
        return SubmissionResult(
            status=SubmissionStatus.ERROR,
            error=SubmissionError(code=f"MARKETPLACE_HTTP_{resp.http_status}", message=message),
        )
    status = str(resp.body.get("status") or "").upper()
    lead_id = resp.body.get("lead_id")
    if status == "ACCEPTED":
        if lead_id in (None, ""):
            return SubmissionResult(
                status=SubmissionStatus.ERROR,
                error=SubmissionError(code="MISSING_LEAD_ID", message="Marketplace accepted the lead without an id"),
            )
        return SubmissionResult(status=SubmissionStatus.ACCEPTED, lead_id=str(lead_id))
    code = str(resp.body.get("code") or status or "UNKNOWN_RESPONSE")
    message = str(resp.body.get("message") or "The lead was not accepted")
    return SubmissionResult(status=SubmissionStatus.REJECTED, error=SubmissionError(code=code, message=message))


def check_submittable(session: IntakeSession) -> None:
    if session.stage == IntakeStage.SUBMITTED:
        raise LeadAlreadySubmittedError(session.session_id, session.lead_id)
    if session.stage != IntakeStage.COMPLETE:
        raise SessionNotReadyError(session.session_id, session.stage.value)


def submit_lead(
    session: IntakeSession,
    compliance: CompliancePayload,
    *,
    client: ClientContext | None = None,
    catalog: PracticeAreaCatalog | None = None,
    post: Callable[[dict[str, Any]], MarketplaceResponse] | None = None,
    db_path: Path | str | None = None,
) -> tuple[SubmissionResult, LeadRecord | None]:
    """
    Submit a complete session. Raises SessionNotReadyError /
    LeadAlreadySubmittedError before any network call; everything after is
    returned as a SubmissionResult. The caller owns the session transition.
    """
    check_submittable(session)
    schema = (catalog or get_catalog()).require(session.category)
    payload = build_payload(session, schema, compliance, client)

    http_status = None
    elapsed_ms = None
    try:
        resp = (post or post_lead)(payload)
    except MarketplaceUnavailable as e:
        logger.warning("Lead submission transport failure (session=%s): %s", session.session_id, e)
        result = SubmissionResult(
            status=SubmissionStatus.ERROR,
            error=SubmissionError(
                code="MARKETPLACE_UNAVAILABLE",
                message="We couldn't reach our attorney network. Please try again in a moment.",
            ),
        )
    else:
        http_status, elapsed_ms = resp.http_status, resp.elapsed_ms
        result = interpret_response(resp)

    try:
        registry.record_submission(
            session.session_id,
            category=session.category,
            subcategory=session.subcategory,
            status=result.status.value,
            lead_id=result.lead_id,
            error_code=result.error.code if result.error else None,
            message=result.error.message if result.error else None,
            http_status=http_status,
            elapsed_ms=elapsed_ms,
            payload=_redacted(payload),
            db_path=db_path,
        )
    except sqlite3.Error:
        logger.exception("Could not log submission attempt (session=%s)", session.session_id)

    if not result.accepted:
        logger.info("Lead not accepted (session=%s): %s", session.session_id, result.error)
        return result, None

    record = LeadRecord(
        lead_id=result.lead_id,
        session_id=session.session_id,
        category=schema.id,
        subcategory=session.subcategory,
        fields={k: v for k, v in payload.items() if k not in ROUTING_KEYS and k not in COMPLIANCE_KEYS},
        compliance=compliance,
        routing={k: payload[k] for k in ("lp_campaign_id", "lp_supplier_id")},
        submitted_at=utcnow(),
    )
    logger.info("Lead accepted (session=%s, lead_id=%s)", session.session_id, record.lead_id)
    return result, record
