"""
Conversation API. The cookie is a convenience for browser clients; the engine
only ever sees the session id.
"""

from fastapi import APIRouter, Cookie, HTTPException, Request, Response
from pydantic import BaseModel

from intake.errors import IntakeError
from intake.live.engine import get_engine
from intake.schemas.contract import ClientContext, CompliancePayload

router = APIRouter(prefix="/chat", tags=["chat"])

SESSION_COOKIE = "intake_session_id"


class TurnBody(BaseModel):
    message: str
    session_id: str | None = None
    category: str | None = None
    subcategory: str | None = None
    landing_page_url: str | None = None


class ResetBody(BaseModel):
    session_id: str | None = None
    rotate_id: bool = False


class SubmitBody(BaseModel):
    session_id: str | None = None
    tcpa_text: str
    jornaya_leadid: str | None = None
    trustedform_cert_url: str | None = None
    landing_page_url: str | None = None


def _client_context(request: Request, landing_page_url: str | None) -> ClientContext:
    return ClientContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        landing_page_url=landing_page_url or request.headers.get("referer"),
    )


def _http_error(e: IntakeError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/turn")
def chat_turn(
    body: TurnBody,
    request: Request,
    response: Response,
    intake_session_id: str | None = Cookie(default=None),
):
    """One visitor message in, the next question (or consent prompt) out."""
    if not body.message.strip():
        raise HTTPException(status_code=400, detail="message required")
    try:
        result = get_engine().turn(
            body.message,
            body.session_id or intake_session_id,
            category=body.category,
            subcategory=body.subcategory,
            client=_client_context(request, body.landing_page_url),
        )
    except IntakeError as e:
        raise _http_error(e) from e
    response.set_cookie(SESSION_COOKIE, result.session_id, httponly=True, samesite="lax")
    return result.model_dump(mode="json")


@router.post("/reset")
def chat_reset(
    body: ResetBody,
    response: Response,
    intake_session_id: str | None = Cookie(default=None),
):
    session_id = body.session_id or intake_session_id
    if not session_id:
        raise HTTPException(status_code=400, detail="session_id required")
    new_id = get_engine().reset(session_id, rotate_id=body.rotate_id)
    response.set_cookie(SESSION_COOKIE, new_id, httponly=True, samesite="lax")
    return {"success": True, "session_id": new_id}


@router.post("/submit")
def chat_submit(
    body: SubmitBody,
    request: Request,
    intake_session_id: str | None = Cookie(default=None),
):
    """
    Send a completed intake to the lead marketplace. Marketplace outcomes come
    back as {status, lead_id, error}; session problems are HTTP errors.
    """
    session_id = body.session_id or intake_session_id
    if not session_id:
        raise HTTPException(status_code=400, detail="session_id required")
    compliance = CompliancePayload(
        tcpa_text=body.tcpa_text,
        jornaya_leadid=body.jornaya_leadid,
        trustedform_cert_url=body.trustedform_cert_url,
    )
    try:
        result = get_engine().submit(
            session_id,
            compliance,
            client=_client_context(request, body.landing_page_url),
        )
    except IntakeError as e:
        raise _http_error(e) from e
    return result.model_dump(mode="json")


@router.get("/session/{session_id}")
def chat_get_session(session_id: str):
    """Current session snapshot (for debugging)."""
    session = get_engine().get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session.model_dump(mode="json")
