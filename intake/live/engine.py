"""
Intake engine: one visitor message per turn.
load session -> classify (until a category is set) -> extract -> merge ->
next question or completion -> persist. Turns for one session id run under
that session's lock; the store is the only owner of session state.
"""

import logging
from typing import Callable

from intake import settings
from intake.errors import SessionNotFoundError
from intake.live.session_store import SessionStore, build_session_store
from intake.location.zip_lookup import Location, enrich_location, lookup_zip
from intake.nlp.classifier import detect_category, detect_subcategory
from intake.nlp.extraction import extract_fields
from intake.nlp.preprocessing import preprocess
from intake.qualification.completeness import completeness_summary
from intake.schemas.contract import (
    ClientContext,
    CompliancePayload,
    SubmissionResult,
    TurnResponse,
)
from intake.state.follow_up import completion_message, next_question
from intake.state.models import IntakeSession, IntakeStage, new_session, new_session_id, reset_session, utcnow
from intake.state.schema_registry import PracticeAreaCatalog, get_catalog
from intake.state.slot_filling import fill_from_reply, merge_answers, update_misses
from intake.state.validation import MAX_TEXT_LENGTH, format_hint
from intake.submission.marketplace import MarketplaceResponse
from intake.submission.pipeline import submit_lead

logger = logging.getLogger(__name__)

GREETING = "Hi, I'm here to help you connect with the right attorney. What legal issue can we help you with today?"
READY_REPLY = "Thank you. We have everything we need and are ready to send your information to an attorney."
ALREADY_SUBMITTED_REPLY = "Your information has already been sent to an attorney, who will be in touch soon. Is there anything else?"
HISTORY_TURNS = 10


def _merge_client(current: ClientContext, incoming: ClientContext | None) -> ClientContext:
    if incoming is None:
        return current
    updates = {k: v for k, v in incoming.model_dump().items() if v}
    return current.model_copy(update=updates)


class IntakeEngine:
    def __init__(
        self,
        store: SessionStore,
        *,
        catalog: PracticeAreaCatalog | None = None,
        chat=None,
        lookup: Callable[[str], Location | None] | None = None,
        post: Callable[[dict], MarketplaceResponse] | None = None,
        max_misses: int | None = None,
        db_path=None,
    ):
        self.store = store
        self.catalog = catalog or get_catalog()
        self.chat = chat
        self.lookup = lookup or lookup_zip
        self.post = post
        self.max_misses = settings.MAX_EXTRACTION_MISSES if max_misses is None else max_misses
        self.db_path = db_path

    # ---------- turn ----------

    def turn(
        self,
        message: str,
        session_id: str | None = None,
        *,
        category: str | None = None,
        subcategory: str | None = None,
        client: ClientContext | None = None,
    ) -> TurnResponse:
        sid = session_id or new_session_id()
        with self.store.lock(sid):
            now = utcnow()
            session = self.store.get(sid, now)
            if session is None:
                session = new_session(sid, now=now)
            session.client = _merge_client(session.client, client)
            if session.stage == IntakeStage.RESET:
                session.stage = IntakeStage.COLLECTING
            reply, debug = self._advance(session, message, category, subcategory)
            session.add_turn("assistant", reply, now)
            session.updated_at = now
            self.store.put(session)
        debug.update(
            {
                "stage": session.stage.value,
                "category": session.category,
                "subcategory": session.subcategory,
                "next_field": session.last_question_field,
                "completeness": completeness_summary(self.catalog.get(session.category), session.answers),
            }
        )
        return TurnResponse(
            reply_text=reply,
            complete=session.stage in (IntakeStage.COMPLETE, IntakeStage.SUBMITTED),
            session_id=sid,
            debug_info=debug,
        )

    def _advance(
        self,
        session: IntakeSession,
        message: str,
        category: str | None,
        subcategory: str | None,
    ) -> tuple[str, dict]:
        """Mutates ``session`` for one visitor message; returns (reply, debug)."""
        debug: dict = {}
        text = preprocess(message).text
        history = session.history(HISTORY_TURNS)
        if message and message.strip():
            session.add_turn("user", message.strip())

        if session.stage == IntakeStage.SUBMITTED:
            return ALREADY_SUBMITTED_REPLY, debug
        if not text:
            if session.category is None:
                return GREETING, debug
            nq = next_question(session.answers, session.category, session.subcategory, catalog=self.catalog)
            return (nq.question if nq.has_next else READY_REPLY), debug

        was_complete = session.stage == IntakeStage.COMPLETE
        newly_categorized = False
        category_signal = False
        if session.category is None and category:
            if self.catalog.get(category):
                session.category = category
                newly_categorized = True
                category_signal = True
                debug["category_source"] = "predefined"
            else:
                logger.info("Ignoring unknown predefined category %r (session=%s)", category, session.session_id)
        if session.category is None:
            result = detect_category(text, catalog=self.catalog, chat=self.chat, session_id=session.session_id)
            session.category = result.value
            newly_categorized = True
            category_signal = result.value != self.catalog.fallback_category
            debug["category_classification"] = result.model_dump(mode="json")
        schema = self.catalog.require(session.category)

        if session.subcategory is None:
            if subcategory and subcategory in schema.subcategories:
                session.subcategory = subcategory
            else:
                sub = detect_subcategory(text, session.category, catalog=self.catalog, chat=self.chat, session_id=session.session_id)
                session.subcategory = sub.value
                debug["subcategory_classification"] = sub.model_dump(mode="json")

        asked = session.last_question_field
        requested = [f for f in schema.user_fields() if f.name != "sub_category"]
        extraction = extract_fields(
            text,
            history,
            requested,
            asked,
            category=session.category,
            catalog=self.catalog,
            chat=self.chat,
            lookup=self.lookup,
            session_id=session.session_id,
        )
        debug["extraction"] = {
            "confidence": extraction.confidence,
            "is_legal_question": extraction.is_legal_question,
            "fields": sorted(extraction.filled()),
        }
        answers, _ = merge_answers(session.answers, extraction.filled(), asked_field=asked)

        if newly_categorized and schema.field("describe") and not answers.get("describe"):
            if category_signal or extraction.is_legal_question:
                answers["describe"] = text[:MAX_TEXT_LENGTH]

        misses = session.extraction_misses
        detected = extraction.detected_category
        if session.category == self.catalog.fallback_category and detected and detected != session.category:
            logger.info("Reclassified session %s: %s -> %s", session.session_id, session.category, detected)
            debug["reclassified_from"] = session.category
            session.category = detected
            schema = self.catalog.require(detected)
            sub_text = answers.get("describe") or text
            session.subcategory = extraction.detected_subcategory or detect_subcategory(
                sub_text, detected, catalog=self.catalog, chat=self.chat, session_id=session.session_id
            ).value
            answers["sub_category"] = session.subcategory
            misses = {}
            if schema.field("describe") and not answers.get("describe"):
                answers["describe"] = text[:MAX_TEXT_LENGTH]
            asked = None

        if session.subcategory and not answers.get("sub_category"):
            answers["sub_category"] = session.subcategory

        answers, direct = fill_from_reply(schema, answers, asked, text, misses, max_misses=self.max_misses)
        if direct:
            debug["direct_answer"] = direct
        answers = enrich_location(answers, lookup=self.lookup)
        session.extraction_misses = update_misses(misses, asked, answers)
        session.answers = answers

        nq = next_question(answers, session.category, session.subcategory, catalog=self.catalog)
        if nq.has_next:
            session.stage = IntakeStage.COLLECTING
            session.last_question_field = nq.field
            reply = nq.question
            if session.extraction_misses.get(nq.field, 0) >= self.max_misses:
                hint = format_hint(schema.field(nq.field))
                if hint:
                    reply = f"{reply} {hint}"
            return reply, debug

        session.stage = IntakeStage.COMPLETE
        session.last_question_field = None
        if was_complete:
            return READY_REPLY, debug
        return completion_message(answers, schema), debug

    # ---------- reset / submit / read ----------

    def reset(self, session_id: str, *, rotate_id: bool = False) -> str:
        """Drop everything collected for ``session_id``; returns the id to use next."""
        with self.store.lock(session_id):
            current = self.store.get(session_id) or new_session(session_id)
            fresh = reset_session(current, rotate_id=rotate_id)
            if rotate_id:
                self.store.delete(session_id)
            self.store.put(fresh)
        logger.info("Reset session %s -> %s", session_id, fresh.session_id)
        return fresh.session_id

    def submit(
        self,
        session_id: str,
        compliance: CompliancePayload,
        *,
        client: ClientContext | None = None,
    ) -> SubmissionResult:
        """
        Send a complete session to the marketplace. Hard errors (not found, not
        complete, already submitted) raise; marketplace outcomes are returned.
        """
        with self.store.lock(session_id):
            session = self.store.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            session.client = _merge_client(session.client, client)
            result, record = submit_lead(
                session,
                compliance,
                catalog=self.catalog,
                post=self.post,
                db_path=self.db_path,
            )
            if record is not None:
                session.stage = IntakeStage.SUBMITTED
                session.lead_id = record.lead_id
            session.updated_at = utcnow()
            self.store.put(session)
        return result

    def get_session(self, session_id: str) -> IntakeSession | None:
        return self.store.get(session_id)

    def sweep_expired(self) -> int:
        removed = self.store.sweep_expired()
        if removed:
            logger.info("Swept %d expired intake sessions", removed)
        return removed


_engine: IntakeEngine | None = None


def get_engine() -> IntakeEngine:
    global _engine
    if _engine is None:
        _engine = IntakeEngine(build_session_store())
    return _engine


def set_engine(engine: IntakeEngine | None) -> None:
    global _engine
    _engine = engine
