# app/services/advisor_service.py
import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from app.agents.action_agent import DOCUMENT_CHECKLIST, run_action_agent
from app.agents.analytics_agent import run_analytics_agent
from app.agents.extraction_agent import FieldExtractor
from app.agents.response_agent import ResponseGenerator, greeting_for, next_steps_for
from app.agents.stage_agent import compute_qualification_score, next_stage
from app.agents.underwriting_agent import run_underwriting_agent, snapshot_from_data
from app.agents.verification_agent import run_verification_agent
from app.core.config import settings
from app.core.errors import PersistenceFailure, SessionNotFound
from app.core.session import SessionStore
from app.graph.builder import build_turn_graph
from app.graph.state import TurnState
from app.models.conversation import (
    ActionType, Channel, Conversation, ExtractionCandidate, Speaker, Stage
)
from app.schemas.advisor_schemas import (
    AnalyticsReport, StageOut, StartSessionOut, TurnResult, UnderwritingDecision, UnderwritingInput
)
from app.services.llm_service import LanguageModel
from app.services.persistence_service import Persistence
from app.services.validation_service import ValidationRegistry, default_registry, is_present

logger = logging.getLogger(__name__)

POST_APPLICATION_STAGES = (Stage.DOCUMENT_COLLECTION, Stage.UNDERWRITING, Stage.CLOSING)


class AdvisorService:
    """
    The per-session control loop. One instance per process; all session
    state lives in the injected SessionStore.
    """

    def __init__(
        self,
        store: SessionStore,
        llm: Optional[LanguageModel] = None,
        persistence: Optional[Persistence] = None,
        *,
        extractor: Optional[FieldExtractor] = None,
        responder: Optional[ResponseGenerator] = None,
        registry: Optional[ValidationRegistry] = None,
        persistence_timeout: Optional[float] = None,
    ):
        if llm is None and (extractor is None or responder is None):
            raise ValueError("either llm or both extractor and responder are required")
        self.store = store
        self.extractor = extractor or FieldExtractor(llm)
        self.responder = responder or ResponseGenerator(llm)
        self.registry = registry or default_registry()
        self.persistence = persistence
        self.persistence_timeout = (
            settings.PERSISTENCE_TIMEOUT_SECONDS if persistence_timeout is None else persistence_timeout
        )
        self.graph = build_turn_graph({
            "record_user": self._record_user,
            "extract": self._extract,
            "merge": self._merge,
            "resolve_stage": self._resolve_stage,
            "respond": self._respond,
            "plan": self._plan,
            "materialize": self._materialize,
            "record_advisor": self._record_advisor,
        })

    # -------------------------
    # External interface
    # -------------------------

    def start_session(self, channel: Union[Channel, str] = Channel.WEB) -> StartSessionOut:
        try:
            channel = Channel(channel)
        except ValueError:
            channel = Channel.WEB
        conversation = Conversation(channel=channel)
        greeting = greeting_for(channel)
        conversation.add_turn(Speaker.ADVISOR, greeting)
        self.store.create(conversation)
        logger.info("session=%s started on %s", conversation.session_id, channel.value)
        return StartSessionOut(session_id=conversation.session_id, greeting=greeting, stage=conversation.stage)

    async def process_message(self, session_id: str, text: str) -> TurnResult:
        async with self.store.checkout(session_id) as conversation:
            final = await self.graph.ainvoke({"conversation": conversation, "user_message": text})
            return TurnResult(
                session_id=session_id,
                stage=conversation.stage,
                reply=final["reply"],
                actions=final.get("actions") or [],
                next_steps=final.get("next_steps") or [],
                dropped_fields=final.get("dropped_fields") or [],
                errors=final.get("errors") or [],
            )

    def run_underwriting(self, snapshot: Union[UnderwritingInput, Mapping[str, Any]]) -> UnderwritingDecision:
        return run_underwriting_agent(snapshot)

    async def underwrite_session(self, session_id: str) -> UnderwritingDecision:
        async with self.store.checkout(session_id) as conversation:
            return run_underwriting_agent(snapshot_from_data(conversation.extracted_data))

    async def get_analytics(self, session_id: str) -> AnalyticsReport:
        async with self.store.checkout(session_id) as conversation:
            return run_analytics_agent(conversation)

    async def apply_verification(self, session_id: str, source: str, facts: Dict[str, Any]) -> StageOut:
        candidates = run_verification_agent(source, facts)
        async with self.store.checkout(session_id) as conversation:
            dropped = self._absorb(conversation, candidates)
            self._advance(conversation)
            return StageOut(
                session_id=session_id,
                stage=conversation.stage,
                qualification_score=conversation.qualification_score,
                accepted_fields=[c.field for c in candidates if c.field not in dropped],
                dropped_fields=dropped,
            )

    async def record_document(self, session_id: str, document_type: str) -> StageOut:
        if document_type not in DOCUMENT_CHECKLIST:
            raise ValueError(f"unknown document type: {document_type}")
        async with self.store.checkout(session_id) as conversation:
            conversation.required_documents.add(document_type)
            self._advance(conversation)
            return StageOut(
                session_id=session_id,
                stage=conversation.stage,
                qualification_score=conversation.qualification_score,
            )

    def end_session(self, session_id: str) -> None:
        if not self.store.end(session_id):
            raise SessionNotFound(session_id)
        logger.info("session=%s ended", session_id)

    # -------------------------
    # Shared steps
    # -------------------------

    def _absorb(self, conversation: Conversation, candidates: List[ExtractionCandidate]) -> List[str]:
        """Merge (last write wins), validate everything, rescore. Returns dropped fields."""
        for candidate in candidates:
            conversation.extracted_data[candidate.field] = candidate.value
        dropped = self.registry.prune(conversation.extracted_data)
        conversation.qualification_score = compute_qualification_score(conversation.extracted_data)
        return dropped

    def _advance(self, conversation: Conversation) -> None:
        stage = next_stage(
            conversation.extracted_data,
            conversation.required_documents,
            conversation.qualification_score,
            conversation.stage,
        )
        # hold at application until the record exists
        if conversation.pending_application and stage in POST_APPLICATION_STAGES:
            stage = Stage.APPLICATION
        if stage != conversation.stage:
            logger.info("session=%s stage %s -> %s", conversation.session_id, conversation.stage.value, stage.value)
            conversation.stage = stage

    async def _persist(self, call):
        try:
            return await asyncio.wait_for(call, timeout=self.persistence_timeout)
        except asyncio.TimeoutError as e:
            raise PersistenceFailure(f"persistence timed out after {self.persistence_timeout}s") from e
        except PersistenceFailure:
            raise
        except Exception as e:
            raise PersistenceFailure(str(e)) from e

    async def _create_application(self, conversation: Conversation) -> None:
        if self.persistence is None:
            raise PersistenceFailure("no persistence boundary configured")
        data = dict(conversation.extracted_data)

        # refs from a partially failed earlier attempt are reused
        if not conversation.borrower_ref:
            conversation.borrower_ref = await self._persist(
                self.persistence.create_borrower(conversation.session_id, data)
            )
        if is_present(data, "propertyAddress") and not conversation.property_ref:
            conversation.property_ref = await self._persist(self.persistence.create_property(data))
        conversation.application_ref = await self._persist(
            self.persistence.create_application(conversation.borrower_ref, conversation.property_ref, data)
        )
        logger.info("session=%s application %s created", conversation.session_id, conversation.application_ref)

    # -------------------------
    # Turn graph nodes
    # -------------------------

    async def _record_user(self, state: TurnState) -> TurnState:
        state["conversation"].add_turn(Speaker.USER, state["user_message"])
        return {"errors": []}

    async def _extract(self, state: TurnState) -> TurnState:
        conversation = state["conversation"]
        candidates = await self.extractor.extract(
            state["user_message"], conversation.stage, dict(conversation.extracted_data)
        )
        return {"candidates": candidates}

    async def _merge(self, state: TurnState) -> TurnState:
        dropped = self._absorb(state["conversation"], state.get("candidates") or [])
        return {"dropped_fields": dropped}

    async def _resolve_stage(self, state: TurnState) -> TurnState:
        self._advance(state["conversation"])
        return {}

    async def _respond(self, state: TurnState) -> TurnState:
        return {"reply": await self.responder.generate(state["conversation"])}

    async def _plan(self, state: TurnState) -> TurnState:
        return {"actions": run_action_agent(state["conversation"])}

    async def _materialize(self, state: TurnState) -> TurnState:
        conversation = state["conversation"]
        errors = list(state.get("errors") or [])
        for action in state.get("actions") or []:
            if action.type != ActionType.CREATE_APPLICATION or conversation.application_ref:
                continue
            try:
                await self._create_application(conversation)
            except PersistenceFailure as e:
                logger.warning("session=%s application not created: %s", conversation.session_id, e)
                conversation.pending_application = True
                errors.append(f"application_not_created: {e}")
            else:
                conversation.pending_application = False
                # release a stage held back by an earlier failure
                self._advance(conversation)
        return {"errors": errors}

    async def _record_advisor(self, state: TurnState) -> TurnState:
        conversation = state["conversation"]
        conversation.add_turn(Speaker.ADVISOR, state["reply"])
        return {"next_steps": next_steps_for(conversation.stage)}
