# app/models/conversation.py
from pydantic import BaseModel, Field
from typing import Optional, Any, Dict, List, Set
from datetime import datetime, timezone
from enum import Enum
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Stage(str, Enum):
    GREETING = "greeting"
    QUALIFICATION = "qualification"
    DOCUMENT_COLLECTION = "document_collection"
    APPLICATION = "application"
    UNDERWRITING = "underwriting"
    CLOSING = "closing"


class Speaker(str, Enum):
    USER = "user"
    ADVISOR = "advisor"


class Channel(str, Enum):
    WEB = "web"
    SMS = "sms"
    VOICE = "voice"
    EMAIL = "email"


class ActionType(str, Enum):
    COLLECT_DOCUMENT = "collect_document"
    VERIFY_DATA = "verify_data"
    CALCULATE_LOAN = "calculate_loan"
    SCHEDULE_CALL = "schedule_call"
    CREATE_APPLICATION = "create_application"


class Turn(BaseModel):
    speaker: Speaker
    text: str
    timestamp: datetime = Field(default_factory=utcnow)


class ExtractionCandidate(BaseModel):
    """A tentative fact; only trusted once merged and validated."""
    field: str
    value: Any
    confidence: float
    source: str = "llm"


class Action(BaseModel):
    type: ActionType
    payload: Dict[str, Any] = Field(default_factory=dict)


class Conversation(BaseModel):
    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    channel: Channel = Channel.WEB
    stage: Stage = Stage.GREETING
    history: List[Turn] = Field(default_factory=list)
    extracted_data: Dict[str, Any] = Field(default_factory=dict)
    required_documents: Set[str] = Field(default_factory=set)
    qualification_score: float = 0.0

    # weak links to records owned by the persistence boundary
    borrower_ref: Optional[str] = None
    property_ref: Optional[str] = None
    application_ref: Optional[str] = None
    # a create_application attempt failed and has not succeeded since
    pending_application: bool = False

    created_at: datetime = Field(default_factory=utcnow)

    def add_turn(self, speaker: Speaker, text: str) -> Turn:
        turn = Turn(speaker=speaker, text=text)
        self.history.append(turn)
        return turn
