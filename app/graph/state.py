from typing import TypedDict, List

from app.models.conversation import Action, Conversation, ExtractionCandidate


class TurnState(TypedDict, total=False):
    conversation: Conversation
    user_message: str

    candidates: List[ExtractionCandidate]
    dropped_fields: List[str]

    reply: str
    actions: List[Action]
    next_steps: List[str]
    errors: List[str]
