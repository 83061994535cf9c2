# app/core/errors.py
from typing import List


class AdvisorError(Exception):
    """Base class for every error raised by the advisor core."""


class SessionNotFound(AdvisorError):
    restart_message = "I'm sorry, but I can't find your session. Let's start over. What's your name?"
    next_steps: List[str] = ["Start new conversation"]

    def __init__(self, session_id: str):
        super().__init__(f"session {session_id} not found")
        self.session_id = session_id


class LanguageModelError(AdvisorError):
    """A language model provider could not produce usable content."""


class ExtractionFailure(AdvisorError):
    pass


class GenerationFailure(AdvisorError):
    pass


class PersistenceFailure(AdvisorError):
    """Borrower/application records could not be materialized."""


class InvalidDecisionInput(AdvisorError, ValueError):
    """Underwriting or analytics input is missing or not numeric."""
