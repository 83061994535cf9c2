# app/agents/response_agent.py
import asyncio
import json
import logging
from typing import List, Optional

from app.agents.stage_agent import missing_fields
from app.core.config import settings
from app.core.errors import GenerationFailure
from app.models.conversation import Channel, Conversation, Speaker, Stage
from app.services.llm_service import LanguageModel

logger = logging.getLogger(__name__)

GREETINGS = {
    Channel.WEB: (
        "Hi! I'm your AI Loan Advisor. I can help you get pre-qualified for a mortgage in just a few minutes. "
        "I'll guide you through the entire process, from application to closing. What's your name?"
    ),
    Channel.SMS: (
        "Hi! I'm your AI Loan Advisor. Ready to get pre-qualified for a mortgage? Reply with your name to start."
    ),
    Channel.VOICE: (
        "Hello, and thank you for calling. I'm your AI Loan Advisor, and I can help you get pre-qualified "
        "for a mortgage right now. May I have your name please?"
    ),
    Channel.EMAIL: (
        "Subject: Your Mortgage Pre-Qualification\n\nDear Future Homeowner,\n\n"
        "I'm your AI Loan Advisor. I'm here to help you get pre-qualified for a mortgage quickly and easily. "
        "Let's start with some basic information.\n\nWhat's your full name?"
    ),
}

STAGE_FALLBACKS = {
    Stage.GREETING: "Thanks! To get started with your pre-qualification, I'll need to ask you a few questions. What's your email address?",
    Stage.QUALIFICATION: "Great! Now let's talk about your financial situation. What's your approximate annual income before taxes?",
    Stage.DOCUMENT_COLLECTION: (
        "Excellent! To move forward, I'll need to collect some documents. I can help you upload them securely. "
        "Would you like to start with your most recent pay stubs?"
    ),
    Stage.APPLICATION: (
        "Based on what you've told me, you're pre-qualified! Let's complete your full application. "
        "What type of property are you looking to finance?"
    ),
    Stage.UNDERWRITING: (
        "Your application is being reviewed. I'm analyzing your information against our lending criteria. "
        "This usually takes just a moment."
    ),
    Stage.CLOSING: "Congratulations! Your loan has been approved. Let's schedule your closing appointment.",
}

NEXT_STEPS = {
    Stage.GREETING: ["Complete basic information", "Verify contact details"],
    Stage.QUALIFICATION: ["Submit financial information", "Authorize credit check"],
    Stage.DOCUMENT_COLLECTION: ["Upload required documents", "Complete document verification"],
    Stage.APPLICATION: ["Review loan options", "Select preferred loan product"],
    Stage.UNDERWRITING: ["Await underwriting decision", "Provide additional information if requested"],
    Stage.CLOSING: ["Schedule closing appointment", "Review closing documents"],
}


def greeting_for(channel) -> str:
    try:
        return GREETINGS[Channel(channel)]
    except ValueError:
        return GREETINGS[Channel.WEB]


def next_steps_for(stage: Stage) -> List[str]:
    return list(NEXT_STEPS[stage])


def build_system_prompt(conversation: Conversation) -> str:
    missing = missing_fields(conversation.stage, conversation.extracted_data)
    return (
        "You are an expert mortgage loan officer AI. Your goal is to:\n"
        "1. Build rapport and trust with the borrower\n"
        "2. Collect necessary information naturally through conversation\n"
        "3. Educate about loan options when appropriate\n"
        "4. Address concerns proactively\n"
        "5. Guide them smoothly through the process\n\n"
        f"Current stage: {conversation.stage.value}\n"
        f"Data collected: {json.dumps(conversation.extracted_data, default=str, sort_keys=True)}\n"
        f"Missing data: {', '.join(missing) or 'none'}\n\n"
        "Generate a natural, helpful response that moves the conversation forward."
    )


class ResponseGenerator:
    def __init__(
        self,
        llm: LanguageModel,
        history_window: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.llm = llm
        self.history_window = settings.HISTORY_WINDOW if history_window is None else history_window
        self.timeout = settings.GENERATION_TIMEOUT_SECONDS if timeout is None else timeout

    async def _complete(self, conversation: Conversation) -> str:
        messages = [
            {"role": "user" if t.speaker == Speaker.USER else "assistant", "content": t.text}
            for t in conversation.history[-self.history_window:]
        ]
        messages.append({"role": "user", "content": "Generate next response"})

        text = await asyncio.wait_for(
            self.llm.complete(build_system_prompt(conversation), messages),
            timeout=self.timeout,
        )
        text = (text or "").strip()
        if not text:
            raise GenerationFailure("empty reply")
        return text

    async def generate(self, conversation: Conversation) -> str:
        """Never raises: falls back to the canned message for the stage."""
        try:
            return await self._complete(conversation)
        except asyncio.TimeoutError:
            logger.warning("generation timed out after %.1fs; using canned reply", self.timeout)
        except Exception as e:
            logger.warning("generation failed (%s); using canned reply", e)
        return STAGE_FALLBACKS[conversation.stage]
