# app/agents/analytics_agent.py
from app.agents.stage_agent import completeness
from app.models.conversation import Conversation, Stage
from app.schemas.advisor_schemas import AnalyticsReport
from app.services.validation_service import is_present


def run_analytics_agent(conversation: Conversation) -> AnalyticsReport:
    history = conversation.history
    if history:
        duration = (history[-1].timestamp - history[0].timestamp).total_seconds() / 60
    else:
        duration = 0.0

    data = conversation.extracted_data
    data_completeness = completeness(data)

    conversion = 0.5
    if data_completeness > 0.8:
        conversion += 0.3
    if len(history) > 10:
        conversion += 0.1
    if conversation.stage in (Stage.UNDERWRITING, Stage.CLOSING):
        conversion = 0.9

    recommended = []
    if data_completeness < 0.5:
        recommended.append("Send follow-up email with simplified application link")
    if not is_present(data, "creditScore"):
        recommended.append("Offer soft credit check to provide accurate rates")
    if duration > 30 and conversation.stage == Stage.GREETING:
        recommended.append("Schedule callback with human loan officer")

    return AnalyticsReport(
        session_id=conversation.session_id,
        duration_minutes=round(duration, 2),
        message_count=len(history),
        data_completeness=round(data_completeness, 4),
        conversion_probability=round(conversion, 2),
        recommended_actions=recommended,
    )
