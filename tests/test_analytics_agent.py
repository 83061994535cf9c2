from datetime import timedelta

from app.agents.analytics_agent import run_analytics_agent
from app.models.conversation import Conversation, Speaker, Stage, Turn


def conversation_with_turns(count, minutes_apart=1.0, **kwargs):
    conv = Conversation(**kwargs)
    start = conv.created_at
    for i in range(count):
        speaker = Speaker.USER if i % 2 else Speaker.ADVISOR
        conv.history.append(Turn(speaker=speaker, text=f"turn {i}", timestamp=start + timedelta(minutes=i * minutes_apart)))
    return conv


def test_empty_conversation_report():
    report = run_analytics_agent(Conversation(session_id="s1"))
    assert report.session_id == "s1"
    assert report.duration_minutes == 0.0
    assert report.message_count == 0
    assert report.data_completeness == 0.0
    assert report.conversion_probability == 0.5
    assert report.recommended_actions == [
        "Send follow-up email with simplified application link",
        "Offer soft credit check to provide accurate rates",
    ]


def test_complete_and_engaged_conversation():
    data = {
        "firstName": "Jane", "lastName": "Doe", "email": "jane@x.com", "phone": "5555550100",
        "income": 90000, "creditScore": 700, "propertyType": "condo", "loanPurpose": "purchase",
        "loanAmount": 300000,
    }
    conv = conversation_with_turns(12, extracted_data=data, stage=Stage.DOCUMENT_COLLECTION)
    report = run_analytics_agent(conv)
    assert report.message_count == 12
    assert report.duration_minutes == 11.0
    assert report.data_completeness == 1.0
    assert report.conversion_probability == 0.9  # 0.5 + 0.3 + 0.1
    assert report.recommended_actions == []


def test_underwriting_stage_forces_probability():
    conv = conversation_with_turns(2, stage=Stage.UNDERWRITING)
    assert run_analytics_agent(conv).conversion_probability == 0.9


def test_long_greeting_recommends_callback():
    conv = conversation_with_turns(3, minutes_apart=20, extracted_data={"creditScore": 700})
    report = run_analytics_agent(conv)
    assert report.duration_minutes == 40.0
    assert "Schedule callback with human loan officer" in report.recommended_actions


def test_report_does_not_mutate_conversation():
    conv = conversation_with_turns(4, extracted_data={"firstName": "Jane"})
    before = conv.model_dump()
    run_analytics_agent(conv)
    run_analytics_agent(conv)
    assert conv.model_dump() == before
