# app/agents/action_agent.py
from typing import List

from app.models.conversation import Action, ActionType, Conversation, Stage
from app.services.validation_service import is_present

DOCUMENT_CHECKLIST = (
    "pay_stubs",
    "w2_forms",
    "tax_returns",
    "bank_statements",
    "identification",
    "proof_of_address",
)


def missing_documents(conversation: Conversation) -> List[str]:
    return [doc for doc in DOCUMENT_CHECKLIST if doc not in conversation.required_documents]


def run_action_agent(conversation: Conversation) -> List[Action]:
    """
    Advisory side effects for this turn. Recomputed from scratch every time;
    re-issuing an action the executor already ran is expected.
    """
    data = conversation.extracted_data
    actions: List[Action] = []

    if conversation.stage == Stage.DOCUMENT_COLLECTION:
        for doc in missing_documents(conversation):
            actions.append(Action(
                type=ActionType.COLLECT_DOCUMENT,
                payload={"documentType": doc, "required": True},
            ))

    if is_present(data, "ssn") and not is_present(data, "creditScore"):
        actions.append(Action(
            type=ActionType.VERIFY_DATA,
            payload={"verificationType": "credit", "ssn": data["ssn"]},
        ))

    if is_present(data, "income") and is_present(data, "creditScore"):
        actions.append(Action(
            type=ActionType.CALCULATE_LOAN,
            payload={
                "income": data["income"],
                "creditScore": data["creditScore"],
                "downPayment": data.get("downPayment") or 0,
            },
        ))

    if conversation.stage == Stage.APPLICATION and not conversation.application_ref:
        actions.append(Action(type=ActionType.CREATE_APPLICATION, payload=dict(data)))

    return actions
