# app/agents/stage_agent.py
from typing import Any, Dict, Iterable, List, Optional

from app.core.errors import InvalidDecisionInput
from app.models.conversation import Stage
from app.agents.underwriting_agent import run_underwriting_agent, snapshot_from_data
from app.services.validation_service import is_present, parse_number

BASIC_FIELDS = ("firstName", "email", "phone")
FINANCIAL_FIELDS = ("income", "creditScore")
PROPERTY_FIELDS = ("propertyType", "loanPurpose")

# fields counted for completeness (analytics and qualification)
PROFILE_FIELDS = (
    "firstName", "lastName", "email", "phone", "income",
    "creditScore", "propertyType", "loanPurpose", "loanAmount",
)

STAGE_REQUIREMENTS = {
    Stage.GREETING: ["firstName", "lastName", "email", "phone"],
    Stage.QUALIFICATION: ["income", "creditScore", "employmentStatus"],
    Stage.APPLICATION: ["propertyType", "propertyAddress", "loanPurpose", "loanAmount"],
    Stage.DOCUMENT_COLLECTION: ["paystubs", "taxReturns", "bankStatements"],
    Stage.UNDERWRITING: ["appraisal", "title", "insurance"],
    Stage.CLOSING: ["closingDate", "finalLoanAmount"],
}

QUALIFIED_SCORE = 0.7


def _has_all(data: Dict[str, Any], fields: Iterable[str]) -> bool:
    return all(is_present(data, f) for f in fields)


def next_stage(
    data: Dict[str, Any],
    required_documents: Iterable[str],
    qualification_score: float = 0.0,
    current_stage: Optional[Stage] = None,
) -> Stage:
    """
    Data-driven: the first unmet requirement wins, top to bottom, so a
    conversation moves backwards when validation strips earlier data.
    `current_stage` is accepted for call-site symmetry and never consulted.
    """
    if not _has_all(data, BASIC_FIELDS):
        return Stage.GREETING
    if not _has_all(data, FINANCIAL_FIELDS):
        return Stage.QUALIFICATION
    if not _has_all(data, PROPERTY_FIELDS):
        return Stage.APPLICATION
    if not list(required_documents):
        return Stage.DOCUMENT_COLLECTION
    if qualification_score > QUALIFIED_SCORE:
        return Stage.UNDERWRITING
    return Stage.APPLICATION


def completeness(data: Dict[str, Any]) -> float:
    return sum(1 for f in PROFILE_FIELDS if is_present(data, f)) / len(PROFILE_FIELDS)


def compute_qualification_score(data: Dict[str, Any]) -> float:
    if not _has_all(data, FINANCIAL_FIELDS):
        return 0.0

    credit = parse_number(data.get("creditScore")) or 0.0
    credit_factor = min(1.0, max(0.0, (credit - 300) / 550))

    approved_bonus = 0.0
    try:
        if run_underwriting_agent(snapshot_from_data(data)).approved:
            approved_bonus = 1.0
    except InvalidDecisionInput:
        # no loan amount yet
        pass

    return round(0.5 * credit_factor + 0.3 * completeness(data) + 0.2 * approved_bonus, 4)


def missing_fields(stage: Stage, data: Dict[str, Any]) -> List[str]:
    return [f for f in STAGE_REQUIREMENTS.get(stage, []) if not is_present(data, f)]
