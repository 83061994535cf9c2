# app/agents/underwriting_agent.py
from typing import Any, Mapping, Union

from pydantic import ValidationError

from app.core.errors import InvalidDecisionInput
from app.schemas.advisor_schemas import UnderwritingDecision, UnderwritingInput
from app.services.validation_service import parse_number

MIN_CREDIT_SCORE = 620
MAX_DTI = 0.43
MAX_LTV = 0.95
BASE_RATE = 6.5


def snapshot_from_data(data: Mapping[str, Any]) -> UnderwritingInput:
    """Build an underwriting snapshot from conversation-extracted fields."""
    fields = {
        "creditScore": data.get("creditScore"),
        "annualIncome": data.get("income"),
        "loanAmount": data.get("loanAmount"),
        "downPayment": data.get("downPayment", 0),
    }
    missing = [name for name, value in fields.items() if parse_number(value) is None]
    if missing:
        raise InvalidDecisionInput(f"missing or non-numeric: {', '.join(missing)}")
    return coerce_input({name: parse_number(value) for name, value in fields.items()})


def coerce_input(snapshot: Union[UnderwritingInput, Mapping[str, Any]]) -> UnderwritingInput:
    if isinstance(snapshot, UnderwritingInput):
        return snapshot
    try:
        return UnderwritingInput.model_validate(dict(snapshot))
    except ValidationError as e:
        raise InvalidDecisionInput(str(e)) from e


def run_underwriting_agent(snapshot: Union[UnderwritingInput, Mapping[str, Any]]) -> UnderwritingDecision:
    """
    Underwriting rules:
    - credit score < 620 → reject
    - DTI > 43% → reject; 36-43% → extra income docs
    - LTV > 95% → reject; 80-95% → mortgage insurance
    - rate starts at 6.5% and moves with credit tier and LTV band
    Pure: the same snapshot always yields the same decision.
    """
    inp = coerce_input(snapshot)

    credit_score = inp.credit_score
    dti = (inp.loan_amount / 12) / (inp.annual_income / 12)
    ltv = inp.loan_amount / (inp.loan_amount + inp.down_payment)

    approved = True
    conditions = []
    reasons = []

    # 1️⃣ Credit score gate
    if credit_score < MIN_CREDIT_SCORE:
        approved = False
        reasons.append(f"Credit score below minimum requirement ({MIN_CREDIT_SCORE})")
    elif credit_score < 680:
        conditions.append("Provide letter of explanation for credit issues")

    # 2️⃣ Debt-to-income
    if dti > MAX_DTI:
        approved = False
        reasons.append("Debt-to-income ratio exceeds maximum (43%)")
    elif dti > 0.36:
        conditions.append("Provide additional income documentation")

    # 3️⃣ Loan-to-value
    if ltv > MAX_LTV:
        approved = False
        reasons.append("Loan-to-value ratio exceeds maximum (95%)")
    elif ltv > 0.80:
        conditions.append("Private mortgage insurance required")

    # 4️⃣ Pricing
    rate = BASE_RATE
    if credit_score >= 760:
        rate -= 0.5
    elif credit_score >= 700:
        rate -= 0.25
    elif credit_score < 660:
        rate += 0.5

    if ltv <= 0.60:
        rate -= 0.25
    elif ltv > 0.80:
        rate += 0.25

    return UnderwritingDecision(
        approved=approved,
        rate=round(rate, 2),
        conditions=conditions,
        reasons=reasons,
        dti=round(dti, 4),
        ltv=round(ltv, 4),
    )
