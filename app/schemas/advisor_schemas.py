# app/schemas/advisor_schemas.py
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List, Dict, Any

from app.models.conversation import Action, Channel, Stage


class StartSessionIn(BaseModel):
    channel: Channel = Channel.WEB


class StartSessionOut(BaseModel):
    session_id: str
    greeting: str
    stage: Stage = Stage.GREETING


class MessageIn(BaseModel):
    text: str


class TurnResult(BaseModel):
    session_id: str
    stage: Stage
    reply: str
    actions: List[Action] = []
    next_steps: List[str] = []
    dropped_fields: List[str] = []
    # e.g. an application that could not be created this turn
    errors: List[str] = []


class DocumentIn(BaseModel):
    document_type: str


class VerificationIn(BaseModel):
    source: str  # credit_bureau | employment | bank | property_data
    facts: Dict[str, Any]


class StageOut(BaseModel):
    session_id: str
    stage: Stage
    qualification_score: float
    accepted_fields: List[str] = []
    dropped_fields: List[str] = []


class UnderwritingInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    credit_score: int = Field(alias="creditScore")
    annual_income: float = Field(alias="annualIncome", gt=0)
    loan_amount: float = Field(alias="loanAmount", ge=0)
    down_payment: float = Field(default=0.0, alias="downPayment", ge=0)

    @model_validator(mode="after")
    def check_property_value(self):
        # loan + down payment is the LTV denominator
        if self.loan_amount + self.down_payment <= 0:
            raise ValueError("loanAmount + downPayment must be positive")
        return self


class UnderwritingDecision(BaseModel):
    approved: bool
    rate: float
    conditions: List[str] = []
    reasons: List[str] = []
    dti: Optional[float] = None
    ltv: Optional[float] = None


class AnalyticsReport(BaseModel):
    session_id: str
    duration_minutes: float
    message_count: int
    data_completeness: float
    conversion_probability: float
    recommended_actions: List[str] = []
