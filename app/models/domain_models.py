# app/models/domain_models.py
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime, timezone
from enum import Enum
import uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApplicationStatus(str, Enum):
    APPLICATION_STARTED = "application_started"
    IN_UNDERWRITING = "in_underwriting"
    APPROVED = "approved"
    DENIED = "denied"


class Borrower(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    session_id: str = Field(index=True)
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    current_address: str = ""
    employment_status: str = "employed"
    annual_income: float = 0.0
    credit_score: int = 0
    created_at: datetime = Field(default_factory=_utcnow)


class Property(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    address: str
    city: str = ""
    state: str = ""
    zip_code: str = ""
    property_type: str = "single_family"
    purchase_price: float = 0.0
    current_value: float = 0.0
    created_at: datetime = Field(default_factory=_utcnow)


class LoanApplication(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    borrower_id: uuid.UUID = Field(foreign_key="borrower.id", index=True)
    property_id: Optional[uuid.UUID] = Field(default=None, foreign_key="property.id")
    loan_type: str = "conventional"
    loan_purpose: str = "purchase"
    loan_amount: float = 0.0
    down_payment: float = 0.0
    interest_rate: float = 0.0  # set by underwriting
    loan_term_months: int = 360
    status: ApplicationStatus = Field(default=ApplicationStatus.APPLICATION_STARTED)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
