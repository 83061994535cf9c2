# app/services/persistence_service.py
import asyncio
import uuid
import logging
from typing import Any, Dict, Optional, Protocol

from sqlmodel import Session

from app.core.errors import PersistenceFailure
from app.models.domain_models import Borrower, LoanApplication, Property
from app.services.validation_service import parse_number

logger = logging.getLogger(__name__)


class Persistence(Protocol):
    async def create_borrower(self, session_id: str, data: Dict[str, Any]) -> str: ...

    async def create_property(self, data: Dict[str, Any]) -> str: ...

    async def create_application(self, borrower_ref: str, property_ref: Optional[str], data: Dict[str, Any]) -> str: ...


def _num(data: Dict[str, Any], field: str, default: float = 0.0) -> float:
    value = parse_number(data.get(field))
    return default if value is None else value


class SqlPersistence:
    """SQLModel-backed record creation; each call runs in a worker thread."""

    def __init__(self, engine):
        self.engine = engine

    def _insert(self, record):
        try:
            with Session(self.engine) as db:
                db.add(record); db.commit(); db.refresh(record)
                return str(record.id)
        except Exception as e:
            logger.exception("failed to insert %s", type(record).__name__)
            raise PersistenceFailure(f"could not create {type(record).__name__}: {e}") from e

    async def create_borrower(self, session_id, data):
        borrower = Borrower(
            session_id=session_id,
            first_name=str(data.get("firstName") or ""),
            last_name=str(data.get("lastName") or ""),
            email=str(data.get("email") or ""),
            phone=str(data.get("phone") or ""),
            current_address=str(data.get("currentAddress") or ""),
            employment_status=str(data.get("employmentStatus") or "employed"),
            annual_income=_num(data, "income"),
            credit_score=int(_num(data, "creditScore")),
        )
        return await asyncio.to_thread(self._insert, borrower)

    async def create_property(self, data):
        prop = Property(
            address=str(data.get("propertyAddress") or ""),
            city=str(data.get("propertyCity") or ""),
            state=str(data.get("propertyState") or ""),
            zip_code=str(data.get("propertyZip") or ""),
            property_type=str(data.get("propertyType") or "single_family"),
            purchase_price=_num(data, "purchasePrice"),
            current_value=_num(data, "propertyValue"),
        )
        return await asyncio.to_thread(self._insert, prop)

    async def create_application(self, borrower_ref, property_ref, data):
        application = LoanApplication(
            borrower_id=uuid.UUID(borrower_ref),
            property_id=uuid.UUID(property_ref) if property_ref else None,
            loan_type=str(data.get("loanType") or "conventional"),
            loan_purpose=str(data.get("loanPurpose") or "purchase"),
            loan_amount=_num(data, "loanAmount"),
            down_payment=_num(data, "downPayment"),
            loan_term_months=int(_num(data, "loanTerm", 360)),
        )
        return await asyncio.to_thread(self._insert, application)
