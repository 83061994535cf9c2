# app/services/validation_service.py
import logging
import math
import re
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Predicate = Callable[[Any], bool]

SSN_RE = re.compile(r"^\d{3}-?\d{2}-?\d{4}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def parse_number(value: Any) -> Optional[float]:
    """
    Best-effort numeric coercion for values coming out of free text.
    Accepts ints/floats and strings such as "$85,000". Returns None when the
    value is not a finite number (booleans are rejected too).
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "").replace("$", "")
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def is_present(data: Dict[str, Any], field: str) -> bool:
    value = data.get(field)
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def valid_income(value: Any) -> bool:
    income = parse_number(value)
    return income is not None and 0 < income < 10_000_000


def valid_credit_score(value: Any) -> bool:
    score = parse_number(value)
    if score is None or not score.is_integer():
        return False
    return 300 <= score <= 850


def valid_ssn(value: Any) -> bool:
    return isinstance(value, str) and bool(SSN_RE.match(value.strip()))


def valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_RE.match(value.strip()))


def valid_phone(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return False
    return len(re.sub(r"\D", "", str(value))) == 10


class ValidationRegistry:
    """
    Named field validators. Fields without a registered rule always pass.
    """

    def __init__(self):
        self._rules: Dict[str, Predicate] = {}

    def register(self, field: str, predicate: Predicate) -> None:
        self._rules[field] = predicate

    def validate(self, field: str, value: Any) -> bool:
        rule = self._rules.get(field)
        if rule is None:
            return True
        try:
            return bool(rule(value))
        except Exception:
            logger.debug("validator for %s raised; treating as rejection", field)
            return False

    def prune(self, data: Dict[str, Any]) -> List[str]:
        """Drop every field in `data` that fails its rule. Returns the dropped names."""
        dropped = [field for field, value in data.items() if not self.validate(field, value)]
        for field in dropped:
            del data[field]
        if dropped:
            logger.warning("validation dropped %d field(s): %s", len(dropped), ", ".join(dropped))
        return dropped


def default_registry() -> ValidationRegistry:
    registry = ValidationRegistry()
    registry.register("income", valid_income)
    registry.register("creditScore", valid_credit_score)
    registry.register("ssn", valid_ssn)
    registry.register("email", valid_email)
    registry.register("phone", valid_phone)
    return registry
