# app/agents/verification_agent.py
from typing import Any, Dict, List

from app.models.conversation import ExtractionCandidate

# source -> [(fact key in bundle, conversation field, confidence)]
VERIFICATION_FIELDS = {
    "credit_bureau": [
        ("score", "creditScore", 0.95),
        ("dti", "debtToIncome", 0.90),
    ],
    "employment": [
        ("status", "employmentStatus", 0.90),
        ("monthlyIncome", "monthlyIncome", 0.88),
    ],
    "bank": [
        ("currentBalance", "bankBalance", 0.95),
        ("averageMonthlyDeposits", "monthlyDeposits", 0.92),
    ],
    "property_data": [
        ("estimatedValue", "propertyValue", 0.85),
        ("annualTax", "propertyTax", 0.85),
    ],
}


def run_verification_agent(source: str, facts: Dict[str, Any]) -> List[ExtractionCandidate]:
    """Turn a verification bundle into high-confidence candidates.

    These skip the language-model path entirely but still go through the
    validation registry once merged. Facts absent from the bundle produce
    nothing rather than a zero placeholder.
    """
    mapping = VERIFICATION_FIELDS.get(source)
    if mapping is None:
        raise ValueError(f"unknown verification source: {source}")

    candidates = []
    for key, field, confidence in mapping:
        value = facts.get(key)
        if value is None:
            continue
        candidates.append(ExtractionCandidate(field=field, value=value, confidence=confidence, source=source))
    return candidates
