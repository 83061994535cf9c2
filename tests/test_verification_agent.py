import pytest

from app.agents.verification_agent import run_verification_agent


def test_credit_bureau_bundle():
    candidates = run_verification_agent("credit_bureau", {"score": 742, "dti": 0.31})
    assert [(c.field, c.value, c.confidence) for c in candidates] == [
        ("creditScore", 742, 0.95),
        ("debtToIncome", 0.31, 0.90),
    ]
    assert all(c.source == "credit_bureau" for c in candidates)


def test_missing_facts_produce_no_candidates():
    candidates = run_verification_agent("employment", {"status": "employed"})
    assert [c.field for c in candidates] == ["employmentStatus"]


@pytest.mark.parametrize("source", ["credit_bureau", "employment", "bank", "property_data"])
def test_all_sources_are_high_confidence(source):
    facts = {"score": 700, "dti": 0.2, "status": "employed", "monthlyIncome": 8000,
             "currentBalance": 1000, "averageMonthlyDeposits": 9000,
             "estimatedValue": 400000, "annualTax": 4800}
    assert all(c.confidence >= 0.85 for c in run_verification_agent(source, facts))


def test_unknown_source_rejected():
    with pytest.raises(ValueError):
        run_verification_agent("astrology", {})
