import pytest
from fastapi.testclient import TestClient

from app.agents.response_agent import GREETINGS
from app.core.session import SessionStore
from app.models.conversation import Channel
from app.services.advisor_service import AdvisorService
from main import create_app
from tests.fakes import FakeLanguageModel, FakePersistence, field


@pytest.fixture
def client():
    llm = FakeLanguageModel(extractions={"Jane": {
        "firstName": field("Jane"),
        "lastName": field("Doe"),
        "email": field("jane@x.com"),
        "phone": field("(555) 555-0100"),
    }})
    advisor = AdvisorService(store=SessionStore(ttl_seconds=0), llm=llm, persistence=FakePersistence())
    with TestClient(create_app(advisor=advisor)) as c:
        yield c


def start(client, **body):
    resp = client.post("/api/advisor/sessions", json=body or None)
    assert resp.status_code == 200
    return resp.json()


def test_start_session_defaults_to_web(client):
    data = start(client)
    assert data["stage"] == "greeting"
    assert data["greeting"] == GREETINGS[Channel.WEB]


def test_start_session_on_voice(client):
    assert start(client, channel="voice")["greeting"] == GREETINGS[Channel.VOICE]


def test_message_turn(client):
    sid = start(client)["session_id"]
    resp = client.post(f"/api/advisor/sessions/{sid}/messages", json={"text": "I'm Jane Doe"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["session_id"] == sid
    assert data["stage"] == "qualification"
    assert data["reply"] == "Hello from model"
    assert data["errors"] == []


def test_unknown_session_asks_to_restart(client):
    resp = client.post("/api/advisor/sessions/nope/messages", json={"text": "hello"})
    assert resp.status_code == 404
    detail = resp.json()["detail"]
    assert "start over" in detail["message"]
    assert detail["next_steps"] == ["Start new conversation"]


def test_documents_and_verifications(client):
    sid = start(client)["session_id"]

    resp = client.post(f"/api/advisor/sessions/{sid}/documents", json={"document_type": "pay_stubs"})
    assert resp.status_code == 200

    resp = client.post(f"/api/advisor/sessions/{sid}/documents", json={"document_type": "selfie"})
    assert resp.status_code == 422

    resp = client.post(
        f"/api/advisor/sessions/{sid}/verifications",
        json={"source": "employment", "facts": {"status": "employed", "monthlyIncome": 9000}},
    )
    assert resp.status_code == 200
    assert resp.json()["accepted_fields"] == ["employmentStatus", "monthlyIncome"]

    resp = client.post(f"/api/advisor/sessions/{sid}/verifications", json={"source": "tarot", "facts": {}})
    assert resp.status_code == 422


def test_analytics_and_end_session(client):
    sid = start(client)["session_id"]
    client.post(f"/api/advisor/sessions/{sid}/messages", json={"text": "I'm Jane Doe"})

    report = client.get(f"/api/advisor/sessions/{sid}/analytics").json()
    assert report["message_count"] == 3
    assert report["session_id"] == sid

    assert client.delete(f"/api/advisor/sessions/{sid}").status_code == 200
    assert client.get(f"/api/advisor/sessions/{sid}/analytics").status_code == 404
    assert client.delete(f"/api/advisor/sessions/{sid}").status_code == 404


def test_session_underwriting_needs_financials(client):
    sid = start(client)["session_id"]
    assert client.post(f"/api/advisor/sessions/{sid}/underwriting").status_code == 422


def test_standalone_underwriting(client):
    resp = client.post(
        "/api/advisor/underwriting",
        json={"creditScore": 700, "annualIncome": 100000, "loanAmount": 40000, "downPayment": 10000},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["approved"] is True
    assert data["dti"] == 0.4
    assert data["ltv"] == 0.8
    assert data["rate"] == 6.25


def test_underwriting_rejects_bad_input(client):
    resp = client.post("/api/advisor/underwriting", json={"creditScore": 700, "annualIncome": 0, "loanAmount": 1})
    assert resp.status_code == 422
