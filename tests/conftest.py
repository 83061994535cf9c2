import pytest

from app.core.session import SessionStore
from app.services.advisor_service import AdvisorService
from tests.fakes import FakeLanguageModel, FakePersistence


@pytest.fixture
def llm():
    return FakeLanguageModel()


@pytest.fixture
def persistence():
    return FakePersistence()


@pytest.fixture
def store():
    return SessionStore(ttl_seconds=0)


@pytest.fixture
def advisor(store, llm, persistence):
    return AdvisorService(store=store, llm=llm, persistence=persistence)
