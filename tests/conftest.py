import pytest
from fastapi.testclient import TestClient

from auth.service import CredentialManager
from core.config import Settings
from main import create_app
from questions.service import QuestionService

from fakes import InMemoryStore, StubModerator


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def moderator() -> StubModerator:
    return StubModerator()


@pytest.fixture
def question_service(store: InMemoryStore, moderator: StubModerator) -> QuestionService:
    return QuestionService(store, moderator, default_limit=20, max_limit=100)


@pytest.fixture
def credentials(store: InMemoryStore) -> CredentialManager:
    # Minimum bcrypt cost keeps the suite fast.
    return CredentialManager(store, bcrypt_rounds=4)


@pytest.fixture
def settings() -> Settings:
    return Settings(bcrypt_rounds=4, page_default_limit=20, page_max_limit=50)


@pytest.fixture
def client(settings: Settings, store: InMemoryStore, moderator: StubModerator):
    app = create_app(settings, question_store=store, account_store=store, moderator=moderator)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client: TestClient) -> dict[str, str]:
    r = client.post("/accounts/register", json={"email": "writer@test.io", "password": "pw-writer"})
    assert r.status_code == 201
    r = client.post("/accounts/login", json={"email": "writer@test.io", "password": "pw-writer"})
    assert r.status_code == 200
    body = r.json()
    return {"Authorization": f"Bearer {body['client_id']}:{body['client_secret']}"}
