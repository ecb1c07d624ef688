from typing import Dict, List, Tuple

import pytest
from httpx import ASGITransport, AsyncClient

from src.vaxtrack.config import settings
from src.vaxtrack.infra.db.registry import repositories
from src.vaxtrack.infra.realtime.registry import connection_registry
from src.vaxtrack.infra.storage.photos import LocalPhotoStorageBackend
from src.vaxtrack.main import app
from src.vaxtrack.ratelimit import reset_rate_limits
from src.vaxtrack.security import IdentityClaims, InvalidTokenError, get_identity_provider
from src.vaxtrack.services.ai.service import assistant_service
from src.vaxtrack.services.children.service import child_service
from src.vaxtrack.services.notifications.dispatcher import notification_dispatcher

TOKEN_PREFIX = "test-token:"


class FakeIdentityProvider:
    """Accepts tokens of the form ``test-token:<subject>``."""

    def verify(self, token: str) -> IdentityClaims:
        if not token.startswith(TOKEN_PREFIX) or len(token) == len(TOKEN_PREFIX):
            raise InvalidTokenError("unknown token")
        subject = token[len(TOKEN_PREFIX):]
        return IdentityClaims(subject=subject, email=f"{subject}@example.com")


class FakeEmailSender:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []
        self.fail = False

    def send(self, to: str, subject: str, html: str) -> bool:
        if self.fail:
            raise ConnectionError("smtp down")
        self.sent.append((to, subject, html))
        return True


class FakeSmsSender:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, str]] = []
        self.fail = False

    def send(self, to: str, body: str) -> bool:
        if self.fail:
            raise ConnectionError("twilio down")
        self.sent.append((to, body))
        return True


class FakeChatBackend:
    def __init__(self) -> None:
        self.calls: List[List[Dict[str, str]]] = []
        self.fail = False

    def complete(self, messages: List[Dict[str, str]]) -> str:
        self.calls.append(messages)
        if self.fail:
            raise TimeoutError("provider timed out")
        return "Vaccines are safe and effective."


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def sms_sender() -> FakeSmsSender:
    return FakeSmsSender()


@pytest.fixture
def chat_backend() -> FakeChatBackend:
    return FakeChatBackend()


@pytest.fixture(autouse=True)
def isolated_app(monkeypatch, tmp_path, email_sender, sms_sender, chat_backend):
    """Fresh in-memory state and fake outbound channels for every test."""

    repositories.use_in_memory()
    connection_registry.clear()
    reset_rate_limits()

    monkeypatch.setattr(settings, "rate_limit_enabled", False)
    monkeypatch.setattr(settings, "reminder_scheduler_enabled", False)
    monkeypatch.setattr(notification_dispatcher, "email_sender", email_sender)
    monkeypatch.setattr(notification_dispatcher, "sms_sender", sms_sender)
    monkeypatch.setattr(assistant_service, "backend", chat_backend)
    monkeypatch.setattr(child_service, "storage", LocalPhotoStorageBackend(tmp_path / "photos"))

    provider = FakeIdentityProvider()
    app.dependency_overrides[get_identity_provider] = lambda: provider
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    def _headers(subject: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {TOKEN_PREFIX}{subject}"}

    return _headers


@pytest.fixture
def make_user(client, auth_headers):
    """Sync a profile for ``subject`` and return the JSON body."""

    async def _make(subject: str = "parent-1", **fields) -> dict:
        body = {"first_name": "Ada", "last_name": "Lovelace", **fields}
        resp = await client.post("/api/v1/auth/sync", json=body, headers=auth_headers(subject))
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _make


@pytest.fixture
def make_child(client, auth_headers):
    async def _make(subject: str = "parent-1", name: str = "Mia", **fields) -> dict:
        data = {"name": name, "date_of_birth": "2024-01-15", "gender": "Female", **fields}
        resp = await client.post("/api/v1/children/", data=data, headers=auth_headers(subject))
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make
