"""Bearer token resolution tests."""

import pytest
from fastapi.testclient import TestClient
from firebase_admin import auth

from fieldwatch.config.firebase import get_document_store
from fieldwatch.core.errors import IdentityUnavailable
from fieldwatch.core.settings import settings
from fieldwatch.main import app
from fieldwatch.services import identity
from fieldwatch.services.identity import parse_bearer_token, resolve_session


@pytest.fixture
def verified_tokens(monkeypatch):
    """Switch off mock identity; the test supplies verify_id_token's outcome."""
    monkeypatch.setattr(settings, "USE_MOCK_DB", False)
    monkeypatch.setattr(identity, "initialize_firebase", lambda: None)

    def use(outcome):
        def verify_id_token(token, app=None):
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        monkeypatch.setattr(auth, "verify_id_token", verify_id_token)

    return use


def test_parse_bearer_token() -> None:
    assert parse_bearer_token("Bearer abc") == "abc"
    assert parse_bearer_token("bearer  abc ") == "abc"
    assert parse_bearer_token("Basic abc") is None
    assert parse_bearer_token("Bearer ") is None
    assert parse_bearer_token(None) is None


def test_mock_mode_reads_uid_and_email() -> None:
    user = resolve_session("Bearer user-7:user7@example.com").current_user()

    assert user.user_id == "user-7"
    assert user.email == "user7@example.com"


def test_verified_token_becomes_identity(verified_tokens) -> None:
    verified_tokens({"uid": "firebase-uid", "email": "field@example.com"})

    user = resolve_session("Bearer signed-token").current_user()

    assert user.user_id == "firebase-uid"
    assert user.email == "field@example.com"


def test_invalid_token_is_anonymous(verified_tokens) -> None:
    verified_tokens(auth.InvalidIdTokenError("bad signature"))

    assert resolve_session("Bearer forged").current_user() is None


def test_disabled_account_is_anonymous(verified_tokens) -> None:
    verified_tokens(auth.UserDisabledError("account disabled"))

    assert resolve_session("Bearer disabled").current_user() is None


def test_certificate_fetch_failure_is_identity_unavailable(verified_tokens) -> None:
    verified_tokens(auth.CertificateFetchError("certs unreachable", None))

    with pytest.raises(IdentityUnavailable):
        resolve_session("Bearer signed-token")


def test_certificate_fetch_failure_returns_503(verified_tokens, memory_store) -> None:
    verified_tokens(auth.CertificateFetchError("certs unreachable", None))

    app.dependency_overrides[get_document_store] = lambda: memory_store
    try:
        response = TestClient(app).get("/reports/mine", headers={"Authorization": "Bearer signed-token"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json()["error"] == "IdentityUnavailable"
    assert response.json()["retryable"] is True
