import time

import jwt
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from inkwell.errors import Unauthorized
from inkwell.exception_handlers import register_exception_handlers
from inkwell.security import Identity, TokenVerifier, get_current_identity
from inkwell.settings import get_settings
from tests.conftest import TEST_SECRET, make_settings, make_token


def test_verify_returns_identity_for_valid_token():
    verifier = TokenVerifier(make_settings())

    identity = verifier.verify(make_token(sub="user_42"))

    assert identity == Identity(
        user_id="user_42", session_id="sess_1", claims=identity.claims
    )
    assert identity.claims["sub"] == "user_42"


def test_verify_rejects_wrong_signature():
    verifier = TokenVerifier(make_settings())
    token = make_token(secret="another-secret-that-is-also-long-enough")

    with pytest.raises(Unauthorized):
        verifier.verify(token)


def test_verify_rejects_expired_token():
    verifier = TokenVerifier(make_settings())
    token = make_token(exp=int(time.time()) - 60)

    with pytest.raises(Unauthorized, match="Invalid or expired"):
        verifier.verify(token)


def test_verify_rejects_token_without_subject():
    verifier = TokenVerifier(make_settings())
    token = jwt.encode({"exp": int(time.time()) + 60}, TEST_SECRET, algorithm="HS256")

    with pytest.raises(Unauthorized, match="no subject"):
        verifier.verify(token)


def test_verify_checks_issuer_when_configured():
    verifier = TokenVerifier(make_settings(AUTH_ISSUER="https://clerk.example.com"))

    assert verifier.verify(make_token(iss="https://clerk.example.com")).user_id == "user_123"
    with pytest.raises(Unauthorized):
        verifier.verify(make_token(iss="https://evil.example.com"))


def test_verify_checks_authorized_party():
    verifier = TokenVerifier(
        make_settings(AUTH_AUTHORIZED_PARTIES=["http://localhost:5173"])
    )

    assert verifier.verify(make_token(azp="http://localhost:5173")).user_id == "user_123"
    with pytest.raises(Unauthorized, match="unknown party"):
        verifier.verify(make_token(azp="http://elsewhere.example.com"))


def test_verify_fails_when_auth_not_configured():
    verifier = TokenVerifier(make_settings(AUTH_JWT_SECRET="", AUTH_JWKS_URL=""))

    with pytest.raises(Unauthorized, match="not configured"):
        verifier.verify(make_token())


def build_client():
    app = FastAPI()
    register_exception_handlers(app)
    app.dependency_overrides[get_settings] = lambda: make_settings()

    @app.get("/secure")
    def secure(identity: Identity = Depends(get_current_identity)):
        return {"user": identity.user_id}

    return TestClient(app)


def test_dependency_in_route_accepts_valid_token():
    res = build_client().get(
        "/secure", headers={"Authorization": f"Bearer {make_token(sub='user_9')}"}
    )

    assert res.status_code == 200
    assert res.json() == {"user": "user_9"}


@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "Bearer not-a-jwt"}, {"Authorization": "Basic abc"}],
)
def test_dependency_in_route_rejects_missing_or_invalid_token(headers):
    res = build_client().get("/secure", headers=headers)

    assert res.status_code == 401
    assert res.json()["success"] is False
    assert res.headers["WWW-Authenticate"] == "Bearer"
