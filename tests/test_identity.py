from datetime import timedelta

import httpx
import pytest

from markstash import create_app
from markstash.config import TestConfig
from markstash.extensions import db
from markstash.models import AuthSession, Credential, User, utcnow
from markstash.services.identity import (
    EXTENSION_KEY,
    IdentityError,
    LocalIdentityProvider,
    ProviderUser,
    SupabaseIdentityProvider,
    build_identity_provider,
)


def _provider(handler):
    return SupabaseIdentityProvider(
        "https://project.supabase.co/",
        "anon-key",
        transport=httpx.MockTransport(handler),
    )


def test_supabase_sign_in_uses_password_grant():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["grant_type"] = request.url.params["grant_type"]
        seen["apikey"] = request.headers["apikey"]
        return httpx.Response(
            200,
            json={
                "access_token": "jwt-token",
                "user": {"id": "user-1", "email": "alice@example.com"},
            },
        )

    user = _provider(handler).sign_in("Alice@Example.com", "secret1")

    assert user == ProviderUser(
        id="user-1", email="alice@example.com", access_token="jwt-token"
    )
    assert seen == {
        "path": "/auth/v1/token",
        "grant_type": "password",
        "apikey": "anon-key",
    }


def test_supabase_sign_up_pending_confirmation_has_no_token():
    def handler(request):
        assert request.url.path == "/auth/v1/signup"
        return httpx.Response(200, json={"id": "user-2", "email": "bob@example.com"})

    user = _provider(handler).sign_up("bob@example.com", "secret1")

    assert user.id == "user-2"
    assert user.access_token is None


def test_supabase_errors_carry_provider_message():
    def handler(request):
        if request.url.path.endswith("/signup"):
            return httpx.Response(422, json={"msg": "User already registered"})
        return httpx.Response(
            400,
            json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
        )

    provider = _provider(handler)
    with pytest.raises(IdentityError) as excinfo:
        provider.sign_up("bob@example.com", "secret1")
    assert excinfo.value.message == "User already registered"

    with pytest.raises(IdentityError) as excinfo:
        provider.sign_in("bob@example.com", "nope")
    assert excinfo.value.message == "Invalid login credentials"


def test_supabase_unreachable_is_an_identity_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(IdentityError) as excinfo:
        _provider(handler).sign_in("bob@example.com", "secret1")
    assert excinfo.value.message == "Identity provider unavailable"


def test_supabase_resolve_token():
    def handler(request):
        if request.headers["Authorization"] == "Bearer good":
            return httpx.Response(200, json={"id": "user-3", "email": "c@example.com"})
        return httpx.Response(401, json={"msg": "invalid JWT"})

    provider = _provider(handler)
    assert provider.resolve_token("good") == "user-3"
    assert provider.resolve_token("bad") is None


def test_build_identity_provider():
    provider = build_identity_provider(
        {"IDENTITY_PROVIDER": "local", "LOCAL_MIN_PASSWORD_LENGTH": 8}
    )
    assert isinstance(provider, LocalIdentityProvider)
    assert provider.min_password_length == 8

    provider = build_identity_provider(
        {
            "IDENTITY_PROVIDER": "supabase",
            "SUPABASE_URL": "https://project.supabase.co",
            "SUPABASE_ANON_KEY": "anon-key",
        }
    )
    assert provider.base_url == "https://project.supabase.co/auth/v1"

    with pytest.raises(ValueError):
        build_identity_provider({"IDENTITY_PROVIDER": "supabase"})
    with pytest.raises(ValueError):
        build_identity_provider({"IDENTITY_PROVIDER": "ldap"})


def test_signup_route_with_hosted_provider():
    def handler(request):
        return httpx.Response(200, json={"id": "remote-1", "email": "dora@example.com"})

    app = create_app(TestConfig)
    app.extensions[EXTENSION_KEY] = _provider(handler)
    client = app.test_client()

    response = client.post(
        "/api/auth/signup",
        json={"email": "dora@example.com", "password": "secret1", "name": "Dora"},
    )
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["message"] == "Check your email to verify"
    assert payload["accessToken"] is None
    assert payload["user"] == {
        "id": "remote-1",
        "email": "dora@example.com",
        "name": "Dora",
    }

    with app.app_context():
        assert db.session.get(User, "remote-1").name == "Dora"

    assert client.get("/api/auth/me").status_code == 401


def test_cookie_session_is_rechecked_with_hosted_provider():
    state = {"valid": True}

    def handler(request):
        if request.url.path == "/auth/v1/token":
            return httpx.Response(
                200,
                json={
                    "access_token": "jwt-token",
                    "user": {"id": "remote-2", "email": "erin@example.com"},
                },
            )
        if request.url.path == "/auth/v1/user":
            assert request.headers["Authorization"] == "Bearer jwt-token"
            if state["valid"]:
                return httpx.Response(
                    200, json={"id": "remote-2", "email": "erin@example.com"}
                )
            return httpx.Response(401, json={"msg": "invalid JWT"})
        return httpx.Response(404)

    app = create_app(TestConfig)
    app.extensions[EXTENSION_KEY] = _provider(handler)
    client = app.test_client()

    response = client.post(
        "/api/auth/login", json={"email": "erin@example.com", "password": "secret1"}
    )
    assert response.status_code == 200
    assert client.get("/api/bookmarks").status_code == 200

    state["valid"] = False
    response = client.get("/api/bookmarks")
    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}

    # The stale cookie session is dropped, not re-checked forever.
    state["valid"] = True
    assert client.get("/api/bookmarks").status_code == 401


def test_local_sessions_expire(app):
    provider = LocalIdentityProvider(session_ttl_seconds=60)
    with app.app_context():
        user = provider.sign_up("hank@example.com", "secret1")
        assert provider.resolve_token(user.access_token) == user.id

        row = AuthSession.query.filter_by(
            token_hash=AuthSession.hash_token(user.access_token)
        ).one()
        row.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

        assert provider.resolve_token(user.access_token) is None


def test_build_identity_provider_session_ttl():
    provider = build_identity_provider(
        {"IDENTITY_PROVIDER": "local", "LOCAL_SESSION_TTL_SECONDS": "120"}
    )
    assert provider.session_ttl == timedelta(seconds=120)


def test_concurrent_local_sign_up_is_a_duplicate(app, monkeypatch):
    provider = LocalIdentityProvider()
    # Both requests pass the existence check before either commits.
    monkeypatch.setattr(LocalIdentityProvider, "_find_credential", lambda self, email: None)
    with app.app_context():
        provider.sign_up("ivy@example.com", "secret1")
        with pytest.raises(IdentityError) as excinfo:
            provider.sign_up("ivy@example.com", "secret1")
        assert excinfo.value.message == "User already registered"
        assert Credential.query.count() == 1
        assert AuthSession.query.count() == 1
