from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import httpx
from flask import Flask, current_app
from sqlalchemy.exc import IntegrityError

from markstash.extensions import db
from markstash.models import AuthSession, Credential, utcnow


EXTENSION_KEY = "markstash.identity"


class IdentityError(Exception):
    """Rejection from the identity provider, safe to show to the caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class ProviderUser:
    id: str
    email: str
    access_token: str | None = None


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back naive.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class LocalIdentityProvider:
    name = "local"

    def __init__(self, min_password_length: int = 6, session_ttl_seconds: int = 604800):
        self.min_password_length = min_password_length
        self.session_ttl = timedelta(seconds=session_ttl_seconds)

    def _validate(self, email: str, password: str) -> None:
        if not email or not password:
            raise IdentityError("Email and password are required")

    def _find_credential(self, email: str) -> Credential | None:
        return Credential.query.filter_by(email=email).first()

    def _find_session(self, token: str) -> AuthSession | None:
        return AuthSession.query.filter_by(
            token_hash=AuthSession.hash_token(token)
        ).first()

    def _issue_session(self, user_id: str) -> str:
        token, token_hash = AuthSession.issue_token()
        db.session.add(
            AuthSession(
                user_id=user_id,
                token_hash=token_hash,
                expires_at=utcnow() + self.session_ttl,
            )
        )
        return token

    def sign_up(self, email: str, password: str) -> ProviderUser:
        email = _normalize_email(email)
        password = password or ""
        self._validate(email, password)
        if len(password) < self.min_password_length:
            raise IdentityError(
                f"Password should be at least {self.min_password_length} characters"
            )
        if self._find_credential(email):
            raise IdentityError("User already registered")

        credential = Credential(user_id=str(uuid.uuid4()), email=email)
        credential.set_password(password)
        db.session.add(credential)
        token = self._issue_session(credential.user_id)
        try:
            db.session.commit()
        except IntegrityError as exc:
            # A concurrent sign-up claimed the email after the check above.
            db.session.rollback()
            raise IdentityError("User already registered") from exc
        return ProviderUser(id=credential.user_id, email=email, access_token=token)

    def sign_in(self, email: str, password: str) -> ProviderUser:
        email = _normalize_email(email)
        password = password or ""
        self._validate(email, password)
        credential = self._find_credential(email)
        if not credential or not credential.check_password(password):
            raise IdentityError("Invalid login credentials")

        token = self._issue_session(credential.user_id)
        db.session.commit()
        return ProviderUser(id=credential.user_id, email=email, access_token=token)

    def resolve_token(self, token: str) -> str | None:
        row = self._find_session(token)
        if not row or row.revoked_at is not None:
            return None
        if _as_utc(row.expires_at) <= utcnow():
            return None
        return row.user_id

    def sign_out(self, token: str) -> None:
        row = self._find_session(token)
        if row and row.revoked_at is None:
            row.revoked_at = utcnow()
            db.session.commit()


def _provider_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if isinstance(payload, dict):
        for key in ("msg", "error_description", "message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return f"Identity provider rejected the request ({response.status_code})"


class SupabaseIdentityProvider:
    """Supabase Auth (GoTrue) over its REST API."""

    name = "supabase"

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        if not url or not anon_key:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be configured")
        self.base_url = f"{url.rstrip('/')}/auth/v1"
        self.anon_key = anon_key
        self.timeout = timeout
        self.transport = transport

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        params: dict | None = None,
        token: str | None = None,
    ) -> dict:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {token or self.anon_key}",
        }
        try:
            with httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = client.request(
                    method, path, json=json, params=params, headers=headers
                )
        except httpx.HTTPError as exc:
            raise IdentityError("Identity provider unavailable") from exc

        if response.is_error:
            raise IdentityError(_provider_error_message(response))
        if not response.content:
            return {}
        return response.json()

    @staticmethod
    def _to_provider_user(payload: dict) -> ProviderUser:
        # Sign-up answers with a bare user when email confirmation is pending,
        # and with a session wrapping the user otherwise.
        user = payload.get("user") or payload
        user_id = user.get("id")
        if not user_id:
            raise IdentityError("Identity provider returned no user")
        return ProviderUser(
            id=str(user_id),
            email=user.get("email") or "",
            access_token=payload.get("access_token"),
        )

    def sign_up(self, email: str, password: str) -> ProviderUser:
        payload = self._request(
            "POST",
            "/signup",
            json={"email": _normalize_email(email), "password": password or ""},
        )
        return self._to_provider_user(payload)

    def sign_in(self, email: str, password: str) -> ProviderUser:
        payload = self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": _normalize_email(email), "password": password or ""},
        )
        return self._to_provider_user(payload)

    def resolve_token(self, token: str) -> str | None:
        try:
            payload = self._request("GET", "/user", token=token)
        except IdentityError:
            return None
        user_id = payload.get("id")
        return str(user_id) if user_id else None

    def sign_out(self, token: str) -> None:
        self._request("POST", "/logout", token=token)


def build_identity_provider(config) -> LocalIdentityProvider | SupabaseIdentityProvider:
    kind = (config.get("IDENTITY_PROVIDER") or "local").lower()
    if kind == "local":
        return LocalIdentityProvider(
            min_password_length=int(config.get("LOCAL_MIN_PASSWORD_LENGTH", 6)),
            session_ttl_seconds=int(config.get("LOCAL_SESSION_TTL_SECONDS", 604800)),
        )
    if kind == "supabase":
        return SupabaseIdentityProvider(
            config.get("SUPABASE_URL", ""),
            config.get("SUPABASE_ANON_KEY", ""),
            timeout=float(config.get("IDENTITY_TIMEOUT", 10)),
        )
    raise ValueError(f"unknown identity provider: {kind}")


def init_identity(app: Flask) -> None:
    provider = build_identity_provider(app.config)
    app.extensions[EXTENSION_KEY] = provider
    app.logger.info("Identity provider: %s", provider.name)


def get_identity_provider():
    return current_app.extensions[EXTENSION_KEY]
