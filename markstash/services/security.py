from functools import wraps

from flask import g, jsonify, request, session
from flask_login import current_user, login_user, logout_user

from markstash.services.identity import get_identity_provider

SESSION_TOKEN_KEY = "provider_token"


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header.removeprefix("Bearer ").strip()
    return token or None


def start_cookie_session(user, token: str) -> None:
    login_user(user)
    session[SESSION_TOKEN_KEY] = token


def end_cookie_session() -> None:
    session.pop(SESSION_TOKEN_KEY, None)
    logout_user()


def session_token() -> str | None:
    return session.get(SESSION_TOKEN_KEY)


def current_user_id() -> str | None:
    # An explicit bearer token wins over the cookie session.
    token = bearer_token()
    if token:
        return get_identity_provider().resolve_token(token)
    if not current_user.is_authenticated:
        return None
    # The cookie only remembers who signed in; the provider decides whether
    # that sign-in is still valid.
    token = session_token()
    user_id = get_identity_provider().resolve_token(token) if token else None
    if user_id is None or user_id != current_user.id:
        end_cookie_session()
        return None
    return user_id


def api_auth_required(func):
    @wraps(func)
    def wrapped(*args, **kwargs):
        user_id = current_user_id()
        if not user_id:
            return jsonify({"error": "Unauthorized"}), 401
        g.user_id = user_id
        return func(*args, **kwargs)

    return wrapped
