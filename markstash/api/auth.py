from flask import g, jsonify

from markstash.api import api_bp
from markstash.extensions import db
from markstash.models import User
from markstash.services import accounts
from markstash.services.common import json_body
from markstash.services.identity import IdentityError
from markstash.services.security import (
    api_auth_required,
    bearer_token,
    session_token,
    start_cookie_session,
)


def _account_response(result: accounts.AccountResult):
    if result.user is not None and result.identity.access_token:
        start_cookie_session(result.user, result.identity.access_token)
    payload = {
        "user": result.user_payload(),
        "accessToken": result.identity.access_token,
    }
    if not result.identity.access_token:
        payload["message"] = "Check your email to verify"
    return jsonify(payload)


@api_bp.route("/auth/signup", methods=["POST"])
def signup():
    payload = json_body()
    try:
        result = accounts.sign_up(
            payload.get("email"), payload.get("password"), payload.get("name")
        )
    except IdentityError as exc:
        return jsonify({"error": exc.message}), 400
    return _account_response(result)


@api_bp.route("/auth/login", methods=["POST"])
def login():
    payload = json_body()
    try:
        result = accounts.sign_in(payload.get("email"), payload.get("password"))
    except IdentityError as exc:
        return jsonify({"error": exc.message}), 400
    return _account_response(result)


@api_bp.route("/auth/logout", methods=["POST"])
def logout():
    accounts.sign_out(bearer_token() or session_token())
    return jsonify({"message": "Signed out"})


@api_bp.route("/auth/me", methods=["GET"])
@api_auth_required
def me():
    user = db.session.get(User, g.user_id)
    if user is None:
        return jsonify({"user": {"id": g.user_id, "email": None, "name": None}})
    return jsonify({"user": user.as_dict()})
