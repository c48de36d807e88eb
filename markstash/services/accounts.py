from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from markstash.extensions import db
from markstash.models import User
from markstash.services.common import clean_text, email_prefix
from markstash.services.identity import (
    IdentityError,
    ProviderUser,
    get_identity_provider,
)
from markstash.services.security import end_cookie_session


@dataclass
class AccountResult:
    identity: ProviderUser
    user: User | None

    def user_payload(self) -> dict:
        if self.user is not None:
            return self.user.as_dict()
        return {"id": self.identity.id, "email": self.identity.email, "name": None}


def _upsert_user(identity: ProviderUser, name: str, replace_name: bool) -> User:
    user = db.session.get(User, identity.id)
    if user is None:
        user = User(id=identity.id, email=identity.email, name=name)
        db.session.add(user)
    else:
        user.email = identity.email
        if replace_name:
            user.name = name
    return user


def _mirror_user(identity: ProviderUser, name: str, replace_name: bool) -> User | None:
    # The provider stays authoritative; a failed local copy must not fail auth.
    try:
        user = _upsert_user(identity, name, replace_name)
        db.session.commit()
        return user
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(
            "Failed to sync user %s into the local database", identity.id
        )
        return None


def sign_up(email: str, password: str, name: str | None = None) -> AccountResult:
    identity = get_identity_provider().sign_up(email, password)
    display_name = clean_text(name) or email_prefix(identity.email)
    user = _mirror_user(identity, display_name, replace_name=True)
    current_app.logger.info("Signed up user %s", identity.id)
    return AccountResult(identity=identity, user=user)


def sign_in(email: str, password: str) -> AccountResult:
    identity = get_identity_provider().sign_in(email, password)
    user = _mirror_user(identity, email_prefix(identity.email), replace_name=False)
    current_app.logger.info("Signed in user %s", identity.id)
    return AccountResult(identity=identity, user=user)


def sign_out(token: str | None) -> None:
    if token:
        try:
            get_identity_provider().sign_out(token)
        except IdentityError as exc:
            current_app.logger.warning("Provider sign-out failed: %s", exc.message)
    end_cookie_session()
