from __future__ import annotations

from functools import wraps

from flask import g, jsonify

from markstash.extensions import db


def parse_id(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def get_owned(model, resource_id, user_id: str):
    """Return the row only if it exists and belongs to ``user_id``.

    Absent and foreign rows both come back as ``None`` so callers cannot tell
    them apart.
    """
    resource_id = parse_id(resource_id)
    if resource_id is None:
        return None
    resource = db.session.get(model, resource_id)
    if resource is None or resource.user_id != user_id:
        return None
    return resource


def not_found(model):
    return jsonify({"error": f"{model.__name__} not found"}), 404


def owned_resource(model, view_arg: str, into: str):
    """Load ``view_arg`` as an owned ``model`` row and pass it on as ``into``.

    Needs ``g.user_id``, so it goes below ``api_auth_required``.
    """

    def decorator(func):
        @wraps(func)
        def wrapped(*args, **kwargs):
            resource = get_owned(model, kwargs.pop(view_arg), g.user_id)
            if resource is None:
                return not_found(model)
            kwargs[into] = resource
            return func(*args, **kwargs)

        return wrapped

    return decorator
