from flask import Blueprint

api_bp = Blueprint("api", __name__, url_prefix="/api")

from markstash.api import auth, routes  # noqa: E402,F401
