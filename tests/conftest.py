import pytest

from markstash import create_app
from markstash.config import TestConfig
from markstash.extensions import db


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.drop_all()
        db.create_all()
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def signup(client):
    def _signup(email: str, password: str = "secret1", name=None):
        body = {"email": email, "password": password}
        if name:
            body["name"] = name
        response = client.post("/api/auth/signup", json=body)
        assert response.status_code == 200
        payload = response.get_json()
        headers = {"Authorization": f"Bearer {payload['accessToken']}"}
        return headers, payload["user"]["id"]

    return _signup
