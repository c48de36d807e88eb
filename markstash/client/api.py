from __future__ import annotations

import httpx


DEFAULT_BASE_URL = "http://localhost:8072"


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return "API call failed"
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return "API call failed"


class ApiClient:
    """Thin JSON wrapper around the Markstash HTTP API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 10.0,
    ):
        self.token = token
        self._http = httpx.Client(base_url=base_url, transport=transport, timeout=timeout)
        self.bookmarks = BookmarkAPI(self)
        self.collections = CollectionAPI(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self) -> None:
        self._http.close()

    def call(self, endpoint: str, method: str = "GET", body: dict | None = None):
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = self._http.request(
            method, f"/api{endpoint}", json=body, headers=headers
        )
        if response.is_error:
            raise ApiError(response.status_code, _error_message(response))
        return response.json()

    def sign_up(self, email: str, password: str, name: str | None = None) -> dict:
        body = {"email": email, "password": password}
        if name:
            body["name"] = name
        payload = self.call("/auth/signup", "POST", body)
        self.token = payload.get("accessToken") or self.token
        return payload

    def sign_in(self, email: str, password: str) -> dict:
        payload = self.call(
            "/auth/login", "POST", {"email": email, "password": password}
        )
        self.token = payload.get("accessToken") or self.token
        return payload

    def sign_out(self) -> dict:
        payload = self.call("/auth/logout", "POST")
        self.token = None
        self._http.cookies.clear()
        return payload

    def me(self) -> dict:
        return self.call("/auth/me")["user"]


class BookmarkAPI:
    def __init__(self, client: ApiClient):
        self.client = client

    def create(self, data: dict) -> dict:
        return self.client.call("/bookmarks", "POST", data)

    def create_in_collection(self, collection_id: int, data: dict) -> dict:
        return self.client.call(f"/collections/{collection_id}/bookmarks", "POST", data)

    def get_all(self) -> list[dict]:
        return self.client.call("/bookmarks")

    def get(self, bookmark_id: int) -> dict:
        return self.client.call(f"/bookmarks/{bookmark_id}")

    def get_by_collection(self, collection_id: int) -> list[dict]:
        return self.client.call(f"/collections/{collection_id}/bookmarks")

    def update(
        self, bookmark_id: int, data: dict, collection_id: int | None = None
    ) -> dict:
        if collection_id:
            endpoint = f"/collections/{collection_id}/bookmarks/{bookmark_id}"
        else:
            endpoint = f"/bookmarks/{bookmark_id}"
        return self.client.call(endpoint, "PUT", data)

    def delete(self, bookmark_id: int, collection_id: int | None = None) -> dict:
        if collection_id:
            endpoint = f"/collections/{collection_id}/bookmarks/{bookmark_id}"
        else:
            endpoint = f"/bookmarks/{bookmark_id}"
        return self.client.call(endpoint, "DELETE")


class CollectionAPI:
    def __init__(self, client: ApiClient):
        self.client = client

    def create(self, name: str) -> dict:
        return self.client.call("/collections", "POST", {"name": name})

    def get_all(self) -> list[dict]:
        return self.client.call("/collections")

    def get(self, collection_id: int) -> dict:
        return self.client.call(f"/collections/{collection_id}")

    def delete(self, collection_id: int) -> dict:
        return self.client.call(f"/collections/{collection_id}", "DELETE")
