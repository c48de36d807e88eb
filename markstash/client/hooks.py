from __future__ import annotations

import httpx

from markstash.client.api import ApiClient, ApiError
from markstash.client.refresh import RefreshChannel


class RemoteList:
    error_message = "Failed to fetch data"

    def __init__(
        self,
        api: ApiClient,
        channel: RefreshChannel | None = None,
        autoload: bool = True,
    ):
        self.api = api
        self.items: list[dict] = []
        self.error: str | None = None
        self.loading = False
        self._unsubscribe = channel.subscribe(self._on_refresh) if channel else None
        if autoload:
            self.load()

    def fetch(self) -> list[dict]:
        raise NotImplementedError

    def load(self) -> list[dict]:
        self.loading = True
        self.error = None
        try:
            self.items = self.fetch()
        except ApiError as exc:
            self.error = exc.message
        except httpx.HTTPError:
            self.error = self.error_message
        finally:
            self.loading = False
        return self.items

    def _on_refresh(self, key: int) -> None:
        self.load()

    def close(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None


class BookmarkList(RemoteList):
    error_message = "Failed to fetch bookmarks"

    def fetch(self) -> list[dict]:
        return self.api.bookmarks.get_all()


class CollectionBookmarks(RemoteList):
    def __init__(
        self,
        api: ApiClient,
        collection_id: int,
        channel: RefreshChannel | None = None,
        autoload: bool = True,
    ):
        self.collection_id = collection_id
        super().__init__(api, channel, autoload)

    def fetch(self) -> list[dict]:
        return self.api.bookmarks.get_by_collection(self.collection_id)


class CollectionList(RemoteList):
    error_message = "Failed to fetch collections"

    def fetch(self) -> list[dict]:
        return self.api.collections.get_all()


class Mutations:
    """Writes that announce themselves on the refresh channel once they succeed."""

    def __init__(self, api: ApiClient, channel: RefreshChannel):
        self.api = api
        self.channel = channel

    def _done(self, result):
        self.channel.trigger()
        return result

    def create_bookmark(self, data: dict, collection_id: int | None = None) -> dict:
        if collection_id:
            return self._done(self.api.bookmarks.create_in_collection(collection_id, data))
        return self._done(self.api.bookmarks.create(data))

    def update_bookmark(
        self, bookmark_id: int, data: dict, collection_id: int | None = None
    ) -> dict:
        return self._done(self.api.bookmarks.update(bookmark_id, data, collection_id))

    def delete_bookmark(self, bookmark_id: int, collection_id: int | None = None) -> dict:
        return self._done(self.api.bookmarks.delete(bookmark_id, collection_id))

    def create_collection(self, name: str) -> dict:
        return self._done(self.api.collections.create(name))

    def delete_collection(self, collection_id: int) -> dict:
        return self._done(self.api.collections.delete(collection_id))
