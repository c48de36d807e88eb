from markstash.client.api import ApiClient, ApiError
from markstash.client.hooks import (
    BookmarkList,
    CollectionBookmarks,
    CollectionList,
    Mutations,
)
from markstash.client.refresh import RefreshChannel

__all__ = [
    "ApiClient",
    "ApiError",
    "BookmarkList",
    "CollectionBookmarks",
    "CollectionList",
    "Mutations",
    "RefreshChannel",
]
