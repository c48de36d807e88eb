from __future__ import annotations

from flask import current_app, g, jsonify, request
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from markstash.api import api_bp
from markstash.extensions import db
from markstash.models import Bookmark, Collection
from markstash.services.common import clean_tags, clean_text, json_body
from markstash.services.ownership import get_owned, not_found, owned_resource
from markstash.services.security import api_auth_required


def _bad_request(message: str):
    return jsonify({"error": message}), 400


def _newest_first(query):
    return query.order_by(Bookmark.created_at.desc(), Bookmark.id.desc())


def _resolve_collection(raw_id):
    """Owned collection for a body-supplied id; ``(None, None)`` uncategorises."""
    if raw_id is None or raw_id == "":
        return None, None
    collection = get_owned(Collection, raw_id, g.user_id)
    if collection is None:
        return None, not_found(Collection)
    return collection, None


def _create_bookmark(payload: dict, collection: Collection | None):
    url = clean_text(payload.get("url"))
    title = clean_text(payload.get("title"))
    if not url or not title:
        return _bad_request("url and title are required")
    try:
        tags = clean_tags(payload.get("tags"))
    except ValueError as exc:
        return _bad_request(str(exc))

    bookmark = Bookmark(
        user_id=g.user_id,
        collection_id=collection.id if collection else None,
        url=url,
        title=title,
        description=clean_text(payload.get("description")),
        tags=tags,
    )
    db.session.add(bookmark)
    db.session.commit()
    return jsonify(bookmark.as_dict()), 201


def _update_bookmark(bookmark: Bookmark, payload: dict):
    changes = {}
    for field in ["url", "title"]:
        if field in payload:
            value = clean_text(payload.get(field))
            if not value:
                return _bad_request(f"{field} cannot be empty")
            changes[field] = value
    if "description" in payload:
        changes["description"] = clean_text(payload.get("description"))
    try:
        changes["tags"] = clean_tags(payload.get("tags"))
    except ValueError as exc:
        return _bad_request(str(exc))
    if "collectionId" in payload:
        collection, error = _resolve_collection(payload.get("collectionId"))
        if error:
            return error
        changes["collection_id"] = collection.id if collection else None

    for field, value in changes.items():
        setattr(bookmark, field, value)
    db.session.commit()
    return jsonify(bookmark.as_dict())


def _delete_bookmark(bookmark: Bookmark):
    db.session.delete(bookmark)
    db.session.commit()
    return jsonify({"message": "Bookmark deleted successfully"})


def _bookmark_count(collection: Collection) -> int:
    return Bookmark.query.filter_by(collection_id=collection.id).count()


@api_bp.errorhandler(SQLAlchemyError)
def handle_database_error(exc):
    db.session.rollback()
    current_app.logger.error(
        "Database error on %s %s", request.method, request.path, exc_info=exc
    )
    return jsonify({"error": "Server error"}), 500


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok", "service": "Markstash"})


@api_bp.route("/bookmarks", methods=["GET"])
@api_auth_required
def bookmarks_list():
    query = Bookmark.query.filter_by(user_id=g.user_id)
    collection_id = request.args.get("collectionId")
    if collection_id:
        collection = get_owned(Collection, collection_id, g.user_id)
        if collection is None:
            return not_found(Collection)
        query = query.filter_by(collection_id=collection.id)
    items = _newest_first(query).all()
    return jsonify([item.as_dict() for item in items])


@api_bp.route("/bookmarks", methods=["POST"])
@api_auth_required
def bookmarks_create():
    payload = json_body()
    collection, error = _resolve_collection(payload.get("collectionId"))
    if error:
        return error
    return _create_bookmark(payload, collection)


@api_bp.route("/bookmarks/<int:bookmark_id>", methods=["GET"])
@api_auth_required
@owned_resource(Bookmark, "bookmark_id", into="bookmark")
def bookmarks_get(bookmark: Bookmark):
    return jsonify(bookmark.as_dict())


@api_bp.route("/bookmarks/<int:bookmark_id>", methods=["PUT"])
@api_auth_required
@owned_resource(Bookmark, "bookmark_id", into="bookmark")
def bookmarks_update(bookmark: Bookmark):
    return _update_bookmark(bookmark, json_body())


@api_bp.route("/bookmarks/<int:bookmark_id>", methods=["DELETE"])
@api_auth_required
@owned_resource(Bookmark, "bookmark_id", into="bookmark")
def bookmarks_delete(bookmark: Bookmark):
    return _delete_bookmark(bookmark)


@api_bp.route("/collections", methods=["GET"])
@api_auth_required
def collections_list():
    rows = (
        db.session.query(Collection, func.count(Bookmark.id))
        .outerjoin(Bookmark, Bookmark.collection_id == Collection.id)
        .filter(Collection.user_id == g.user_id)
        .group_by(Collection.id)
        .order_by(Collection.created_at.desc(), Collection.id.desc())
        .all()
    )
    return jsonify([collection.as_dict(count) for collection, count in rows])


@api_bp.route("/collections", methods=["POST"])
@api_auth_required
def collections_create():
    name = clean_text(json_body().get("name"))
    if not name:
        return _bad_request("collection name is required")

    collection = Collection(user_id=g.user_id, name=name)
    db.session.add(collection)
    db.session.commit()
    return jsonify(collection.as_dict(0)), 201


@api_bp.route("/collections/<int:collection_id>", methods=["GET"])
@api_auth_required
@owned_resource(Collection, "collection_id", into="collection")
def collections_get(collection: Collection):
    return jsonify(collection.as_dict(_bookmark_count(collection)))


@api_bp.route("/collections/<int:collection_id>", methods=["DELETE"])
@api_auth_required
@owned_resource(Collection, "collection_id", into="collection")
def collections_delete(collection: Collection):
    collection_id = collection.id
    # Member bookmarks and the collection go in one commit.
    removed = Bookmark.query.filter_by(collection_id=collection_id).delete(
        synchronize_session="fetch"
    )
    db.session.delete(collection)
    db.session.commit()
    current_app.logger.info(
        "Deleted collection %s with %d bookmarks", collection_id, removed
    )
    return jsonify({"message": "Collection deleted successfully"})


@api_bp.route("/collections/<int:collection_id>/bookmarks", methods=["GET"])
@api_auth_required
@owned_resource(Collection, "collection_id", into="collection")
def collection_bookmarks_list(collection: Collection):
    items = _newest_first(Bookmark.query.filter_by(collection_id=collection.id)).all()
    return jsonify([item.as_dict() for item in items])


@api_bp.route("/collections/<int:collection_id>/bookmarks", methods=["POST"])
@api_auth_required
@owned_resource(Collection, "collection_id", into="collection")
def collection_bookmarks_create(collection: Collection):
    return _create_bookmark(json_body(), collection)


def _collection_member(collection: Collection, bookmark_id: int) -> Bookmark | None:
    bookmark = get_owned(Bookmark, bookmark_id, g.user_id)
    if bookmark is None or bookmark.collection_id != collection.id:
        return None
    return bookmark


@api_bp.route(
    "/collections/<int:collection_id>/bookmarks/<int:bookmark_id>",
    methods=["PUT"],
)
@api_auth_required
@owned_resource(Collection, "collection_id", into="collection")
def collection_bookmarks_update(collection: Collection, bookmark_id: int):
    bookmark = _collection_member(collection, bookmark_id)
    if bookmark is None:
        return not_found(Bookmark)
    return _update_bookmark(bookmark, json_body())


@api_bp.route(
    "/collections/<int:collection_id>/bookmarks/<int:bookmark_id>",
    methods=["DELETE"],
)
@api_auth_required
@owned_resource(Collection, "collection_id", into="collection")
def collection_bookmarks_delete(collection: Collection, bookmark_id: int):
    bookmark = _collection_member(collection, bookmark_id)
    if bookmark is None:
        return not_found(Bookmark)
    return _delete_bookmark(bookmark)
