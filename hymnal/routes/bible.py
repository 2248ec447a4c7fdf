"""
Bible Routes - collections, books, chapters, verse search and bookmarks
"""

from flask import Blueprint, request

from hymnal.api_responses import handle_api_errors, query_limit, result_response
from hymnal.auth import current_auth_state
from hymnal.context import get_context
from hymnal.exceptions import ValidationException
from hymnal.models.bible import BibleBookmark

bible_bp = Blueprint("bible", __name__, url_prefix="/api/bible")


def _dicts(items):
    return [item.to_dict() for item in items]


@bible_bp.route("/collections", methods=["GET"])
@handle_api_errors
def list_collections():
    return result_response(get_context().bible.get_collections(), _dicts)


@bible_bp.route("/search", methods=["GET"])
@handle_api_errors
def search_verses():
    result = get_context().bible.search_verses(
        request.args.get("q", ""),
        current_auth_state(),
        book_id=request.args.get("book"),
        testament=request.args.get("testament"),
        language=request.args.get("language"),
        collection_id=request.args.get("collection"),
        limit=query_limit(request.args),
    )
    return result_response(result, _dicts)


@bible_bp.route("/bookmarks", methods=["GET"])
@handle_api_errors
def get_bookmarks():
    return result_response(get_context().bible.get_bookmarks(current_auth_state()), _dicts)


@bible_bp.route("/bookmarks", methods=["POST"])
@handle_api_errors
def add_bookmark():
    data = request.get_json(silent=True) or {}
    if not data.get("bookId"):
        raise ValidationException("bookId is required")
    bookmark = BibleBookmark.from_map(data, str(data.get("id") or ""))
    result = get_context().bible.add_bookmark(current_auth_state(), bookmark)
    return result_response(result, lambda saved: saved.to_dict(), status_code=201)


@bible_bp.route("/bookmarks", methods=["DELETE"])
@bible_bp.route("/bookmarks/<bookmark_id>", methods=["DELETE"])
@handle_api_errors
def remove_bookmark(bookmark_id=None):
    bookmark_id = bookmark_id or request.args.get("id")
    if not bookmark_id:
        raise ValidationException("Bookmark id is required")
    result = get_context().bible.remove_bookmark(current_auth_state(), bookmark_id)
    return result_response(result, lambda _: {"removed": bookmark_id})


@bible_bp.route("/<collection_id>/books", methods=["GET"])
@handle_api_errors
def list_books(collection_id):
    return result_response(get_context().bible.get_books(collection_id, current_auth_state()), _dicts)


@bible_bp.route("/<collection_id>/<book_id>/<int:chapter>", methods=["GET"])
@handle_api_errors
def get_chapter(collection_id, book_id, chapter):
    result = get_context().bible.get_chapter(collection_id, book_id, chapter, current_auth_state())
    return result_response(result, lambda c: c.to_dict())
