"""
Song Routes - song collections, songs, search and verse of the day
"""

from flask import Blueprint, request

from hymnal.api_responses import handle_api_errors, query_limit, result_response, success_response
from hymnal.auth import current_auth_state
from hymnal.constants import SORT_BY_NUMBER, SORT_ORDERS
from hymnal.context import get_context
from hymnal.exceptions import ValidationException

songs_bp = Blueprint("songs", __name__, url_prefix="/api")


def _songs_json(songs):
    return [s.to_json() for s in songs]


@songs_bp.route("/collections", methods=["GET"])
@handle_api_errors
def list_collections():
    """Active collections visible to the caller, locked ones included as previews"""
    include_preview = request.args.get("preview", "true").lower() != "false"
    result = get_context().collections.get_for_user(current_auth_state(), include_preview=include_preview)
    return result_response(result, lambda collections: [c.to_dict() for c in collections])


@songs_bp.route("/collections/stats", methods=["GET"])
@handle_api_errors
def collection_stats():
    return result_response(get_context().collections.get_stats(), lambda stats: stats.to_dict())


@songs_bp.route("/collections/<collection_id>", methods=["GET"])
@handle_api_errors
def get_collection(collection_id):
    collection = get_context().collections.get_by_id(collection_id).unwrap()
    return success_response(collection.to_dict())


@songs_bp.route("/songs", methods=["GET"])
@handle_api_errors
def list_songs():
    order = request.args.get("order", SORT_BY_NUMBER)
    if order not in SORT_ORDERS:
        raise ValidationException(f"Unknown order {order}, expected one of {', '.join(SORT_ORDERS)}")
    result = get_context().songs.get_all(current_auth_state(), request.args.get("collection"), order=order)
    return result_response(result, _songs_json)


@songs_bp.route("/songs/search", methods=["GET"])
@handle_api_errors
def search_songs():
    result = get_context().songs.search(
        request.args.get("q", ""),
        current_auth_state(),
        collection_id=request.args.get("collection"),
        limit=query_limit(request.args),
    )
    return result_response(result, _songs_json)


@songs_bp.route("/songs/verse-of-the-day", methods=["GET"])
@handle_api_errors
def verse_of_the_day():
    result = get_context().songs.verse_of_the_day(current_auth_state())
    return result_response(
        result,
        lambda picked: {
            "song_number": picked["song"].number,
            "song_title": picked["song"].title,
            "verse": picked["verse"].to_json(),
        },
    )


@songs_bp.route("/songs/<number>", methods=["GET"])
@handle_api_errors
def get_song(number):
    result = get_context().songs.get_by_id(number, current_auth_state(), request.args.get("collection"))
    return result_response(result, lambda song: song.to_json())
