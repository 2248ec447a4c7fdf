"""
Favorites Routes - per-user favorite songs
"""

from flask import Blueprint, request

from hymnal.api_responses import handle_api_errors, result_response
from hymnal.auth import current_auth_state
from hymnal.constants import GLOBAL_FAVORITES
from hymnal.context import get_context

favorites_bp = Blueprint("favorites", __name__, url_prefix="/api")


@favorites_bp.route("/favorites", methods=["GET"])
@handle_api_errors
def get_favorites():
    """Favorites of one collection when ?collection= is given, otherwise all of them"""
    repo = get_context().favorites
    collection_id = request.args.get("collection")
    if collection_id:
        return result_response(repo.get_favorites(current_auth_state(), collection_id))
    return result_response(repo.get_all_favorites(current_auth_state()))


@favorites_bp.route("/favorites/<number>/toggle", methods=["POST"])
@handle_api_errors
def toggle_favorite(number):
    collection_id = request.args.get("collection", GLOBAL_FAVORITES)
    result = get_context().favorites.toggle(current_auth_state(), number, collection_id)
    return result_response(
        result, lambda state: {"number": number, "collection": collection_id, "is_favorite": state}
    )


@favorites_bp.route("/favorites", methods=["DELETE"])
@handle_api_errors
def clear_favorites():
    result = get_context().favorites.clear_all(current_auth_state(), request.args.get("collection"))
    return result_response(result, lambda _: {"cleared": True})
