"""
System Routes - health, cache maintenance and premium status
"""

from flask import Blueprint, current_app

from hymnal.api_responses import handle_api_errors, success_response
from hymnal.auth import admin_required, current_auth_state
from hymnal.constants import BUILD_VERSION
from hymnal.context import get_context

system_bp = Blueprint("system", __name__, url_prefix="/api")


@system_bp.route("/system/health", methods=["GET"])
@handle_api_errors
def health_check_api():
    """Liveness plus the last known connectivity state"""
    monitor = current_app.extensions.get("hymnal_monitor")
    return success_response(
        {
            "status": "ok",
            "version": BUILD_VERSION,
            "is_online": None if monitor is None else monitor.is_online,
        }
    )


@system_bp.route("/system/cache/stats", methods=["GET"])
@handle_api_errors
def cache_stats():
    return success_response(get_context().cache.stats())


@system_bp.route("/system/cache/clear", methods=["POST"])
@admin_required
@handle_api_errors
def clear_cache():
    removed = get_context().clear_caches()
    return success_response({"removed": removed}, message="Cache cleared")


@system_bp.route("/premium/status", methods=["GET"])
@handle_api_errors
def premium_status():
    ctx = get_context()
    auth = current_auth_state()
    status = ctx.premium.get_premium_status(auth)
    data = status.to_dict()
    data["user_level"] = ctx.gate.user_level(auth).value
    return success_response(data)
