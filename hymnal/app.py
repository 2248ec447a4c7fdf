import logging
import os

from flask import Flask

from hymnal.auth import create_auth_provider, login_manager
from hymnal.constants import BUILD_VERSION
from hymnal.context import build_context
from hymnal.exceptions import register_exception_handlers
from hymnal.jobs.scheduler import ConnectivityMonitor
from hymnal.metrics import init_metrics
from hymnal.routes.bible import bible_bp
from hymnal.routes.favorites import favorites_bp
from hymnal.routes.songs import songs_bp
from hymnal.routes.system import system_bp
from hymnal.utils import setup_logging

# Retrieve main logger
logger = logging.getLogger("main")

_UNSET = object()


def create_app(context=None, config=None, auth_provider=_UNSET):
    """Application factory"""
    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.environ.get("HYMNAL_SECRET_KEY") or os.urandom(24).hex()
    if config:
        app.config.update(config)

    context = context or build_context()
    app.extensions["hymnal"] = context
    app.extensions["hymnal_auth_provider"] = (
        create_auth_provider(context.settings) if auth_provider is _UNSET else auth_provider
    )

    # Initialize login manager
    login_manager.init_app(app)

    # Register exception handlers
    register_exception_handlers(app)

    # Register blueprints
    app.register_blueprint(songs_bp)
    app.register_blueprint(favorites_bp)
    app.register_blueprint(bible_bp)
    app.register_blueprint(system_bp)

    # Initialize metrics
    init_metrics(app)

    # Initialize connectivity refresh
    if context.settings.get("connectivity", {}).get("enabled") and not app.config.get("TESTING"):
        monitor = ConnectivityMonitor.from_settings(context)
        monitor.start()
        app.extensions["hymnal_monitor"] = monitor

    logger.info(f"LPMI hymnal service {BUILD_VERSION} ready")
    return app


def main():
    setup_logging()
    app = create_app()
    port = int(os.environ.get("HYMNAL_PORT", 8465))
    app.run(host="0.0.0.0", port=port, threaded=True)


if __name__ == "__main__":
    main()
