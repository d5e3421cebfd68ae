import atexit
import logging
import os
import sys

from flask import Flask, jsonify
from .config import DevConfig, ProdConfig
from .registry import DashboardRegistry
from .runtime import EventLoopThread


def _configure_logging(app):
    """Set up structured logging for production."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    ))
    level = logging.INFO if not app.debug else logging.DEBUG
    app.logger.setLevel(level)
    app.logger.addHandler(handler)
    # Dashboard, backend and runtime modules log under the package logger
    package_logger = logging.getLogger(__name__)
    package_logger.setLevel(level)
    if not package_logger.handlers:
        package_logger.addHandler(handler)
    logging.getLogger('gunicorn.error').setLevel(level)


def create_app(config=None, backend_factory=None):
    """Build the Flask app.

    ``config`` overrides the environment-selected config class and
    ``backend_factory`` (a coroutine function taking the config) replaces the
    Supabase backend; both exist for tests.
    """
    app = Flask(__name__, static_folder=None)

    if config is None:
        config = ProdConfig if os.environ.get('FLASK_ENV') == 'production' else DevConfig
    app.config.from_object(config)

    _configure_logging(app)

    if backend_factory is None:
        from .backend import create_supabase_backend
        backend_factory = create_supabase_backend

    runtime = EventLoopThread().start()
    registry = DashboardRegistry(runtime, backend_factory, app.config)
    app.extensions['savora'] = registry

    def _shutdown():
        registry.shutdown()
        runtime.stop()

    atexit.register(_shutdown)
    app.extensions['savora.shutdown'] = _shutdown

    # Enable CORS for the JSON API
    from flask_cors import CORS
    CORS(app, resources={r'/api/*': {'origins': app.config.get('CORS_ORIGINS', '*')}})

    from .api import register_blueprints
    register_blueprints(app)

    # Health check endpoint (used by Docker and CI)
    @app.route('/healthz')
    def health_check():
        if not runtime.running:
            app.logger.error('Health check failed: dashboard event loop is not running')
            return jsonify(status='unhealthy'), 503
        return jsonify(status='healthy', dashboards=len(registry)), 200

    return app
