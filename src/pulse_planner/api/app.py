"""
Planner API Server

Flask app that runs the production-goal calculator for the goal-planner
wizard and hands plans off for export, e-mail and activation.
"""

import logging
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from ..exceptions import (
    ActivationError, ExportError, PlanValidationError, PulseAPIError, RateLimitExceeded
)
from ..utils.config import load_config
from .routes import health_bp, plans_bp

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = ['http://localhost:5173', 'http://localhost:3000']


def error_response(code: str, message: str, status: int):
    """The API's standard error envelope."""
    return jsonify({
        'success': False,
        'error': {
            'code': code,
            'message': message
        }
    }), status


def create_app(config: Optional[Dict[str, Any]] = None, client: Any = None) -> Flask:
    """
    Build the API app.

    Args:
        config: Loaded configuration (see utils.config.load_config);
            loaded from disk and environment when omitted
        client: PulseClient to use for backend calls; built from config
            on first use when omitted

    Returns:
        Flask app
    """
    if config is None:
        config = load_config()

    app = Flask(__name__)
    app.config['PULSE'] = config
    app.config['PULSE_CLIENT'] = client

    server = config.get('server', {})
    allowed_origins = server.get('cors_origins') or DEFAULT_CORS_ORIGINS
    CORS(app, resources={r"/*": {"origins": allowed_origins}})

    api_key = server.get('api_key')
    if not api_key:
        logger.warning("PULSE_SERVER_API_KEY is not set. API authentication is disabled.")

    @app.before_request
    def check_api_key():
        """Check API key for all /api/* routes."""
        # Skip auth for non-API routes (health, index)
        if not request.path.startswith('/api/'):
            return None

        # Skip auth if no API key is configured (local development)
        if not api_key:
            return None

        provided_key = request.headers.get('X-API-Key')
        if not provided_key or provided_key != api_key:
            return error_response('UNAUTHORIZED', 'Invalid or missing API key', 401)

        return None

    @app.errorhandler(PlanValidationError)
    def handle_validation_error(e):
        return error_response('INVALID_PLAN', str(e), 422)

    @app.errorhandler(ActivationError)
    def handle_activation_error(e):
        return error_response('ACTIVATION_FAILED', str(e), 400)

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit(e):
        logger.error(f"Backend rate limit: {e}")
        return error_response('RATE_LIMITED', str(e), 502)

    @app.errorhandler(PulseAPIError)
    def handle_api_error(e):
        logger.error(f"Backend error: {e}")
        return error_response('BACKEND_ERROR', str(e), 502)

    @app.errorhandler(ExportError)
    def handle_export_error(e):
        return error_response('EXPORT_FAILED', str(e), 500)

    # Register blueprints
    app.register_blueprint(health_bp)
    app.register_blueprint(plans_bp, url_prefix='/api/v1')

    @app.route('/')
    def index():
        from .. import __version__
        return jsonify({
            'name': 'PULSE Production Planner API',
            'version': __version__,
            'status': 'running'
        })

    return app
