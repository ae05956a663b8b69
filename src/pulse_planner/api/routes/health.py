"""
Health check endpoints for the planner API.
"""

from flask import Blueprint, current_app, jsonify

from ... import __version__

health_bp = Blueprint('health', __name__)


@health_bp.route('/health')
def health_check():
    """Basic health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'service': 'pulse-planner',
        'version': __version__,
    })


@health_bp.route('/health/smtp')
def smtp_health():
    """Check whether plan e-mails can be sent."""
    from ...utils.config import get_smtp_settings

    smtp = get_smtp_settings(current_app.config['PULSE'])
    if not smtp['enabled'] or not smtp['username'] or not smtp['password']:
        return jsonify({
            'status': 'unconfigured',
            'message': 'SMTP disabled or credentials not set'
        }), 503

    return jsonify({
        'status': 'configured',
        'server': smtp['server'],
    })
