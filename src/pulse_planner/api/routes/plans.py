"""
Plan endpoints for the planner API.

Bodies and responses use the wizard's camelCase plan JSON.
"""

import io
import logging
from typing import Any, Dict, List

from flask import Blueprint, current_app, jsonify, request, send_file

from ...core.calculator import calculate_goals, compute_plan
from ...core.defaults import with_plan_year
from ...core.summary import deal_structure, income_summary
from ...services.email_service import send_plan_email
from ...services.pdf_export import build_plan_pdf, default_pdf_filename
from ...services.pulse_client import PulseClient
from ...utils.config import get_smtp_settings

logger = logging.getLogger(__name__)

plans_bp = Blueprint('plans', __name__)

DEFAULT_FIRST_NAME = 'Agent'


def get_client() -> PulseClient:
    """Backend client for this app, created from config on first use."""
    client = current_app.config.get('PULSE_CLIENT')
    if client is None:
        client = PulseClient.from_config(current_app.config['PULSE'])
        current_app.config['PULSE_CLIENT'] = client
    return client


def bad_request(message: str):
    return jsonify({
        'success': False,
        'error': {
            'code': 'INVALID_REQUEST',
            'message': message
        }
    }), 400


def get_json_object():
    """Request body as a dict, or None when it is missing or not an object."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


@plans_bp.route('/plans/calculate', methods=['POST'])
def calculate():
    """
    Calculate production targets for a plan.

    Body: the plan object. Returns 422 when the plan cannot be computed.
    """
    plan = get_json_object()
    if plan is None:
        return bad_request('Request body must be a JSON object')

    result = compute_plan(plan)
    return jsonify({
        'success': True,
        'result': result.to_dict()
    })


@plans_bp.route('/plans/summary', methods=['POST'])
def summary():
    """Income summary, deal structure and targets for a plan."""
    plan = get_json_object()
    if plan is None:
        return bad_request('Request body must be a JSON object')

    errors: List[str] = []
    result = calculate_goals(plan, on_error=errors.append)

    response: Dict[str, Any] = {
        'success': True,
        'incomeSummary': income_summary(plan),
        'dealStructure': deal_structure(plan),
        'result': result.to_dict(),
    }
    if errors:
        response['warnings'] = errors
    return jsonify(response)


@plans_bp.route('/plans/pdf', methods=['POST'])
def export_pdf():
    """
    Business plan PDF download.

    Body: the plan object.
    Query params:
        firstName: Name for the document title (default: Agent)
    """
    plan = get_json_object()
    if plan is None:
        return bad_request('Request body must be a JSON object')

    plan = with_plan_year(plan)
    first_name = request.args.get('firstName') or DEFAULT_FIRST_NAME
    pdf_bytes = build_plan_pdf(plan, first_name)

    return send_file(
        io.BytesIO(pdf_bytes),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=default_pdf_filename(plan['planYear'])
    )


@plans_bp.route('/plans/email', methods=['POST'])
def email_plan():
    """
    E-mail a plan summary.

    Body:
        plan: The plan object
        to: Recipient address
        firstName: Name for the greeting (default: Agent)
        attachPdf: Attach the business plan PDF (default: false)
    """
    data = get_json_object()
    if data is None or not isinstance(data.get('plan'), dict):
        return bad_request('Body must contain a plan object')

    to = data.get('to')
    if not to:
        return bad_request('Recipient address (to) is required')

    plan = with_plan_year(data['plan'])
    first_name = data.get('firstName') or DEFAULT_FIRST_NAME

    pdf_bytes = build_plan_pdf(plan, first_name) if data.get('attachPdf') else None
    smtp = get_smtp_settings(current_app.config['PULSE'])

    if not send_plan_email(to, plan, first_name, smtp, pdf_bytes=pdf_bytes):
        return jsonify({
            'success': False,
            'error': {
                'code': 'EMAIL_NOT_SENT',
                'message': 'Failed to send email. Check SMTP configuration.'
            }
        }), 503

    return jsonify({
        'success': True,
        'message': f'Production plan sent to {to}'
    })


@plans_bp.route('/plans/activate', methods=['POST'])
def activate():
    """
    Activate a plan as the user's goals.

    Body:
        plan: The plan object
        userId: Owner of the plan
    """
    data = get_json_object()
    if data is None or not isinstance(data.get('plan'), dict):
        return bad_request('Body must contain a plan object')

    result = get_client().activate_production_plan(data['plan'], data.get('userId'))

    return jsonify({
        'success': True,
        'goalsCreated': result.goals_created,
        'goalsUpdated': result.goals_updated,
        'message': result.message
    })
