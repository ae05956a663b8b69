"""
Plan Email Service

Renders the production plan e-mail and sends it over SMTP.
"""

import smtplib
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.mime.application import MIMEApplication
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader

from ..core.calculator import calculate_goals
from ..core.models import PlanResult
from ..core.summary import income_summary

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent.parent / 'templates'
PLAN_EMAIL_TEMPLATE = 'production_plan_email.html'

# Jinja2 template environment
_template_env = None


def format_currency(value: Any) -> str:
    """Whole-dollar currency, e.g. $93,333."""
    try:
        return f"${float(value):,.0f}"
    except (TypeError, ValueError):
        return "$0"


def format_count(value: Any) -> str:
    try:
        return f"{int(value):,}"
    except (TypeError, ValueError):
        return "0"


def get_template_env() -> Environment:
    """Get or create Jinja2 template environment."""
    global _template_env
    if _template_env is None:
        _template_env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=True
        )
        _template_env.filters['currency'] = format_currency
        _template_env.filters['count'] = format_count
    return _template_env


def render_template(template_name: str, **context) -> str:
    """Render an HTML template with the given context."""
    env = get_template_env()
    template = env.get_template(template_name)
    return template.render(**context)


def plan_email_subject(year: Any) -> str:
    return f"Your {year} Production Plan - PULSE Intelligence"


def render_plan_email(
    plan_data: Dict[str, Any],
    first_name: str,
    result: Optional[PlanResult] = None
) -> str:
    """
    Render the production plan e-mail body.

    Args:
        plan_data: The wizard plan (camelCase dict)
        first_name: Agent's first name for the heading
        result: Precomputed targets (calculated from plan_data if omitted)

    Returns:
        HTML string
    """
    if result is None:
        result = calculate_goals(plan_data)

    return render_template(
        PLAN_EMAIL_TEMPLATE,
        first_name=first_name,
        plan_year=plan_data.get('planYear'),
        summary=income_summary(plan_data),
        targets=result.to_dict(),
    )


def send_email(
    to: str,
    subject: str,
    html_body: str,
    smtp: Dict[str, Any],
    attachments: Optional[List[tuple]] = None
) -> bool:
    """
    Send an HTML email.

    Args:
        to: Recipient email address
        subject: Email subject line
        html_body: HTML content of the email
        smtp: SMTP settings (see utils.config.get_smtp_settings)
        attachments: List of (filename, content, mime_type) tuples

    Returns:
        True if sent successfully, False otherwise
    """
    if not smtp.get('enabled'):
        logger.warning("SMTP is disabled, email not sent")
        return False

    if not smtp.get('username') or not smtp.get('password'):
        logger.error("SMTP credentials not configured")
        return False

    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{smtp.get('from_name', 'PULSE Intelligence')} <{smtp['username']}>"
        msg["To"] = to

        # Attach HTML body
        msg.attach(MIMEText(html_body, "html"))

        # Attach files if provided
        if attachments:
            for filename, content, mime_type in attachments:
                if isinstance(content, str):
                    content = content.encode('utf-8')

                attachment = MIMEApplication(content, _subtype=mime_type.split('/')[-1])
                attachment.add_header(
                    'Content-Disposition',
                    'attachment',
                    filename=filename
                )
                msg.attach(attachment)

        # Send email
        with smtplib.SMTP(smtp['server'], smtp['port']) as server:
            server.starttls()
            server.login(smtp['username'], smtp['password'])
            server.send_message(msg)

        logger.info(f"Email sent successfully to {to}: {subject}")
        return True

    except smtplib.SMTPException as e:
        logger.error(f"SMTP error sending email: {e}")
        return False
    except OSError as e:
        logger.error(f"Connection error sending email: {e}")
        return False


def send_plan_email(
    to: str,
    plan_data: Dict[str, Any],
    first_name: str,
    smtp: Dict[str, Any],
    pdf_bytes: Optional[bytes] = None
) -> bool:
    """
    E-mail a production plan, optionally with the PDF attached.

    Returns:
        True if sent successfully, False otherwise
    """
    year = plan_data.get('planYear')
    html_body = render_plan_email(plan_data, first_name)

    attachments = None
    if pdf_bytes:
        from .pdf_export import default_pdf_filename
        attachments = [(default_pdf_filename(year), pdf_bytes, 'application/pdf')]

    return send_email(to, plan_email_subject(year), html_body, smtp, attachments=attachments)
