"""
Production Planner CLI entry point.

Usage:
    python -m pulse_planner calculate PLAN.json [--json]   Calculate targets
    python -m pulse_planner summary PLAN.json              Income & deal structure
    python -m pulse_planner export-pdf PLAN.json [-o OUT]  Write the plan PDF
    python -m pulse_planner email PLAN.json --to ADDR      E-mail the plan
    python -m pulse_planner activate PLAN.json --user-id ID
    python -m pulse_planner serve [--host H] [--port P]    Run the HTTP API

PLAN.json holds either the wizard's plan object or a saved business plan
record (with a `detailedPlan` JSON string).
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from .core.calculator import compute_plan
from .core.defaults import merge_saved_plan, with_plan_year
from .core.summary import deal_structure, income_summary
from .exceptions import ActivationError, ExportError, PlanValidationError, PulseError
from .utils.config import get_smtp_settings, load_config
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


def load_plan_file(path: str) -> Dict[str, Any]:
    """
    Read a plan from a JSON file.

    Raises:
        OSError: file could not be read
        ValueError: file is not JSON or not an object
    """
    with open(path, 'r') as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")

    if 'detailedPlan' in data:
        return merge_saved_plan(data['detailedPlan'])
    return with_plan_year(data)


def _load(path: str):
    try:
        return load_plan_file(path)
    except (OSError, ValueError) as e:
        print(f"[ERROR] Could not load plan: {e}", file=sys.stderr)
        return None


def cmd_calculate(args, config):
    """Calculate production targets for a plan."""
    plan = _load(args.plan)
    if plan is None:
        return 1

    try:
        result = compute_plan(plan)
    except PlanValidationError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    print("=" * 60)
    print(f"{plan.get('planYear')} Production Targets")
    print("=" * 60)
    print(f"\nGCI Required:       ${result.gci_required:,}")
    print(f"Total Volume:       ${result.total_volume:,}")
    print(f"Deals Needed:       {result.total_deals_needed}"
          f" ({result.buyer_deals} buyer / {result.listing_deals} listing)")

    print("\n[Annual Activity]")
    print(f"  {'Stage':<15} {'Buyer':>8} {'Listing':>8} {'Total':>8}")
    buyer, listing = result.buyer_activity, result.listing_activity
    rows = [
        ('Conversations', buyer.conversations, listing.conversations, result.total_conversations),
        ('Appointments', buyer.appointments, listing.appointments, result.total_appointments),
        ('Agreements', buyer.agreements, listing.agreements, result.total_agreements),
        ('Contracts', buyer.contracts, listing.contracts, result.total_contracts),
        ('Closed', buyer.closed, listing.closed, result.buyer_deals + result.listing_deals),
    ]
    for label, b, l, total in rows:
        print(f"  {label:<15} {b:>8,} {l:>8,} {total:>8,}")

    return 0


def cmd_summary(args, config):
    """Print the income summary and deal structure."""
    plan = _load(args.plan)
    if plan is None:
        return 1

    income = income_summary(plan)
    deals = deal_structure(plan)

    print("[Income Summary]")
    print(f"  Net Income Goal:      ${income['netIncomeGoal']:,.0f}")
    print(f"  Personal Expenses:    ${income['totalPersonal']:,.0f}")
    print(f"  Business Expenses:    ${income['totalBusiness']:,.0f}")
    print(f"  Tax Set Aside:        ${income['taxReserve']:,.0f} ({income['taxRate']:g}%)")
    print(f"  Total Income Needed:  ${income['totalIncomeNeeded']:,.0f}")

    print("\n[Deal Structure]")
    print(f"  Avg Commission/Deal:  ${deals['avgCommissionPerDeal']:,.0f}")
    print(f"  Buyer Net/Deal:       ${deals['buyer']['netCommission']:,.0f}")
    print(f"  Seller Net/Deal:      ${deals['seller']['netCommission']:,.0f}")
    print(f"  Avg Net/Deal:         ${deals['avgNetCommission']:,.0f}")
    return 0


def cmd_export_pdf(args, config):
    """Write the business plan PDF."""
    from .services.pdf_export import build_plan_pdf, default_pdf_filename

    plan = _load(args.plan)
    if plan is None:
        return 1

    output = args.output or default_pdf_filename(plan['planYear'])
    try:
        build_plan_pdf(plan, args.name, output_path=output)
    except ExportError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    print(f"PDF written to {Path(output).resolve()}")
    return 0


def cmd_email(args, config):
    """E-mail the plan summary."""
    from .services.email_service import send_plan_email
    from .services.pdf_export import build_plan_pdf

    plan = _load(args.plan)
    if plan is None:
        return 1

    pdf_bytes = None
    if args.attach_pdf:
        try:
            pdf_bytes = build_plan_pdf(plan, args.name)
        except ExportError as e:
            print(f"[ERROR] {e}", file=sys.stderr)
            return 1

    if not send_plan_email(args.to, plan, args.name, get_smtp_settings(config), pdf_bytes=pdf_bytes):
        print("[ERROR] Email not sent. Check SMTP configuration.", file=sys.stderr)
        return 1

    print(f"Production plan sent to {args.to}")
    return 0


def cmd_activate(args, config):
    """Activate the plan as the user's goals."""
    from .services.cache import SessionCache
    from .services.pulse_client import PulseClient

    plan = _load(args.plan)
    if plan is None:
        return 1

    client = PulseClient.from_config(config, cache=SessionCache())
    try:
        result = client.activate_production_plan(plan, args.user_id)
    except ActivationError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    except PulseError as e:
        print(f"[ERROR] Backend request failed: {e}", file=sys.stderr)
        return 1

    print(result.message)
    return 0


def cmd_serve(args, config):
    """Run the HTTP API."""
    from .api import create_app

    server = config.get('server', {})
    host = args.host or server.get('host', '127.0.0.1')
    port = args.port or int(server.get('port', 8200))

    app = create_app(config)
    logger.info(f"Starting planner API on {host}:{port}")
    app.run(host=host, port=port, debug=False, use_reloader=False)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='pulse-planner',
        description='PULSE Production Planner - income goal to activity plan'
    )
    parser.add_argument('--config', help='Path to config.yaml')
    subparsers = parser.add_subparsers(dest='command', required=True)

    p = subparsers.add_parser('calculate', help='Calculate production targets')
    p.add_argument('plan', help='Plan JSON file')
    p.add_argument('--json', action='store_true', help='Print the raw result as JSON')
    p.set_defaults(func=cmd_calculate)

    p = subparsers.add_parser('summary', help='Income summary and deal structure')
    p.add_argument('plan', help='Plan JSON file')
    p.set_defaults(func=cmd_summary)

    p = subparsers.add_parser('export-pdf', help='Write the business plan PDF')
    p.add_argument('plan', help='Plan JSON file')
    p.add_argument('-o', '--output', help='Output path (default: Business_Plan_<year>.pdf)')
    p.add_argument('--name', default='Agent', help='First name for the title')
    p.set_defaults(func=cmd_export_pdf)

    p = subparsers.add_parser('email', help='E-mail the plan summary')
    p.add_argument('plan', help='Plan JSON file')
    p.add_argument('--to', required=True, help='Recipient address')
    p.add_argument('--name', default='Agent', help='First name for the greeting')
    p.add_argument('--attach-pdf', action='store_true', help='Attach the plan PDF')
    p.set_defaults(func=cmd_email)

    p = subparsers.add_parser('activate', help='Activate the plan as goals')
    p.add_argument('plan', help='Plan JSON file')
    p.add_argument('--user-id', required=True, help='Owner of the plan')
    p.set_defaults(func=cmd_activate)

    p = subparsers.add_parser('serve', help='Run the HTTP API')
    p.add_argument('--host', help='Bind address (default: from config)')
    p.add_argument('--port', type=int, help='Port (default: from config)')
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    log_config = config.get('logging', {})
    setup_logging(level=log_config.get('level', 'INFO'), log_file=log_config.get('file'))

    return args.func(args, config)


if __name__ == '__main__':
    sys.exit(main())
