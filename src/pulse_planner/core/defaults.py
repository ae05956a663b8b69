"""
Plan defaults.

The default table used by the resolve pass, the wizard's starting plan,
and merging of a saved business plan back over that starting plan.
"""

import copy
import json
import logging
from datetime import date
from typing import Any, Dict, Optional, Union

from .models import EffectiveRates

logger = logging.getLogger(__name__)

# Scalar defaults substituted when a field is missing or not a number
DEFAULT_NET_INCOME_GOAL = 70000
DEFAULT_TAX_RATE = 25
DEFAULT_AVG_SALE_PRICE = 450000
DEFAULT_COMMISSION_RATE = 3
DEFAULT_INCOME_SPLIT = 60
DEFAULT_BUYER_SELLER_SPLIT = 60
DEFAULT_BROKERAGE_SPLIT = 20
DEFAULT_TEAM_SPLIT = 0

# Clamp bounds
TAX_RATE_MIN, TAX_RATE_MAX = 0, 99
SPLIT_MIN, SPLIT_MAX = 0, 100
RATE_MIN, RATE_MAX = 0.01, 1.0

DEFAULT_BUYER_RATES = EffectiveRates(
    conv_to_appt=0.25,
    appt_to_agree=0.40,
    agree_to_contract=0.80,
    contract_to_close=0.85,
)

DEFAULT_LISTING_RATES = EffectiveRates(
    conv_to_appt=0.30,
    appt_to_agree=0.60,
    agree_to_contract=0.90,
    contract_to_close=0.95,
)

_INITIAL_PLAN = {
    'netIncomeGoal': DEFAULT_NET_INCOME_GOAL,
    'personalExpenses': {},
    'businessExpenses': {},
    'taxRate': DEFAULT_TAX_RATE,
    'avgSalePrice': DEFAULT_AVG_SALE_PRICE,
    'commissionRate': DEFAULT_COMMISSION_RATE,
    'buyerSellerSplit': DEFAULT_BUYER_SELLER_SPLIT,
    'incomeSplit': DEFAULT_INCOME_SPLIT,
    'brokerageSplitBuyers': DEFAULT_BROKERAGE_SPLIT,
    'brokerageSplitSellers': DEFAULT_BROKERAGE_SPLIT,
    'teamSplitBuyers': DEFAULT_TEAM_SPLIT,
    'teamSplitSellers': DEFAULT_TEAM_SPLIT,
    # Activity placeholders the wizard shows before targets are calculated
    'buyerActivities': {
        'conversions': 16, 'appointments': 1, 'met': 1,
        'signed': 2, 'underContract': 1, 'closings': 1,
    },
    'listingActivities': {
        'conversions': 10, 'appointments': 0, 'met': 0,
        'signed': 1, 'underContract': 1, 'closings': 1,
    },
    'buyerRates': DEFAULT_BUYER_RATES.to_input_dict(),
    'listingRates': DEFAULT_LISTING_RATES.to_input_dict(),
}


def initial_plan_data(year: Optional[int] = None) -> Dict[str, Any]:
    """Return a fresh copy of the wizard's starting plan."""
    return {'planYear': year or date.today().year, **copy.deepcopy(_INITIAL_PLAN)}


def merge_saved_plan(
    detailed_plan: Union[str, Dict[str, Any], None],
    year: Optional[int] = None
) -> Dict[str, Any]:
    """
    Overlay a saved plan on the starting plan.

    Args:
        detailed_plan: The `detailedPlan` JSON string from a business plan
            record, or an already-parsed dict
        year: Plan year to use when the saved plan has none

    Returns:
        Merged plan dict. Conversion rates are merged per stage so a saved
        plan missing a stage still gets its default. Unparseable input
        yields the starting plan.
    """
    initial = initial_plan_data(year)

    if not detailed_plan:
        return initial

    saved = detailed_plan
    if isinstance(detailed_plan, str):
        try:
            saved = json.loads(detailed_plan)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse saved business plan, starting fresh: {e}")
            return initial

    if not isinstance(saved, dict):
        logger.error(f"Saved business plan is not an object ({type(saved).__name__}), starting fresh")
        return initial

    merged = {**initial, **saved}
    for key in ('buyerRates', 'listingRates'):
        saved_rates = saved.get(key)
        merged[key] = {**initial[key], **(saved_rates if isinstance(saved_rates, dict) else {})}

    logger.debug(f"Loaded saved plan: {merged}")
    return merged


def with_plan_year(plan: Dict[str, Any], year: Optional[int] = None) -> Dict[str, Any]:
    """Copy of a plan guaranteed to carry a planYear (defaults to the current year)."""
    if plan.get('planYear'):
        return dict(plan)
    return {**plan, 'planYear': year or date.today().year}
