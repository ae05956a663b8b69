"""
Input resolution for the goal calculator.

Every field of PlanInputs is optional and loosely typed (the wizard sends
whatever is in its form state). resolve_inputs() runs once at the boundary:
it coerces numbers, substitutes defaults, clamps soft fields and rejects
hard-precondition violations, so the arithmetic downstream never sees a
missing or non-finite value.

Soft fields (income goal, tax rate, buyer/seller split, conversion rates,
expense lines) are corrected silently. Hard fields (sale price, commission
rate, income split) are rejected when out of range rather than clamped.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..exceptions import PlanValidationError
from . import defaults
from .models import EffectiveRates, ExpenseItem, FunnelRates, PlanInputs

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedInputs:
    """Plan inputs after defaulting, clamping and validation."""
    net_income_goal: float
    tax_rate: float
    avg_sale_price: float
    commission_rate: float
    income_split: float
    buyer_seller_split: float
    personal_expenses_total: float
    business_expenses_total: float
    buyer_rates: EffectiveRates
    listing_rates: EffectiveRates

    @property
    def total_expenses(self) -> float:
        return self.personal_expenses_total + self.business_expenses_total


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a form value to a finite float.

    Numeric strings are accepted. A blank string is an empty form field and
    counts as missing. Returns None for anything that is not a finite number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def number_or_default(value: Any, default: float) -> float:
    """Coerced value, or the default when the value is missing, non-numeric or zero."""
    number = to_number(value)
    return number if number else float(default)


def numeric_or_default(value: Any, default: float) -> float:
    """Coerced value, or the default only when the value is missing or non-numeric."""
    number = to_number(value)
    return float(default) if number is None else number


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def annualize(item: ExpenseItem) -> float:
    """Annual amount for one expense line. Negative amounts count as 0."""
    amount = to_number(item.amount) or 0.0
    if amount < 0:
        logger.warning(f"Ignoring negative expense amount: {item.amount}")
        amount = 0.0
    return amount * 12 if item.is_monthly else amount


def total_annual_expenses(expenses: Optional[Mapping[str, ExpenseItem]]) -> float:
    """Sum of all expense lines, annualized."""
    total = 0.0
    for item in (expenses or {}).values():
        total += annualize(item)
    return total


def resolve_rates(rates: Optional[FunnelRates], fallback: EffectiveRates) -> EffectiveRates:
    """Default each stage when absent, then clamp to [0.01, 1.0]."""
    rates = rates or FunnelRates()

    def stage(value: Any, default: float) -> float:
        return clamp(number_or_default(value, default), defaults.RATE_MIN, defaults.RATE_MAX)

    return EffectiveRates(
        conv_to_appt=stage(rates.conv_to_appt, fallback.conv_to_appt),
        appt_to_agree=stage(rates.appt_to_agree, fallback.appt_to_agree),
        agree_to_contract=stage(rates.agree_to_contract, fallback.agree_to_contract),
        contract_to_close=stage(rates.contract_to_close, fallback.contract_to_close),
    )


def resolve_inputs(inputs: Any) -> ResolvedInputs:
    """
    Resolve raw plan inputs into a complete, validated set.

    Args:
        inputs: PlanInputs or a camelCase mapping from the wizard

    Returns:
        ResolvedInputs ready for the calculation

    Raises:
        PlanValidationError: sale price is not positive, or commission rate
            or income split falls outside (0, 100]
    """
    plan = PlanInputs.coerce(inputs)

    net_income = to_number(plan.net_income_goal)
    if not net_income or net_income <= 0:
        net_income = float(defaults.DEFAULT_NET_INCOME_GOAL)

    tax_rate = clamp(
        number_or_default(plan.tax_rate, defaults.DEFAULT_TAX_RATE),
        defaults.TAX_RATE_MIN, defaults.TAX_RATE_MAX,
    )
    avg_sale_price = numeric_or_default(plan.avg_sale_price, defaults.DEFAULT_AVG_SALE_PRICE)
    commission_rate = numeric_or_default(plan.commission_rate, defaults.DEFAULT_COMMISSION_RATE)
    income_split = numeric_or_default(plan.income_split, defaults.DEFAULT_INCOME_SPLIT)
    buyer_seller_split = clamp(
        number_or_default(plan.buyer_seller_split, defaults.DEFAULT_BUYER_SELLER_SPLIT),
        defaults.SPLIT_MIN, defaults.SPLIT_MAX,
    )

    logger.debug(
        f"Parsed inputs: net_income={net_income}, tax_rate={tax_rate}, "
        f"avg_sale_price={avg_sale_price}, commission_rate={commission_rate}, "
        f"income_split={income_split}, buyer_seller_split={buyer_seller_split}"
    )

    if avg_sale_price <= 0:
        logger.error(f"Invalid avg_sale_price: {avg_sale_price}")
        raise PlanValidationError('Average sale price must be greater than 0')

    if commission_rate <= 0 or commission_rate > 100:
        logger.error(f"Invalid commission_rate: {commission_rate}")
        raise PlanValidationError('Commission rate must be between 0 and 100')

    if income_split <= 0 or income_split > 100:
        logger.error(f"Invalid income_split: {income_split}")
        raise PlanValidationError('Income split must be between 0 and 100')

    return ResolvedInputs(
        net_income_goal=net_income,
        tax_rate=tax_rate,
        avg_sale_price=avg_sale_price,
        commission_rate=commission_rate,
        income_split=income_split,
        buyer_seller_split=buyer_seller_split,
        personal_expenses_total=total_annual_expenses(plan.personal_expenses),
        business_expenses_total=total_annual_expenses(plan.business_expenses),
        buyer_rates=resolve_rates(plan.buyer_rates, defaults.DEFAULT_BUYER_RATES),
        listing_rates=resolve_rates(plan.listing_rates, defaults.DEFAULT_LISTING_RATES),
    )


def plan_summary_fields(inputs: Any) -> Dict[str, float]:
    """
    Soft-resolve the fields the summaries need, without precondition checks.

    Summaries are display figures; they must render even when the
    calculation itself would be rejected.
    """
    plan = PlanInputs.coerce(inputs)

    net_income = to_number(plan.net_income_goal)
    if not net_income or net_income <= 0:
        net_income = float(defaults.DEFAULT_NET_INCOME_GOAL)

    return {
        'net_income_goal': net_income,
        # Shown as entered: a 0% rate reserves no tax
        'tax_rate': clamp(
            numeric_or_default(plan.tax_rate, defaults.DEFAULT_TAX_RATE),
            defaults.TAX_RATE_MIN, defaults.TAX_RATE_MAX,
        ),
        'avg_sale_price': numeric_or_default(plan.avg_sale_price, defaults.DEFAULT_AVG_SALE_PRICE),
        'commission_rate': numeric_or_default(plan.commission_rate, defaults.DEFAULT_COMMISSION_RATE),
        'buyer_seller_split': clamp(
            number_or_default(plan.buyer_seller_split, defaults.DEFAULT_BUYER_SELLER_SPLIT),
            defaults.SPLIT_MIN, defaults.SPLIT_MAX,
        ),
        'brokerage_split_buyers': numeric_or_default(plan.brokerage_split_buyers, defaults.DEFAULT_BROKERAGE_SPLIT),
        'brokerage_split_sellers': numeric_or_default(plan.brokerage_split_sellers, defaults.DEFAULT_BROKERAGE_SPLIT),
        'team_split_buyers': numeric_or_default(plan.team_split_buyers, defaults.DEFAULT_TEAM_SPLIT),
        'team_split_sellers': numeric_or_default(plan.team_split_sellers, defaults.DEFAULT_TEAM_SPLIT),
        'personal_expenses_total': total_annual_expenses(plan.personal_expenses),
        'business_expenses_total': total_annual_expenses(plan.business_expenses),
    }
