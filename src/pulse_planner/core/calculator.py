"""
PULSE Goal Calculator

Reverse-funnel production model: converts a take-home income goal into the
deals, contracts, agreements, appointments and conversations needed for the
year, split by buyer and listing business.

Every stage rounds up, so rounding compounds toward more activity. Buyer
and listing deal counts are each rounded up from the split, so their sum
may exceed total deals by one.
"""

import logging
import math
from typing import Any, Callable, Optional

from ..exceptions import PlanValidationError
from .inputs import ResolvedInputs, resolve_inputs
from .models import EffectiveRates, Falloff, PlanResult, SegmentActivity

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[str], None]


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves toward +infinity."""
    return int(math.floor(value + 0.5))


def reverse_funnel(closings: int, rates: EffectiveRates) -> SegmentActivity:
    """
    Walk the funnel backward from closings to conversations.

    Each stage needs ceil(next_stage / this_stage_rate). Rates are already
    clamped to [0.01, 1.0], so every stage is >= the one after it.
    """
    contracts = math.ceil(closings / rates.contract_to_close)
    agreements = math.ceil(contracts / rates.agree_to_contract)
    appointments = math.ceil(agreements / rates.appt_to_agree)
    conversations = math.ceil(appointments / rates.conv_to_appt)

    return SegmentActivity(
        conversations=conversations,
        appointments=appointments,
        agreements=agreements,
        contracts=contracts,
        closed=closings,
        falloff=Falloff(
            agreement_to_contract=agreements - contracts,
            contract_to_close=contracts - closings,
        ),
    )


def _require_finite(value: float, label: str) -> float:
    if not math.isfinite(value):
        logger.error(f"{label} is not finite: {value}")
        raise PlanValidationError(f'{label} is too large to calculate. Check the plan inputs.')
    return value


def _calculate(resolved: ResolvedInputs) -> PlanResult:
    # Gross up the take-home goal for tax
    gross_income = resolved.net_income_goal / (1 - (resolved.tax_rate / 100))
    total_expenses = resolved.total_expenses
    gci_required = round_half_up(_require_finite(gross_income + total_expenses, 'Required income'))

    avg_commission = resolved.avg_sale_price * (resolved.commission_rate / 100)
    agent_gross_per_deal = avg_commission * (resolved.income_split / 100)

    logger.debug(
        f"Financials: gross_income={gross_income:.2f}, total_expenses={total_expenses:.2f}, "
        f"gci_required={gci_required}, avg_commission={avg_commission:.2f}, "
        f"agent_gross_per_deal={agent_gross_per_deal:.2f}"
    )

    if agent_gross_per_deal <= 0:
        logger.error(f"Invalid agent_gross_per_deal: {agent_gross_per_deal}")
        raise PlanValidationError('Agent gross per deal cannot be zero or negative')

    total_deals_needed = math.ceil(_require_finite(gci_required / agent_gross_per_deal, 'Deals needed'))

    buyer_split_percent = resolved.buyer_seller_split / 100
    listing_split_percent = (100 - resolved.buyer_seller_split) / 100

    # Independently rounded; drift against total_deals_needed is accepted
    buyer_deals = math.ceil(total_deals_needed * buyer_split_percent)
    listing_deals = math.ceil(total_deals_needed * listing_split_percent)

    logger.debug(f"Conversion rates: buyer={resolved.buyer_rates}, listing={resolved.listing_rates}")

    buyer = reverse_funnel(buyer_deals, resolved.buyer_rates)
    listing = reverse_funnel(listing_deals, resolved.listing_rates)

    return PlanResult(
        gci_required=gci_required,
        total_deals_needed=total_deals_needed,
        buyer_deals=buyer_deals,
        listing_deals=listing_deals,
        total_conversations=buyer.conversations + listing.conversations,
        total_appointments=buyer.appointments + listing.appointments,
        total_agreements=buyer.agreements + listing.agreements,
        total_contracts=buyer.contracts + listing.contracts,
        total_volume=round_half_up(_require_finite(total_deals_needed * resolved.avg_sale_price, 'Sales volume')),
        buyer_activity=buyer,
        listing_activity=listing,
        buyer_rates=resolved.buyer_rates,
        listing_rates=resolved.listing_rates,
    )


def compute_plan(inputs: Any) -> PlanResult:
    """
    Calculate production targets, raising on invalid inputs.

    Args:
        inputs: PlanInputs or a camelCase plan mapping

    Returns:
        PlanResult

    Raises:
        PlanValidationError: a hard precondition failed, or the figures
            overflow a float
    """
    logger.debug(f"Starting calculation with data: {inputs}")
    resolved = resolve_inputs(inputs)
    try:
        result = _calculate(resolved)
    except OverflowError as e:
        logger.error(f"Calculation overflow: {e}")
        raise PlanValidationError('Plan figures are too large to calculate. Check the plan inputs.') from e
    logger.debug(f"Calculation result: {result.to_dict()}")
    return result


def calculate_goals(inputs: Any, on_error: Optional[ErrorCallback] = None) -> PlanResult:
    """
    Calculate production targets, never raising for invalid inputs.

    On a precondition failure the error is logged, passed to `on_error`
    and the all-zero PlanResult is returned. The zero result on its own
    does not say why; callers that need the reason must pass `on_error`.
    """
    try:
        return compute_plan(inputs)
    except PlanValidationError as e:
        message = str(e) or 'Failed to calculate goals'
        logger.error(f"Calculation error: {message}")
        if on_error:
            on_error(message)
        return PlanResult.zero()


class GoalCalculator:
    """
    Callable wrapper that binds an error callback to calculate_goals().

    Holds no state between calls; safe to share.
    """

    def __init__(self, on_error: Optional[ErrorCallback] = None):
        self.on_error = on_error

    def calculate(self, inputs: Any) -> PlanResult:
        return calculate_goals(inputs, on_error=self.on_error)

    __call__ = calculate
