"""
Plan summaries shown alongside the calculated targets.

income_summary() backs the "Income Summary" block of the wizard's summary
step and the exports. deal_structure() backs the commission/splits step.
"""

from typing import Any, Dict

from .inputs import plan_summary_fields


def income_summary(plan: Any) -> Dict[str, float]:
    """
    Expenses, tax set-aside and total income needed for a plan.

    Tax is reserved on net income plus all expenses:
        tax_reserve = gross / (1 - tax_rate) - gross
    """
    fields = plan_summary_fields(plan)

    total_personal = fields['personal_expenses_total']
    total_business = fields['business_expenses_total']
    total_expenses = total_personal + total_business

    gross_income_needed = fields['net_income_goal'] + total_expenses
    tax_reserve = gross_income_needed / (1 - fields['tax_rate'] / 100) - gross_income_needed

    return {
        'netIncomeGoal': fields['net_income_goal'],
        'taxRate': fields['tax_rate'],
        'totalPersonal': total_personal,
        'totalBusiness': total_business,
        'totalExpenses': total_expenses,
        'grossIncomeNeeded': gross_income_needed,
        'taxReserve': tax_reserve,
        'totalIncomeNeeded': gross_income_needed + tax_reserve,
    }


def _net_commission(avg_commission: float, brokerage_split: float, team_split: float) -> Dict[str, float]:
    brokerage_cut = avg_commission * (brokerage_split / 100)
    # Team split comes out of what is left after the brokerage
    team_cut = (avg_commission - brokerage_cut) * (team_split / 100)
    return {
        'brokerageCut': brokerage_cut,
        'teamCut': team_cut,
        'netCommission': avg_commission - brokerage_cut - team_cut,
    }


def deal_structure(plan: Any) -> Dict[str, Any]:
    """Average commission per deal and what the agent keeps on each side."""
    fields = plan_summary_fields(plan)

    avg_commission = fields['avg_sale_price'] * (fields['commission_rate'] / 100)
    buyer = _net_commission(avg_commission, fields['brokerage_split_buyers'], fields['team_split_buyers'])
    seller = _net_commission(avg_commission, fields['brokerage_split_sellers'], fields['team_split_sellers'])

    split = fields['buyer_seller_split'] / 100
    avg_net_commission = buyer['netCommission'] * split + seller['netCommission'] * (1 - split)

    return {
        'avgCommissionPerDeal': avg_commission,
        'buyer': buyer,
        'seller': seller,
        'buyerSellerSplit': fields['buyer_seller_split'],
        'avgNetCommission': avg_net_commission,
    }
