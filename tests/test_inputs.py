"""
Tests for input coercion, defaulting and validation.
"""
import pytest

from pulse_planner.core.calculator import calculate_goals
from pulse_planner.core.inputs import (
    annualize, clamp, number_or_default, numeric_or_default, resolve_inputs,
    resolve_rates, to_number, total_annual_expenses
)
from pulse_planner.core.defaults import DEFAULT_LISTING_RATES
from pulse_planner.core.models import ExpenseItem, FunnelRates, PlanInputs
from pulse_planner.exceptions import PlanValidationError


@pytest.mark.parametrize("value, expected", [
    (5, 5.0),
    (2.5, 2.5),
    ('42', 42.0),
    (' 3.5 ', 3.5),
    ('', None),
    ('   ', None),
    ('abc', None),
    (None, None),
    (True, None),
    (float('nan'), None),
    (float('inf'), None),
    ([1], None),
])
def test_to_number(value, expected):
    assert to_number(value) == expected


class TestDefaulting:
    def test_number_or_default_treats_zero_as_missing(self):
        assert number_or_default(0, 25) == 25.0
        assert number_or_default(None, 25) == 25.0
        assert number_or_default('x', 25) == 25.0
        assert number_or_default(10, 25) == 10.0

    def test_numeric_or_default_keeps_zero(self):
        assert numeric_or_default(0, 3) == 0.0
        assert numeric_or_default(-1, 3) == -1.0
        assert numeric_or_default(None, 3) == 3.0

    def test_clamp(self):
        assert clamp(150, 0, 100) == 100
        assert clamp(-5, 0, 100) == 0
        assert clamp(40, 0, 100) == 40


class TestExpenses:
    def test_monthly_is_annualized(self):
        assert annualize(ExpenseItem(amount=250, frequency='monthly')) == 3000

    def test_annual_passes_through(self):
        assert annualize(ExpenseItem(amount=250, frequency='annual')) == 250

    def test_unknown_frequency_treated_as_annual(self):
        assert annualize(ExpenseItem(amount=250, frequency='weekly')) == 250

    def test_negative_and_missing_amounts(self):
        assert annualize(ExpenseItem(amount=-100, frequency='monthly')) == 0
        assert annualize(ExpenseItem(amount=None)) == 0
        assert annualize(ExpenseItem(amount='junk')) == 0

    def test_total(self):
        expenses = {
            'Rent': ExpenseItem(1000, 'monthly'),
            'Insurance': ExpenseItem(1200, 'annual'),
        }
        assert total_annual_expenses(expenses) == 13200
        assert total_annual_expenses(None) == 0


class TestResolveInputs:
    def test_soft_fields_defaulted_and_clamped(self):
        resolved = resolve_inputs({'taxRate': 120, 'buyerSellerSplit': 0, 'netIncomeGoal': -5})
        assert resolved.tax_rate == 99
        assert resolved.buyer_seller_split == 60
        assert resolved.net_income_goal == 70000

    def test_zero_tax_rate_takes_default(self):
        assert resolve_inputs({'taxRate': 0}).tax_rate == 25

    @pytest.mark.parametrize("field, attr, expected", [
        ('avgSalePrice', 'avg_sale_price', 450000),
        ('commissionRate', 'commission_rate', 3),
        ('incomeSplit', 'income_split', 60),
    ])
    def test_blank_hard_field_takes_default(self, field, attr, expected):
        assert getattr(resolve_inputs({field: ''}), attr) == expected

    def test_blank_form_matches_default_plan(self, default_plan):
        blank = dict(default_plan, avgSalePrice='', commissionRate=' ', incomeSplit='')
        assert calculate_goals(blank) == calculate_goals(default_plan)

    def test_hard_fields_keep_supplied_values(self):
        resolved = resolve_inputs({'avgSalePrice': '300000', 'commissionRate': 2.5, 'incomeSplit': 100})
        assert resolved.avg_sale_price == 300000
        assert resolved.commission_rate == 2.5
        assert resolved.income_split == 100

    def test_expense_totals(self, sample_plan):
        resolved = resolve_inputs(sample_plan)
        assert resolved.personal_expenses_total == 6000
        assert resolved.business_expenses_total == 6000
        assert resolved.total_expenses == 12000

    @pytest.mark.parametrize("field, value, message", [
        ('avgSalePrice', 0, 'Average sale price must be greater than 0'),
        ('avgSalePrice', -1, 'Average sale price must be greater than 0'),
        ('commissionRate', 0, 'Commission rate must be between 0 and 100'),
        ('commissionRate', 100.5, 'Commission rate must be between 0 and 100'),
        ('incomeSplit', 0, 'Income split must be between 0 and 100'),
    ])
    def test_hard_precondition_failures(self, field, value, message):
        with pytest.raises(PlanValidationError) as exc_info:
            resolve_inputs({field: value})
        assert str(exc_info.value) == message

    def test_malformed_expense_entries_ignored(self):
        resolved = resolve_inputs({'personalExpenses': {'Rent': 'oops'}, 'businessExpenses': ['x']})
        assert resolved.total_expenses == 0


def test_resolve_rates_defaults_and_clamps():
    rates = resolve_rates(FunnelRates(conv_to_appt='0.5', appt_to_agree=0, contract_to_close=2),
                          DEFAULT_LISTING_RATES)
    assert rates.conv_to_appt == 0.5
    assert rates.appt_to_agree == DEFAULT_LISTING_RATES.appt_to_agree
    assert rates.agree_to_contract == DEFAULT_LISTING_RATES.agree_to_contract
    assert rates.contract_to_close == 1.0


def test_plan_inputs_coerce():
    plan = PlanInputs(net_income_goal=1)
    assert PlanInputs.coerce(plan) is plan
    assert PlanInputs.coerce({'netIncomeGoal': 5}).net_income_goal == 5
    with pytest.raises(TypeError):
        PlanInputs.coerce('plan')
