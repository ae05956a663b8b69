"""
Tests for the reverse-funnel goal calculator.
"""
import copy

import pytest

from pulse_planner.core.calculator import (
    GoalCalculator, calculate_goals, compute_plan, reverse_funnel, round_half_up
)
from pulse_planner.core.defaults import DEFAULT_BUYER_RATES
from pulse_planner.core.models import EffectiveRates, FunnelRates, PlanInputs, PlanResult
from pulse_planner.exceptions import PlanValidationError


def funnel_is_monotonic(segment):
    return (
        segment.conversations >= segment.appointments
        >= segment.agreements >= segment.contracts >= segment.closed
    )


class TestConcreteScenario:
    """$70k take-home at 25% tax, $450k average sale, 3% commission, 60/60 splits."""

    @pytest.fixture
    def result(self, default_plan):
        return calculate_goals(default_plan)

    def test_financials(self, result):
        assert result.gci_required == 93333
        assert result.total_deals_needed == 12
        assert result.total_volume == 5400000

    def test_deal_split_rounds_each_side_up(self, result):
        assert result.buyer_deals == 8
        assert result.listing_deals == 5
        assert result.buyer_deals + result.listing_deals == result.total_deals_needed + 1

    def test_buyer_funnel(self, result):
        buyer = result.buyer_activity
        assert buyer.closed == 8
        assert buyer.contracts == 10
        assert buyer.agreements == 13
        assert buyer.appointments == 33
        assert buyer.conversations == 132
        assert buyer.falloff.agreement_to_contract == 3
        assert buyer.falloff.contract_to_close == 2

    def test_listing_funnel(self, result):
        listing = result.listing_activity
        assert listing.closed == 5
        assert listing.contracts == 6
        assert listing.agreements == 7
        assert listing.appointments == 12
        assert listing.conversations == 40
        assert listing.falloff.agreement_to_contract == 1
        assert listing.falloff.contract_to_close == 1

    def test_totals_sum_both_sides(self, result):
        assert result.total_conversations == 172
        assert result.total_appointments == 45
        assert result.total_agreements == 20
        assert result.total_contracts == 16

    def test_serialized_keys(self, result):
        data = result.to_dict()
        assert data['gciRequired'] == 93333
        assert data['buyerActivity']['falloff'] == {'agreementToContract': 3, 'contractToClose': 2}
        assert data['conversionRates']['buyer'] == {
            'conversationToAppointment': 0.25, 'appointmentToAgreement': 0.40,
            'agreementToContract': 0.80, 'contractToClose': 0.85,
        }
        assert not result.fallback


class TestExpenses:
    def test_expenses_add_to_gci(self, sample_plan):
        result = calculate_goals(sample_plan)
        # 93,333.33 grossed-up income + 6,000 monthly rent annualized + 6,000 MLS
        assert result.gci_required == 105333
        assert result.total_deals_needed == 14
        assert result.buyer_deals == 9
        assert result.listing_deals == 6

    def test_negative_expense_ignored(self, default_plan):
        default_plan['businessExpenses'] = {'Refund': {'amount': -5000, 'frequency': 'annual'}}
        assert calculate_goals(default_plan).gci_required == 93333

    def test_string_amounts_accepted(self, default_plan):
        default_plan['personalExpenses'] = {'Car': {'amount': '100', 'frequency': 'monthly'}}
        assert calculate_goals(default_plan).gci_required == 93333 + 1200


class TestMonotonicFunnel:
    @pytest.mark.parametrize("overrides", [
        {},
        {'netIncomeGoal': 250000, 'avgSalePrice': 1200000},
        {'buyerSellerSplit': 100},
        {'buyerSellerSplit': 5, 'commissionRate': 2.5},
        {'buyerRates': {'convToAppt': 0.05, 'apptToAgree': 0.9}},
        {'listingRates': {'convToAppt': 1.0, 'apptToAgree': 1.0, 'agreeToContract': 1.0, 'contractToClose': 1.0}},
    ])
    def test_each_stage_at_least_the_next(self, default_plan, overrides):
        default_plan.update(overrides)
        result = calculate_goals(default_plan)
        assert funnel_is_monotonic(result.buyer_activity)
        assert funnel_is_monotonic(result.listing_activity)

    @pytest.mark.parametrize("overrides", [
        {},
        {'netIncomeGoal': 250000, 'avgSalePrice': 1200000},
        {'buyerSellerSplit': 100},
        {'buyerSellerSplit': 5, 'commissionRate': 2.5},
        {'taxRate': 99, 'personalExpenses': {'Rent': {'amount': -500, 'frequency': 'monthly'}}},
        {'buyerRates': {'convToAppt': 0.01, 'apptToAgree': 0.01, 'agreeToContract': 0.01, 'contractToClose': 0.01}},
        {'listingRates': {'convToAppt': 1.0, 'apptToAgree': 1.0, 'agreeToContract': 1.0, 'contractToClose': 1.0}},
        {'avgSalePrice': 0},
    ])
    def test_all_fields_non_negative(self, sample_plan, overrides):
        sample_plan.update(overrides)
        data = calculate_goals(sample_plan).to_dict()
        for key in ('gciRequired', 'totalDealsNeeded', 'buyerDeals', 'listingDeals',
                    'totalConversations', 'totalAppointments', 'totalAgreements',
                    'totalContracts', 'totalVolume'):
            assert data[key] >= 0
        for side in ('buyerActivity', 'listingActivity'):
            segment = data[side]
            for key in ('conversations', 'appointments', 'agreements', 'contracts', 'closed'):
                assert segment[key] >= 0
            assert segment['falloff']['agreementToContract'] >= 0
            assert segment['falloff']['contractToClose'] >= 0


class TestPreconditionFailures:
    @pytest.mark.parametrize("price", [0, -100000])
    def test_bad_sale_price_yields_zero_result(self, default_plan, price):
        default_plan['avgSalePrice'] = price
        errors = []

        result = calculate_goals(default_plan, on_error=errors.append)

        assert result == PlanResult.zero()
        assert result.is_zero
        assert all(v == 0 for k, v in result.to_dict().items() if isinstance(v, int))
        assert errors == ['Average sale price must be greater than 0']

    def test_commission_over_100_is_rejected_not_clamped(self, default_plan):
        default_plan['commissionRate'] = 150
        errors = []

        result = calculate_goals(default_plan, on_error=errors.append)

        assert result.is_zero
        assert errors == ['Commission rate must be between 0 and 100']

    @pytest.mark.parametrize("split", [0, -10, 101])
    def test_bad_income_split(self, default_plan, split):
        default_plan['incomeSplit'] = split
        with pytest.raises(PlanValidationError, match='Income split'):
            compute_plan(default_plan)

    def test_zero_result_rates_echo_defaults(self, default_plan):
        default_plan['avgSalePrice'] = 0
        data = calculate_goals(default_plan).to_dict()
        assert data['conversionRates']['buyer'] == DEFAULT_BUYER_RATES.to_input_dict()
        assert data['buyerActivity']['falloff'] == {'agreementToContract': 0, 'contractToClose': 0}

    def test_no_callback_still_returns_zero(self, default_plan):
        default_plan['avgSalePrice'] = -1
        result = calculate_goals(default_plan)
        assert result.is_zero
        assert result.fallback

    @pytest.mark.parametrize("overrides, message", [
        ({'netIncomeGoal': 1e307, 'taxRate': 99},
         'Required income is too large to calculate. Check the plan inputs.'),
        ({'avgSalePrice': 1e-305, 'commissionRate': 100, 'incomeSplit': 100},
         'Deals needed is too large to calculate. Check the plan inputs.'),
        ({'avgSalePrice': 1e-301, 'commissionRate': 100, 'incomeSplit': 100,
          'buyerRates': {'convToAppt': 0.01, 'apptToAgree': 0.01,
                         'agreeToContract': 0.01, 'contractToClose': 0.01}},
         'Plan figures are too large to calculate. Check the plan inputs.'),
    ])
    def test_float_overflow_yields_zero_result(self, default_plan, overrides, message):
        default_plan.update(overrides)
        errors = []

        result = calculate_goals(default_plan, on_error=errors.append)

        assert result == PlanResult.zero()
        assert errors == [message]
        with pytest.raises(PlanValidationError, match='too large to calculate'):
            compute_plan(default_plan)


class TestDefaults:
    def test_empty_input_uses_defaults(self, default_plan):
        assert calculate_goals({}) == calculate_goals(default_plan)
        assert calculate_goals(None) == calculate_goals(default_plan)

    def test_omitted_buyer_rates_match_explicit_defaults(self, default_plan):
        explicit = dict(default_plan, buyerRates={
            'convToAppt': 0.25, 'apptToAgree': 0.40,
            'agreeToContract': 0.80, 'contractToClose': 0.85,
        })
        assert (calculate_goals(default_plan).to_dict()['conversionRates']['buyer']
                == calculate_goals(explicit).to_dict()['conversionRates']['buyer'])

    def test_partial_rates_fill_missing_stages(self, default_plan):
        default_plan['buyerRates'] = {'convToAppt': 0.5}
        rates = calculate_goals(default_plan).buyer_rates
        assert rates.conv_to_appt == 0.5
        assert rates.contract_to_close == 0.85

    def test_rates_clamped(self, default_plan):
        default_plan['listingRates'] = {'convToAppt': 5, 'apptToAgree': 0.001}
        rates = calculate_goals(default_plan).listing_rates
        assert rates.conv_to_appt == 1.0
        assert rates.appt_to_agree == 0.01

    def test_non_numeric_income_goal_defaults(self, default_plan):
        default_plan['netIncomeGoal'] = 'lots'
        assert calculate_goals(default_plan).gci_required == 93333

    def test_accepts_plan_inputs(self, default_plan):
        inputs = PlanInputs.from_dict(default_plan)
        assert calculate_goals(inputs) == calculate_goals(default_plan)

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            calculate_goals(42)


class TestPurity:
    def test_deep_equal_inputs_give_equal_results(self, sample_plan):
        first = calculate_goals(sample_plan)
        second = calculate_goals(copy.deepcopy(sample_plan))
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_input_not_mutated(self, sample_plan):
        before = copy.deepcopy(sample_plan)
        calculate_goals(sample_plan)
        assert sample_plan == before

    def test_goal_calculator_callable(self, default_plan, mocker):
        on_error = mocker.Mock()
        calculator = GoalCalculator(on_error=on_error)

        assert calculator(default_plan) == calculator.calculate(default_plan)

        calculator(dict(default_plan, avgSalePrice=0))
        on_error.assert_called_once_with('Average sale price must be greater than 0')


class TestReverseFunnel:
    def test_rate_of_one_does_not_inflate(self):
        rates = EffectiveRates(1.0, 1.0, 1.0, 1.0)
        segment = reverse_funnel(7, rates)
        assert (segment.conversations, segment.appointments,
                segment.agreements, segment.contracts, segment.closed) == (7, 7, 7, 7, 7)
        assert segment.falloff.agreement_to_contract == 0
        assert segment.falloff.contract_to_close == 0

    def test_zero_closings(self):
        segment = reverse_funnel(0, DEFAULT_BUYER_RATES)
        assert segment.conversations == 0

    def test_single_stage_at_one(self):
        rates = EffectiveRates(0.5, 0.5, 0.5, 1.0)
        segment = reverse_funnel(3, rates)
        assert segment.contracts == 3
        assert segment.agreements == 6


@pytest.mark.parametrize("value, expected", [
    (93333.33, 93333),
    (0.5, 1),
    (2.5, 3),
    (2.4999, 2),
    (0, 0),
])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_funnel_rates_round_trip_keys():
    rates = FunnelRates.from_dict({'convToAppt': 0.2, 'contractToClose': '0.9'})
    assert rates.to_dict() == {
        'convToAppt': 0.2, 'apptToAgree': None,
        'agreeToContract': None, 'contractToClose': '0.9',
    }
