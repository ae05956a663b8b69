"""
Data models for the production planner.

Plan inputs arrive as camelCase JSON from the goal-planner wizard (or a saved
business plan record); results go back out in the same shape so the wizard,
exports and the activation call can read them verbatim.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class Frequency(str, Enum):
    """How often an expense is paid."""
    MONTHLY = 'monthly'
    ANNUAL = 'annual'


@dataclass
class ExpenseItem:
    """One expense category line (e.g. 'MLS Fees')."""
    amount: Any = None
    frequency: str = Frequency.ANNUAL.value

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'ExpenseItem':
        data = data or {}
        return cls(
            amount=data.get('amount'),
            frequency=data.get('frequency') or Frequency.ANNUAL.value,
        )

    @property
    def is_monthly(self) -> bool:
        return self.frequency == Frequency.MONTHLY.value


@dataclass
class FunnelRates:
    """
    Stage-to-stage conversion rates for one side of the business.

    Fields are left as supplied by the caller; the resolve pass coerces,
    defaults and clamps them.
    """
    conv_to_appt: Any = None
    appt_to_agree: Any = None
    agree_to_contract: Any = None
    contract_to_close: Any = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'FunnelRates':
        data = data or {}
        return cls(
            conv_to_appt=data.get('convToAppt'),
            appt_to_agree=data.get('apptToAgree'),
            agree_to_contract=data.get('agreeToContract'),
            contract_to_close=data.get('contractToClose'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'convToAppt': self.conv_to_appt,
            'apptToAgree': self.appt_to_agree,
            'agreeToContract': self.agree_to_contract,
            'contractToClose': self.contract_to_close,
        }


@dataclass
class PlanInputs:
    """
    Caller-supplied plan inputs. Every field is optional.

    Values are not validated here; see core.inputs.resolve_inputs.
    """
    net_income_goal: Any = None
    tax_rate: Any = None
    avg_sale_price: Any = None
    commission_rate: Any = None
    income_split: Any = None
    buyer_seller_split: Any = None
    personal_expenses: Dict[str, ExpenseItem] = field(default_factory=dict)
    business_expenses: Dict[str, ExpenseItem] = field(default_factory=dict)
    buyer_rates: Optional[FunnelRates] = None
    listing_rates: Optional[FunnelRates] = None

    # Wizard-only fields (used by summaries and exports, not the calculator)
    plan_year: Optional[int] = None
    brokerage_split_buyers: Any = None
    brokerage_split_sellers: Any = None
    team_split_buyers: Any = None
    team_split_sellers: Any = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'PlanInputs':
        """Create from the wizard's plan JSON (camelCase keys)."""
        data = data or {}

        def expenses(key: str) -> Dict[str, ExpenseItem]:
            raw = data.get(key) or {}
            if not isinstance(raw, Mapping):
                return {}
            return {
                str(name): ExpenseItem.from_dict(item if isinstance(item, Mapping) else None)
                for name, item in raw.items()
            }

        def rates(key: str) -> Optional[FunnelRates]:
            raw = data.get(key)
            return FunnelRates.from_dict(raw) if isinstance(raw, Mapping) else None

        return cls(
            net_income_goal=data.get('netIncomeGoal'),
            tax_rate=data.get('taxRate'),
            avg_sale_price=data.get('avgSalePrice'),
            commission_rate=data.get('commissionRate'),
            income_split=data.get('incomeSplit'),
            buyer_seller_split=data.get('buyerSellerSplit'),
            personal_expenses=expenses('personalExpenses'),
            business_expenses=expenses('businessExpenses'),
            buyer_rates=rates('buyerRates'),
            listing_rates=rates('listingRates'),
            plan_year=data.get('planYear'),
            brokerage_split_buyers=data.get('brokerageSplitBuyers'),
            brokerage_split_sellers=data.get('brokerageSplitSellers'),
            team_split_buyers=data.get('teamSplitBuyers'),
            team_split_sellers=data.get('teamSplitSellers'),
        )

    @classmethod
    def coerce(cls, inputs: Any) -> 'PlanInputs':
        """Accept either a PlanInputs instance or a plain mapping."""
        if isinstance(inputs, cls):
            return inputs
        if inputs is None or isinstance(inputs, Mapping):
            return cls.from_dict(inputs)
        raise TypeError(f"Expected PlanInputs or mapping, got {type(inputs).__name__}")


@dataclass(frozen=True)
class Falloff:
    """Deals lost between funnel stages."""
    agreement_to_contract: int = 0
    contract_to_close: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'agreementToContract': self.agreement_to_contract,
            'contractToClose': self.contract_to_close,
        }


@dataclass(frozen=True)
class SegmentActivity:
    """Annual activity required for one side (buyer or listing)."""
    conversations: int = 0
    appointments: int = 0
    agreements: int = 0
    contracts: int = 0
    closed: int = 0
    falloff: Falloff = field(default_factory=Falloff)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'conversations': self.conversations,
            'appointments': self.appointments,
            'agreements': self.agreements,
            'contracts': self.contracts,
            'closed': self.closed,
            'falloff': self.falloff.to_dict(),
        }


@dataclass(frozen=True)
class EffectiveRates:
    """Conversion rates actually used after defaulting and clamping."""
    conv_to_appt: float
    appt_to_agree: float
    agree_to_contract: float
    contract_to_close: float

    def to_dict(self) -> Dict[str, float]:
        """Keys as echoed in a calculated result (and the activation payload)."""
        return {
            'conversationToAppointment': self.conv_to_appt,
            'appointmentToAgreement': self.appt_to_agree,
            'agreementToContract': self.agree_to_contract,
            'contractToClose': self.contract_to_close,
        }

    def to_input_dict(self) -> Dict[str, float]:
        """Keys as the wizard stores them in buyerRates/listingRates."""
        return {
            'convToAppt': self.conv_to_appt,
            'apptToAgree': self.appt_to_agree,
            'agreeToContract': self.agree_to_contract,
            'contractToClose': self.contract_to_close,
        }


@dataclass(frozen=True)
class PlanResult:
    """Computed production targets. Never persisted by the calculator itself."""
    gci_required: int
    total_deals_needed: int
    buyer_deals: int
    listing_deals: int
    total_conversations: int
    total_appointments: int
    total_agreements: int
    total_contracts: int
    total_volume: int
    buyer_activity: SegmentActivity
    listing_activity: SegmentActivity
    buyer_rates: EffectiveRates
    listing_rates: EffectiveRates
    # Set on the fallback result, whose rates echo the stored default plan
    fallback: bool = False

    @classmethod
    def zero(cls) -> 'PlanResult':
        """The "could not compute" result: every count is 0, rates echo the defaults."""
        from .defaults import DEFAULT_BUYER_RATES, DEFAULT_LISTING_RATES

        return cls(
            gci_required=0,
            total_deals_needed=0,
            buyer_deals=0,
            listing_deals=0,
            total_conversations=0,
            total_appointments=0,
            total_agreements=0,
            total_contracts=0,
            total_volume=0,
            buyer_activity=SegmentActivity(),
            listing_activity=SegmentActivity(),
            buyer_rates=DEFAULT_BUYER_RATES,
            listing_rates=DEFAULT_LISTING_RATES,
            fallback=True,
        )

    @property
    def is_zero(self) -> bool:
        return self.gci_required == 0 and self.total_deals_needed == 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the wizard's camelCase keys."""
        if self.fallback:
            buyer_rates = self.buyer_rates.to_input_dict()
            listing_rates = self.listing_rates.to_input_dict()
        else:
            buyer_rates = self.buyer_rates.to_dict()
            listing_rates = self.listing_rates.to_dict()

        return {
            'gciRequired': self.gci_required,
            'totalDealsNeeded': self.total_deals_needed,
            'buyerDeals': self.buyer_deals,
            'listingDeals': self.listing_deals,
            'totalConversations': self.total_conversations,
            'totalAppointments': self.total_appointments,
            'totalAgreements': self.total_agreements,
            'totalContracts': self.total_contracts,
            'totalVolume': self.total_volume,
            'buyerActivity': self.buyer_activity.to_dict(),
            'listingActivity': self.listing_activity.to_dict(),
            'conversionRates': {
                'buyer': buyer_rates,
                'listing': listing_rates,
            },
        }
