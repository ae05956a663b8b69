"""
PULSE Core Package

Production planning logic:
- Plan input models and defaults
- Input resolution (defaulting, clamping, validation)
- Reverse-funnel goal calculation
- Income and deal-structure summaries
"""

from .calculator import GoalCalculator, calculate_goals, compute_plan
from .defaults import initial_plan_data, merge_saved_plan, with_plan_year
from .models import PlanInputs, PlanResult
from .summary import deal_structure, income_summary

__all__ = [
    "GoalCalculator",
    "calculate_goals",
    "compute_plan",
    "initial_plan_data",
    "merge_saved_plan",
    "with_plan_year",
    "PlanInputs",
    "PlanResult",
    "deal_structure",
    "income_summary",
]
