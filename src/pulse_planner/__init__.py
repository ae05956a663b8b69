"""
PULSE Production Planner

Turns a real estate agent's income goal into a concrete annual activity plan:
deals, contracts, agreements, appointments and conversations, split by buyer
and listing business.
"""

__version__ = "0.1.0"

from .core.calculator import GoalCalculator, calculate_goals, compute_plan
from .core.models import PlanInputs, PlanResult
from .exceptions import PulseError, PlanValidationError

__all__ = [
    "GoalCalculator",
    "calculate_goals",
    "compute_plan",
    "PlanInputs",
    "PlanResult",
    "PulseError",
    "PlanValidationError",
]
