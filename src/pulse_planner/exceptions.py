# =========================================================================
# CUSTOM EXCEPTIONS
# =========================================================================

class PulseError(Exception):
    """Base exception for production planner errors"""
    pass

class PlanValidationError(PulseError):
    """A hard precondition of the goal calculation failed"""
    pass

class PulseAPIError(PulseError):
    """Backend API request failed"""
    pass

class RateLimitExceeded(PulseError):
    """Rate limit exceeded"""
    pass

class ActivationError(PulseError):
    """Production plan activation was refused"""
    pass

class ExportError(PulseError):
    """Plan document could not be generated"""
    pass
