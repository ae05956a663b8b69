"""
PULSE Services Package

Integrations around the calculator:
- Session cache
- Backend client (plan lookup, activation)
- PDF export
- E-mail delivery
"""

from .cache import SessionCache
from .pulse_client import ActivationResult, PulseClient

__all__ = ["SessionCache", "ActivationResult", "PulseClient"]
