"""
PULSE Planner HTTP API

Flask app exposing the calculator, summaries, exports and activation.
"""

from .app import create_app

__all__ = ["create_app"]
