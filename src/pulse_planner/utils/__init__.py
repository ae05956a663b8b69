"""
Planner Utilities Package

Shared utilities:
- Configuration management
- Logging setup
"""

from .config import load_config
from .logging import setup_logging

__all__ = ["load_config", "setup_logging"]
