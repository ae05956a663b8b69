"""
Configuration Management

Load and validate configuration from YAML and environment variables.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union
import yaml
from dotenv import load_dotenv

# src/pulse_planner/utils/config.py -> repo root
BASE_DIR = Path(__file__).parent.parent.parent.parent

DEFAULT_API_BASE_URL = 'http://localhost:8000/api'


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    env_path: Optional[Union[str, Path]] = None
) -> Dict[str, Any]:
    """
    Load configuration from YAML file and environment variables.

    Environment variables override YAML values.

    Args:
        config_path: Path to YAML config file (default: config/config.yaml)
        env_path: Path to .env file (default: config/.env)

    Returns:
        Configuration dictionary
    """
    if env_path is None:
        env_path = BASE_DIR / "config" / ".env"
    else:
        env_path = Path(env_path)

    if config_path is None:
        config_path = BASE_DIR / "config" / "config.yaml"
    else:
        config_path = Path(config_path)

    # Load environment variables
    if env_path.exists():
        load_dotenv(env_path)
    else:
        # Fall back to repo root .env
        root_env = BASE_DIR / ".env"
        if root_env.exists():
            load_dotenv(root_env)

    # Load YAML config
    config = {}
    if config_path.exists():
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}

    # Expand environment variable references in config
    config = _expand_env_vars(config)

    # Override with direct environment variables
    config = _apply_env_overrides(config)

    # Ensure defaults
    config.setdefault('api', {})
    config['api'].setdefault('base_url', DEFAULT_API_BASE_URL)
    config['api'].setdefault('timeout', 30)
    config['api'].setdefault('max_retries', 3)

    config.setdefault('smtp', {})
    config['smtp'].setdefault('enabled', False)
    config['smtp'].setdefault('server', 'smtp.gmail.com')
    config['smtp'].setdefault('port', 587)
    config['smtp'].setdefault('from_name', 'PULSE Intelligence')

    config.setdefault('server', {})
    config['server'].setdefault('host', '127.0.0.1')
    config['server'].setdefault('port', 8200)

    config.setdefault('logging', {})
    config['logging'].setdefault('level', 'INFO')

    return config


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand ${VAR} references in config values."""
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str) and obj.startswith('${') and obj.endswith('}'):
        var_name = obj[2:-1]
        return os.environ.get(var_name, obj)
    return obj


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply direct environment variable overrides."""

    # Backend API
    if os.environ.get('PULSE_API_BASE_URL'):
        config.setdefault('api', {})['base_url'] = os.environ['PULSE_API_BASE_URL']
    if os.environ.get('PULSE_API_KEY'):
        config.setdefault('api', {})['api_key'] = os.environ['PULSE_API_KEY']

    # Logging
    if os.environ.get('PULSE_LOG_LEVEL'):
        config.setdefault('logging', {})['level'] = os.environ['PULSE_LOG_LEVEL']
    if os.environ.get('PULSE_LOG_FILE'):
        config.setdefault('logging', {})['file'] = os.environ['PULSE_LOG_FILE']

    # SMTP
    smtp_env = {
        'SMTP_SERVER': 'server',
        'SMTP_PORT': 'port',
        'SMTP_USERNAME': 'username',
        'SMTP_PASSWORD': 'password',
        'EMAIL_FROM_NAME': 'from_name',
    }
    for env_var, key in smtp_env.items():
        if os.environ.get(env_var):
            config.setdefault('smtp', {})[key] = os.environ[env_var]
    if os.environ.get('SMTP_ENABLED'):
        config.setdefault('smtp', {})['enabled'] = os.environ['SMTP_ENABLED'].lower() == 'true'

    # HTTP server
    if os.environ.get('PULSE_SERVER_API_KEY'):
        config.setdefault('server', {})['api_key'] = os.environ['PULSE_SERVER_API_KEY']
    if os.environ.get('CORS_ALLOWED_ORIGINS'):
        config.setdefault('server', {})['cors_origins'] = [
            origin.strip() for origin in os.environ['CORS_ALLOWED_ORIGINS'].split(',') if origin.strip()
        ]

    return config


def get_api_settings(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get backend API settings from config."""
    api = config.get('api', {})
    return {
        'base_url': str(api.get('base_url', DEFAULT_API_BASE_URL)).rstrip('/'),
        'api_key': api.get('api_key') or '',
        'timeout': int(api.get('timeout', 30)),
        'max_retries': int(api.get('max_retries', 3)),
    }


def get_smtp_settings(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get SMTP settings from config."""
    smtp = config.get('smtp', {})
    enabled = smtp.get('enabled', False)
    if isinstance(enabled, str):
        enabled = enabled.lower() in ('true', '1', 'yes')
    return {
        'enabled': bool(enabled),
        'server': smtp.get('server', 'smtp.gmail.com'),
        'port': int(smtp.get('port', 587)),
        'username': smtp.get('username') or '',
        'password': smtp.get('password') or '',
        'from_name': smtp.get('from_name', 'PULSE Intelligence'),
    }
