"""
pytest configuration and fixtures for production planner tests.
"""
import json
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def project_root():
    """Return the project root path."""
    return PROJECT_ROOT


@pytest.fixture
def sample_plan():
    """
    Plan with $12,000 of annual expenses and a 25% tax rate.

    Works out to GCI 105,333 and 14 deals (9 buyer / 6 listing) at
    $450,000, 3% commission, 60% income split.
    """
    return {
        "planYear": 2025,
        "netIncomeGoal": 70000,
        "taxRate": 25,
        "avgSalePrice": 450000,
        "commissionRate": 3,
        "incomeSplit": 60,
        "buyerSellerSplit": 60,
        "personalExpenses": {
            "Rent": {"amount": 500, "frequency": "monthly"},
        },
        "businessExpenses": {
            "MLS Fees": {"amount": 6000, "frequency": "annual"},
        },
        "buyerRates": {
            "convToAppt": 0.25, "apptToAgree": 0.40,
            "agreeToContract": 0.80, "contractToClose": 0.85,
        },
        "listingRates": {
            "convToAppt": 0.30, "apptToAgree": 0.60,
            "agreeToContract": 0.90, "contractToClose": 0.95,
        },
    }


@pytest.fixture
def default_plan():
    """Plan with only the default values and no expenses."""
    return {
        "netIncomeGoal": 70000,
        "taxRate": 25,
        "avgSalePrice": 450000,
        "commissionRate": 3,
        "incomeSplit": 60,
        "buyerSellerSplit": 60,
    }


@pytest.fixture
def plan_file(tmp_path, sample_plan):
    """Sample plan written to a JSON file."""
    path = tmp_path / "plan.json"
    path.write_text(json.dumps(sample_plan))
    return path


@pytest.fixture
def test_config():
    """Loaded-config shaped dict with SMTP and auth off."""
    return {
        'api': {'base_url': 'http://pulse.test/api', 'api_key': 'test_key', 'timeout': 5, 'max_retries': 3},
        'smtp': {
            'enabled': True, 'server': 'smtp.test', 'port': 587,
            'username': 'planner@test', 'password': 'secret', 'from_name': 'PULSE Intelligence',
        },
        'server': {'host': '127.0.0.1', 'port': 8200},
        'logging': {'level': 'INFO'},
    }


@pytest.fixture
def mock_response(mocker):
    """Factory for fake requests responses."""
    def _make(status_code=200, json_data=None, headers=None):
        response = mocker.Mock()
        response.status_code = status_code
        response.headers = headers or {}
        response.json.return_value = json_data if json_data is not None else {}
        response.raise_for_status.return_value = None
        return response
    return _make


@pytest.fixture
def env_vars(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("PULSE_API_BASE_URL", "http://pulse.test/api")
    monkeypatch.setenv("PULSE_API_KEY", "test_key")
    monkeypatch.setenv("SMTP_ENABLED", "true")
    monkeypatch.setenv("SMTP_USERNAME", "planner@test")
    monkeypatch.setenv("SMTP_PASSWORD", "secret")
