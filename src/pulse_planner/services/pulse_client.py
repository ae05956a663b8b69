"""
PULSE Backend Client

Thin HTTP client for the PULSE backend: server-side functions
(`POST /functions/<name>`) and entity reads (`GET /entities/<Entity>`).
The backend owns persistence; this client only ships payloads and reads
back what it returns.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests

from ..core.calculator import calculate_goals
from ..core.defaults import merge_saved_plan
from ..exceptions import ActivationError, PulseAPIError, RateLimitExceeded
from .cache import SessionCache

logger = logging.getLogger(__name__)

ACTIVATE_FUNCTION = 'activateProductionPlan'
BUSINESS_PLAN_ENTITY = 'BusinessPlan'
CACHE_MODULE = 'goals'
CACHE_ENTITY = 'business-plan'


@dataclass
class ActivationResult:
    """Backend response to a successful plan activation."""
    goals_created: int = 0
    goals_updated: int = 0

    @classmethod
    def from_api(cls, data: dict) -> 'ActivationResult':
        return cls(
            goals_created=int(data.get('goalsCreated') or 0),
            goals_updated=int(data.get('goalsUpdated') or 0),
        )

    @property
    def message(self) -> str:
        return (
            f"Production plan activated! Created {self.goals_created} new goals, "
            f"updated {self.goals_updated} goals."
        )


class PulseClient:
    def __init__(
        self,
        base_url: str,
        api_key: str = '',
        timeout: int = 30,
        max_retries: int = 3,
        cache: Optional[SessionCache] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = requests.Session()
        self.session.headers["Accept"] = "application/json"
        if api_key:
            self.session.headers["Authorization"] = f"Bearer {api_key}"

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.cache = cache
        self._sleep = sleep

        logger.info(f"PULSE API client initialized ({self.base_url})")

    @classmethod
    def from_config(cls, config: Dict[str, Any], cache: Optional[SessionCache] = None) -> 'PulseClient':
        from ..utils.config import get_api_settings

        settings = get_api_settings(config)
        return cls(
            base_url=settings['base_url'],
            api_key=settings['api_key'],
            timeout=settings['timeout'],
            max_retries=settings['max_retries'],
            cache=cache,
        )

    def _request_with_retry(self, method: str, url: str, **kwargs) -> Any:
        max_retries = self.max_retries
        for attempt in range(max_retries):
            try:
                logger.debug(f"{method} {url} (attempt {attempt + 1}/{max_retries})")
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)

                if response.status_code == 429:
                    retry_after = response.headers.get("Retry-After")
                    wait_time = int(retry_after) if retry_after else min(2 ** attempt * 5, 60)
                    if attempt == max_retries - 1:
                        raise RateLimitExceeded(f"Rate limited on {url}")
                    logger.warning(f"Rate limited. Waiting {wait_time}s")
                    self._sleep(wait_time)
                    continue

                response.raise_for_status()
                return response.json()

            except requests.exceptions.Timeout:
                logger.warning(f"Request timeout (attempt {attempt + 1}/{max_retries})")
                if attempt == max_retries - 1:
                    raise PulseAPIError(f"Request timeout after {max_retries} attempts")
                self._sleep(2 ** attempt)

            except requests.exceptions.HTTPError as e:
                logger.error(f"HTTP error: {e}")
                if attempt == max_retries - 1:
                    raise PulseAPIError(f"HTTP error after {max_retries} attempts: {e}")
                self._sleep(2 ** attempt)

            except ValueError as e:
                # Malformed URL or non-JSON body; retrying will not help
                raise PulseAPIError(f"Invalid request or response for {url}: {e}")

            except requests.exceptions.RequestException as e:
                logger.error(f"Request error: {e}")
                if attempt == max_retries - 1:
                    raise PulseAPIError(f"Request failed after {max_retries} attempts: {e}")
                self._sleep(2 ** attempt)

        raise PulseAPIError(f"Max retries ({max_retries}) exceeded")

    def invoke_function(self, name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Invoke a backend function and return its JSON body."""
        url = f"{self.base_url}/functions/{name}"
        data = self._request_with_retry("POST", url, json=payload)
        return data if isinstance(data, dict) else {'data': data}

    def list_entities(self, entity: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Filter an entity collection."""
        url = f"{self.base_url}/entities/{entity}"
        data = self._request_with_retry("GET", url, params=params or {})
        if isinstance(data, dict):
            data = data.get('items', data.get('data', []))
        return data if isinstance(data, list) else []

    def get_business_plan(self, user_id: str, use_cache: bool = True) -> Optional[Dict[str, Any]]:
        """Most recent business plan record for a user, or None."""
        if use_cache and self.cache:
            cached = self.cache.get(user_id, CACHE_MODULE, CACHE_ENTITY)
            if cached is not None:
                logger.info(f"Using cached business plan for user {user_id}")
                return cached

        plans = self.list_entities(BUSINESS_PLAN_ENTITY, {'user_id': user_id})
        plan = plans[0] if plans else None

        if plan is not None and self.cache:
            self.cache.set(user_id, CACHE_MODULE, CACHE_ENTITY, plan)
        return plan

    def load_plan_for_user(self, user_id: str) -> Dict[str, Any]:
        """The user's saved plan merged over the wizard defaults."""
        record = self.get_business_plan(user_id)
        return merge_saved_plan(record.get('detailedPlan') if record else None)

    def activate_production_plan(self, plan_data: Dict[str, Any], user_id: str) -> ActivationResult:
        """
        Calculate targets for a plan and hand both to the backend for activation.

        Args:
            plan_data: The wizard plan (camelCase dict)
            user_id: Owner of the plan

        Returns:
            ActivationResult with created/updated goal counts

        Raises:
            ActivationError: missing user, invalid targets, or the backend
                refused the activation
            PulseAPIError: the request itself failed
        """
        if not user_id:
            raise ActivationError('User ID is missing')

        errors: List[str] = []
        targets = calculate_goals(plan_data, on_error=errors.append)
        if targets.gci_required <= 0:
            detail = f" ({errors[0]})" if errors else ''
            raise ActivationError(
                'Invalid GCI calculation. Please ensure all financial inputs '
                f'are valid positive numbers.{detail}'
            )

        logger.info(f"Activating production plan for user {user_id}")
        data = self.invoke_function(ACTIVATE_FUNCTION, {
            'planData': plan_data,
            'calculatedTargets': targets.to_dict(),
            'userId': user_id,
        })

        error = data.get('error')
        if error and not data.get('success'):
            message = error.get('message') if isinstance(error, dict) else str(error)
            raise ActivationError(message or 'An unknown error occurred during plan activation.')

        if not data.get('success'):
            raise ActivationError('Failed to activate plan: No success indication from backend.')

        result = ActivationResult.from_api(data)
        logger.info(result.message)

        if self.cache:
            self.cache.remove(user_id, CACHE_MODULE, CACHE_ENTITY)

        return result
