"""
Session Cache

Per-user TTL cache for backend lookups (user profile, business plan, CRM
snapshots, ...). Entries are stored as JSON strings with the time they were
written; the TTL is looked up from the entity name at read time.

Storage and clock are injected so the cache can be backed by anything
dict-like and tested without sleeping.
"""

import json
import logging
import time
from typing import Any, Callable, Dict, MutableMapping, Optional

logger = logging.getLogger(__name__)

MINUTE = 60
HOUR = 60 * MINUTE

CACHE_TTL = {
    'USER_PROFILE': 1 * HOUR,
    'PULSE_SCORE': 15 * MINUTE,
    'CRM_SNAPSHOT': 10 * MINUTE,
    'MARKET_DATA': 6 * HOUR,
    'CALENDAR_EVENTS': 15 * MINUTE,
    'AI_INSIGHT': 15 * MINUTE,
    'CHAT_HISTORY': 15 * MINUTE,
    'CONTEXT_MEMORY': 60 * MINUTE,
    'CONTENT_DRAFTS': 1 * HOUR,
}

DEFAULT_TTL_KEY = 'AI_INSIGHT'


def ttl_for(entity: Optional[str]) -> int:
    """TTL in seconds for an entity name ('crm-snapshot' -> CRM_SNAPSHOT)."""
    key = (entity or '').upper().replace('-', '_')
    return CACHE_TTL.get(key, CACHE_TTL[DEFAULT_TTL_KEY])


class SessionCache:
    def __init__(
        self,
        storage: Optional[MutableMapping[str, str]] = None,
        clock: Callable[[], float] = time.time,
        prefix: str = 'pulse_cache_',
    ):
        self.storage = storage if storage is not None else {}
        self.clock = clock
        self.prefix = prefix

    def get_cache_key(self, user_id: Any, module: str, entity: str) -> str:
        return f"{self.prefix}{user_id}:{module}:{entity}"

    def _read(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self.storage.get(key)
        if raw is None:
            return None
        entry = json.loads(raw)
        if not isinstance(entry, dict) or not isinstance(entry.get('timestamp'), (int, float)):
            raise ValueError(f"Malformed cache entry for {key}")
        return entry

    def get(self, user_id: Any, module: str, entity: str) -> Optional[Any]:
        key = self.get_cache_key(user_id, module, entity)
        try:
            entry = self._read(key)
        except ValueError as e:
            logger.warning(f"Cache read error for {key}: {e}")
            return None

        if entry is None:
            return None

        age = self.clock() - entry['timestamp']
        if age > ttl_for(entity):
            logger.debug(f"Cache expired for {key} (age: {age:.0f}s)")
            self.remove(user_id, module, entity)
            return None

        logger.debug(f"Cache hit for {key} (age: {age:.0f}s)")
        return entry.get('data')

    def set(self, user_id: Any, module: str, entity: str, data: Any) -> bool:
        key = self.get_cache_key(user_id, module, entity)
        try:
            self.storage[key] = json.dumps({'timestamp': self.clock(), 'data': data})
        except (TypeError, ValueError) as e:
            logger.warning(f"Cache write error for {key}: {e}")
            return False
        logger.debug(f"Cached {key}")
        return True

    def is_valid(self, user_id: Any, module: str, entity: str) -> bool:
        return self.get(user_id, module, entity) is not None

    def remove(self, user_id: Any, module: str, entity: str) -> None:
        self.storage.pop(self.get_cache_key(user_id, module, entity), None)

    def clear_user(self, user_id: Any) -> int:
        """Drop every entry for a user. Returns the number removed."""
        user_prefix = f"{self.prefix}{user_id}:"
        keys = [k for k in list(self.storage.keys()) if k.startswith(user_prefix)]
        for key in keys:
            self.storage.pop(key, None)
        return len(keys)

    def clear_expired(self) -> int:
        """Drop expired and unreadable entries. Returns the number removed."""
        removed = 0
        now = self.clock()
        for key in list(self.storage.keys()):
            if not key.startswith(self.prefix):
                continue

            parts = key[len(self.prefix):].split(':')
            entity = parts[2] if len(parts) > 2 else None
            try:
                entry = self._read(key)
                expired = entry is not None and now - entry['timestamp'] > ttl_for(entity)
            except ValueError:
                # Invalid entry, remove it
                expired = True

            if expired:
                self.storage.pop(key, None)
                removed += 1

        if removed:
            logger.debug(f"Cleared {removed} expired cache entries")
        return removed

    def get_cache_status(self, user_id: Any, module: str, entity: str) -> Dict[str, Any]:
        """Hit/expired/miss status with age and TTL in seconds (for debugging)."""
        key = self.get_cache_key(user_id, module, entity)
        try:
            entry = self._read(key)
        except ValueError:
            return {'status': 'error', 'age': None}

        if entry is None:
            return {'status': 'miss', 'age': None}

        age = self.clock() - entry['timestamp']
        ttl = ttl_for(entity)
        return {
            'status': 'hit' if age < ttl else 'expired',
            'age': int(age),
            'ttl': ttl,
        }
