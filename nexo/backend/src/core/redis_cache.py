from __future__ import annotations

import json
from functools import lru_cache
from typing import Any

import structlog
from redis import Redis

from .config import get_settings

LOGGER = structlog.get_logger(__name__)

DASHBOARD_VIEW = "dashboard"
TICKETS_VIEW = "tickets"
INVENTORY_VIEW = "inventory"
APPROVALS_VIEW = "approvals"
MAINTENANCE_VIEW = "maintenance"
FAILURES_VIEW = "failures"
AUDIT_VIEW = "audit"


class ViewCache:
    """Redis cache for read-heavy view payloads such as dashboard stats.

    Reads and writes never raise: a broken Redis only costs a cache miss.
    """

    def __init__(self, *, key_prefix: str = "nexo_views", ttl_seconds: int | None = None):
        settings = get_settings()
        self.enabled = settings.redis_enabled
        self.client = Redis.from_url(settings.redis_url) if self.enabled else None
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds or settings.view_cache_ttl_seconds

    def _key(self, view: str, suffix: str = "default") -> str:
        return f"{self.key_prefix}:{view}:{suffix}"

    def get(self, view: str, suffix: str = "default") -> Any | None:
        if self.client is None:
            return None
        key = self._key(view, suffix)
        try:
            raw = self.client.get(key)
            if not raw:
                return None
            return json.loads(raw)
        except Exception as exc:
            LOGGER.warning("redis_cache_read_failed", key=key, error=str(exc))
            return None

    def set(self, view: str, value: Any, suffix: str = "default") -> None:
        if self.client is None:
            return
        key = self._key(view, suffix)
        try:
            self.client.setex(key, self.ttl_seconds, json.dumps(value, default=str))
        except Exception as exc:
            LOGGER.warning("redis_cache_write_failed", key=key, error=str(exc))

    def invalidate(self, *views: str) -> None:
        """Drop every cached entry for the given views."""

        if self.client is None:
            return
        for view in views:
            pattern = f"{self.key_prefix}:{view}:*"
            try:
                keys = list(self.client.scan_iter(match=pattern))
                if keys:
                    self.client.delete(*keys)
            except Exception as exc:
                LOGGER.warning("redis_cache_invalidate_failed", view=view, error=str(exc))


@lru_cache()
def get_view_cache() -> ViewCache:
    """Return the process-wide view cache."""

    return ViewCache()


def invalidate_views(*views: str) -> None:
    get_view_cache().invalidate(*views)


__all__ = [
    "APPROVALS_VIEW",
    "AUDIT_VIEW",
    "DASHBOARD_VIEW",
    "FAILURES_VIEW",
    "INVENTORY_VIEW",
    "MAINTENANCE_VIEW",
    "TICKETS_VIEW",
    "ViewCache",
    "get_view_cache",
    "invalidate_views",
]
