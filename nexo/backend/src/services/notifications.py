"""Best-effort push notifications through an ntfy relay.

Delivery is fire-and-forget: failures are logged and counted, never raised
and never retried.
"""

from __future__ import annotations

import base64
from collections.abc import Sequence
from urllib.parse import quote

import httpx
import structlog

from ..core.config import get_settings
from .metrics import notifications_total

LOGGER = structlog.get_logger(__name__)

DEFAULT_PRIORITY = 3
ELEVATED_PRIORITY = 4

# Reserved URL characters and existing escapes pass through untouched.
_URL_SAFE = ":/?#[]@!$&'()*+,;=%~"


def _header_value(value: str) -> str:
    """Return ``value`` as an ASCII header, RFC 2047 encoding it when needed."""

    try:
        value.encode("ascii")
        return value
    except UnicodeEncodeError:
        encoded = base64.b64encode(value.encode("utf-8")).decode("ascii")
        return f"=?UTF-8?B?{encoded}?="


def build_headers(
    *,
    title: str | None = None,
    priority: int | None = None,
    tags: Sequence[str] | None = None,
    click: str | None = None,
) -> dict[str, str]:
    headers = {"Content-Type": "text/plain; charset=utf-8"}
    if title:
        headers["Title"] = _header_value(title)
    if priority:
        headers["Priority"] = str(min(max(int(priority), 1), 5))
    if tags:
        headers["Tags"] = _header_value(",".join(tags))
    if click:
        headers["Click"] = quote(click, safe=_URL_SAFE)
    return headers


def send_notification(
    message: str,
    *,
    title: str | None = None,
    topic: str | None = None,
    priority: int | None = None,
    tags: Sequence[str] | None = None,
    click: str | None = None,
) -> None:
    """POST ``message`` to the configured ntfy topic."""

    settings = get_settings()
    if not settings.ntfy_enabled:
        notifications_total.labels(outcome="disabled").inc()
        return

    resolved_topic = topic or settings.ntfy_default_topic
    if not resolved_topic:
        LOGGER.warning("ntfy_topic_missing", title=title)
        notifications_total.labels(outcome="skipped").inc()
        return
    if not message:
        LOGGER.warning("ntfy_message_missing", topic=resolved_topic, title=title)
        notifications_total.labels(outcome="skipped").inc()
        return

    url = f"{settings.ntfy_server_url.rstrip('/')}/{resolved_topic}"
    headers = build_headers(title=title, priority=priority, tags=tags, click=click)

    try:
        response = httpx.post(
            url,
            content=message.encode("utf-8"),
            headers=headers,
            timeout=settings.ntfy_timeout_seconds,
        )
    except (httpx.HTTPError, httpx.InvalidURL, UnicodeError) as exc:
        LOGGER.error("ntfy_send_failed", topic=resolved_topic, error=str(exc))
        notifications_total.labels(outcome="failed").inc()
        return

    if response.is_success:
        LOGGER.info("ntfy_sent", topic=resolved_topic, title=title)
        notifications_total.labels(outcome="sent").inc()
    else:
        LOGGER.error(
            "ntfy_send_rejected",
            topic=resolved_topic,
            status_code=response.status_code,
            body=response.text[:500],
        )
        notifications_total.labels(outcome="failed").inc()


__all__ = [
    "DEFAULT_PRIORITY",
    "ELEVATED_PRIORITY",
    "build_headers",
    "send_notification",
]
