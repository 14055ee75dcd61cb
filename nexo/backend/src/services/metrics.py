"""Prometheus metric definitions for clinic operations."""

from __future__ import annotations

from prometheus_client import Counter

approval_decisions_total = Counter(
    "approval_decisions_total",
    "Approval request decisions by outcome.",
    labelnames=["decision"],
)

notifications_total = Counter(
    "notifications_total",
    "Push notifications attempted by outcome.",
    labelnames=["outcome"],
)

display_ids_allocated_total = Counter(
    "display_ids_allocated_total",
    "Display ids handed out per entity.",
    labelnames=["entity"],
)

__all__ = [
    "approval_decisions_total",
    "display_ids_allocated_total",
    "notifications_total",
]
