"""Structured logging helpers (PII-safe: identifiers only, never names or emails)."""

from typing import Any


def build_log_context(
    *,
    funeral_home_id: str | None = None,
    actor_id: str | None = None,
    business_key: str | None = None,
    use_case: str | None = None,
    step: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict."""
    context: dict[str, Any] = {}
    if funeral_home_id:
        context["funeral_home_id"] = funeral_home_id
    if actor_id:
        context["actor_id"] = actor_id
    if business_key:
        context["business_key"] = business_key
    if use_case:
        context["use_case"] = use_case
    if step:
        context["step"] = step
    return context
