"""AI service public API."""

from __future__ import annotations

__all__ = ["analyze_ticket", "suggest_ticket_routing"]


def analyze_ticket(*args, **kwargs):
    from intranet.services.ai.routing import analyze_ticket as _analyze_ticket

    return _analyze_ticket(*args, **kwargs)


def suggest_ticket_routing(*args, **kwargs):
    from intranet.services.ai.routing import suggest_ticket_routing as _suggest_ticket_routing

    return _suggest_ticket_routing(*args, **kwargs)
