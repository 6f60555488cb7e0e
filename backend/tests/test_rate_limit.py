from __future__ import annotations

from intranet.core import rate_limit
from intranet.core.rate_limit import RequestLog


def test_budget_is_enforced_per_key_and_window() -> None:
    now = [100.0]
    log = RequestLog(clock=lambda: now[0])

    assert log.check("auth:1.2.3.4", limit=2, window_seconds=60).remaining == 1
    assert log.check("auth:1.2.3.4", limit=2, window_seconds=60).remaining == 0
    blocked = log.check("auth:1.2.3.4", limit=2, window_seconds=60)
    assert not blocked.allowed
    assert blocked.retry_after == 60
    assert log.check("auth:5.6.7.8", limit=2, window_seconds=60).allowed

    now[0] = 160.5
    assert log.check("auth:1.2.3.4", limit=2, window_seconds=60).allowed


def test_zero_limit_disables_the_budget() -> None:
    log = RequestLog(clock=lambda: 0.0)

    assert all(log.check("k", limit=0, window_seconds=1).allowed for _ in range(5))


def test_scope_budgets_come_from_settings(monkeypatch) -> None:
    monkeypatch.setattr(rate_limit.settings, "RATE_LIMIT_INBOUND_MAX_REQUESTS", 7)
    monkeypatch.setattr(rate_limit.settings, "RATE_LIMIT_MAX_REQUESTS", 11)

    assert rate_limit.scope_budget("inbound") == 7
    assert rate_limit.scope_budget("tickets") == 11
