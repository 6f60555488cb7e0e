"""AI-assisted quick ticket drafting: debounced analysis and suggestion handling."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable

from intranet.core.exceptions import BadRequestError
from intranet.models.enums import TicketPriority, TicketSource
from intranet.schemas.ticket import TicketCreate

ANALYSIS_DELAY_SECONDS = 0.5
ANALYSIS_MIN_LENGTH = 10
AUTO_TITLE_WORDS = 8

CONFIDENCE_TIERS: tuple[tuple[float, str, str], ...] = (
    (0.8, "confident", "green"),
    (0.5, "moderate", "yellow"),
    (0.0, "low", "red"),
)


def confidence_tier(confidence: float) -> tuple[str, str]:
    """``(label, color)`` for a routing confidence in ``[0, 1]``."""
    for threshold, label, color in CONFIDENCE_TIERS:
        if confidence >= threshold:
            return label, color
    return CONFIDENCE_TIERS[-1][1], CONFIDENCE_TIERS[-1][2]


def auto_title(description: str) -> str:
    words = description.split()
    title = " ".join(words[:AUTO_TITLE_WORDS])
    return title + "..." if len(words) > AUTO_TITLE_WORDS else title


class Debouncer:
    """Calls ``callback`` with the latest text once input has been quiet for ``delay`` seconds.

    Every ``push`` cancels the pending call. Texts shorter than ``min_length``
    are never sent. The owner drives time by calling ``poll``.
    """

    def __init__(
        self,
        callback: Callable[[str], Any],
        *,
        delay: float = ANALYSIS_DELAY_SECONDS,
        min_length: int = ANALYSIS_MIN_LENGTH,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._callback = callback
        self.delay = delay
        self.min_length = min_length
        self._clock = clock
        self._pending: tuple[str, float] | None = None

    @property
    def pending_text(self) -> str | None:
        return self._pending[0] if self._pending else None

    def push(self, text: str) -> None:
        self._pending = None
        if len(text) >= self.min_length:
            self._pending = (text, self._clock() + self.delay)

    def cancel(self) -> None:
        self._pending = None

    def poll(self) -> bool:
        if self._pending is None:
            return False
        text, due_at = self._pending
        if self._clock() < due_at:
            return False
        self._pending = None
        self._callback(text)
        return True


@dataclass
class QuickTicketDraft:
    description: str = ""
    title: str = ""
    priority: TicketPriority = TicketPriority.medium
    department_id: str | None = None
    sub_department_id: str | None = None
    assignee_id: str | None = None
    form_category_id: str | None = None
    suggestion: dict[str, Any] | None = field(default=None)

    def apply_suggestion(self, suggestion: dict[str, Any]) -> None:
        """Fill routing slots the requester has not chosen yet; manual choices stay."""
        self.suggestion = suggestion
        if suggestion.get("department_id") and not self.department_id:
            self.department_id = suggestion["department_id"]
        if suggestion.get("sub_department_id") and not self.sub_department_id:
            self.sub_department_id = suggestion["sub_department_id"]
        if suggestion.get("assignee_id") and not self.assignee_id:
            self.assignee_id = suggestion["assignee_id"]

    @property
    def confidence(self) -> float:
        return float((self.suggestion or {}).get("confidence") or 0.0)

    @property
    def assignee_overridden(self) -> bool:
        suggested = (self.suggestion or {}).get("assignee_id")
        return bool(suggested) and self.assignee_id != suggested

    def ensure_title(self) -> str:
        if not self.title.strip():
            self.title = auto_title(self.description)
        return self.title

    def pick_helpdesk(self, helpdesks: list[Any]) -> Any:
        target = self.sub_department_id or self.department_id
        for helpdesk in helpdesks:
            if helpdesk.department_id == target:
                return helpdesk
        if not helpdesks:
            raise BadRequestError("no_helpdesk_available")
        return helpdesks[0]

    def build_payload(self, helpdesks: list[Any]) -> TicketCreate:
        if not self.description.strip():
            raise BadRequestError("description_required")
        if not self.department_id:
            raise BadRequestError("department_required")
        helpdesk = self.pick_helpdesk(helpdesks)
        return TicketCreate(
            helpdesk_id=helpdesk.id,
            title=self.ensure_title(),
            description=self.description,
            priority=self.priority,
            department_id=self.department_id,
            sub_department_id=self.sub_department_id,
            assigned_to=self.assignee_id,
            form_category_id=self.form_category_id,
            source=TicketSource.quick,
            ai_routing_confidence=self.confidence if self.suggestion else None,
            ai_suggested_assignee_id=(self.suggestion or {}).get("assignee_id"),
        )
