"""Editor autosave cadence shared by clients of the page API."""

from __future__ import annotations

import enum
import logging
import time
from typing import Any, Callable

from intranet.models.enums import PageStatus

logger = logging.getLogger(__name__)

AUTOSAVE_DELAY_SECONDS = 2.0
SNAPSHOT_DELAY_SECONDS = 30.0
SNAPSHOT_MIN_LENGTH = 10
AUTOSAVE_NOTE = "Auto-saved version"


class SaveStatus(str, enum.Enum):
    saved = "saved"
    saving = "saving"
    unsaved = "unsaved"
    error = "error"


def is_locked(status: PageStatus) -> bool:
    """Autosave stops for pages under review and for published pages."""
    return status in (PageStatus.in_review, PageStatus.published)


class AutosaveScheduler:
    """Debounced content saves and version snapshots for one page.

    ``edit`` restarts both timers. After ``save_delay`` quiet seconds the
    content is saved if it differs from the last saved content. After
    ``snapshot_delay`` quiet seconds a snapshot is taken if the content
    differs from the last snapshot and is longer than ``SNAPSHOT_MIN_LENGTH``.
    Call ``poll`` to let due timers fire.
    """

    def __init__(
        self,
        save: Callable[[str], Any],
        snapshot: Callable[[str, str], Any],
        *,
        initial_content: str = "",
        status: PageStatus = PageStatus.draft,
        save_delay: float = AUTOSAVE_DELAY_SECONDS,
        snapshot_delay: float = SNAPSHOT_DELAY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._save = save
        self._snapshot = snapshot
        self.page_status = status
        self.save_delay = save_delay
        self.snapshot_delay = snapshot_delay
        self._clock = clock
        self.last_saved_content = initial_content
        self.last_snapshot_content = initial_content
        self.save_status = SaveStatus.saved
        self._content: str | None = None
        self._save_due: float | None = None
        self._snapshot_due: float | None = None

    @property
    def locked(self) -> bool:
        return is_locked(self.page_status)

    def set_status(self, status: PageStatus) -> None:
        self.page_status = status
        if self.locked:
            self.cancel()

    def cancel(self) -> None:
        self._save_due = None
        self._snapshot_due = None

    def edit(self, content: str) -> None:
        if self.locked:
            return
        if content != self.last_saved_content:
            self.save_status = SaveStatus.unsaved
        now = self._clock()
        self._content = content
        self._save_due = now + self.save_delay
        self._snapshot_due = now + self.snapshot_delay

    def _run_save(self, content: str) -> bool:
        if content == self.last_saved_content:
            return False
        self.save_status = SaveStatus.saving
        try:
            self._save(content)
        except Exception as exc:  # noqa: BLE001
            self.save_status = SaveStatus.error
            logger.warning("Autosave failed: %s", exc)
            return False
        self.save_status = SaveStatus.saved
        self.last_saved_content = content
        return True

    def poll(self) -> list[str]:
        """Fire due timers; returns the names of the actions that ran."""
        fired: list[str] = []
        if self.locked or self._content is None:
            return fired
        now = self._clock()
        content = self._content
        if self._save_due is not None and now >= self._save_due:
            self._save_due = None
            if self._run_save(content):
                fired.append("save")
        if self._snapshot_due is not None and now >= self._snapshot_due:
            self._snapshot_due = None
            if content != self.last_snapshot_content and len(content) > SNAPSHOT_MIN_LENGTH:
                self._snapshot(content, AUTOSAVE_NOTE)
                self.last_snapshot_content = content
                fired.append("snapshot")
        return fired

    def save_now(self) -> bool:
        if self.locked or self._content is None:
            return False
        self._save_due = None
        return self._run_save(self._content)
