"""Destination picking for moving pages, folders and books."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from intranet.models.enums import PageType
from intranet.services.documents import ROOT_NAME


@dataclass(frozen=True)
class Breadcrumb:
    id: str | None
    title: str


@dataclass(frozen=True)
class MovePlan:
    item_id: str
    parent_id: str | None


_UNSET = object()


class FolderBrowser:
    """Navigates the folder tree to choose where an item should go.

    The item being moved never appears as a candidate, so neither it nor
    anything below it can be browsed into.
    """

    def __init__(self, item_id: str, current_parent_id: str | None, pages: Iterable[Any]) -> None:
        self.item_id = item_id
        self.current_parent_id = current_parent_id
        self._folders = [page for page in pages if page.type == PageType.folder]
        self.reset()

    def reset(self) -> None:
        self.browsing_folder_id: str | None = None
        self._selected: Any = _UNSET
        self.breadcrumbs: list[Breadcrumb] = [Breadcrumb(None, ROOT_NAME)]

    @property
    def selected_folder_id(self) -> str | None:
        return None if self._selected is _UNSET else self._selected

    @property
    def has_selection(self) -> bool:
        return self._selected is not _UNSET

    def candidate_folders(self) -> list[Any]:
        return [
            folder
            for folder in self._folders
            if folder.id != self.item_id and folder.parent_id == self.browsing_folder_id
        ]

    def browse_into(self, folder: Any) -> None:
        if folder.id == self.item_id:
            raise ValueError("cannot browse into the item being moved")
        self.browsing_folder_id = folder.id
        self.breadcrumbs = [*self.breadcrumbs, Breadcrumb(folder.id, folder.title)]

    def navigate_to(self, index: int) -> None:
        crumb = self.breadcrumbs[index]
        self.browsing_folder_id = crumb.id
        self.breadcrumbs = self.breadcrumbs[: index + 1]
        self._selected = _UNSET

    def go_back(self) -> None:
        if len(self.breadcrumbs) > 1:
            self.navigate_to(len(self.breadcrumbs) - 2)

    def select(self, folder_id: str | None) -> None:
        self._selected = folder_id

    def select_current_location(self) -> None:
        self._selected = self.browsing_folder_id

    @property
    def destination(self) -> str | None:
        return self._selected if self.has_selection else self.browsing_folder_id

    def is_current_location(self, folder_id: str | None) -> bool:
        return folder_id == self.current_parent_id

    def plan_move(self) -> MovePlan | None:
        """None when the item already lives at the destination."""
        target = self.destination
        if target == self.current_parent_id:
            return None
        return MovePlan(item_id=self.item_id, parent_id=target)
