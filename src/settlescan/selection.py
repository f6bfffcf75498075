"""Uploaded files, their pages, and the pages chosen for extraction."""

import logging
from collections import deque

from settlescan.models import PageItem

logger = logging.getLogger(__name__)

MAX_UNDO = 10


class PageSelectionStore:
    """Tracks pages grouped by source file plus a cross-file selection.

    Every selected page also lives in exactly one file group. Removed pages
    can be restored with :meth:`undo_remove`; the undo stack keeps the last
    ``MAX_UNDO`` removals.
    """

    def __init__(self, max_undo: int = MAX_UNDO) -> None:
        self._groups: dict[str, list[PageItem]] = {}
        self._selected: list[PageItem] = []
        self._undo: deque[tuple[str, PageItem]] = deque(maxlen=max_undo)
        self.preview: PageItem | None = None

    @property
    def groups(self) -> dict[str, list[PageItem]]:
        return {name: list(pages) for name, pages in self._groups.items()}

    @property
    def selected_pages(self) -> list[PageItem]:
        """Selected pages in the order they were selected."""
        return list(self._selected)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    def is_selected(self, page: PageItem) -> bool:
        return page in self._selected

    def selected_count(self, name: str) -> int:
        return sum(1 for page in self._groups.get(name, []) if page in self._selected)

    def add_file(self, name: str, pages: list[PageItem], select: bool = False) -> None:
        """Add (or replace) the pages of file ``name``.

        Args:
            name: Source file name used as the group key
            pages: Pages of the file in document order
            select: Select every new page, as done for single images
        """
        if name in self._groups:
            self._deselect_all(self._groups[name])
            logger.debug("Replacing pages of %s", name)
        self._groups[name] = list(pages)
        if select:
            for page in pages:
                if page not in self._selected:
                    self._selected.append(page)
                    self.preview = page

    def remove_file(self, name: str) -> None:
        pages = self._groups.pop(name, [])
        self._deselect_all(pages)

    def toggle_select(self, page: PageItem) -> bool:
        """Flip the selection of ``page`` and return whether it is now selected."""
        if page in self._selected:
            self._deselect_all([page])
            return False

        owner = self._owner_of(page)
        if owner is None:
            raise KeyError(f"Page is not part of any uploaded file: {page.label}")
        self._selected.append(page)
        self.preview = page
        return True

    def remove_page(self, page: PageItem) -> None:
        """Drop ``page`` from its file group and from the selection."""
        owner = self._owner_of(page)
        self._deselect_all([page])
        if owner is None:
            return

        pages = self._groups[owner]
        pages.remove(page)
        self._undo.append((owner, page))
        if not pages:
            del self._groups[owner]

    def undo_remove(self) -> PageItem | None:
        """Restore the most recently removed page to its file group.

        The restored page is not re-selected.
        """
        if not self._undo:
            return None
        owner, page = self._undo.pop()
        pages = self._groups.setdefault(owner, [])
        pages.append(page)
        pages.sort(key=lambda p: p.page_index or 0)
        return page

    def reset(self) -> None:
        self._groups.clear()
        self._selected.clear()
        self._undo.clear()
        self.preview = None

    def _owner_of(self, page: PageItem) -> str | None:
        for name, pages in self._groups.items():
            if page in pages:
                return name
        return None

    def _deselect_all(self, pages: list[PageItem]) -> None:
        self._selected = [p for p in self._selected if p not in pages]
        if self.preview is not None and self.preview not in self._selected:
            self.preview = self._selected[-1] if self._selected else None
