"""Page registry: non-destructive merging of known pages."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from eventpages.services.slug_service import natural_sort_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from eventpages.schemas.page import Page

DEFAULT_PAGE_BASE_NAME = "Page"


def sort_pages(pages: Iterable[Page]) -> list[Page]:
    """Natural order by name, id as tie-break."""
    return sorted(pages, key=lambda page: (natural_sort_key(page.name), page.id))


def merge_pages(previous: Iterable[Page], discovered: Iterable[Page]) -> list[Page]:
    """Merge newly discovered pages into a registry without losing any entry.

    Rules:
    - entries only in ``previous`` are retained (created locally, not yet
      confirmed remotely);
    - entries in both are replaced by the discovered version;
    - a discovered entry with the same name as an existing entry but a
      different id is coalesced onto the existing id, so references held by
      in-flight operations stay valid;
    - the result is unique by id and sorted by natural name order.
    """
    merged: dict[str, Page] = {}
    id_by_name: dict[str, str] = {}

    for page in previous:
        if page.id in merged:
            continue
        merged[page.id] = page
        id_by_name.setdefault(page.name, page.id)

    for page in discovered:
        target_id = page.id if page.id in merged else id_by_name.get(page.name)
        if target_id is None:
            merged[page.id] = page
            id_by_name[page.name] = page.id
            continue
        _unindex_name(merged, id_by_name, target_id)
        if target_id != page.id:
            page = page.model_copy(update={"id": target_id})
        merged[target_id] = page
        id_by_name.setdefault(page.name, target_id)

    return sort_pages(merged.values())


def _unindex_name(merged: dict[str, Page], id_by_name: dict[str, str], page_id: str) -> None:
    """Drop the name mapping held by ``page_id`` before its entry is replaced."""
    name = merged[page_id].name
    if id_by_name.get(name) != page_id:
        return
    del id_by_name[name]
    for other in merged.values():
        if other.id != page_id and other.name == name:
            id_by_name[name] = other.id
            break


def rename_page_entry(pages: Iterable[Page], old_id: str, page: Page) -> list[Page]:
    """Replace the entry ``old_id`` by ``page`` (which may carry a new id).

    This is the only operation that removes an id from a registry, and it
    always puts the renamed page in its place.
    """
    remaining = [entry for entry in pages if entry.id not in (old_id, page.id)]
    return sort_pages([*remaining, page])


def find_page(pages: Iterable[Page], reference: str) -> Page | None:
    """Look a page up by id, then by storage key."""
    candidates = list(pages)
    for page in candidates:
        if page.id == reference:
            return page
    for page in candidates:
        if page.storage_key == reference:
            return page
    return None


def next_page_name(pages: Iterable[Page], base_name: str = DEFAULT_PAGE_BASE_NAME) -> str:
    """Next ``"{base} N"`` name: one more than the highest suffix in use.

    Gaps are not reused.
    """
    base = base_name.strip() or DEFAULT_PAGE_BASE_NAME
    pattern = re.compile(rf"^{re.escape(base)}\s*(\d+)$", re.IGNORECASE)
    highest = 0
    for page in pages:
        match = pattern.match(page.name.strip())
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{base} {highest + 1}"


class PageRegistry:
    """Authoritative in-memory list of known pages.

    The list is only ever replaced by the result of ``merge_pages`` or
    ``rename_page_entry``; callers never assign it directly. ``merge`` is for
    pages discovered remotely, ``put`` for pages this process created or saved.
    """

    def __init__(self, pages: Iterable[Page] = ()) -> None:
        self._pages: list[Page] = merge_pages(pages, [])

    @property
    def pages(self) -> list[Page]:
        return list(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __contains__(self, page_id: object) -> bool:
        return any(page.id == page_id for page in self._pages)

    def get(self, page_id: str) -> Page | None:
        return next((page for page in self._pages if page.id == page_id), None)

    def find(self, reference: str) -> Page | None:
        return find_page(self._pages, reference)

    def merge(self, discovered: Iterable[Page]) -> list[Page]:
        self._pages = merge_pages(self._pages, discovered)
        return self.pages

    def put(self, page: Page) -> list[Page]:
        """Insert or replace the entry with ``page.id``; names are never coalesced."""
        self._pages = rename_page_entry(self._pages, page.id, page)
        return self.pages

    def rename(self, old_id: str, page: Page) -> list[Page]:
        self._pages = rename_page_entry(self._pages, old_id, page)
        return self.pages

    def next_name(self, base_name: str = DEFAULT_PAGE_BASE_NAME) -> str:
        return next_page_name(self._pages, base_name)


def unique_page_name(pages: Iterable[Page], base_name: str) -> str:
    """``base_name`` itself when unused, otherwise the next numbered variant."""
    candidates = list(pages)
    if not any(page.name == base_name for page in candidates):
        return base_name
    return next_page_name(candidates, base_name)
