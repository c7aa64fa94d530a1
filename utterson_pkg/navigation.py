"""
Ordering and neighbour lookups over the sorted set of documents.

Documents are sorted newest first, so the "previous" page of a document is
the nearest newer one and the "next" page is the nearest older one.
"""

from functools import cmp_to_key


def _compare(a, b):
    return (a > b) - (a < b)


def by_date_desc(a, b):
    """Newest first; documents sharing a date keep their discovery order."""
    return _compare(b.date, a.date) or _compare(a.sequence, b.sequence)


def by_language_desc(a, b):
    return _compare(b.language, a.language) or _compare(a.sequence, b.sequence)


def stable_sort(items, comparator):
    return sorted(items, key=cmp_to_key(comparator))


def _index_of(pages, current):
    for i, page in enumerate(pages):
        if page is current or page.source == current.source:
            return i
    return None


def _is_neighbour(page, current):
    return page.group_id != current.group_id and page.language == current.language


def prev_page(pages, current):
    """Nearest newer document in the same language, or None."""
    index = _index_of(pages, current)
    if index is None:
        return None
    for page in reversed(pages[:index]):
        if _is_neighbour(page, current):
            return page
    return None


def next_page(pages, current):
    """Nearest older document in the same language, or None."""
    index = _index_of(pages, current)
    if index is None:
        return None
    for page in pages[index + 1:]:
        if _is_neighbour(page, current):
            return page
    return None


def language_variations(pages, current):
    """Every document sharing the group id of current, by language descending."""
    variations = [page for page in pages if page.group_id == current.group_id]
    return stable_sort(variations, by_language_desc)


class NavigationIndex:
    """Precomputed prev/next/variations for every document of a page set."""

    def __init__(self, pages):
        self.pages = pages
        self._entries = {}
        groups = {}
        for page in pages:
            groups.setdefault(page.group_id, []).append(page)
        for group_id, members in groups.items():
            groups[group_id] = stable_sort(members, by_language_desc)

        for page in pages:
            self._entries[page.source] = (
                prev_page(pages, page),
                next_page(pages, page),
                groups[page.group_id],
            )

    def prev(self, page):
        return self._entries[page.source][0]

    def next(self, page):
        return self._entries[page.source][1]

    def variations(self, page):
        return self._entries[page.source][2]
