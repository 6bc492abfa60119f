"""In-memory label filter, the query the browser search box runs."""

from collections.abc import Iterable

from doxygen_search.models import SearchEntry


def normalise_query(query: str) -> str:
    """Normalise a typed query for case-insensitive matching."""
    return query.strip().lower()


def filter_entries(entries: Iterable[SearchEntry], query: str) -> list[SearchEntry]:
    """Return the entries whose label contains the query anywhere.

    Args:
        entries: Records to scan, in index order.
        query: Text typed by the user.

    Returns:
        Matching entries in their original order. A blank query matches nothing.
    """
    needle = normalise_query(query)
    if not needle:
        return []
    return [entry for entry in entries if needle in entry.search_key]
