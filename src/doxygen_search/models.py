"""Data models for Doxygen search-index fragments."""

import html
from dataclasses import dataclass, field


@dataclass
class SearchTarget:
    """One definition site a search label links to."""

    page: str
    fragment: str
    in_parent: bool
    description_html: str

    @property
    def url(self) -> str:
        """Link relative to the search directory."""
        if self.fragment:
            return f"{self.page}#{self.fragment}"
        return self.page

    @property
    def description(self) -> str:
        """Description with HTML entities decoded."""
        return html.unescape(self.description_html)


@dataclass
class SearchEntry:
    """Represents a single search-index record."""

    anchor_key: str
    label: str
    targets: list[SearchTarget] = field(default_factory=list)

    @property
    def search_key(self) -> str:
        """Lower-cased label used for matching."""
        return self.label.lower()


@dataclass
class IndexFile:
    """Represents a parsed search-index fragment."""

    path: str
    section: str
    chunk: int
    entries: list[SearchEntry]
    section_label: str | None = None


@dataclass
class SearchResult:
    """Represents a search result."""

    path: str
    section: str
    anchor_key: str
    label: str
    targets: list[SearchTarget]
    score: float
    snippet: str | None = None


@dataclass
class ValidationIssue:
    """A problem found while checking a fragment."""

    path: str
    anchor_key: str
    code: str
    message: str
