"""Sanity checks for generated search-index fragments."""

from collections import Counter
from collections.abc import Iterable

from doxygen_search.models import IndexFile, SearchEntry, ValidationIssue


def validate_entries(entries: Iterable[SearchEntry], path: str = "") -> list[ValidationIssue]:
    """Check the records of one fragment.

    Anchor keys must be unique within the fragment, and a fragment
    identifier may only be used once per target page.

    Args:
        entries: Records of a single fragment.
        path: Fragment path reported with each issue.

    Returns:
        Issues in the order they were found; empty when the fragment is sound.
    """
    entries = list(entries)
    issues: list[ValidationIssue] = []

    anchor_counts = Counter(entry.anchor_key for entry in entries)
    reported_anchors: set[str] = set()
    seen_fragments: dict[tuple[str, str], str] = {}

    for entry in entries:
        if anchor_counts[entry.anchor_key] > 1 and entry.anchor_key not in reported_anchors:
            reported_anchors.add(entry.anchor_key)
            issues.append(
                ValidationIssue(
                    path=path,
                    anchor_key=entry.anchor_key,
                    code="duplicate-anchor",
                    message=f"Anchor key occurs {anchor_counts[entry.anchor_key]} times",
                )
            )

        if not entry.label.strip():
            issues.append(
                ValidationIssue(path=path, anchor_key=entry.anchor_key, code="empty-label", message="Label is empty")
            )

        for target in entry.targets:
            if not target.page:
                issues.append(
                    ValidationIssue(
                        path=path,
                        anchor_key=entry.anchor_key,
                        code="empty-page",
                        message=f"Target '{target.url}' has no page",
                    )
                )
                continue
            if not target.fragment:
                continue

            key = (target.page, target.fragment)
            if key in seen_fragments:
                issues.append(
                    ValidationIssue(
                        path=path,
                        anchor_key=entry.anchor_key,
                        code="duplicate-fragment",
                        message=f"Fragment '{target.url}' already used by '{seen_fragments[key]}'",
                    )
                )
            else:
                seen_fragments[key] = entry.anchor_key

    return issues


def validate_index_file(index_file: IndexFile) -> list[ValidationIssue]:
    """Check a parsed fragment.

    Args:
        index_file: Parsed fragment.

    Returns:
        Issues found in the fragment.
    """
    return validate_entries(index_file.entries, index_file.path)
