"""Render search results as links, the way the search widget lists them."""

import re
from collections.abc import Sequence
from urllib.parse import urljoin

from docutils.core import publish_parts  # type: ignore[import-untyped]

from doxygen_search.models import SearchResult, SearchTarget

EMPTY_STATE = "No Matches"

_RST_SPECIAL_RE = re.compile(r"([^\w\s])")


def resolve_url(target: SearchTarget, base_url: str | None = None) -> str:
    """Resolve a target link against the URL of the search directory.

    Args:
        target: Link target.
        base_url: URL of the ``html/search/`` directory, if known.

    Returns:
        Absolute URL, or the raw relative link when no base URL is given.
    """
    if not base_url:
        return target.url
    if not base_url.endswith("/"):
        base_url += "/"
    return urljoin(base_url, target.url)


def _escape_rst(text: str) -> str:
    """Escape inline markup so text renders literally."""
    return _RST_SPECIAL_RE.sub(r"\\\1", " ".join(text.split()))


def _rst_link(text: str, url: str) -> str:
    """Build an anonymous reStructuredText hyperlink."""
    if url.endswith("_"):
        url = url[:-1] + "\\_"
    return f"`{_escape_rst(text)} <{url}>`__"


def _build_rst(results: Sequence[SearchResult], base_url: str | None) -> str:
    """Build the reStructuredText list for a set of results.

    Args:
        results: Results to render.
        base_url: URL of the ``html/search/`` directory, if known.

    Returns:
        reStructuredText source.
    """
    lines: list[str] = []
    for result in results:
        if len(result.targets) == 1:
            target = result.targets[0]
            line = f"- {_rst_link(result.label, resolve_url(target, base_url))}"
            if target.description:
                line += f" ({_escape_rst(target.description)})"
            lines.extend([line, ""])
            continue

        lines.extend([f"- {_escape_rst(result.label)}", ""])
        for target in result.targets:
            text = target.description or target.url
            lines.extend([f"  - {_rst_link(text, resolve_url(target, base_url))}", ""])
    return "\n".join(lines)


def render_html(results: Sequence[SearchResult], base_url: str | None = None) -> str:
    """Render results as an HTML fragment of links.

    A result with a single target links its label directly; a result with
    several targets (overloads) lists one link per target under its label.

    Args:
        results: Results to render.
        base_url: URL of the ``html/search/`` directory, if known.

    Returns:
        HTML body fragment.
    """
    source = _build_rst(results, base_url) if results else _escape_rst(EMPTY_STATE)
    parts = publish_parts(
        source=source,
        writer="html5",
        settings_overrides={"report_level": 5, "halt_level": 5},
    )
    return str(parts["body"])


def render_text(results: Sequence[SearchResult], base_url: str | None = None) -> str:
    """Render results as indented plain text.

    Args:
        results: Results to render.
        base_url: URL of the ``html/search/`` directory, if known.

    Returns:
        One block per result; the empty state when there are none.
    """
    if not results:
        return EMPTY_STATE

    lines = []
    for result in results:
        lines.append(result.label)
        for target in result.targets:
            lines.append(f"    {target.description}")
            lines.append(f"        {resolve_url(target, base_url)}")
    return "\n".join(lines)
