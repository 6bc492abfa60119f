"""Parser for Doxygen search-index fragments (``html/search/*.js``)."""

import re
from pathlib import Path
from typing import Any

from doxygen_search.models import IndexFile, SearchEntry, SearchTarget


class SearchIndexFormatError(ValueError):
    """Raised when a search-index fragment does not have the expected shape."""


_TOKEN_RE = re.compile(
    r"""
    (?P<space>\s+|//[^\n]*|/\*.*?\*/)
    | (?P<punct>[\[\]{}:,;=])
    | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
    | (?P<number>-?\d+)
    | (?P<ident>[A-Za-z_$][\w$]*)
    """,
    re.VERBOSE | re.DOTALL,
)

_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)", re.DOTALL)

_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}

_ASSIGNMENT_RE = re.compile(r"\bvar\s+(?P<name>[A-Za-z_$][\w$]*)\s*=")

_FILE_NAME_RE = re.compile(r"^(?P<section>.+?)_(?P<chunk>[0-9a-fA-F]+)$")


def _unescape_string(literal: str) -> str:
    """Strip quotes from a JavaScript string literal and resolve escapes.

    Args:
        literal: Quoted string literal.

    Returns:
        Decoded string value.
    """

    def replace(match: re.Match[str]) -> str:
        escape = match.group(1)
        if escape[0] in "ux" and len(escape) > 1:
            return chr(int(escape[1:], 16))
        return _SIMPLE_ESCAPES.get(escape, escape)

    return _ESCAPE_RE.sub(replace, literal[1:-1])


class _LiteralReader:
    """Reads JavaScript array/object literals of strings and integers."""

    def __init__(self, source: str, pos: int = 0) -> None:
        """Initialise reader at an offset.

        Args:
            source: Script source text.
            pos: Offset to start reading from.
        """
        self.source = source
        self.pos = pos
        self._peeked: tuple[str, str] | None = None

    def _scan(self) -> tuple[str, str]:
        """Scan the next significant token.

        Returns:
            Token kind and text; ``("eof", "")`` at the end of input.

        Raises:
            SearchIndexFormatError: If no token matches at the current offset.
        """
        while self.pos < len(self.source):
            match = _TOKEN_RE.match(self.source, self.pos)
            if match is None:
                msg = f"Unexpected character {self.source[self.pos]!r} at offset {self.pos}"
                raise SearchIndexFormatError(msg)
            self.pos = match.end()
            kind = match.lastgroup or "space"
            if kind != "space":
                return kind, match.group(kind)
        return "eof", ""

    def peek(self) -> tuple[str, str]:
        """Return the next token without consuming it."""
        if self._peeked is None:
            self._peeked = self._scan()
        return self._peeked

    def next(self) -> tuple[str, str]:
        """Consume and return the next token."""
        token = self.peek()
        self._peeked = None
        return token

    def expect(self, punct: str) -> None:
        """Consume a punctuation token.

        Args:
            punct: Expected punctuation.

        Raises:
            SearchIndexFormatError: If the next token is anything else.
        """
        kind, text = self.next()
        if kind != "punct" or text != punct:
            msg = f"Expected {punct!r} but found {text or 'end of input'!r}"
            raise SearchIndexFormatError(msg)

    def accept(self, punct: str) -> bool:
        """Consume a punctuation token if it comes next.

        Args:
            punct: Punctuation to accept.

        Returns:
            Whether the token was consumed.
        """
        kind, text = self.peek()
        if kind == "punct" and text == punct:
            self.next()
            return True
        return False

    def read_value(self) -> Any:
        """Read a string, integer, array or object literal.

        Returns:
            The decoded value.

        Raises:
            SearchIndexFormatError: If the next token cannot start a value.
        """
        kind, text = self.next()
        if kind == "string":
            return _unescape_string(text)
        if kind == "number":
            return int(text)
        if kind == "punct" and text == "[":
            return self._read_array()
        if kind == "punct" and text == "{":
            return self._read_object()
        msg = f"Unexpected token {text or 'end of input'!r}"
        raise SearchIndexFormatError(msg)

    def _read_array(self) -> list[Any]:
        """Read array items up to the closing bracket."""
        items: list[Any] = []
        while not self.accept("]"):
            items.append(self.read_value())
            if not self.accept(","):
                self.expect("]")
                break
        return items

    def _read_object(self) -> dict[str, Any]:
        """Read object members up to the closing brace."""
        items: dict[str, Any] = {}
        while not self.accept("}"):
            kind, text = self.next()
            if kind == "string":
                key = _unescape_string(text)
            elif kind in ("number", "ident"):
                key = text
            else:
                msg = f"Invalid object key {text or 'end of input'!r}"
                raise SearchIndexFormatError(msg)
            self.expect(":")
            items[key] = self.read_value()
            if not self.accept(","):
                self.expect("}")
                break
        return items


def _read_assignment(source: str, name: str) -> Any:
    """Read the literal assigned to ``var <name>`` in a script.

    Args:
        source: Script source text.
        name: Variable name.

    Returns:
        The decoded literal.

    Raises:
        SearchIndexFormatError: If the variable is missing or malformed.
    """
    for match in _ASSIGNMENT_RE.finditer(source):
        if match.group("name") == name:
            reader = _LiteralReader(source, match.end())
            value = reader.read_value()
            reader.accept(";")
            return value
    msg = f"No '{name}' assignment found"
    raise SearchIndexFormatError(msg)


class SearchIndexParser:
    """Parses the search-index fragments written by Doxygen's HTML output."""

    DATA_VARIABLE = "searchData"

    def parse_text(self, source: str) -> list[SearchEntry]:
        """Parse the source of a fragment into search entries.

        Args:
            source: Fragment source, ``var searchData = [...];``.

        Returns:
            Entries in the order they appear in the fragment.

        Raises:
            SearchIndexFormatError: If the fragment is malformed.
        """
        reader = _LiteralReader(source)
        for expected in ("var", self.DATA_VARIABLE):
            kind, text = reader.next()
            if kind != "ident" or text != expected:
                msg = f"Expected '{expected}' but found {text or 'end of input'!r}"
                raise SearchIndexFormatError(msg)
        reader.expect("=")
        data = reader.read_value()
        reader.accept(";")
        kind, text = reader.next()
        if kind != "eof":
            msg = f"Unexpected trailing content {text!r}"
            raise SearchIndexFormatError(msg)

        if not isinstance(data, list):
            msg = f"'{self.DATA_VARIABLE}' must be an array"
            raise SearchIndexFormatError(msg)
        return [self._build_entry(item, index) for index, item in enumerate(data)]

    def parse_file(self, file_path: Path, base_path: Path) -> IndexFile | None:
        """Parse a fragment file.

        Args:
            file_path: Path to the ``.js`` fragment.
            base_path: Search directory the fragment belongs to.

        Returns:
            IndexFile instance or None if reading or parsing fails.
        """
        try:
            source = file_path.read_text(encoding="utf-8")
            entries = self.parse_text(source)
        except (OSError, UnicodeDecodeError, SearchIndexFormatError):
            return None

        section, chunk = self._split_file_name(file_path)
        return IndexFile(
            path=file_path.relative_to(base_path).as_posix(),
            section=section,
            chunk=chunk,
            entries=entries,
        )

    def parse_section_labels(self, source: str) -> dict[str, str]:
        """Map section names to display labels from ``searchdata.js``.

        Args:
            source: Source text of ``searchdata.js``.

        Returns:
            Mapping such as ``{"functions": "Functions"}``; empty when the
            tables are missing or malformed.
        """
        try:
            names = _read_assignment(source, "indexSectionNames")
            labels = _read_assignment(source, "indexSectionLabels")
        except SearchIndexFormatError:
            return {}
        if not isinstance(names, dict) or not isinstance(labels, dict):
            return {}
        return {str(name): str(labels[key]) for key, name in names.items() if key in labels}

    def _build_entry(self, item: Any, index: int) -> SearchEntry:
        """Validate the shape of one raw record and convert it.

        Args:
            item: Decoded ``[anchorKey, [label, target...]]`` record.
            index: Position of the record, for error messages.

        Returns:
            SearchEntry instance.

        Raises:
            SearchIndexFormatError: If the record is malformed.
        """
        if not (isinstance(item, list) and len(item) == 2 and isinstance(item[0], str)):
            msg = f"Entry {index} must be [anchorKey, [label, targets...]]"
            raise SearchIndexFormatError(msg)
        anchor_key, link_info = item
        if not (isinstance(link_info, list) and len(link_info) >= 2 and isinstance(link_info[0], str)):
            msg = f"Entry {anchor_key!r} must have a label and at least one target"
            raise SearchIndexFormatError(msg)

        targets = [self._build_target(raw, anchor_key) for raw in link_info[1:]]
        return SearchEntry(anchor_key=anchor_key, label=link_info[0], targets=targets)

    def _build_target(self, raw: Any, anchor_key: str) -> SearchTarget:
        """Validate the shape of one raw target and convert it.

        Args:
            raw: Decoded ``[url, flag, description]`` triple.
            anchor_key: Anchor key of the owning record, for error messages.

        Returns:
            SearchTarget instance.

        Raises:
            SearchIndexFormatError: If the target is malformed.
        """
        if not (
            isinstance(raw, list)
            and len(raw) == 3
            and isinstance(raw[0], str)
            and isinstance(raw[1], int)
            and isinstance(raw[2], str)
        ):
            msg = f"Entry {anchor_key!r} has a target that is not [url, flag, description]"
            raise SearchIndexFormatError(msg)
        page, _, fragment = raw[0].partition("#")
        return SearchTarget(page=page, fragment=fragment, in_parent=bool(raw[1]), description_html=raw[2])

    def _split_file_name(self, file_path: Path) -> tuple[str, int]:
        """Extract the section name and chunk number from a fragment name.

        Args:
            file_path: Path to the fragment, e.g. ``functions_1.js``.

        Returns:
            Section name and chunk number (``0`` when there is no suffix).
        """
        match = _FILE_NAME_RE.match(file_path.stem)
        if match is None:
            return file_path.stem, 0
        return match.group("section"), int(match.group("chunk"), 16)
