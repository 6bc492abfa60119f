"""SQLite database operations for Doxygen search-index records."""

import re
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from doxygen_search.matcher import normalise_query
from doxygen_search.models import IndexFile, SearchResult, SearchTarget


class SymbolDatabase:
    """Manages the SQLite database holding indexed search records."""

    def __init__(self, db_path: Path) -> None:
        """Initialise database with the given path.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._initialise_schema()

    @staticmethod
    def _sanitise_query(query: str) -> str:
        """Sanitise user query for FTS5 MATCH clause.

        Signatures are full of characters FTS5 treats as query syntax
        (``::``, parentheses, ``*``), so such queries are matched as a
        literal phrase.

        Args:
            query: Raw user query string.

        Returns:
            Sanitised query string safe for FTS5 MATCH.
        """
        # Only words and spaces are plain FTS5 barewords
        fts5_bareword = re.compile(r"[\w\s]+")
        fts5_operators = re.compile(r"\b(AND|OR|NOT|NEAR)\b", re.IGNORECASE)

        if not fts5_bareword.fullmatch(query) or fts5_operators.search(query):
            query = query.replace('"', '""')
            return f'"{query}"'

        return query

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections.

        Yields:
            SQLite connection with Row factory enabled.
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _initialise_schema(self) -> None:
        """Create database schema if it doesn't exist."""
        with self._get_connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS index_files (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    path TEXT UNIQUE NOT NULL,
                    section TEXT NOT NULL,
                    chunk INTEGER NOT NULL,
                    section_label TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    index_file_id INTEGER NOT NULL REFERENCES index_files(id),
                    anchor_key TEXT NOT NULL,
                    label TEXT NOT NULL,
                    search_key TEXT NOT NULL,
                    UNIQUE (index_file_id, anchor_key)
                );

                CREATE TABLE IF NOT EXISTS targets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    entry_id INTEGER NOT NULL REFERENCES entries(id),
                    position INTEGER NOT NULL,
                    page TEXT NOT NULL,
                    fragment TEXT NOT NULL,
                    in_parent INTEGER NOT NULL,
                    description_html TEXT NOT NULL,
                    description TEXT NOT NULL
                );

                CREATE VIRTUAL TABLE IF NOT EXISTS targets_fts USING fts5(
                    description,
                    content='targets',
                    content_rowid='id',
                    tokenize='unicode61'
                );

                CREATE TRIGGER IF NOT EXISTS targets_ai AFTER INSERT ON targets BEGIN
                    INSERT INTO targets_fts(rowid, description) VALUES (new.id, new.description);
                END;

                CREATE TRIGGER IF NOT EXISTS targets_ad AFTER DELETE ON targets BEGIN
                    INSERT INTO targets_fts(targets_fts, rowid, description)
                    VALUES ('delete', old.id, old.description);
                END;

                CREATE INDEX IF NOT EXISTS idx_entries_search_key ON entries(search_key);
                CREATE INDEX IF NOT EXISTS idx_targets_entry ON targets(entry_id, position);
            """)
            conn.commit()

    def upsert_index_file(self, index_file: IndexFile) -> None:
        """Insert a fragment, replacing everything stored for its path.

        Args:
            index_file: Parsed fragment.
        """
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO index_files (path, section, chunk, section_label)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET
                    section = excluded.section,
                    chunk = excluded.chunk,
                    section_label = excluded.section_label,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (index_file.path, index_file.section, index_file.chunk, index_file.section_label),
            )
            file_id = conn.execute("SELECT id FROM index_files WHERE path = ?", (index_file.path,)).fetchone()["id"]
            self._delete_entries(conn, file_id)

            for entry in index_file.entries:
                cursor = conn.execute(
                    """
                    INSERT INTO entries (index_file_id, anchor_key, label, search_key)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(index_file_id, anchor_key) DO NOTHING
                    """,
                    (file_id, entry.anchor_key, entry.label, entry.search_key),
                )
                if cursor.rowcount == 0:
                    # Duplicate anchor key in the fragment; the first record wins.
                    continue
                entry_id = cursor.lastrowid
                conn.executemany(
                    """
                    INSERT INTO targets
                        (entry_id, position, page, fragment, in_parent, description_html, description)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            entry_id,
                            position,
                            target.page,
                            target.fragment,
                            int(target.in_parent),
                            target.description_html,
                            target.description,
                        )
                        for position, target in enumerate(entry.targets)
                    ],
                )
            conn.commit()

    @staticmethod
    def _delete_entries(conn: sqlite3.Connection, file_id: int) -> None:
        """Delete the records and targets stored for a fragment.

        Args:
            conn: Open connection, inside the caller's transaction.
            file_id: Row id of the fragment.
        """
        conn.execute(
            "DELETE FROM targets WHERE entry_id IN (SELECT id FROM entries WHERE index_file_id = ?)",
            (file_id,),
        )
        conn.execute("DELETE FROM entries WHERE index_file_id = ?", (file_id,))

    def search(self, query: str, section: str | None = None, limit: int = 20) -> list[SearchResult]:
        """Search labels for a case-insensitive substring.

        Args:
            query: Search query string.
            section: Optional section filter, e.g. ``functions``.
            limit: Maximum number of results.

        Returns:
            List of SearchResult instances, exact matches first, then by
            position of the match, then alphabetically.
        """
        needle = normalise_query(query)
        if not needle:
            return []

        with self._get_connection() as conn:
            sql = """
                SELECT
                    e.id,
                    e.anchor_key,
                    e.label,
                    f.path,
                    f.section,
                    e.search_key = ? AS exact,
                    instr(e.search_key, ?) AS position
                FROM entries e
                JOIN index_files f ON e.index_file_id = f.id
                WHERE instr(e.search_key, ?) > 0
            """
            params: list[str | int] = [needle, needle, needle]

            if section:
                sql += " AND f.section = ?"
                params.append(section)

            sql += " ORDER BY exact DESC, position, e.search_key, e.anchor_key, f.path LIMIT ?"
            params.append(limit)

            results = []
            for row in conn.execute(sql, params).fetchall():
                score = 1.0 if row["exact"] else 1.0 / row["position"]
                results.append(
                    SearchResult(
                        path=row["path"],
                        section=row["section"],
                        anchor_key=row["anchor_key"],
                        label=row["label"],
                        targets=self._load_targets(conn, row["id"]),
                        score=score,
                    )
                )
            return results

    def search_descriptions(self, query: str, section: str | None = None, limit: int = 20) -> list[SearchResult]:
        """Full-text search over target descriptions (scopes and signatures).

        Args:
            query: Search query string.
            section: Optional section filter.
            limit: Maximum number of results.

        Returns:
            One SearchResult per matching target, ordered by relevance.
        """
        if not query.strip():
            return []
        sanitised_query = self._sanitise_query(query.strip())

        with self._get_connection() as conn:
            sql = """
                SELECT
                    t.id AS target_id,
                    e.anchor_key,
                    e.label,
                    f.path,
                    f.section,
                    snippet(targets_fts, 0, '<mark>', '</mark>', '...', 32) AS snippet,
                    bm25(targets_fts) AS score
                FROM targets_fts
                JOIN targets t ON targets_fts.rowid = t.id
                JOIN entries e ON t.entry_id = e.id
                JOIN index_files f ON e.index_file_id = f.id
                WHERE targets_fts MATCH ?
            """
            params: list[str | int] = [sanitised_query]

            if section:
                sql += " AND f.section = ?"
                params.append(section)

            sql += " ORDER BY score LIMIT ?"
            params.append(limit)

            results = []
            for row in conn.execute(sql, params).fetchall():
                target_row = conn.execute("SELECT * FROM targets WHERE id = ?", (row["target_id"],)).fetchone()
                results.append(
                    SearchResult(
                        path=row["path"],
                        section=row["section"],
                        anchor_key=row["anchor_key"],
                        label=row["label"],
                        targets=[self._row_to_target(target_row)],
                        score=abs(row["score"]),  # BM25 returns negative scores
                        snippet=row["snippet"],
                    )
                )
            return results

    def get_entry(self, anchor_key: str, section: str | None = None) -> SearchResult | None:
        """Retrieve a record by anchor key.

        Args:
            anchor_key: Anchor key of the record.
            section: Optional section, when the key is stored in several sections.

        Returns:
            SearchResult instance or None if not found.
        """
        with self._get_connection() as conn:
            sql = """
                SELECT e.id, e.anchor_key, e.label, f.path, f.section
                FROM entries e
                JOIN index_files f ON e.index_file_id = f.id
                WHERE e.anchor_key = ?
            """
            params: list[str] = [anchor_key]
            if section:
                sql += " AND f.section = ?"
                params.append(section)
            sql += " ORDER BY f.path LIMIT 1"

            row = conn.execute(sql, params).fetchone()
            if row:
                return SearchResult(
                    path=row["path"],
                    section=row["section"],
                    anchor_key=row["anchor_key"],
                    label=row["label"],
                    targets=self._load_targets(conn, row["id"]),
                    score=1.0,
                )
            return None

    def list_sections(self) -> list[tuple[str, str | None, int]]:
        """Return every indexed section with its label and record count."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT f.section, MAX(f.section_label) AS section_label, COUNT(e.id) AS entry_count
                FROM index_files f
                LEFT JOIN entries e ON e.index_file_id = f.id
                GROUP BY f.section
                ORDER BY f.section
                """
            )
            return [(row["section"], row["section_label"], row["entry_count"]) for row in cursor.fetchall()]

    def _load_targets(self, conn: sqlite3.Connection, entry_id: int) -> list[SearchTarget]:
        """Load the targets of a record in their original order.

        Args:
            conn: Open connection.
            entry_id: Row id of the record.

        Returns:
            List of SearchTarget instances.
        """
        cursor = conn.execute("SELECT * FROM targets WHERE entry_id = ? ORDER BY position", (entry_id,))
        return [self._row_to_target(row) for row in cursor.fetchall()]

    @staticmethod
    def _row_to_target(row: sqlite3.Row) -> SearchTarget:
        """Convert a ``targets`` row to a SearchTarget."""
        return SearchTarget(
            page=row["page"],
            fragment=row["fragment"],
            in_parent=bool(row["in_parent"]),
            description_html=row["description_html"],
        )

    def clear(self) -> None:
        """Clear all indexed records from the database."""
        with self._get_connection() as conn:
            conn.execute("DELETE FROM targets")
            conn.execute("DELETE FROM entries")
            conn.execute("DELETE FROM index_files")
            conn.commit()

    def get_index_file_count(self) -> int:
        """Return the total number of indexed fragments.

        Returns:
            Count of fragments in the database.
        """
        with self._get_connection() as conn:
            result = conn.execute("SELECT COUNT(*) FROM index_files").fetchone()
            return int(result[0]) if result else 0

    def get_entry_count(self) -> int:
        """Return the total number of indexed records.

        Returns:
            Count of records in the database.
        """
        with self._get_connection() as conn:
            result = conn.execute("SELECT COUNT(*) FROM entries").fetchone()
            return int(result[0]) if result else 0
