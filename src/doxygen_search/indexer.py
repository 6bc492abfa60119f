"""Indexer for Doxygen HTML search-index fragments."""

import logging
import subprocess
import tempfile
from pathlib import Path

from doxygen_search.database import SymbolDatabase
from doxygen_search.models import IndexFile
from doxygen_search.parser import SearchIndexParser
from doxygen_search.validator import validate_index_file

logger = logging.getLogger(__name__)


class DoxygenSearchIndexer:
    """Indexes the ``html/search`` directory of a Doxygen build."""

    DEFAULT_SEARCH_PATH = "doc/html/search"
    SECTION_LABELS_FILE = "searchdata.js"
    SKIPPED_FILES = frozenset({SECTION_LABELS_FILE, "search.js"})

    def __init__(self, database: SymbolDatabase) -> None:
        """Initialise indexer with database instance.

        Args:
            database: SymbolDatabase instance for storing records.
        """
        self.database = database
        self.parser = SearchIndexParser()

    def index_from_git(
        self,
        repo_url: str,
        branch: str = "main",
        search_path: str = DEFAULT_SEARCH_PATH,
        shallow: bool = True,
        clear: bool = False,
    ) -> int:
        """Clone a repository with generated documentation and index it.

        Args:
            repo_url: Git URL of the repository.
            branch: Git branch to clone.
            search_path: Search directory relative to the repository root.
            shallow: Whether to do a shallow clone.
            clear: Whether to drop the existing index once the clone has been parsed.

        Returns:
            Number of fragments indexed.
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            repo_path = Path(temp_dir) / "repository"
            self._clone_repository(repo_url, repo_path, branch, search_path, shallow)
            return self._index_directory(repo_path / search_path, clear)

    def index_from_path(self, search_path: Path, clear: bool = False) -> int:
        """Index fragments from a local search directory.

        Args:
            search_path: Path to the ``html/search`` directory.
            clear: Whether to drop the existing index once the directory has been parsed.

        Returns:
            Number of fragments indexed.
        """
        return self._index_directory(search_path, clear)

    def _clone_repository(
        self,
        repo_url: str,
        target_path: Path,
        branch: str,
        search_path: str,
        shallow: bool,
    ) -> None:
        """Clone the documentation repository.

        Args:
            repo_url: Git URL of the repository.
            target_path: Directory to clone into.
            branch: Git branch to clone.
            search_path: Directory to restrict a sparse checkout to.
            shallow: Whether to do a shallow clone.
        """
        cmd = ["git", "clone"]
        if shallow:
            cmd.extend(["--depth", "1", "--filter=blob:none", "--sparse"])
        cmd.extend(["--branch", branch, repo_url, str(target_path)])

        logger.info("Cloning %s (%s)...", repo_url, branch)
        subprocess.run(cmd, check=True, capture_output=True)  # noqa: S603

        if shallow:
            logger.info("Setting up sparse checkout for %s...", search_path)
            subprocess.run(  # noqa: S603
                ["git", "-C", str(target_path), "sparse-checkout", "set", search_path],  # noqa: S607
                check=True,
                capture_output=True,
            )

        logger.info("Repository cloned successfully")

    def _index_directory(self, search_path: Path, clear: bool = False) -> int:
        """Index all fragments in a search directory.

        Every fragment is parsed before the database is touched, so a
        missing directory never leaves a cleared index behind.

        Args:
            search_path: Path to the search directory.
            clear: Whether to drop the existing index before storing.

        Returns:
            Number of fragments indexed.

        Raises:
            ValueError: If the search directory does not exist.
        """
        if not search_path.is_dir():
            msg = f"Search index path does not exist: {search_path}"
            raise ValueError(msg)

        index_files = self._parse_directory(search_path)

        if clear:
            logger.info("Clearing existing index...")
            self.database.clear()

        for index_file in index_files:
            self.database.upsert_index_file(index_file)
            logger.debug("Indexed: %s (%d entries)", index_file.path, len(index_file.entries))

        logger.info("Successfully indexed %d fragments", len(index_files))
        return len(index_files)

    def _parse_directory(self, search_path: Path) -> list[IndexFile]:
        """Parse and check every fragment of a search directory.

        Args:
            search_path: Path to the search directory.

        Returns:
            Parsed fragments with their section labels; unparseable ones are
            logged and left out.
        """
        section_labels = self._load_section_labels(search_path)
        fragment_files = sorted(p for p in search_path.glob("*.js") if p.name not in self.SKIPPED_FILES)

        logger.info("Found %d search-index fragments to index", len(fragment_files))

        index_files = []
        for file_path in fragment_files:
            index_file = self.parser.parse_file(file_path, search_path)
            if index_file is None:
                logger.warning("Failed to parse: %s", file_path)
                continue

            index_file.section_label = section_labels.get(index_file.section)
            for issue in validate_index_file(index_file):
                logger.warning("%s: %s [%s] %s", issue.path, issue.anchor_key, issue.code, issue.message)
            index_files.append(index_file)
        return index_files

    def _load_section_labels(self, search_path: Path) -> dict[str, str]:
        """Read section labels from ``searchdata.js`` if the build has one.

        Args:
            search_path: Path to the search directory.

        Returns:
            Mapping of section name to label; empty when unavailable.
        """
        labels_file = search_path / self.SECTION_LABELS_FILE
        if not labels_file.is_file():
            return {}
        try:
            return self.parser.parse_section_labels(labels_file.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError):
            logger.warning("Failed to read section labels: %s", labels_file)
            return {}

    def rebuild_index(self, repo_url: str, branch: str = "main", search_path: str = DEFAULT_SEARCH_PATH) -> int:
        """Replace the whole index with a fresh clone.

        The existing index is only cleared after the clone succeeded and
        its search directory was found.

        Args:
            repo_url: Git URL of the repository.
            branch: Git branch to index from.
            search_path: Search directory relative to the repository root.

        Returns:
            Number of fragments indexed.
        """
        return self.index_from_git(repo_url, branch, search_path, clear=True)
