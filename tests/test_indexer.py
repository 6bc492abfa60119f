"""Tests for search-index indexer."""

import logging
import shutil
import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from doxygen_search.database import SymbolDatabase
from doxygen_search.indexer import DoxygenSearchIndexer


@pytest.fixture
def db(tmp_path: Path) -> SymbolDatabase:
    """Create a temporary database.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        SymbolDatabase instance.
    """
    db_path = tmp_path / "test.db"
    return SymbolDatabase(db_path)


@pytest.fixture
def indexer(db: SymbolDatabase) -> DoxygenSearchIndexer:
    """Create an indexer instance.

    Args:
        db: SymbolDatabase fixture.

    Returns:
        DoxygenSearchIndexer instance.
    """
    return DoxygenSearchIndexer(db)


def test_index_from_path(indexer: DoxygenSearchIndexer, search_dir: Path) -> None:
    """Test indexing a local search directory."""
    count = indexer.index_from_path(search_dir)

    assert count == 2
    assert indexer.database.get_index_file_count() == 2
    assert indexer.database.get_entry_count() == 9


def test_index_applies_section_labels(indexer: DoxygenSearchIndexer, search_dir: Path) -> None:
    """Test that labels from searchdata.js are stored with each section."""
    indexer.index_from_path(search_dir)

    assert indexer.database.list_sections() == [("classes", "Classes", 2), ("functions", "Functions", 7)]


def test_index_without_searchdata(indexer: DoxygenSearchIndexer, search_dir: Path) -> None:
    """Test indexing when searchdata.js is missing."""
    (search_dir / "searchdata.js").unlink()

    indexer.index_from_path(search_dir)

    assert ("functions", None, 7) in indexer.database.list_sections()


def test_index_from_path_nonexistent(indexer: DoxygenSearchIndexer, tmp_path: Path) -> None:
    """Test indexing from a nonexistent path raises error."""
    nonexistent_path = tmp_path / "nonexistent"

    with pytest.raises(ValueError, match="Search index path does not exist"):
        indexer.index_from_path(nonexistent_path)


def test_index_skips_invalid_files(
    indexer: DoxygenSearchIndexer, search_dir: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Test that malformed fragments are skipped gracefully."""
    (search_dir / "variables_0.js").write_text("var searchData=[['broken'")
    (search_dir / "enums_0.js").write_bytes(b"\xff\xfe")

    with caplog.at_level(logging.WARNING):
        count = indexer.index_from_path(search_dir)

    assert count == 2
    assert "Failed to parse" in caplog.text
    assert "variables_0.js" in caplog.text


def test_index_logs_validation_issues(
    indexer: DoxygenSearchIndexer, search_dir: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Test that validation issues are logged but the fragment is stored."""
    (search_dir / "all_0.js").write_text(
        "var searchData=[['pose_0',['Pose',['../a.html#x',1,'mmath']]],['pose_0',['pose',['../b.html#y',1,'m']]]];"
    )

    with caplog.at_level(logging.WARNING):
        count = indexer.index_from_path(search_dir)

    assert count == 3
    assert "duplicate-anchor" in caplog.text
    assert indexer.database.get_entry("pose_0") is not None


def test_reindex_is_idempotent(indexer: DoxygenSearchIndexer, search_dir: Path) -> None:
    """Test that indexing the same directory twice does not duplicate records."""
    indexer.index_from_path(search_dir)
    indexer.index_from_path(search_dir)

    assert indexer.database.get_entry_count() == 9


def test_rebuild_index_clears_existing(indexer: DoxygenSearchIndexer, search_dir: Path) -> None:
    """Test that rebuild_index replaces the whole index with the clone's fragments."""
    indexer.index_from_path(search_dir)
    (search_dir / "classes_0.js").unlink()

    def fake_clone(repo_url: str, target_path: Path, branch: str, search_path: str, shallow: bool) -> None:
        shutil.copytree(search_dir, target_path / search_path)

    with patch.object(indexer, "_clone_repository", side_effect=fake_clone):
        count = indexer.rebuild_index("https://example.com/mmath.git")

    assert count == 1
    assert indexer.database.get_index_file_count() == 1
    assert indexer.database.get_entry_count() == 7


def test_rebuild_index_keeps_data_when_clone_fails(indexer: DoxygenSearchIndexer, search_dir: Path) -> None:
    """Test that a failed clone leaves the existing index untouched."""
    indexer.index_from_path(search_dir)

    error = subprocess.CalledProcessError(128, ["git", "clone"])
    with patch.object(indexer, "_clone_repository", side_effect=error), pytest.raises(subprocess.CalledProcessError):
        indexer.rebuild_index("https://example.com/missing.git")

    assert indexer.database.get_entry_count() == 9


def test_rebuild_index_keeps_data_when_search_path_missing(
    indexer: DoxygenSearchIndexer, search_dir: Path
) -> None:
    """Test that a clone without the search directory leaves the index untouched."""
    indexer.index_from_path(search_dir)

    with (
        patch.object(indexer, "_clone_repository"),
        pytest.raises(ValueError, match="Search index path does not exist"),
    ):
        indexer.rebuild_index("https://example.com/mmath.git", search_path="docs/typo")

    assert indexer.database.get_entry_count() == 9


def test_index_from_path_with_clear(indexer: DoxygenSearchIndexer, search_dir: Path, tmp_path: Path) -> None:
    """Test that clear replaces fragments of an earlier build."""
    indexer.index_from_path(search_dir)
    other_dir = tmp_path / "other"
    other_dir.mkdir()
    shutil.copy(search_dir / "classes_0.js", other_dir / "classes_0.js")

    count = indexer.index_from_path(other_dir, clear=True)

    assert count == 1
    assert indexer.database.get_index_file_count() == 1
    assert indexer.database.get_entry_count() == 2


def test_index_from_missing_path_with_clear_keeps_data(
    indexer: DoxygenSearchIndexer, search_dir: Path, tmp_path: Path
) -> None:
    """Test that a mistyped directory never clears the index."""
    indexer.index_from_path(search_dir)

    with pytest.raises(ValueError, match="Search index path does not exist"):
        indexer.index_from_path(tmp_path / "typo", clear=True)

    assert indexer.database.get_entry_count() == 9


def test_index_from_git(indexer: DoxygenSearchIndexer, search_dir: Path) -> None:
    """Test that index_from_git indexes the search directory of the clone."""
    with (
        patch.object(indexer, "_clone_repository") as mock_clone,
        patch.object(indexer, "_index_directory", return_value=2) as mock_index,
    ):
        count = indexer.index_from_git("https://example.com/mmath.git", "develop", "docs/html/search")

    assert count == 2
    repo_url, target_path, branch, search_path, shallow = mock_clone.call_args[0]
    assert repo_url == "https://example.com/mmath.git"
    assert branch == "develop"
    assert search_path == "docs/html/search"
    assert shallow is True
    assert mock_index.call_args[0][0] == target_path / "docs/html/search"


@patch("subprocess.run")
def test_clone_repository(mock_run: Mock, indexer: DoxygenSearchIndexer, tmp_path: Path) -> None:
    """Test that clone_repository runs correct git commands."""
    target_path = tmp_path / "repository"

    indexer._clone_repository("https://example.com/mmath.git", target_path, "main", "doc/html/search", shallow=True)

    assert mock_run.call_count == 2
    clone_call = mock_run.call_args_list[0]
    assert "git" in clone_call[0][0]
    assert "clone" in clone_call[0][0]
    assert "--branch" in clone_call[0][0]
    assert "main" in clone_call[0][0]
    assert "https://example.com/mmath.git" in clone_call[0][0]

    sparse_call = mock_run.call_args_list[1]
    assert "sparse-checkout" in sparse_call[0][0]
    assert "doc/html/search" in sparse_call[0][0]


@patch("subprocess.run")
def test_clone_repository_without_sparse(mock_run: Mock, indexer: DoxygenSearchIndexer, tmp_path: Path) -> None:
    """Test clone without sparse checkout."""
    target_path = tmp_path / "repository"

    indexer._clone_repository("https://example.com/mmath.git", target_path, "main", "doc/html/search", shallow=False)

    assert mock_run.call_count == 1
    assert "clone" in mock_run.call_args[0][0]
    assert "--depth" not in mock_run.call_args[0][0]
