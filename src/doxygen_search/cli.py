"""doxygen-search command line interface.

Usage:
  doxygen-search <command> [options]

Commands:
  index     Index a Doxygen ``html/search`` directory (local or from git).
  search    Search indexed labels, or signatures with ``--descriptions``.
  validate  Check the fragments of a search directory without storing them.
  stats     Show indexed sections and record counts.
"""

import argparse
import logging
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from doxygen_search.config import Settings, check_log_level
from doxygen_search.database import SymbolDatabase
from doxygen_search.indexer import DoxygenSearchIndexer
from doxygen_search.parser import SearchIndexParser
from doxygen_search.renderer import EMPTY_STATE, render_html, resolve_url
from doxygen_search.validator import validate_index_file

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


def _positive_int(value: str) -> int:
    """Parse a strictly positive integer option.

    Args:
        value: Raw option value.

    Returns:
        Parsed integer.

    Raises:
        argparse.ArgumentTypeError: If the value is not an integer of at least 1.
    """
    try:
        number = int(value)
    except ValueError:
        number = 0
    if number < 1:
        msg = f"must be a positive integer, got {value!r}"
        raise argparse.ArgumentTypeError(msg)
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one sub-command per operation.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="doxygen-search",
        description="Index and search Doxygen search-index fragments.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--db", type=Path, help="SQLite database path (overrides DOXYGEN_SEARCH_DB_PATH)")
    parser.add_argument("--log-level", help="Logging level (overrides DOXYGEN_SEARCH_LOG_LEVEL)")

    subparsers = parser.add_subparsers(title="commands", metavar="<command>", dest="command")
    subparsers.required = True

    index = subparsers.add_parser("index", help="Index a search directory")
    source = index.add_mutually_exclusive_group()
    source.add_argument("--path", type=Path, help="Local html/search directory")
    source.add_argument("--repo", help="Git repository URL (defaults to DOXYGEN_SEARCH_REPO_URL)")
    index.add_argument("--branch", help="Git branch")
    index.add_argument("--search-path", help="Search directory inside the repository")
    index.add_argument("--rebuild", action="store_true", help="Replace the whole index once the new source has been parsed")
    index.set_defaults(handler=_cmd_index)

    search = subparsers.add_parser("search", help="Search indexed labels")
    search.add_argument("query")
    search.add_argument("--section", help="Restrict to one section, e.g. functions")
    search.add_argument("--limit", type=_positive_int, help="Maximum number of results")
    search.add_argument("--descriptions", action="store_true", help="Full-text search over signatures")
    search.add_argument("--html", action="store_true", help="Print an HTML fragment of links")
    search.set_defaults(handler=_cmd_search)

    validate = subparsers.add_parser("validate", help="Check fragments of a search directory")
    validate.add_argument("path", type=Path)
    validate.set_defaults(handler=_cmd_validate)

    stats = subparsers.add_parser("stats", help="Show indexed sections")
    stats.set_defaults(handler=_cmd_stats)

    return parser


def _open_database(settings: Settings) -> SymbolDatabase:
    """Open the configured database, creating its directory if needed.

    Args:
        settings: Runtime settings.

    Returns:
        SymbolDatabase instance.
    """
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    return SymbolDatabase(settings.db_path)


def _cmd_index(args: argparse.Namespace, settings: Settings) -> int:
    """Index a local directory or a git repository.

    Args:
        args: Parsed command line arguments.
        settings: Runtime settings.

    Returns:
        Exit status.
    """
    database = _open_database(settings)
    indexer = DoxygenSearchIndexer(database)

    if args.path is not None:
        count = indexer.index_from_path(args.path, clear=args.rebuild)
    else:
        repo_url = args.repo or settings.repo_url
        if not repo_url:
            err_console.print("[red]No --path or --repo given and DOXYGEN_SEARCH_REPO_URL is not set.[/red]")
            return 2
        branch = args.branch or settings.branch
        search_path = args.search_path or settings.search_path
        if args.rebuild:
            count = indexer.rebuild_index(repo_url, branch, search_path)
        else:
            count = indexer.index_from_git(repo_url, branch, search_path)

    console.print(f"[green]Indexed {count} fragments[/green] ({database.get_entry_count()} records in total)")
    return 0


def _cmd_search(args: argparse.Namespace, settings: Settings) -> int:
    """Search labels or descriptions and print the matches.

    Args:
        args: Parsed command line arguments.
        settings: Runtime settings.

    Returns:
        Exit status.
    """
    database = _open_database(settings)
    limit = args.limit if args.limit is not None else settings.result_limit
    if args.descriptions:
        results = database.search_descriptions(args.query, args.section, limit)
    else:
        results = database.search(args.query, args.section, limit)

    if args.html:
        print(render_html(results, settings.base_url))
        return 0

    if not results:
        console.print(f"[yellow]{EMPTY_STATE}[/yellow]")
        return 0

    table = Table(show_lines=False)
    table.add_column("Label", style="bold")
    table.add_column("Section")
    table.add_column("Description")
    table.add_column("Link", overflow="fold")
    for result in results:
        for position, target in enumerate(result.targets):
            table.add_row(
                escape(result.label) if position == 0 else "",
                result.section if position == 0 else "",
                escape(target.description),
                escape(resolve_url(target, settings.base_url)),
            )
    console.print(table)
    return 0


def _cmd_validate(args: argparse.Namespace, settings: Settings) -> int:
    """Check every fragment of a search directory without storing it.

    Args:
        args: Parsed command line arguments.
        settings: Runtime settings.

    Returns:
        Exit status, 1 when any problem was found.
    """
    search_path: Path = args.path
    if not search_path.is_dir():
        err_console.print(f"[red]Not a directory:[/red] {escape(str(search_path))}")
        return 2

    parser = SearchIndexParser()
    problems = 0
    fragment_files = sorted(
        p for p in search_path.glob("*.js") if p.name not in DoxygenSearchIndexer.SKIPPED_FILES
    )
    for file_path in fragment_files:
        index_file = parser.parse_file(file_path, search_path)
        if index_file is None:
            console.print(f"[red]{escape(file_path.name)}: cannot be parsed[/red]")
            problems += 1
            continue
        for issue in validate_index_file(index_file):
            tag = escape(f"[{issue.code}]")
            console.print(f"[yellow]{escape(issue.path)}[/yellow] {escape(issue.anchor_key)} {tag} {escape(issue.message)}")
            problems += 1

    if problems:
        console.print(f"[red]{problems} problem(s) in {len(fragment_files)} fragment(s)[/red]")
        return 1
    console.print(f"[green]{len(fragment_files)} fragment(s) OK[/green]")
    return 0


def _cmd_stats(args: argparse.Namespace, settings: Settings) -> int:
    """Print indexed sections and record counts.

    Args:
        args: Parsed command line arguments.
        settings: Runtime settings.

    Returns:
        Exit status.
    """
    database = _open_database(settings)
    table = Table(title=escape(str(settings.db_path)))
    table.add_column("Section")
    table.add_column("Label")
    table.add_column("Records", justify="right")
    for section, label, count in database.list_sections():
        table.add_row(escape(section), escape(label or ""), str(count))
    console.print(table)
    console.print(f"{database.get_index_file_count()} fragments, {database.get_entry_count()} records")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line interface.

    Args:
        argv: Arguments to parse instead of ``sys.argv``.

    Returns:
        Exit status.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        if args.log_level:
            settings.log_level = check_log_level(args.log_level, "--log-level")
    except ValueError as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        return 2
    if args.db is not None:
        settings.db_path = args.db

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return int(args.handler(args, settings))
    except ValueError as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        return 1
    except subprocess.CalledProcessError as exc:
        logger.error("git failed: %s", exc.stderr.decode(errors="replace") if exc.stderr else exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
