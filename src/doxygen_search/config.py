"""Configuration read from environment variables."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "DOXYGEN_SEARCH_"

DEFAULT_DB_PATH = Path("~/.cache/doxygen-search/index.db")


def check_log_level(level: str, source: str = f"{ENV_PREFIX}LOG_LEVEL") -> str:
    """Normalise a logging level name.

    Args:
        level: Level name such as ``info``.
        source: Where the value came from, for the error message.

    Returns:
        Upper-cased level name.

    Raises:
        ValueError: If ``logging`` does not know the level.
    """
    name = level.strip().upper()
    if not isinstance(logging.getLevelName(name), int):
        msg = f"{source} must be a logging level name, got {level!r}"
        raise ValueError(msg)
    return name
@dataclass
class Settings:
    """Runtime settings."""

    db_path: Path
    repo_url: str | None = None
    branch: str = "main"
    search_path: str = "doc/html/search"
    base_url: str | None = None
    log_level: str = "WARNING"
    result_limit: int = 20

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``DOXYGEN_SEARCH_*`` variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Returns:
            Settings instance.

        Raises:
            ValueError: If the result limit is not a positive integer or the
                log level is unknown.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name, "").strip()
            return value or None

        limit_text = get("RESULT_LIMIT") or "20"
        try:
            result_limit = int(limit_text)
        except ValueError:
            result_limit = 0
        if result_limit < 1:
            msg = f"{ENV_PREFIX}RESULT_LIMIT must be a positive integer, got {limit_text!r}"
            raise ValueError(msg)

        return cls(
            db_path=Path(get("DB_PATH") or DEFAULT_DB_PATH).expanduser(),
            repo_url=get("REPO_URL"),
            branch=get("BRANCH") or "main",
            search_path=get("INDEX_PATH") or "doc/html/search",
            base_url=get("BASE_URL"),
            log_level=check_log_level(get("LOG_LEVEL") or "WARNING"),
            result_limit=result_limit,
        )
