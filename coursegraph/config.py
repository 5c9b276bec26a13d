"""
Centralized configuration for coursegraph.

Settings come from environment variables; `load_environment()` reads
`.env.local` (local overrides) and `.env` from the working directory first.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_SKIP_DIRECTORY_PATTERNS = {"wip", "work in progress", "draft", "drafts"}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def load_environment(directory: Path | None = None) -> None:
    """Load .env.local first, then .env as fallback."""
    directory = directory or Path.cwd()
    load_dotenv(directory / ".env.local")
    load_dotenv(directory / ".env")


def get_worker_count() -> int:
    """Get the number of parallel file parsers (defaults to CPU count)."""
    value = os.getenv("COURSEGRAPH_WORKERS", "").strip()
    if value:
        try:
            return max(1, int(value))
        except ValueError:
            logging.getLogger(__name__).warning(
                f"Ignoring invalid COURSEGRAPH_WORKERS value: {value!r}"
            )
    return os.cpu_count() or 1


def get_log_level() -> str:
    """Get log level name from env or default."""
    return os.getenv("COURSEGRAPH_LOG_LEVEL", "WARNING").upper()


def is_strict_mode() -> bool:
    """Check if warnings should be treated as errors by default."""
    return os.getenv("COURSEGRAPH_STRICT", "").lower() in ("true", "1", "yes")


def get_skip_directory_patterns() -> set[str]:
    """
    Get directory name patterns to skip during discovery.

    COURSEGRAPH_SKIP_DIRS is a comma-separated list; it replaces the defaults.
    """
    value = os.getenv("COURSEGRAPH_SKIP_DIRS")
    if value is None:
        return set(DEFAULT_SKIP_DIRECTORY_PATTERNS)
    return {part.strip().lower() for part in value.split(",") if part.strip()}


def configure_logging(verbose: bool = False) -> None:
    """Set up root logging for CLI runs."""
    level = logging.DEBUG if verbose else getattr(logging, get_log_level(), logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
