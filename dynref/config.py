"""Configuration management for dynref.

Loads environment variables (optionally from a .env file) and provides
centralized config access.
"""
import os
from pathlib import Path
from typing import Optional, Set

from dotenv import load_dotenv

__version__ = "0.3.0"

DEFAULT_MATCHERS_FILE = ".dynrefrc.json"

DEFAULT_EXCLUDED_DIRS = frozenset({
    'node_modules', 'dist', '.next', 'build', 'out', 'coverage',
    '.git', '.turbo', '.cache', '.vercel',
})

_TRUTHY = {'1', 'true', 'yes', 'on'}


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_file: Optional[Path] = None):
        """Initialize config by loading a .env file.

        Args:
            env_file: Explicit .env path. Defaults to ``.env`` in the current
                working directory; a missing file is not an error.
        """
        load_dotenv(env_file or Path.cwd() / ".env")

    @property
    def dev_mode(self) -> bool:
        """Diagnostic logging gate.

        Enabled by DYNREF_DEV_MODE, or by NODE_ENV=development so JS tooling
        setups get diagnostics without extra configuration.
        """
        flag = os.getenv("DYNREF_DEV_MODE", "").strip().lower()
        if flag:
            return flag in _TRUTHY
        return os.getenv("NODE_ENV", "").strip().lower() == "development"

    @property
    def matchers_file(self) -> Optional[Path]:
        """Explicit custom matcher file, or None to use the workspace default."""
        value = os.getenv("DYNREF_MATCHERS_FILE")
        return Path(value) if value else None

    @property
    def max_workers(self) -> Optional[int]:
        """Worker threads for per-file analysis (None lets the executor decide)."""
        value = os.getenv("DYNREF_MAX_WORKERS")
        if not value:
            return None
        try:
            workers = int(value)
        except ValueError:
            return None
        return workers if workers > 0 else None

    @property
    def excluded_dirs(self) -> Set[str]:
        """Directory names skipped during workspace enumeration.

        DYNREF_EXCLUDE_DIRS (comma separated) extends the defaults.
        """
        extra = os.getenv("DYNREF_EXCLUDE_DIRS", "")
        return set(DEFAULT_EXCLUDED_DIRS) | {d.strip() for d in extra.split(",") if d.strip()}


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config(env_file: Optional[Path] = None) -> Config:
    """Replace the singleton, e.g. after the environment changed."""
    global _config
    _config = Config(env_file)
    return _config
