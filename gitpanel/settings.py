"""Centralized environment configuration for gitpanel.

All environment variables are read through this module using the GITPANEL_
prefix for consistency.

Usage:
    from gitpanel.settings import settings

    workers = settings.dispatch_workers()
"""

from __future__ import annotations

import os


def _get(name: str, default: str = "") -> str:
    """Get an environment variable value."""
    return os.environ.get(name, "").strip() or default


def _get_bool(name: str, default: bool = False) -> bool:
    """Get a boolean environment variable."""
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    return value.lower() in ("1", "true", "yes")


def _get_int(name: str, default: int = 0) -> int:
    """Get an integer environment variable."""
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Settings:
    """Centralized settings for gitpanel.

    Environment variables use the GITPANEL_ prefix.
    """

    # -------------------------------------------------------------------------
    # Server Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def dev_mode() -> bool:
        """Development mode enables verbose console logging defaults.

        Env: GITPANEL_DEV_MODE
        """
        return _get_bool("GITPANEL_DEV_MODE")

    @staticmethod
    def host() -> str:
        """Host to bind the HTTP server to.

        Env: GITPANEL_HOST (default: 127.0.0.1)
        """
        return _get("GITPANEL_HOST", default="127.0.0.1")

    @staticmethod
    def port() -> int:
        """Port to bind the HTTP server to.

        Env: GITPANEL_PORT (default: 8797)
        """
        return _get_int("GITPANEL_PORT", default=8797)

    @staticmethod
    def data_dir() -> str:
        """Directory for persistent data (changelist database).

        Env: GITPANEL_DATA_DIR

        Default depends on context:
            - Source checkout (pyproject.toml exists): ``./data/``
            - Installed package: ``~/.local/share/gitpanel/`` (XDG_DATA_HOME)
        """
        value = _get("GITPANEL_DATA_DIR")
        if value:
            return os.path.abspath(value)

        package_parent = os.path.join(os.path.dirname(__file__), "..")
        if os.path.isfile(os.path.join(package_parent, "pyproject.toml")):
            return os.path.abspath(os.path.join(package_parent, "data"))

        from gitpanel.config import data_dir_default

        return str(data_dir_default())

    # -------------------------------------------------------------------------
    # Diff Pipeline Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def dispatch_workers() -> int:
        """Number of worker processes used to build diffs.

        Env: GITPANEL_DISPATCH_WORKERS (default: 1)
        """
        return max(1, _get_int("GITPANEL_DISPATCH_WORKERS", default=1))

    @staticmethod
    def max_channels() -> int:
        """Client dispatch channels kept before the least recently used is dropped.

        Env: GITPANEL_MAX_CHANNELS (default: 64)
        """
        return max(1, _get_int("GITPANEL_MAX_CHANNELS", default=64))

    @staticmethod
    def git_binary() -> str:
        """Git executable used by the diff source.

        Env: GITPANEL_GIT_BINARY (default: git, resolved on PATH)
        """
        return _get("GITPANEL_GIT_BINARY", default="git")

    # -------------------------------------------------------------------------
    # Logging Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def log_level() -> str:
        """Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).

        Env: GITPANEL_LOG_LEVEL (default: INFO, DEBUG in dev mode)
        """
        default = "DEBUG" if Settings.dev_mode() else "INFO"
        return _get("GITPANEL_LOG_LEVEL", default=default).upper()

    @staticmethod
    def log_format() -> str:
        """Log format: "console" for dev-friendly, "json" for structured.

        Env: GITPANEL_LOG_FORMAT (default: console)
        """
        return _get("GITPANEL_LOG_FORMAT", default="console").lower()


settings = Settings()
