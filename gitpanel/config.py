"""Environment configuration loader for gitpanel.

Loads settings from layered .env files into ``os.environ``.

Precedence (highest wins):
    1. Already-set environment variables
    2. Local ``.env`` file (cwd)
    3. ``~/.config/gitpanel/config.env`` (XDG_CONFIG_HOME respected)
    4. Built-in defaults in :mod:`gitpanel.settings`
"""

from __future__ import annotations

import os
from pathlib import Path


def config_dir() -> Path:
    """Return the gitpanel config directory (XDG_CONFIG_HOME/gitpanel)."""
    base = os.environ.get("XDG_CONFIG_HOME", "").strip()
    if not base:
        base = os.path.join(Path.home(), ".config")
    return Path(base) / "gitpanel"


def data_dir_default() -> Path:
    """Return the default data directory for installed packages."""
    base = os.environ.get("XDG_DATA_HOME", "").strip()
    if not base:
        base = os.path.join(Path.home(), ".local", "share")
    return Path(base) / "gitpanel"


def parse_env_file(path: str | Path) -> dict[str, str]:
    """Parse a .env file into key-value pairs.

    Understands ``KEY=value``, quoted values, an optional ``export`` prefix,
    comment lines and inline comments after unquoted values. Unreadable files
    yield an empty dict.
    """
    result: dict[str, str] = {}
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return result

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].strip()

        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        value = value.strip()

        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]
        else:
            marker = value.find(" #")
            if value.startswith("#"):
                value = ""
            elif marker >= 0:
                value = value[:marker].rstrip()

        result[key] = value

    return result


def load_config() -> None:
    """Load configuration from .env files into ``os.environ``.

    Already-set environment variables are never overwritten.
    """
    merged: dict[str, str] = {}
    merged.update(parse_env_file(config_dir() / "config.env"))
    merged.update(parse_env_file(Path.cwd() / ".env"))

    for key, value in merged.items():
        if key not in os.environ:
            os.environ[key] = value
