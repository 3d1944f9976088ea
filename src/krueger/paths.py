"""Filesystem locations used by krueger."""

import os
from pathlib import Path

APP_NAME = "krueger"
CONFIG_STEM = ".krueger"
CONFIG_SUFFIXES = (".yaml", ".yml", ".json")


def config_search_paths() -> list[Path]:
    """Candidate config files, in lookup order: ``~`` first, then ``~/.config``."""
    home = Path.home()
    return [
        directory / (CONFIG_STEM + suffix)
        for directory in (home, home / ".config")
        for suffix in CONFIG_SUFFIXES
    ]


def default_config_path() -> Path:
    return Path.home() / ".config" / (CONFIG_STEM + ".yaml")


def app_data_dir() -> Path:
    base = os.environ.get("XDG_STATE_HOME") or os.environ.get("APPDATA")
    if base:
        return Path(base) / APP_NAME
    return Path.home() / ".local" / "state" / APP_NAME


def log_path() -> Path:
    return app_data_dir() / "krueger.log"


def ensure_app_dirs() -> None:
    app_data_dir().mkdir(parents=True, exist_ok=True)
