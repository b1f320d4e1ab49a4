"""Where gcadapter looks for its config file."""

from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "gcadapter"
CONFIG_FILE = "config.toml"
CONFIG_ENV = "GCADAPTER_CONFIG"


def config_dir() -> Path:
    """$XDG_CONFIG_HOME/gcadapter, falling back to ~/.config/gcadapter.

    The directory is not created; writers create it when they save.
    """
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / APP_NAME


def default_config_path() -> Path:
    """Config file used when no --config is given. $GCADAPTER_CONFIG wins."""
    if env_path := os.environ.get(CONFIG_ENV):
        return Path(env_path).expanduser()
    return config_dir() / CONFIG_FILE
