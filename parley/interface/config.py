"""
User configuration persistence.

Stores settings like the default rules profile and log level in a JSON file.
"""

import json
from pathlib import Path
from typing import TypedDict


class Config(TypedDict, total=False):
    """User configuration."""
    rules_profile: str  # Profile id for new negotiations
    log_level: str  # DEBUG, INFO, WARNING, ...
    negotiations_dir: str  # Where negotiation documents live


DEFAULT_CONFIG: Config = {
    "rules_profile": "draw-steel-v1.01b",
    "log_level": "INFO",
    "negotiations_dir": "negotiations",
}


def get_config_path(data_dir: Path | str = ".") -> Path:
    """Get path to config file."""
    return Path(data_dir) / ".parley_config.json"


def load_config(data_dir: Path | str = ".") -> Config:
    """Load config from file, or return defaults if not found."""
    path = get_config_path(data_dir)

    if not path.exists():
        return DEFAULT_CONFIG.copy()

    try:
        with open(path, "r", encoding="utf-8") as f:
            saved = json.load(f)
        # Merge with defaults to handle missing keys
        config = DEFAULT_CONFIG.copy()
        if isinstance(saved, dict):
            config.update(saved)
        return config
    except (json.JSONDecodeError, IOError):
        return DEFAULT_CONFIG.copy()


def save_config(config: Config, data_dir: Path | str = ".") -> bool:
    """Save config to file. Returns True on success."""
    path = get_config_path(data_dir)
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        return True
    except IOError:
        return False


def set_config_value(key: str, value: str, data_dir: Path | str = ".") -> bool:
    """Save a single setting. Unknown keys are refused."""
    if key not in DEFAULT_CONFIG:
        return False
    config = load_config(data_dir)
    config[key] = value
    return save_config(config, data_dir)
