"""Configuration management for Pay Ledger.

Configuration is split into two files:

1. settings.json - Machine-specific settings
   - data_dir: where the ledger snapshot lives
   - profile: path to profile.yaml (optional, if not colocated)

2. profile.yaml - Ledger preferences
   - ledger.currencies: currency codes, primary first (default [ILS, JOD])
   - ledger.snapshot_file: snapshot file name inside data_dir

Config directory resolution:
1. PAY_LEDGER_CONFIG_PATH environment variable (if set)
2. ~/.config/pay-ledger/ (XDG_CONFIG_HOME fallback)

Data path resolution:
1. settings.json "data_dir" key
2. XDG_DATA_HOME/pay-ledger/ or ~/.local/share/pay-ledger/
"""

import json
import os
from pathlib import Path
from typing import Any, List, Optional

import yaml


APP_NAME = "pay-ledger"
SETTINGS_FILENAME = "settings.json"
PROFILE_FILENAME = "profile.yaml"
DEFAULT_SNAPSHOT_FILENAME = "ledger.json"
DEFAULT_CURRENCIES = ["ILS", "JOD"]


class ProfileNotFoundError(Exception):
    """Raised when no profile is found."""
    pass


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Resolution order:
    1. PAY_LEDGER_CONFIG_PATH environment variable
    2. ~/.config/pay-ledger/ (XDG_CONFIG_HOME)

    Returns:
        Path to the configuration directory
    """
    env_path = os.environ.get("PAY_LEDGER_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    return Path(xdg_config_home) / APP_NAME


def get_settings_path() -> Path:
    """Get the path to settings.json (may not exist yet)."""
    return get_config_dir() / SETTINGS_FILENAME


def load_settings() -> dict:
    """Load machine-specific settings from settings.json.

    Returns:
        Settings dictionary (empty dict if file doesn't exist)
    """
    settings_file = get_settings_path()

    if not settings_file.exists():
        return {}

    with open(settings_file, "r") as f:
        return json.load(f)


def save_settings(settings: dict) -> Path:
    """Save machine-specific settings to settings.json.

    Returns:
        Path to the saved settings file
    """
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    settings_file = config_dir / SETTINGS_FILENAME

    with open(settings_file, "w") as f:
        json.dump(settings, f, indent=2)

    return settings_file


def get_setting(key: str, default: Any = None) -> Any:
    """Get a setting value from settings.json."""
    return load_settings().get(key, default)


def set_setting(key: str, value: Any) -> Path:
    """Set a setting value in settings.json."""
    settings = load_settings()
    settings[key] = value
    return save_settings(settings)


def get_profile_path(require_exists: bool = False) -> Path:
    """Get the path to the profile.yaml file.

    Resolution order:
    1. settings.json "profile" key (if set)
    2. profile.yaml in config directory

    Raises:
        ProfileNotFoundError: If require_exists=True and no profile found
    """
    custom_profile = get_setting("profile")
    if custom_profile:
        profile_path = Path(custom_profile)
        if require_exists and not profile_path.exists():
            raise ProfileNotFoundError(f"Profile not found at configured path: {profile_path}")
        return profile_path

    profile_path = get_config_dir() / PROFILE_FILENAME
    if require_exists and not profile_path.exists():
        raise ProfileNotFoundError(f"No profile found at {profile_path}")
    return profile_path


def load_profile(require_exists: bool = False) -> dict:
    """Load ledger preferences from profile.yaml.

    Returns:
        Profile dictionary (empty dict if not required and not found)
    """
    profile_path = get_profile_path(require_exists=require_exists)

    if not profile_path.exists():
        return {}

    with open(profile_path, "r") as f:
        return yaml.safe_load(f) or {}


def save_profile(profile: dict, path: Optional[Path] = None) -> Path:
    """Save ledger preferences to profile.yaml."""
    if path is None:
        path = get_profile_path(require_exists=False)

    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.dump(profile, f, default_flow_style=False, sort_keys=False)

    return path


def get_profile_value(key: str, default: Any = None) -> Any:
    """Get a profile value by dot-notation key (e.g., "ledger.currencies")."""
    value = load_profile(require_exists=False)

    for part in key.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return default

    return value


def get_currencies() -> List[str]:
    """Configured currency codes, primary currency first."""
    currencies = get_profile_value("ledger.currencies") or DEFAULT_CURRENCIES
    return [str(c) for c in currencies]


# =============================================================================
# XDG path helpers
# =============================================================================

def get_data_path() -> Path:
    """Get the data directory path.

    Returns:
        Path to the data directory (created if doesn't exist)
    """
    custom = get_setting("data_dir")
    if custom:
        data_path = Path(custom).expanduser()
    else:
        xdg_data_home = os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share")
        data_path = Path(xdg_data_home) / APP_NAME
    data_path.mkdir(parents=True, exist_ok=True)
    return data_path


def get_snapshot_path() -> Path:
    """Path of the ledger snapshot file inside the data directory."""
    filename = get_profile_value("ledger.snapshot_file") or DEFAULT_SNAPSHOT_FILENAME
    return get_data_path() / filename
