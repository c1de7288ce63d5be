"""
Settings Module for Contact Capture

Provides persistent storage for capture preferences and heuristic
thresholds using JSON. Settings are stored in config.json in the
working directory unless another path is given.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

# Settings file location (working directory)
SETTINGS_FILE = Path("config.json")

# Default settings
DEFAULT_SETTINGS: Dict[str, Any] = {
    "debug_enabled": False,
    "storage_path": "contact_store.json",
    # Recognition
    "ocr_engine": "tesseract",
    "ocr_lang": "spa+eng",
    "ocr_timeout_sec": 60.0,
    "tesseract_cmd": None,
    # Preprocessing
    "ocr_max_width": 1200,
    "contrast": 1.35,
    "brightness": 8.0,
    "binarize": True,
    "card_aspect_ratio": 1.586,
    "card_max_width": 1200,
    # QR scanning
    "debounce_ms": 800,
    "continuous_scan": False,
    "frame_interval_ms": 33,
    # Extraction heuristics
    "min_phone_digits": 7,
    "name_min_length": 4,
    "name_max_length": 48,
    "preference_scores": {
        "pref": 100,
        "mobile": 90,
        "work": 70,
        "home": 50,
        "other": 10,
        "internet_bonus": 1,
    },
}


def default_settings() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_SETTINGS)


def merge_settings(base: Dict[str, Any], updates: Dict[str, Any]) -> None:
    """Deep merge updates into base dictionary."""
    for key, value in updates.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            merge_settings(base[key], value)
        else:
            base[key] = value


def set_setting(settings: Dict[str, Any], key: str, raw_value: str) -> Any:
    """
    Set one known setting from command-line text.

    Args:
        settings: Settings dictionary to update
        key: Setting name; nested keys use dots ("preference_scores.home")
        raw_value: JSON literal (800, true, null, "x") or a bare string

    Returns:
        The parsed value that was stored

    Raises:
        KeyError: If key is not a known setting
    """
    *parents, leaf = key.split(".")
    target, defaults = settings, DEFAULT_SETTINGS
    for part in parents:
        if not isinstance(defaults.get(part), dict):
            raise KeyError(key)
        defaults = defaults[part]
        target = target.setdefault(part, {})
    if leaf not in defaults or isinstance(defaults[leaf], dict):
        raise KeyError(key)

    try:
        value = json.loads(raw_value)
    except ValueError:
        value = raw_value
    target[leaf] = value
    return value


def load_settings(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load settings from config.json.

    Args:
        path: Optional settings file (default: SETTINGS_FILE)

    Returns:
        Settings dictionary. Returns defaults if file missing or invalid.
    """
    settings_file = Path(path) if path else SETTINGS_FILE
    if not settings_file.exists():
        logger.debug("Settings file not found, using defaults")
        return default_settings()

    try:
        with open(settings_file, 'r', encoding='utf-8') as f:
            settings = json.load(f)
        if not isinstance(settings, dict):
            raise ValueError("settings root must be an object")

        # Merge with defaults to handle missing keys
        result = default_settings()
        merge_settings(result, settings)
        logger.debug(f"Settings loaded: {result}")
        return result

    except (json.JSONDecodeError, ValueError, IOError) as e:
        logger.warning(f"Failed to load settings: {e}, using defaults")
        return default_settings()


def save_settings(settings: Dict[str, Any], path: Optional[Union[str, Path]] = None) -> None:
    """
    Save settings to config.json.

    Args:
        settings: Settings dictionary to save
        path: Optional settings file (default: SETTINGS_FILE)
    """
    settings_file = Path(path) if path else SETTINGS_FILE
    try:
        with open(settings_file, 'w', encoding='utf-8') as f:
            json.dump(settings, f, indent=2)
        logger.debug(f"Settings saved: {settings}")
    except IOError as e:
        logger.error(f"Failed to save settings: {e}")
