from __future__ import annotations

"""
Settings Domain Management.

Handles persistent storage of user preferences as JSON in the user data
directory: the password store location, the default recipient hint,
the gpg binary and display preferences consumed by front ends. Loaded
values are merged over defaults and type-checked field by field.
"""

import json
import logging
import os
from typing import Any, Dict, List, Tuple

from gpgstore.domain.constants import CURRENT_CONFIG_VERSION, GPG_BINARY
from gpgstore.infra.fs import default_store_path, get_user_data_dir, normalize_path

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants & Defaults
# -----------------------------------------------------------------------------
CONFIG_FILE = os.path.join(get_user_data_dir(), "config.json")

_STRING_FIELDS = ("password_store_path", "default_recipient", "theme", "gpg_binary")
_BOOL_FIELDS = ("auto_commit", "show_notifications")
_INT_FIELDS = ("window_width", "window_height")
_FLOAT_FIELDS = ("split_offset",)
_LIST_FIELDS = ("identity_markers",)

# Fields whose blank value is meaningful and must not fall back to the default
_BLANK_ALLOWED = ("password_store_path", "default_recipient")


def get_default_settings() -> Dict[str, Any]:
    """
    Generate the default settings structure.

    A blank password_store_path means the conventional ~/.password-store.

    Returns:
        Dict[str, Any]: Default settings values.
    """
    return {
        "version": CURRENT_CONFIG_VERSION,
        "password_store_path": "",
        "default_recipient": "",
        "gpg_binary": GPG_BINARY,
        "identity_markers": [],
        "auto_commit": True,
        "show_notifications": True,
        "theme": "light",
        "window_width": 800,
        "window_height": 600,
        "split_offset": 0.3,
    }


def known_setting_keys() -> List[str]:
    return [k for k in get_default_settings() if k != "version"]

# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------

def validate_settings(raw: Any, *, strict: bool = False) -> Tuple[Dict[str, Any], List[str]]:
    """
    Validate and normalize a settings dictionary.

    Missing keys are filled from defaults; values of the wrong type are
    coerced where unambiguous (e.g. "yes" -> True, "640" -> 640) and
    otherwise replaced by the default with a warning.

    Args:
        raw: Untrusted settings data (usually parsed JSON).
        strict: Raise TypeError instead of coercing.

    Returns:
        Tuple[Dict[str, Any], List[str]]: Normalized settings and warnings.
    """
    warnings: List[str] = []
    defaults = get_default_settings()

    if not isinstance(raw, dict):
        msg = f"Invalid settings type: expected dict, received {type(raw).__name__}."
        if strict:
            raise TypeError(msg)
        warnings.append(f"{msg} Using defaults.")
        return defaults, warnings

    merged: Dict[str, Any] = dict(defaults)
    merged.update({k: v for k, v in raw.items() if k in defaults})

    for f in _STRING_FIELDS:
        merged[f] = _as_str(merged[f], defaults[f], f, warnings, strict)
    for f in _BOOL_FIELDS:
        merged[f] = _as_bool(merged[f], defaults[f], f, warnings, strict)
    for f in _INT_FIELDS:
        merged[f] = _as_int(merged[f], defaults[f], f, warnings, strict)
    for f in _FLOAT_FIELDS:
        merged[f] = _as_float(merged[f], defaults[f], f, warnings, strict)
    for f in _LIST_FIELDS:
        merged[f] = _as_list_str(merged[f], defaults[f], f, warnings, strict)

    merged["version"] = CURRENT_CONFIG_VERSION
    return merged, warnings

# -----------------------------------------------------------------------------
# Persistence Logic
# -----------------------------------------------------------------------------

def load_settings() -> Dict[str, Any]:
    """
    Load settings from disk.

    A missing file yields defaults, which are written out so the user has
    a file to edit. A corrupted file yields defaults without overwriting it.

    Returns:
        Dict[str, Any]: The validated settings.
    """
    if not os.path.exists(CONFIG_FILE):
        logger.debug("Settings file not found. Writing defaults.")
        settings = get_default_settings()
        save_settings(settings)
        return settings

    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load settings: {e}. Using defaults.")
        return get_default_settings()

    settings, warnings = validate_settings(data)
    for w in warnings:
        logger.warning(f"Settings: {w}")
    return settings


def save_settings(settings: Dict[str, Any]) -> bool:
    """
    Persist settings to disk.

    Returns:
        bool: True if the file was written.
    """
    try:
        os.makedirs(os.path.dirname(CONFIG_FILE), exist_ok=True)
        data = dict(settings)
        data["version"] = CURRENT_CONFIG_VERSION
        with open(CONFIG_FILE, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        logger.debug(f"Settings saved to {CONFIG_FILE}")
        return True
    except OSError as e:
        logger.error(f"Failed to save settings: {e}")
        return False


def update_settings(updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply a partial update to the stored settings and persist them.

    Unknown keys are ignored with a warning; mistyped values keep the
    previous setting.

    Args:
        updates: Key/value pairs to change.

    Returns:
        Dict[str, Any]: The settings after the update.
    """
    current = load_settings()
    known = set(known_setting_keys())

    candidate = dict(current)
    for key, value in updates.items():
        if key not in known:
            logger.warning(f"Ignoring unknown setting '{key}'")
            continue
        candidate[key] = value

    validated, warnings = validate_settings(candidate)
    for w in warnings:
        logger.warning(f"Settings: {w}")
        field = _field_of(w)
        if w.startswith("Invalid field") and field in updates:
            validated[field] = current[field]

    save_settings(validated)
    return validated


def resolve_store_path(settings: Dict[str, Any]) -> str:
    """Absolute store root from settings, defaulting to ~/.password-store."""
    return normalize_path(settings.get("password_store_path"), default_store_path())

# -----------------------------------------------------------------------------
# Private Helpers: Type Coercion
# -----------------------------------------------------------------------------

def _field_of(warning: str) -> str:
    """Extract the quoted field name from a validation warning."""
    parts = warning.split("'")
    return parts[1] if len(parts) > 2 else ""


def _reject(field: str, expected: str, value: Any, warnings: List[str], strict: bool) -> None:
    msg = f"Invalid field '{field}': expected {expected}, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")


def _as_str(value: Any, fallback: str, field: str, warnings: List[str], strict: bool) -> str:
    if value is None:
        return fallback
    if isinstance(value, str):
        v = value.strip()
        if v or field in _BLANK_ALLOWED:
            return v
        return fallback
    _reject(field, "str", value, warnings, strict)
    return fallback


def _as_bool(value: Any, fallback: bool, field: str, warnings: List[str], strict: bool) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return fallback
    if not strict:
        if isinstance(value, (int, float)) and value in (0, 1):
            warnings.append(f"Field '{field}' converted from number {value} to bool.")
            return bool(value)
        if isinstance(value, str):
            s = value.strip().lower()
            if s in ("true", "1", "yes", "y", "on"):
                warnings.append(f"Field '{field}' converted from '{value}' to True.")
                return True
            if s in ("false", "0", "no", "n", "off"):
                warnings.append(f"Field '{field}' converted from '{value}' to False.")
                return False
    _reject(field, "bool", value, warnings, strict)
    return fallback


def _as_int(value: Any, fallback: int, field: str, warnings: List[str], strict: bool) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if value is None:
        return fallback
    if not strict and isinstance(value, str):
        try:
            converted = int(value.strip())
        except ValueError:
            pass
        else:
            warnings.append(f"Field '{field}' converted from '{value}' to {converted}.")
            return converted
    _reject(field, "int", value, warnings, strict)
    return fallback


def _as_float(value: Any, fallback: float, field: str, warnings: List[str], strict: bool) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if value is None:
        return fallback
    if not strict and isinstance(value, str):
        try:
            converted = float(value.strip())
        except ValueError:
            pass
        else:
            warnings.append(f"Field '{field}' converted from '{value}' to {converted}.")
            return converted
    _reject(field, "float", value, warnings, strict)
    return fallback


def _as_list_str(value: Any, fallback: List[str], field: str, warnings: List[str], strict: bool) -> List[str]:
    if value is None:
        return list(fallback)
    if isinstance(value, str) and not strict:
        parts = [p.strip() for p in value.split(",")]
        warnings.append(f"Field '{field}' converted from CSV string to list.")
        return [p for p in parts if p]
    if isinstance(value, list) and all(isinstance(x, str) for x in value):
        return [x for x in value if x.strip()]
    _reject(field, "list[str]", value, warnings, strict)
    return list(fallback)
