from __future__ import annotations

"""
Internationalization (i18n) Utility.

Message catalog for user-facing CLI strings. Keys use dot notation over
nested JSON locale files and support {var} interpolation.
"""

import json
import logging
import os
from typing import Any, Dict

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"
LOCALES_REL_PATH = os.path.join("..", "interface", "locales")


class I18n:
    """
    Resource manager for locale-specific string translations.

    Unknown keys resolve to an explicit default when one is given,
    otherwise to the key itself, so a missing catalog never breaks output.
    """

    def __init__(self, locale: str = DEFAULT_LOCALE):
        self._locale = locale
        self._translations: Dict[str, Any] = {}
        self.is_loaded = False

        base_dir = os.path.dirname(os.path.abspath(__file__))
        self._locales_path = os.path.abspath(os.path.join(base_dir, LOCALES_REL_PATH))

        self.load_locale(locale)

    @property
    def locale(self) -> str:
        return self._locale

    def load_locale(self, locale: str) -> None:
        """Load the translation dictionary for an ISO locale identifier."""
        file_path = os.path.join(self._locales_path, f"{locale}.json")

        if not os.path.exists(file_path):
            logger.warning(f"I18n: Locale resource missing at '{file_path}'. Fallback active.")
            self._translations = {}
            self.is_loaded = False
            return

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                self._translations = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"I18n: Corruption in locale file {file_path}: {e}")
            self._translations = {}
            self.is_loaded = False
            return

        self._locale = locale
        self.is_loaded = True

    def t(self, key: str, default: str = "", **kwargs: Any) -> str:
        """
        Resolve and format a message.

        Args:
            key: Hierarchical identifier (e.g. 'cli.errors.entry_not_found').
            default: Template used when the key is missing.
            **kwargs: Variables for str.format interpolation.

        Returns:
            str: The formatted message, the default, or the key itself.
        """
        current_val: Any = self._translations
        for k in key.split("."):
            if not isinstance(current_val, dict):
                current_val = None
                break
            current_val = current_val.get(k)

        template = current_val if isinstance(current_val, str) else (default or key)
        if not kwargs:
            return template
        try:
            return template.format(**kwargs)
        except (KeyError, IndexError, ValueError) as e:
            logger.debug(f"I18n: Interpolation error for '{key}': {e}")
            return template


i18n = I18n(DEFAULT_LOCALE)
