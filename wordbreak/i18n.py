"""Message catalogue for Word Break.

Every sentence the games speak, and the keyword lists they listen for, live
in YAML files under wordbreak/locales/. Keys use dot notation
(``word_guess.hint.prefix``); values are str.format templates or lists.
"""

import os
from typing import Any, Dict, Optional, Tuple

import yaml

from wordbreak.utils import wb_log

LOCALES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "locales")


def _load_locale(locales_dir: str, lang: str) -> Optional[dict]:
    path = os.path.join(locales_dir, f"{lang}.yaml")
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class MessageCatalogue:
    """One locale plus a fallback; lookups try the locale first."""

    def __init__(self, locale: str = "en", fallback: str = "en", locales_dir: str = LOCALES_DIR):
        self.locale = locale
        self.fallback = fallback
        self._tables: Dict[str, dict] = {}
        for lang in dict.fromkeys((locale, fallback)):
            table = _load_locale(locales_dir, lang)
            if table is None:
                wb_log("I18N", f"No catalogue for '{lang}' in {locales_dir}", level="WARNING")
                continue
            self._tables[lang] = table
        self._reported_missing = set()

    def lookup(self, key: str) -> Any:
        for lang in (self.locale, self.fallback):
            node: Any = self._tables.get(lang)
            for part in key.split("."):
                if not isinstance(node, dict) or part not in node:
                    node = None
                    break
                node = node[part]
            if node is not None:
                return node
        return None

    def message(self, key: str, **kwargs) -> Any:
        value = self.lookup(key)
        if value is None:
            if key not in self._reported_missing:
                self._reported_missing.add(key)
                wb_log("I18N", f"Missing message '{key}'", level="WARNING")
            return key
        if isinstance(value, str) and kwargs:
            try:
                return value.format(**kwargs)
            except (KeyError, IndexError) as e:
                wb_log("I18N", f"Bad placeholder in '{key}': {e}", level="ERROR")
                return value
        return value

    def phrases(self, key: str) -> Tuple[str, ...]:
        value = self.lookup(key)
        if not isinstance(value, list):
            wb_log("I18N", f"'{key}' is not a phrase list", level="WARNING")
            return ()
        return tuple(str(item).upper() for item in value)


_catalogue: Optional[MessageCatalogue] = None


def setup(locale: str = "en", fallback: str = "en") -> MessageCatalogue:
    """Load the process-wide catalogue used by ``t`` and ``phrases``."""
    global _catalogue
    _catalogue = MessageCatalogue(locale, fallback)
    return _catalogue


def _current() -> MessageCatalogue:
    if _catalogue is None:
        return setup()
    return _catalogue


def t(key: str, **kwargs) -> Any:
    """Message for ``key`` formatted with ``kwargs``; the key itself if missing."""
    return _current().message(key, **kwargs)


def phrases(key: str) -> Tuple[str, ...]:
    """Uppercased keyword list for ``key``."""
    return _current().phrases(key)


def get_locale() -> str:
    return _current().locale


def get_fallback() -> str:
    return _current().fallback
