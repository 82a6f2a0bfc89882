"""UI label translation for command names and collision choices.

English is the key language: ``tr()`` returns the key itself when the active
table has no entry. Other languages live in ``cliparranger.utils.lang.<code>``
modules exposing a ``STRINGS`` dict.
"""

from __future__ import annotations

import importlib
import logging

logger = logging.getLogger(__name__)

_tables: dict[str, dict[str, str]] = {"en": {}}
_active: dict[str, str] = {}
_active_code: str = "en"


def _load_table(lang_code: str) -> dict[str, str]:
    if lang_code not in _tables:
        try:
            module = importlib.import_module(f"cliparranger.utils.lang.{lang_code}")
            _tables[lang_code] = dict(module.STRINGS)
        except (ImportError, AttributeError):
            logger.warning(f"No UI strings for language '{lang_code}', using English labels")
            _tables[lang_code] = {}
    return _tables[lang_code]


def init_language(lang_code: str = "en") -> None:
    """Switch the active label language. Labels read afterwards use it."""
    global _active, _active_code
    _active = _load_table(lang_code)
    _active_code = lang_code


def tr(key: str) -> str:
    return _active.get(key, key)


def current_language() -> str:
    return _active_code
