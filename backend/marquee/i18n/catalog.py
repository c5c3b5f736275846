"""
UI message catalogs and locale resolution.

Catalogs are JSON files in ./messages named after the UI locale. A locale's
catalog is always merged over the default (English) catalog, so a missing or
blank translation falls back to English.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Union

from marquee.i18n.language import locale_to_tmdb, parse_accept_language, tmdb_to_locale

logger = logging.getLogger(__name__)

MESSAGES_DIR = Path(__file__).resolve().parent / "messages"

LOCALES = ("en", "pt-BR", "es", "ar", "de", "fr", "hi", "it", "ja", "ko", "ru", "zh")
DEFAULT_LOCALE = "en"
LOCALE_COOKIE = "NEXT_LOCALE"

ERROR_CODE_MESSAGES = {
    "UNAUTHORIZED": "api.errors.unauthorized",
    "FORBIDDEN": "api.errors.forbidden",
    "NOT_FOUND": "api.errors.notFound",
    "BAD_REQUEST": "api.errors.badRequest",
    "VALIDATION_ERROR": "api.errors.validationError",
    "RATE_LIMIT_EXCEEDED": "api.errors.rateLimitExceeded",
    "INTERNAL_ERROR": "api.errors.internalError",
    "METHOD_NOT_ALLOWED": "api.errors.methodNotAllowed",
}

Messages = Dict[str, Any]


def is_valid_locale(locale: Optional[str]) -> bool:
    return locale in LOCALES


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def merge_messages(base: Messages, override: Messages) -> Messages:
    """
    Deep-merge two catalogs.

    Nested dicts are merged recursively; a non-empty string in `override`
    replaces the base value; empty strings, None and type mismatches keep the base.
    """
    result = dict(base)
    for key, override_value in override.items():
        base_value = base.get(key)
        if isinstance(override_value, dict) and isinstance(base_value, dict):
            result[key] = merge_messages(base_value, override_value)
            continue
        if _is_non_empty_string(override_value):
            result[key] = override_value
    return result


@lru_cache(maxsize=None)
def load_catalog(locale: str) -> Messages:
    """Raw catalog for one locale ({} when the file is missing)."""
    path = MESSAGES_DIR / f"{locale}.json"
    if not path.is_file():
        logger.warning(f"No message catalog for locale '{locale}'")
        return {}
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


def load_messages(locale: str) -> Messages:
    """Catalog for `locale` with the default catalog as fallback."""
    base = load_catalog(DEFAULT_LOCALE)
    if locale == DEFAULT_LOCALE or not is_valid_locale(locale):
        return base
    return merge_messages(base, load_catalog(locale))


def detect_locale_from_header(accept_language: Optional[str]) -> Optional[str]:
    """First Accept-Language entry matching a UI locale exactly or by language prefix."""
    if not accept_language:
        return None
    for part in accept_language.split(","):
        lang = part.split(";")[0].strip()
        if not lang:
            continue
        if is_valid_locale(lang):
            return lang
        prefix = lang.split("-")[0].lower()
        for locale in LOCALES:
            if locale.lower().startswith(prefix):
                return locale
    return None


def resolve_locale(
    cookie_locale: Optional[str] = None,
    user_language: Optional[str] = None,
    accept_language: Optional[str] = None,
) -> str:
    """
    UI locale for a request.

    Priority:
    1. Locale cookie (explicit choice)
    2. Signed-in user's saved content language, when it maps to a UI locale
    3. Accept-Language header
    4. DEFAULT_LOCALE
    """
    if is_valid_locale(cookie_locale):
        return cookie_locale

    if user_language:
        locale = tmdb_to_locale(user_language)
        if is_valid_locale(locale):
            return locale

    detected = detect_locale_from_header(accept_language)
    if detected:
        return detected

    return DEFAULT_LOCALE


def get_user_language(
    user_language: Optional[str] = None,
    cookie_locale: Optional[str] = None,
    accept_language: Optional[str] = None,
) -> str:
    """Content language: saved preference, then locale cookie, then Accept-Language."""
    if user_language:
        return user_language
    if cookie_locale:
        return locale_to_tmdb(cookie_locale)
    return parse_accept_language(accept_language)


def translate(messages: Messages, key: str) -> Optional[str]:
    """Dotted-key lookup ("api.errors.notFound"); None when missing or not a string."""
    node: Any = messages
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node if isinstance(node, str) else None


def translate_api_error(messages: Messages, error: Union[str, Dict[str, Any]]) -> str:
    """Human message for an error envelope's `error` object (or a bare key)."""
    if isinstance(error, str):
        return translate(messages, error) or error

    message = error.get("message")
    if message:
        return translate(messages, message) or message

    code = error.get("code")
    if code in ERROR_CODE_MESSAGES:
        return translate(messages, ERROR_CODE_MESSAGES[code]) or code

    return translate(messages, "common.unknownError") or "Unknown error"
