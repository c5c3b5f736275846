"""Input sanitization for free text that ends up in emails or logs."""

import html
import re
from urllib.parse import urlparse

_TAG_RE = re.compile(r"<[^>]*>")
_SCRIPT_RE = re.compile(r"<(script|style)[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_JS_PROTOCOL_RE = re.compile(r"javascript\s*:", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"\bon\w+\s*=", re.IGNORECASE)
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_NAME_DISALLOWED_RE = re.compile(r"[^\w\s\-'.À-ÿ]", re.UNICODE)
_EMAIL_DISALLOWED_RE = re.compile(r"[^a-z0-9@._+\-]")
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_html(value: str) -> str:
    """Strip tags, script/style blocks and inline handlers, then escape what is left."""
    value = _SCRIPT_RE.sub("", value)
    value = _TAG_RE.sub("", value)
    value = _JS_PROTOCOL_RE.sub("", value)
    value = _EVENT_HANDLER_RE.sub("", value)
    return html.escape(value, quote=True)


def normalize_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value).strip()


def limit_length(value: str, max_length: int) -> str:
    return value[:max_length]


def sanitize_email(value: str) -> str:
    return _EMAIL_DISALLOWED_RE.sub("", value.strip().lower())


def sanitize_name(value: str) -> str:
    value = _CONTROL_RE.sub("", value)
    value = _NAME_DISALLOWED_RE.sub("", value)
    return limit_length(normalize_whitespace(value), 100)


def sanitize_text(value: str, max_length: int = 5000) -> str:
    """Free text keeps its line breaks; control characters and markup are removed."""
    value = _CONTROL_RE.sub("", value)
    value = sanitize_html(value)
    return limit_length(value.strip(), max_length)


def sanitize_url(value: str) -> str:
    """'' unless the value is an absolute http(s) URL."""
    value = value.strip()
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return ""
    return value


_SANITIZERS = {
    "email": sanitize_email,
    "name": sanitize_name,
    "text": sanitize_text,
    "url": sanitize_url,
}


def sanitize_input(value: str, kind: str = "text") -> str:
    if kind not in _SANITIZERS:
        raise ValueError(f"Unknown sanitizer kind: {kind}")
    return _SANITIZERS[kind](value)
