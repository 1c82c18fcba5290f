"""Plain-text sanitization for untrusted strings from the provider or from users."""

import re
from typing import Any

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_OCTET_RE = re.compile(r"%[a-fA-F0-9]{2}")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"[\r\n\t ]+")


def sanitize_text_field(value: Any) -> str:
    """Strip markup, control characters and percent-encoded octets from a value."""
    if value is None:
        return ""

    text = value if isinstance(value, str) else str(value)

    if "<" in text:
        text = _SCRIPT_STYLE_RE.sub("", text)
        text = _TAG_RE.sub("", text)
        # A "<" that did not open a tag is kept as text, escaped
        text = text.replace("<", "&lt;")

    text = _CONTROL_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text)

    while _OCTET_RE.search(text):
        text = _OCTET_RE.sub("", text)

    return text.strip()
