"""Text cleaning utilities shared by the import pipeline."""

import re

MAX_DESCRIPTION_LENGTH = 500
MAX_PAYEE_LENGTH = 200

_SCRIPT_BLOCK = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_OPEN_SCRIPT = re.compile(r"<(script|style)\b[^>]*>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]*>")
_DANGLING_TAG = re.compile(r"<[^<]*$")
_PROTOCOL = re.compile(r"\b(javascript|data|vbscript):", re.IGNORECASE)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_WHITESPACE = re.compile(r"\s+")


def _strip_until_stable(pattern: re.Pattern, text: str) -> str:
    previous = None
    while previous != text:
        previous = text
        text = pattern.sub("", text)
    return text


def sanitize_text(text: str, max_length: int = MAX_DESCRIPTION_LENGTH) -> str:
    """Reduce statement text to safe plain text.

    Script and style blocks are removed with their content, other markup is
    removed keeping the inner text, control characters are dropped and the
    result is trimmed and truncated to ``max_length``.
    """
    if not text:
        return ""

    cleaned = _strip_until_stable(_SCRIPT_BLOCK, text)
    cleaned = _strip_until_stable(_OPEN_SCRIPT, cleaned)
    cleaned = _strip_until_stable(_TAG, cleaned)
    cleaned = _strip_until_stable(_DANGLING_TAG, cleaned)
    cleaned = cleaned.replace("<", "").replace(">", "")
    cleaned = _PROTOCOL.sub("", cleaned)
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    cleaned = cleaned.strip()

    return cleaned[:max_length]


def collapse_whitespace(text: str) -> str:
    """Trim and collapse runs of whitespace to single spaces."""
    return _WHITESPACE.sub(" ", text.strip())


def normalize_description(description: str) -> str:
    """Normalize a description for fingerprinting and similarity checks."""
    return collapse_whitespace(description).lower()
