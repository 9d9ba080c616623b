"""Guarded execution of user-supplied regular expressions.

Patterns are length-limited and rejected when they contain nested
quantifiers, the usual source of catastrophic backtracking. Invalid patterns
never raise at match time; they simply do not match.
"""

import re
from functools import lru_cache
from typing import Optional

import structlog

logger = structlog.get_logger()

MAX_PATTERN_LENGTH = 500

_NESTED_QUANTIFIER = re.compile(r"(\(.*[*+{][^)]*\)[*+{])|(\[[^\]]*[*+{][^\]]*\][*+{])")


def validate_regex_pattern(pattern: str) -> Optional[str]:
    """Validate a pattern without executing it.

    Returns:
        None if the pattern is acceptable, otherwise an error message
    """
    if len(pattern) > MAX_PATTERN_LENGTH:
        return f"Pattern too long (max {MAX_PATTERN_LENGTH} characters)"
    if _NESTED_QUANTIFIER.search(pattern):
        return "Pattern contains nested quantifiers which could cause performance issues"
    try:
        re.compile(pattern)
    except re.error as e:
        return f"Invalid regex pattern: {e}"
    return None


@lru_cache(maxsize=256)
def _compile(pattern: str, flags: int) -> Optional[re.Pattern]:
    if validate_regex_pattern(pattern) is not None:
        logger.warning("regex_rejected", pattern=pattern)
        return None
    return re.compile(pattern, flags)


def safe_regex_search(pattern: str, text: str, case_sensitive: bool = False) -> bool:
    """Return True if ``pattern`` matches anywhere in ``text``.

    Rejected or invalid patterns return False.
    """
    compiled = _compile(pattern, 0 if case_sensitive else re.IGNORECASE)
    if compiled is None:
        return False
    return compiled.search(text) is not None
