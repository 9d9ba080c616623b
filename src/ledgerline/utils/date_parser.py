"""Date parsing utilities."""

from datetime import date, datetime, timedelta
import re

from dateutil import parser as date_parser

# Token translation from the mapping date format syntax to strptime directives.
# Longest tokens first so "yyyy" is not consumed as two "yy".
_FORMAT_TOKENS = [
    ("yyyy", "%Y"),
    ("yy", "%y"),
    ("MMM", "%b"),
    ("MM", "%m"),
    ("M", "%m"),
    ("dd", "%d"),
    ("d", "%d"),
]
_TOKEN_RE = re.compile("|".join(token for token, _ in _FORMAT_TOKENS))


def to_strptime_format(date_format: str) -> str:
    """Translate a mapping date format (e.g. "MM/dd/yyyy") to strptime syntax.

    Raises:
        ValueError: If the format contains no date tokens
    """
    directives = dict(_FORMAT_TOKENS)
    translated = _TOKEN_RE.sub(lambda m: directives[m.group(0)], date_format)
    if translated == date_format:
        raise ValueError(f"Unsupported date format '{date_format}'")
    return translated


def parse_formatted_date(date_str: str, date_format: str) -> date:
    """Parse a date string strictly using a mapping date format.

    Args:
        date_str: Raw date text from the statement
        date_format: Mapping date format such as "yyyy-MM-dd"

    Returns:
        Date object

    Raises:
        ValueError: If the string does not match the format
    """
    if not date_str or not date_str.strip():
        raise ValueError("Empty date string")
    return datetime.strptime(date_str.strip(), to_strptime_format(date_format)).date()


def parse_date(date_str: str) -> date:
    """Parse a free-form date string into a date object.

    Used for command line filters. Supports "today", "yesterday" and any
    absolute date dateutil understands ("2024-01-15", "January 15, 2024").

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    try:
        dt = date_parser.parse(date_str)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")
