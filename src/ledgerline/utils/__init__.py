"""Utility functions for ledgerline."""

from ledgerline.utils.date_parser import parse_date, parse_formatted_date
from ledgerline.utils.amount_parser import parse_amount, parse_amount_cents
from ledgerline.utils.account_resolver import resolve_account

__all__ = [
    "parse_date",
    "parse_formatted_date",
    "parse_amount",
    "parse_amount_cents",
    "resolve_account",
]
