"""Payee inference from noisy bank descriptions.

Best-effort by nature: a known payee is returned at confidence 80 when the
description shares most of its words, otherwise a cleaned-up merchant name is
suggested at confidence 60. Callers decide what to do with each tier.
"""

import re
from typing import Optional, Sequence

from ledgerline.domain.entities import Payee, PayeeGuess

KNOWN_PAYEE_CONFIDENCE = 80
SUGGESTED_NAME_CONFIDENCE = 60
TOKEN_OVERLAP_THRESHOLD = 0.8
MAX_NAME_TOKENS = 3

TRANSACTION_PREFIXES = {"POS", "DEBIT", "CHECK", "ATM", "ONLINE", "WEB", "ACH", "CREDIT", "CHARGE"}
TRANSACTION_TYPES = {"PURCHASE", "PAYMENT", "WITHDRAWAL", "DEPOSIT", "TRANSFER", "TRANSACTION"}
TRAILING_WORDS = {"REF", "REFUND"}
_TRAILING_REFERENCE = re.compile(r"^(#\d*|#?[A-Z]{2}\d{2,}|#?\d[\d\-/]*)$", re.IGNORECASE)
_TOKEN = re.compile(r"[a-z0-9&']+")


def tokenize(text: str) -> set[str]:
    """Lower-cased word tokens with punctuation removed."""
    return set(_TOKEN.findall(text.lower()))


def _overlap_ratio(description_tokens: set[str], name: str) -> float:
    name_tokens = tokenize(name)
    if not description_tokens or not name_tokens:
        return 0.0
    common = description_tokens & name_tokens
    if not common:
        return 0.0
    return len(common) / min(len(description_tokens), len(name_tokens))


def match_known_payee(description: str, payees: Sequence[Payee]) -> Optional[Payee]:
    """Return the payee whose name or alias best overlaps the description.

    Ties keep the earlier payee in ``payees``.
    """
    description_tokens = tokenize(description)
    best: Optional[Payee] = None
    best_ratio = 0.0

    for payee in payees:
        if payee.is_archived:
            continue
        ratio = max(_overlap_ratio(description_tokens, name) for name in (payee.name, *payee.aliases))
        if ratio >= TOKEN_OVERLAP_THRESHOLD and ratio > best_ratio:
            best, best_ratio = payee, ratio

    return best


def extract_merchant_name(description: str) -> Optional[str]:
    """Strip banking noise and return the first few words, or None."""
    tokens = description.split()

    while tokens and tokens[0].upper() in TRANSACTION_PREFIXES:
        tokens.pop(0)

    tokens = [t for t in tokens if t.upper() not in TRANSACTION_TYPES]

    while tokens and (tokens[-1].upper() in TRAILING_WORDS or _TRAILING_REFERENCE.match(tokens[-1])):
        tokens.pop()

    name = " ".join(tokens[:MAX_NAME_TOKENS]).strip()
    if len(name) < 2:
        return None
    return name


def guess_payee(description: str, payees: Sequence[Payee]) -> PayeeGuess:
    """Guess the payee behind a bank description."""
    if not description or not description.strip():
        return PayeeGuess(payee=None, confidence=0)

    payee = match_known_payee(description, payees)
    if payee is not None:
        return PayeeGuess(payee=payee, confidence=KNOWN_PAYEE_CONFIDENCE)

    merchant = extract_merchant_name(description)
    if merchant:
        return PayeeGuess(payee=None, suggested_name=merchant, confidence=SUGGESTED_NAME_CONFIDENCE)

    return PayeeGuess(payee=None, confidence=0)
