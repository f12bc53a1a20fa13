"""Postal Code — pure normalization and shape checks for Brazilian CEPs.

Invariants:
    - normalize_postal_code strips every non-digit character, nothing else
    - A code is well formed only if exactly 8 digits remain after normalization
    - No IO: the lookup gateway calls these before deciding to hit the network
"""

import re

from user_directory.core.domain_types import POSTAL_CODE_LENGTH, PostalCode

_NON_DIGITS = re.compile(r"\D")


def normalize_postal_code(raw: str) -> str:
    """Remove separators and any other non-digit characters."""
    return _NON_DIGITS.sub("", raw)


def parse_postal_code(raw: str | None) -> PostalCode | None:
    """Return the 8-digit code, or None when the input cannot be one."""
    if raw is None:
        return None
    cleaned = normalize_postal_code(raw)
    if len(cleaned) != POSTAL_CODE_LENGTH:
        return None
    return PostalCode(cleaned)
