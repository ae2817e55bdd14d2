"""Phone number normalisation for Bangladeshi mobile numbers.

Directory records and inbound messages carry numbers in mixed formats
("+880 1712-345678", "01712345678", "8801712345678"). Everything is
compared and sent in the 13-digit ``8801XXXXXXXXX`` form.
"""

from __future__ import annotations

import re

_STRIP_RE = re.compile(r"[\s\-()]")
_COUNTRY_CODE = "88"


def normalize_phone(raw: str | None) -> str:
    """Return the canonical digits-only form of *raw* ("" for blank input).

    >>> normalize_phone("+880 1712-345678")
    '8801712345678'
    >>> normalize_phone("01712345678")
    '8801712345678'
    """
    if raw is None:
        return ""
    number = _STRIP_RE.sub("", str(raw).strip())
    if number.startswith("+"):
        number = number[1:]
    if number.startswith("01") and len(number) == 11:
        return _COUNTRY_CODE + number
    return number


def same_number(a: str | None, b: str | None) -> bool:
    """True when both numbers are non-blank and normalise to the same digits."""
    left, right = normalize_phone(a), normalize_phone(b)
    return bool(left) and left == right
