"""Phone number handling.

Phones are stored as bare digit strings. They are both the customer's unique
key and the sales account's identity, so every write path normalises first.
"""

import re

_SEPARATORS = re.compile(r"[\s\-().]")
_DIGITS = re.compile(r"^\d{5,20}$")


def normalize_phone(phone: str | None) -> str | None:
    """Strip separators and return the digits, or None if not a phone.

    Examples:
        138-0013-8000 -> 13800138000
        (021) 5555 1234 -> 02155551234
        +86 138... -> None (country prefixes are not stored)
    """
    if phone is None:
        return None
    digits = _SEPARATORS.sub("", phone.strip())
    if not _DIGITS.match(digits):
        return None
    return digits
