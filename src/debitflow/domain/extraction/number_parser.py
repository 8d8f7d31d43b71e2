"""Permissive number parsing for French-formatted documents.

Debit sheets print decimals with a comma ("2,5") and sometimes group
thousands with spaces ("1 250,00"). Model replies mix both conventions.
"""

import math
import re
from typing import Any, Optional

_SPACES = re.compile(r"\s")
_LEADING_NUMBER = re.compile(r"^[+-]?\d+(?:\.\d+)?|^[+-]?\.\d+")
_STRICT_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d+)?|\.\d+)$")


def _normalise_separators(value: str) -> str:
    value = _SPACES.sub("", value)

    if "," in value and "." not in value:
        return value.replace(",", ".")

    if "," in value and "." in value:
        # Whichever separator comes last is the decimal one
        if value.rindex(",") > value.rindex("."):
            return value.replace(".", "").replace(",", ".")
        return value.replace(",", "")

    return value


def parse_number(value: Any, strict: bool = False) -> Optional[float]:
    """Parse a number, tolerating comma decimals and grouped thousands.

    Args:
        value: int, float, str or None
        strict: When True the whole string must be numeric ("12cm" fails);
            otherwise the leading numeric prefix is used ("12cm" -> 12.0)

    Returns:
        float or None when the value is absent or not numeric

    Examples:
        >>> parse_number("2,5")
        2.5
        >>> parse_number("1 250,75")
        1250.75
        >>> parse_number("abc") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) or math.isinf(number) else number

    text = _normalise_separators(str(value).strip())
    if not text:
        return None

    if strict:
        return float(text) if _STRICT_NUMBER.match(text) else None

    match = _LEADING_NUMBER.match(text)
    if not match:
        return None
    return float(match.group(0))
