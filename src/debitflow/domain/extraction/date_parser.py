"""Date parsing utilities for debit sheet headers.

French documents print dates day-first (15/01/2024); model replies sometimes
switch to ISO. Day-first formats are tried before anything else.
"""

import logging
from datetime import date, datetime
from typing import Any, Optional

logger = logging.getLogger(__name__)


# Order matters: day-first before ISO variants with time
DATE_FORMATS = [
    '%d/%m/%Y',          # 15/01/2024
    '%d/%m/%y',          # 15/01/24
    '%d.%m.%Y',          # 15.01.2024
    '%d-%m-%Y',          # 15-01-2024
    '%Y-%m-%d',          # 2024-01-15
    '%Y-%m-%dT%H:%M:%S', # 2024-01-15T14:30:00
    '%Y-%m-%d %H:%M:%S', # 2024-01-15 14:30:00 (openpyxl cell values)
]


def parse_date(value: Any) -> Optional[date]:
    """Parse date from the formats found on debit sheets.

    Args:
        value: Date value to parse (str, date, datetime, or None)

    Returns:
        date object or None if parsing fails

    Examples:
        >>> parse_date('15/01/2024')
        datetime.date(2024, 1, 15)
        >>> parse_date('2024-01-15')
        datetime.date(2024, 1, 15)
        >>> parse_date('invalid') is None
        True
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    value = str(value).strip()
    if not value:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    logger.warning(f"Failed to parse date: {value}")
    return None


def days_between(start: Optional[date], end: Optional[date]) -> Optional[int]:
    """Lead time in days from order date to due date.

    Returns None when either date is missing.
    """
    if start is None or end is None:
        return None
    return (end - start).days
