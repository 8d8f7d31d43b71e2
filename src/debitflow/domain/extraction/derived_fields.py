"""Header summary fields derived from line items."""

from collections import Counter
from typing import Sequence

from .models import LineItem

MIXED_THICKNESS = "mixed"


def most_frequent_material(items: Sequence[LineItem]) -> str:
    """Most frequent material name; ties go to the first one seen.

    Items [GRANIT K2, MARBRE Q, MARBRE Q] give "MARBRE Q";
    [GRANIT K2, MARBRE Q] give "GRANIT K2".
    """
    names = [item.material_name for item in items if item.material_name]
    if not names:
        return ""
    counts = Counter(names)
    best = max(counts.values())
    # Counter preserves insertion order, i.e. first-seen order
    return next(name for name, count in counts.items() if count == best)


def thickness_summary(items: Sequence[LineItem]) -> str:
    """Common thickness in cm ("3", "2.5"), "mixed" when items differ."""
    values = {item.thickness_cm for item in items}
    if not values:
        return ""
    if len(values) > 1:
        return MIXED_THICKNESS
    return f"{values.pop():g}"
