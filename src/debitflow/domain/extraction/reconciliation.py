"""Catalog matching and numeric reconciliation of a draft.

Nothing here blocks persistence: mismatches, unknown references and missing
header fields all become warnings so operators can triage "needs review"
sheets without losing data.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .models import CatalogEntry, DebitOrderDraft, MatchedLineItem

logger = logging.getLogger(__name__)

DEFAULT_RECONCILIATION_TOLERANCE = 0.05
MIN_REFERENCE_LENGTH = 4
MIN_CLIENT_LENGTH = 3


@dataclass
class ReconciliationResult:
    items: List[MatchedLineItem] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    unknown_references: List[str] = field(default_factory=list)


def build_catalog_index(catalog: Iterable[CatalogEntry]) -> Dict[str, CatalogEntry]:
    """Index catalog entries by upper-cased code (first entry wins)."""
    index: Dict[str, CatalogEntry] = {}
    for entry in catalog:
        key = entry.code.strip().upper()
        if key and key not in index:
            index[key] = entry
    return index


def match_items(draft: DebitOrderDraft, catalog: Iterable[CatalogEntry]) -> tuple[List[MatchedLineItem], List[str]]:
    """Exact, case-insensitive match of each line's reference code.

    Returns:
        Tuple of (matched items in draft order, unknown codes verbatim and
        de-duplicated in first-seen order)
    """
    index = build_catalog_index(catalog)
    matched: List[MatchedLineItem] = []
    unknown: List[str] = []

    for item in draft.items:
        code = item.reference_code
        entry = index.get(code.upper()) if code else None
        matched.append(MatchedLineItem(
            **item.model_dump(),
            catalog_id=entry.id if entry else None,
            matched=entry is not None,
        ))
        if code and entry is None and code not in unknown:
            unknown.append(code)

    return matched, unknown


def check_declared_total(
    declared_total: Optional[float],
    computed_total: float,
    tolerance: float = DEFAULT_RECONCILIATION_TOLERANCE,
) -> Optional[str]:
    """Compare the document's cumulative quantity with the line-item sum.

    Args:
        declared_total: "Cumul Qté" printed on the sheet, None if absent
        computed_total: Sum of line areas and volumes
        tolerance: Relative gap above which a warning is returned

    Returns:
        Warning text, or None when within tolerance or nothing was declared
    """
    if not declared_total or declared_total <= 0:
        return None

    gap = abs(computed_total - declared_total) / declared_total
    if gap <= tolerance:
        return None

    return (
        f"Declared total {declared_total:g} differs from computed total "
        f"{computed_total:g} by {gap * 100:.1f}%"
    )


def check_missing_fields(draft: DebitOrderDraft) -> List[str]:
    """Named warnings for absent or implausible critical header fields."""
    header = draft.header
    warnings: List[str] = []

    reference = (header.reference_number.value or "").strip()
    if not reference:
        warnings.append("ARC reference number is missing")
    elif len(reference) < MIN_REFERENCE_LENGTH:
        warnings.append(f"ARC reference number '{reference}' looks incomplete")

    client = (header.client_name.value or "").strip()
    if not client:
        warnings.append("Client name is missing")
    elif len(client) < MIN_CLIENT_LENGTH:
        warnings.append(f"Client name '{client}' looks incomplete")

    if not header.order_number.is_present:
        warnings.append("Order number (OS) is missing")
    if not header.due_date.is_present:
        warnings.append("Due date is missing")
    if not draft.items:
        warnings.append("No line items extracted")

    return warnings


def reconcile(
    draft: DebitOrderDraft,
    catalog: Iterable[CatalogEntry],
    tolerance: float = DEFAULT_RECONCILIATION_TOLERANCE,
) -> ReconciliationResult:
    """Match line references against the catalog and flag inconsistencies.

    Args:
        draft: Extracted draft
        catalog: Point-in-time catalog snapshot
        tolerance: Relative gap for the declared-total check

    Returns:
        ReconciliationResult; warnings do not include the draft's own
    """
    catalog = list(catalog)
    items, unknown = match_items(draft, catalog)
    warnings = check_missing_fields(draft)

    computed_total = round(draft.computed_total_area + draft.computed_total_volume, 3)
    gap_warning = check_declared_total(draft.declared_total_quantity, computed_total, tolerance)
    if gap_warning:
        warnings.append(gap_warning)

    if unknown and catalog:
        warnings.append(f"Unknown catalog references: {', '.join(unknown)}")

    logger.info(
        f"Reconciled {len(items)} items: {sum(1 for i in items if i.matched)} matched, "
        f"{len(unknown)} unknown references, {len(warnings)} warnings"
    )
    return ReconciliationResult(items=items, warnings=warnings, unknown_references=unknown)
