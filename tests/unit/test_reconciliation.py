"""Unit tests for catalog matching and numeric reconciliation"""

from datetime import date

import pytest

from debitflow.domain.extraction.models import (
    CatalogEntry,
    DebitOrderDraft,
    DraftHeader,
    ExtractionField,
    LineItem,
)
from debitflow.domain.extraction.reconciliation import (
    check_declared_total,
    check_missing_fields,
    match_items,
    reconcile,
)

CATALOG = [
    CatalogEntry(id="c-1", code="R10", description="Granit noir"),
    CatalogEntry(id="c-2", code="GRANIT K2", description="Granit K2"),
]


def _header(**values) -> DraftHeader:
    defaults = dict(
        reference_number="10234",
        order_number="2451",
        client_name="MARBRERIE DUPONT",
        due_date=date(2024, 1, 29),
    )
    defaults.update(values)
    return DraftHeader(**{
        name: ExtractionField(value=value, confidence=0.9) for name, value in defaults.items()
    })


def _draft(codes, declared_total=None, area=1.0, **header) -> DebitOrderDraft:
    items = [
        LineItem(line_no=i, material_name=code, area_m2=area, piece_count=1, length_cm=100, width_cm=100)
        for i, code in enumerate(codes, start=1)
    ]
    return DebitOrderDraft(header=_header(**header), items=items, declared_total_quantity=declared_total)


class TestDeclaredTotal:

    def test_gap_above_tolerance_warns(self):
        warning = check_declared_total(100, 106)
        assert warning is not None
        assert "6.0%" in warning

    def test_gap_within_tolerance(self):
        assert check_declared_total(100, 104) is None

    def test_nothing_declared(self):
        assert check_declared_total(None, 50) is None
        assert check_declared_total(0, 50) is None

    def test_custom_tolerance(self):
        assert check_declared_total(100, 104, tolerance=0.01) is not None


class TestMatchItems:

    def test_case_insensitive_exact_match(self):
        items, unknown = match_items(_draft(["r10", "R10 "]), CATALOG)
        assert [item.catalog_id for item in items] == ["c-1", "c-1"]
        assert all(item.matched for item in items)
        assert unknown == []

    def test_unknown_codes_verbatim_and_deduplicated(self):
        items, unknown = match_items(_draft(["R99", "R10", "r99", "R99"]), CATALOG)
        assert unknown == ["R99", "r99"]
        assert items[0].catalog_id is None
        assert not items[0].matched

    def test_matched_items_keep_order_and_data(self):
        items, _ = match_items(_draft(["GRANIT K2", "R10"]), CATALOG)
        assert [item.line_no for item in items] == [1, 2]
        assert items[0].area_m2 == 1.0


class TestMissingFields:

    def test_complete_header(self):
        assert check_missing_fields(_draft(["R10"])) == []

    def test_each_missing_field_named(self):
        draft = DebitOrderDraft()
        assert check_missing_fields(draft) == [
            "ARC reference number is missing",
            "Client name is missing",
            "Order number (OS) is missing",
            "Due date is missing",
            "No line items extracted",
        ]

    def test_short_values_flagged(self):
        warnings = check_missing_fields(_draft(["R10"], reference_number="123", client_name="AB"))
        assert "ARC reference number '123' looks incomplete" in warnings
        assert "Client name 'AB' looks incomplete" in warnings


class TestReconcile:

    def test_unknown_references_warned(self):
        result = reconcile(_draft(["R10", "R99"]), CATALOG)
        assert result.unknown_references == ["R99"]
        assert "Unknown catalog references: R99" in result.warnings

    def test_empty_catalog_does_not_warn(self):
        result = reconcile(_draft(["R99"]), [])
        assert result.unknown_references == ["R99"]
        assert result.warnings == []

    def test_declared_total_compared_with_item_sum(self):
        result = reconcile(_draft(["R10", "R10"], declared_total=2.5, area=1.0), CATALOG)
        assert any(w.startswith("Declared total 2.5") for w in result.warnings)

    @pytest.mark.parametrize("declared", [2.0, 2.05])
    def test_declared_total_within_tolerance(self, declared):
        result = reconcile(_draft(["R10", "R10"], declared_total=declared, area=1.0), CATALOG)
        assert result.warnings == []
