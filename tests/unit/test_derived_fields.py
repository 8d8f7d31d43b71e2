"""Unit tests for header fields derived from line items"""

from datetime import date
from uuid import uuid4

import pytest

from debitflow.domain.extraction.date_parser import days_between
from debitflow.domain.extraction.derived_fields import most_frequent_material, thickness_summary
from debitflow.domain.extraction.models import (
    DebitOrderDraft,
    DraftHeader,
    ExtractionField,
    LineItem,
    MatchedLineItem,
)
from debitflow.extraction.gateway import build_order_record


def _items(*specs):
    return [
        LineItem(line_no=i, material_name=material, thickness_cm=thickness)
        for i, (material, thickness) in enumerate(specs, start=1)
    ]


class TestMostFrequentMaterial:

    def test_majority_wins(self):
        items = _items(("GRANIT K2", 3), ("MARBRE Q", 3), ("MARBRE Q", 3))
        assert most_frequent_material(items) == "MARBRE Q"

    def test_tie_goes_to_first_seen(self):
        assert most_frequent_material(_items(("GRANIT K2", 3), ("MARBRE Q", 3))) == "GRANIT K2"

    def test_no_items(self):
        assert most_frequent_material([]) == ""

    def test_blank_materials_ignored(self):
        assert most_frequent_material(_items(("", 3), ("", 3), ("MARBRE Q", 3))) == "MARBRE Q"


class TestThicknessSummary:

    def test_common_thickness(self):
        assert thickness_summary(_items(("A", 3), ("B", 3))) == "3"

    def test_fractional_thickness(self):
        assert thickness_summary(_items(("A", 2.5))) == "2.5"

    def test_mixed(self):
        assert thickness_summary(_items(("A", 3), ("B", 2))) == "mixed"

    def test_no_items(self):
        assert thickness_summary([]) == ""


class TestDaysBetween:

    def test_lead_time(self):
        assert days_between(date(2024, 1, 15), date(2024, 1, 29)) == 14

    @pytest.mark.parametrize("start,end", [(None, date(2024, 1, 29)), (date(2024, 1, 15), None)])
    def test_missing_date(self, start, end):
        assert days_between(start, end) is None


class TestBuildOrderRecord:
    """Flattening a draft into the persisted header"""

    def _draft(self, warnings=()):
        header = DraftHeader(
            order_number=ExtractionField(value="2451"),
            reference_number=ExtractionField(value=" 10234 "),
            order_date=ExtractionField(value=date(2024, 1, 15)),
            due_date=ExtractionField(value=date(2024, 1, 29)),
            client_name=ExtractionField(value="MARBRERIE DUPONT"),
        )
        items = [
            LineItem(line_no=1, material_name="GRANIT K2", thickness_cm=3, area_m2=1.63),
            LineItem(line_no=2, material_name="MARBRE Q", thickness_cm=10, volume_m3=0.08),
        ]
        return DebitOrderDraft(
            header=header,
            items=items,
            declared_total_quantity=1.71,
            overall_confidence=0.9,
            warnings=list(warnings),
        )

    def test_derived_fields(self):
        draft = self._draft()
        items = [MatchedLineItem(**item.model_dump()) for item in draft.items]
        user_id = uuid4()

        record = build_order_record(draft, items, user_id=user_id, source_document="fiche.pdf")

        assert record.reference_number == "10234"
        assert record.lead_time_days == 14
        assert record.material_summary == "GRANIT K2"
        assert record.thickness_summary == "mixed"
        assert record.total_area_m2 == pytest.approx(1.63)
        assert record.total_volume_m3 == pytest.approx(0.08)
        assert record.site_reference == ""
        assert record.needs_review is False
        assert record.user_id == user_id
        assert record.source_document == "fiche.pdf"

    def test_warnings_flag_review(self):
        assert build_order_record(self._draft(["Client name is missing"]), []).needs_review is True

    def test_blank_reference_stored_as_null(self):
        draft = DebitOrderDraft(header=DraftHeader(reference_number=ExtractionField(value="  ")))
        assert build_order_record(draft, []).reference_number is None
