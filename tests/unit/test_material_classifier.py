"""Unit tests for slab/block classification and quantity assignment"""

import pytest

from debitflow.domain.extraction.material_classifier import (
    assign_quantities,
    classify_material,
    compute_area,
    compute_volume,
)
from debitflow.domain.extraction.models import LineItem, QuantityKind


def _item(material: str, **overrides) -> LineItem:
    values = dict(
        line_no=1,
        description="Plan",
        material_name=material,
        length_cm=200,
        width_cm=50,
        thickness_cm=3,
        piece_count=2,
    )
    values.update(overrides)
    return LineItem(**values)


class TestClassifyMaterial:
    """Stock code patterns"""

    def test_k_code_is_area(self):
        result = classify_material("GRANIT NOIR K2")
        assert result.kind == QuantityKind.AREA
        assert result.anomaly is None

    @pytest.mark.parametrize("name", ["MARBRE BLANC Q", "PIERRE PBQ", "pierre q"])
    def test_terminal_q_is_volume(self, name):
        assert classify_material(name).kind == QuantityKind.VOLUME

    @pytest.mark.parametrize("name", ["GRANIT ROSE A3", "NERO R10", "quartz b2"])
    def test_any_letter_digit_code_is_area(self, name):
        result = classify_material(name)
        assert result.kind == QuantityKind.AREA
        assert result.anomaly is None

    def test_letter_digit_code_wins_over_thickness(self):
        result = classify_material("GRANIT ROSE A3", thickness_cm=10)
        assert result.kind == QuantityKind.AREA
        assert result.anomaly is None

    def test_both_codes_ambiguous(self):
        result = classify_material("K2 ... Q")
        assert result.kind == QuantityKind.AMBIGUOUS
        assert result.anomaly

    def test_unclassified_thin_defaults_to_area_with_anomaly(self):
        result = classify_material("CHENE MASSIF", thickness_cm=3)
        assert result.kind == QuantityKind.AREA
        assert "no slab/block code" in result.anomaly

    def test_unclassified_thick_is_volume(self):
        result = classify_material("CHENE MASSIF", thickness_cm=12)
        assert result.kind == QuantityKind.VOLUME
        assert result.anomaly

    def test_unclassified_without_thickness(self):
        result = classify_material("", thickness_cm=0)
        assert result.kind == QuantityKind.AREA
        assert "(empty)" in result.anomaly


class TestComputations:

    def test_area_and_volume_formulas(self):
        assert compute_area(200, 50, 2) == pytest.approx(2.0)
        assert compute_volume(200, 50, 10, 1) == pytest.approx(0.1)


class TestAssignQuantities:
    """Exactly one of area/volume for unambiguous codes"""

    def test_area_line_prefers_declared_quantity_over_computed(self):
        item = assign_quantities(_item("GRANIT K2", declared_quantity=1.9))
        assert item.area_m2 == pytest.approx(1.9)
        assert item.volume_m3 is None

    def test_area_line_falls_back_to_computed(self):
        item = assign_quantities(_item("GRANIT K2"))
        assert item.area_m2 == pytest.approx(2.0)
        assert item.volume_m3 is None

    def test_reported_area_wins(self):
        item = assign_quantities(_item("GRANIT K2", declared_quantity=1.9), declared_area=2.1)
        assert item.area_m2 == pytest.approx(2.1)

    def test_volume_line(self):
        item = assign_quantities(_item("MARBRE Q", thickness_cm=10, piece_count=1))
        assert item.area_m2 is None
        assert item.volume_m3 == pytest.approx(0.1)

    def test_volume_reported_for_slab_is_noted(self):
        item = assign_quantities(_item("GRANIT K2"), declared_volume=0.5)
        assert item.volume_m3 is None
        assert any("ignored" in note for note in item.anomalies)

    def test_ambiguous_sets_both(self):
        item = assign_quantities(_item("K2 BLOC Q", thickness_cm=10))
        assert item.area_m2 is not None
        assert item.volume_m3 is not None

    def test_original_item_unchanged(self):
        original = _item("GRANIT K2")
        assign_quantities(original)
        assert original.area_m2 is None
