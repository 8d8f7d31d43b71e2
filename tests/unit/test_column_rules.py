"""Unit tests for item row column rules"""

from debitflow.domain.extraction.column_rules import (
    find_finish_anchor,
    normalise_finish,
    read_numeric_columns,
    split_name_and_material,
)


class TestFinishAnchor:

    def test_first_finish_keyword(self):
        assert find_finish_anchor(["Plan", "GRANIT", "K2", "Polie", "100"]) == 3

    def test_accented_keyword(self):
        assert find_finish_anchor(["Plan", "GRANIT", "Adoucie", "100"]) == 2

    def test_position_zero_ignored(self):
        assert find_finish_anchor(["Brut", "GRANIT", "K2", "Poli"]) == 3

    def test_no_keyword(self):
        assert find_finish_anchor(["Plan", "GRANIT", "K2", "100"]) is None

    def test_finish_normalised(self):
        assert normalise_finish("POLI") == "Polie"
        assert normalise_finish("adouci") == "Adoucie"
        assert normalise_finish("Flammé") == "Flammé"


class TestSplitNameAndMaterial:
    """Boundary rules, in priority order"""

    def test_material_family_keyword(self):
        name, material, rule = split_name_and_material(["Plan", "Cuisine", "GRANIT", "NOIR", "K2"])
        assert (name, material, rule) == ("Plan Cuisine", "GRANIT NOIR K2", "material_family_keyword")

    def test_split_st_max_tokens(self):
        name, material, _ = split_name_and_material(["Tablette", "ST", "MAX", "K3"])
        assert name == "Tablette"
        assert material == "ST MAX K3"

    def test_keyword_in_first_token_keeps_name(self):
        name, material, _ = split_name_and_material(["Marbre", "BLANC", "Q"])
        assert name == "Marbre"
        assert material == "BLANC Q"

    def test_stock_code(self):
        name, material, rule = split_name_and_material(["Plan", "Vasque", "NERO", "K2"])
        assert rule == "stock_code"
        assert name == "Plan Vasque NERO"
        assert material == "K2"

    def test_non_k_stock_code(self):
        name, material, rule = split_name_and_material(["Plan", "Vasque", "ROSE", "A3"])
        assert rule == "stock_code"
        assert material == "A3"

    def test_fixed_width(self):
        name, material, rule = split_name_and_material(["Plan", "Bar", "NERO", "ASSOLUTO", "LUX"])
        assert rule == "fixed_width"
        assert name == "Plan Bar"
        assert material == "NERO ASSOLUTO LUX"

    def test_single_token(self):
        assert split_name_and_material(["Plan"])[:2] == ("Plan", "")

    def test_empty(self):
        assert split_name_and_material([]) == ("", "", "empty")


class TestReadNumericColumns:

    def test_all_columns(self):
        texts = ["Plan", "GRANIT", "K2", "Polie", "250", "65", "3", "1", "1,63"]
        values, failure = read_numeric_columns(texts, 3)
        assert failure is None
        assert values == {
            "length_cm": 250.0,
            "width_cm": 65.0,
            "thickness_cm": 3.0,
            "piece_count": 1.0,
            "declared_quantity": 1.63,
        }

    def test_missing_column(self):
        values, failure = read_numeric_columns(["Plan", "GRANIT", "Polie", "250", "65"], 2)
        assert values == {}
        assert failure == "missing thickness_cm"

    def test_non_numeric_column(self):
        _, failure = read_numeric_columns(["Plan", "GRANIT", "Polie", "250", "65cm", "3", "1", "1"], 2)
        assert failure == "width_cm '65cm' is not a number"
