"""Tests for furniture type resolution and name helpers."""

from __future__ import annotations

import pytest

from core.rules.furniture_types import (
    FurnitureType,
    extract_depth_from_name,
    fold_name,
    infer_depth,
    is_cargo_name,
    is_drawer_element,
    normalize_element_name,
    resolve_furniture_type,
    strip_accents,
)


class TestNameFolding:
    """Accent stripping and key folding."""

    def test_strip_accents_handles_polish_letters(self):
        assert strip_accents("Łódź żółć") == "Lodz zolc"

    def test_fold_removes_quantity_suffix_and_digits(self):
        assert fold_name("Szafka Górna G60 x2") == "SZAFKA_GORNA_G"

    def test_fold_empty(self):
        assert fold_name("") == ""
        assert fold_name(None) == ""


class TestResolveFurnitureType:
    """Ordered alias matching."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Szafka Dolna D60", FurnitureType.LOWER_CABINET),
            ("Szafka Górna", FurnitureType.UPPER_CABINET),
            ("Szafka pod zlew", FurnitureType.SINK_CABINET),
            ("Zmywarka 60", FurnitureType.DISHWASHER),
            ("Słupek AGD 600", FurnitureType.TALL_UNIT),
            ("Front Cargo x2", FurnitureType.CARGO),
            ("Nadstawka N60", FurnitureType.TOPPER),
            ("Blenda", FurnitureType.BLENDA),
            ("Szuflada", FurnitureType.DRAWER),
            ("Drzwi", FurnitureType.DOOR),
            ("Front", FurnitureType.FRONT),
            ("Blat roboczy", FurnitureType.COUNTERTOP),
            ("Cokół", FurnitureType.PLINTH),
            ("Trawers", FurnitureType.RAIL),
            ("Półka", FurnitureType.SHELF),
            ("Korpus", FurnitureType.GENERIC_CABINET),
        ],
    )
    def test_aliases(self, name, expected):
        assert resolve_furniture_type(name) is expected

    def test_part_words_win_over_unit_words(self):
        """A sink cabinet side stays a side panel."""
        assert resolve_furniture_type("Bok - D60_Zlew") is FurnitureType.SIDE

    def test_cabinet_codes(self):
        assert resolve_furniture_type("G60") is FurnitureType.UPPER_CABINET
        assert resolve_furniture_type("D80W") is FurnitureType.LOWER_CABINET

    def test_unknown_name(self):
        assert resolve_furniture_type("Lampa") is None
        assert resolve_furniture_type("") is None

    def test_normalize_element_name(self):
        assert normalize_element_name("Szafka dolna") == "SZAFKA_DOLNA"
        assert normalize_element_name("Lampa wisząca") == "LAMPA_WISZACA"


class TestDepth:
    """Depth from names and standard defaults."""

    def test_depth_in_name(self):
        assert extract_depth_from_name("Bok 560") == 560.0

    def test_depth_out_of_range(self):
        assert extract_depth_from_name("Blat 1800") is None
        assert extract_depth_from_name("Szafka 60") is None

    def test_explicit_depth_wins(self):
        assert infer_depth("Szafka dolna 560", FurnitureType.LOWER_CABINET, 450) == 450.0

    def test_standard_depths(self):
        assert infer_depth("Szafka dolna", FurnitureType.LOWER_CABINET) == 510.0
        assert infer_depth("G", FurnitureType.UPPER_CABINET) == 340.0
        assert infer_depth("Lampa", None) is None


class TestElementKinds:
    """Drawer and cargo detection."""

    def test_drawer(self):
        assert is_drawer_element("Szuflada Tandembox")
        assert is_drawer_element("MERIVOBOX L-450")
        assert not is_drawer_element("Szafka dolna")

    def test_cargo_is_not_a_drawer(self):
        assert is_cargo_name("Kosz cargo")
        assert not is_drawer_element("Kosz Cargo szuflada")
