"""Tests for the component rule engine."""

from __future__ import annotations

import pytest

from core.models import UNKNOWN_SKU, FurnitureElement, PartType
from core.rules.component_rules import (
    BLUM_HINGES,
    create_cabinet_body,
    expand_element,
    has_expansion_rule,
)
from core.rules.furniture_types import FurnitureType


def _by_name(parts):
    return {part.name: part for part in parts}


class TestCabinetBody:
    """Sides, bottom and top/rail construction."""

    def test_lower_body_gets_rails(self):
        parts = _by_name(create_cabinet_body(600, 720, 510, 1))
        assert (parts["Bok"].width, parts["Bok"].height, parts["Bok"].qty) == (510, 720, 2)
        assert (parts["Wieniec Dolny"].width, parts["Wieniec Dolny"].height) == (564, 510)
        assert (parts["Trawers"].width, parts["Trawers"].height, parts["Trawers"].qty) == (564, 100, 2)
        assert "Wieniec Górny" not in parts

    def test_shallow_body_gets_full_top(self):
        parts = _by_name(create_cabinet_body(600, 720, 340, 1))
        assert "Wieniec Górny" in parts
        assert "Trawers" not in parts

    def test_tall_body_gets_full_top(self):
        parts = _by_name(create_cabinet_body(600, 2100, 560, 1))
        assert "Wieniec Górny" in parts

    def test_quantity_multiplies(self):
        parts = _by_name(create_cabinet_body(600, 720, 510, 3))
        assert parts["Bok"].qty == 6
        assert parts["Wieniec Dolny"].qty == 3


class TestCabinetRules:
    """Whole-unit expansions."""

    def test_lower_cabinet(self):
        result = expand_element(FurnitureElement(name="Szafka dolna", width=600, height=720, qty=1))
        assert result.furniture_type is FurnitureType.LOWER_CABINET

        materials = _by_name(result.materials)
        assert set(materials) == {"Bok", "Wieniec Dolny", "Trawers", "Front"}
        assert materials["Bok"].qty == 2
        front = materials["Front"]
        assert (front.width, front.height, front.qty) == (597, 717, 1)

        assert len(result.hardware) == 1
        hinge = result.hardware[0]
        assert hinge.sku == BLUM_HINGES["clip_top_blumotion"]
        assert hinge.qty == 2

    def test_wide_lower_cabinet_has_two_doors(self):
        result = expand_element(FurnitureElement(name="Szafka dolna", width=800, height=720))
        front = _by_name(result.materials)["Front"]
        assert (front.width, front.qty) == (397, 2)
        assert result.hardware[0].qty == 4

    def test_upper_cabinet_has_shelves(self):
        result = expand_element(FurnitureElement(name="Szafka górna", width=600, height=720))
        materials = _by_name(result.materials)
        assert "Wieniec Górny" in materials
        shelf = materials["Półka"]
        assert (shelf.width, shelf.height, shelf.qty) == (564, 320, 2)

    def test_sink_cabinet(self):
        result = expand_element(FurnitureElement(name="Szafka pod zlew", width=800, height=720))
        materials = _by_name(result.materials)
        assert "Trawers" in materials
        assert (materials["Front"].width, materials["Front"].qty) == (397, 2)
        hardware = _by_name(result.hardware)
        assert hardware["Zawias Blum Clip Top (zlew)"].sku == "71B3550"
        assert hardware["Zawias Blum Clip Top (zlew)"].qty == 4
        assert hardware["Mata ochronna pod zlew"].sku == UNKNOWN_SKU

    def test_dishwasher_front_only(self):
        result = expand_element(FurnitureElement(name="Zmywarka", width=600, height=720))
        assert [(p.name, p.width, p.height) for p in result.components] == [("Front Zmywarki", 600, 720)]

    def test_tall_unit(self):
        result = expand_element(FurnitureElement(name="Słupek", width=600, height=2100))
        materials = _by_name(result.materials)
        assert materials["Front Dolny"].height == 720
        assert materials["Front Górny"].height == 1376
        assert materials["Bok"].width == 560
        assert result.hardware[0].qty == 5

    def test_cargo_makes_front_only(self):
        result = expand_element(FurnitureElement(name="Cargo", width=400, height=720))
        assert result.hardware == []
        assert len(result.materials) == 1
        front = result.materials[0]
        assert (front.width, front.height) == (397, 717)

    def test_blenda(self):
        result = expand_element(FurnitureElement(name="Blenda", width=300, height=720))
        assert _by_name(result.hardware)["Zawias Blum Clip Top"].qty == 2
        assert "Wieniec Górny" in _by_name(result.materials)


class TestPanelRules:
    """Doors, fronts and countertops produce fittings only."""

    @pytest.mark.parametrize(("height", "hinges"), [(700, 2), (800, 2), (1000, 3), (1200, 3), (2000, 4)])
    def test_door_hinge_tiers(self, height, hinges):
        result = expand_element(FurnitureElement(name="Drzwi", width=500, height=height))
        hardware = _by_name(result.hardware)
        assert hardware["Zawias Blum Clip Top Blumotion"].qty == hinges
        assert hardware["Uchwyt meblowy"].sku == UNKNOWN_SKU
        assert result.materials == []

    def test_countertop_connectors(self):
        result = expand_element(FurnitureElement(name="Blat", width=1300, height=38))
        assert [(p.name, p.qty) for p in result.components] == [("Łącznik blatu", 3)]


class TestDrawerRule:
    def test_standalone_drawer(self):
        result = expand_element(FurnitureElement(name="Szuflada", width=600, height=200, qty=2))
        hardware = _by_name(result.hardware)
        runner = next(p for p in result.hardware if p.sku == "450.5001B")
        assert runner.qty == 2
        assert hardware["Mocowanie frontu MERIVOBOX"].qty == 4
        front = _by_name(result.materials)["Front szuflady"]
        assert (front.width, front.height, front.qty) == (600, 200, 2)


class TestExpansionEdges:
    """Defaults, pass-through and metadata."""

    def test_unknown_type_is_empty(self):
        result = expand_element(FurnitureElement(name="Lampa", width=100, height=100))
        assert result.components == []
        assert result.furniture_type is None

    def test_single_board_types_have_no_rule(self):
        result = expand_element(FurnitureElement(name="Bok", width=510, height=720))
        assert result.components == []
        assert result.furniture_type is FurnitureType.SIDE
        assert not has_expansion_rule("Bok")
        assert has_expansion_rule("Szafka dolna")

    def test_missing_sizes_use_type_defaults(self):
        result = expand_element(FurnitureElement(name="Słupek"))
        assert _by_name(result.materials)["Bok"].height == 2100

    def test_forced_type(self):
        result = expand_element(FurnitureElement(name="Element", width=300, height=720), FurnitureType.CARGO)
        assert [p.name for p in result.components] == ["Front Cargo"]

    def test_component_id_and_sku_on_every_part(self):
        element = FurnitureElement(name="Szafka dolna", width=600, height=720, component_id="D60")
        result = expand_element(element)
        assert all(part.component_id == "D60" for part in result.components)
        assert all(part.sku for part in result.components)
        assert all(part.type in (PartType.MATERIAL, PartType.HARDWARE) for part in result.components)

    def test_element_is_not_modified(self):
        element = FurnitureElement(name="Szafka dolna", width=600, height=720)
        expand_element(element)
        assert element == FurnitureElement(name="Szafka dolna", width=600, height=720)
