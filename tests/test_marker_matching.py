"""Tests for marker-to-detection matching."""

from __future__ import annotations

from core.geometry.marker_matching import (
    UNDETECTED_CABINET,
    clean_marker_name,
    find_candidate,
    collect_candidates,
    marker_element_name,
    marker_region,
    match_markers,
)
from core.models import UNKNOWN_SKU, AnalysisMarker, AnalyzedGroup, FurnitureElement


def _element(name, box, **kwargs):
    return FurnitureElement(name=name, width=600, height=720, box_2d=box, **kwargs)


class TestRegionMarkers:
    """Markers with width and height claim boxes whose center they cover."""

    def test_region_scale(self):
        marker = AnalysisMarker(id=1, x=10, y=10, width=20, height=10)
        assert marker_region(marker) == (100, 100, 200, 300)

    def test_center_inside_region(self):
        groups = [AnalyzedGroup("W980", [_element("Szafka", [120, 150, 180, 250])])]
        marker = AnalysisMarker(id=1, x=10, y=10, width=20, height=10)
        result = match_markers(groups, [marker])
        assert result.matched == 1
        element = result.groups[0].elements[0]
        assert result.groups[0].sku == "W980"
        assert element.name == "Szafka - Szafka M1"
        assert element.box_2d == [120, 150, 180, 250]

    def test_large_coordinates(self):
        groups = [AnalyzedGroup("W980", [_element("Szafka", [1200, 1500, 1800, 2500])])]
        marker = AnalysisMarker(id=7, x=100, y=100, width=200, height=100)
        result = match_markers(groups, [marker])
        assert result.matched == 1
        assert result.synthesized == 0

    def test_center_outside_region(self):
        groups = [AnalyzedGroup("W980", [_element("Szafka", [500, 500, 900, 900])])]
        marker = AnalysisMarker(id=1, x=10, y=10, width=20, height=10)
        result = match_markers(groups, [marker])
        assert result.matched == 0
        assert result.groups[0].sku == UNKNOWN_SKU
        assert result.groups[0].elements[0].box_2d == [100, 100, 200, 300]


class TestPointMarkers:
    def test_point_inside_box(self):
        groups = [AnalyzedGroup("W980", [_element("Szafka", [400, 400, 600, 600])])]
        result = match_markers(groups, [AnalysisMarker(id=2, x=50, y=50)])
        assert result.matched == 1

    def test_point_on_boundary(self):
        candidates = collect_candidates([AnalyzedGroup("W980", [_element("Szafka", [400, 400, 600, 600])])])
        assert find_candidate(AnalysisMarker(id=1, x=40, y=60), candidates) == 0

    def test_point_placeholder_box(self):
        result = match_markers([], [AnalysisMarker(id=3, x=50, y=50)])
        element = result.groups[0].elements[0]
        assert element.box_2d == [450, 450, 550, 550]
        assert (element.width, element.height, element.qty) == (600, 720, 1)
        assert element.name == f"{UNDETECTED_CABINET} - {UNDETECTED_CABINET} M3"


class TestMatching:
    """One element per marker, exclusive claims."""

    def test_one_element_per_marker(self):
        groups = [
            AnalyzedGroup(
                "W980",
                [
                    _element("Szafka A", [100, 100, 200, 200], qty=3),
                    _element("Szafka B", [500, 500, 600, 600]),
                    _element("Szafka C", [800, 800, 900, 900]),
                ],
            )
        ]
        markers = [AnalysisMarker(id=i, x=x, y=y) for i, (x, y) in enumerate([(15, 15), (55, 55), (30, 30)], start=1)]
        result = match_markers(groups, markers)
        elements = [el for group in result.groups for el in group.elements]
        assert len(elements) == len(markers)
        assert all(el.qty == 1 for el in elements)
        assert result.matched == 2
        assert result.synthesized == 1
        assert [d.code for d in result.diagnostics] == ["marker_unmatched"]

    def test_box_claimed_once(self):
        groups = [AnalyzedGroup("W980", [_element("Szafka", [400, 400, 600, 600])])]
        markers = [AnalysisMarker(id=1, x=50, y=50), AnalysisMarker(id=2, x=50, y=50)]
        result = match_markers(groups, markers)
        assert result.matched == 1
        assert result.synthesized == 1
        assert [group.sku for group in result.groups] == ["W980", UNKNOWN_SKU]

    def test_elements_without_box_ignored(self):
        groups = [AnalyzedGroup("W980", [FurnitureElement("Bok", 510, 720)])]
        result = match_markers(groups, [AnalysisMarker(id=1, x=50, y=50)])
        assert result.matched == 0

    def test_groups_in_first_seen_order(self):
        groups = [
            AnalyzedGroup("A", [_element("Szafka", [100, 100, 200, 200])]),
            AnalyzedGroup("B", [_element("Szafka", [500, 500, 600, 600])]),
        ]
        markers = [AnalysisMarker(id=1, x=55, y=55), AnalysisMarker(id=2, x=15, y=15)]
        result = match_markers(groups, markers)
        assert [group.sku for group in result.groups] == ["B", "A"]

    def test_marker_type_names_element(self):
        groups = [AnalyzedGroup("W980", [_element("Szafka", [400, 400, 600, 600], component_id="X")])]
        result = match_markers(groups, [AnalysisMarker(id=4, x=50, y=50, type="D60")])
        element = result.groups[0].elements[0]
        assert element.name == "D60 - D60 M4"
        assert element.component_id is None

    def test_input_not_modified(self):
        element = _element("Szafka", [400, 400, 600, 600], qty=2)
        match_markers([AnalyzedGroup("W980", [element])], [AnalysisMarker(id=1, x=50, y=50)])
        assert element.qty == 2
        assert element.name == "Szafka"

    def test_no_markers(self):
        result = match_markers([AnalyzedGroup("W980", [_element("Szafka", [1, 1, 2, 2])])], [])
        assert result.groups == []


def test_previous_marker_suffix_removed():
    assert clean_marker_name("Szafka - M3") == "Szafka"
    assert clean_marker_name("Szafka - Marker 2") == "Szafka"
    marker = AnalysisMarker(id=5, x=0, y=0)
    assert marker_element_name(marker, "Szafka - M1") == "Szafka - Szafka M5"
