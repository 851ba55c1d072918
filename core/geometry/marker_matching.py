"""
Marker matching: reconcile user-drawn markers with detected boxes.

Markers are ground truth. When markers are present, the output holds exactly
one element per marker and every detection not claimed by a marker is
discarded.

Coordinates: markers are percent (0-100, top-left anchored), boxes are
``[ymin, xmin, ymax, xmax]`` in the 0-1000 space. Shapely geometries use
(x, y) order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

from loguru import logger
from shapely.geometry import Point, Polygon, box

from core.models import UNKNOWN_SKU, AnalysisMarker, AnalyzedGroup, Diagnostic, FurnitureElement

PERCENT_TO_BOX_SCALE = 10.0
PLACEHOLDER_WIDTH_MM = 600.0
PLACEHOLDER_HEIGHT_MM = 720.0
POINT_PLACEHOLDER_HALF_SIZE = 50.0
UNDETECTED_CABINET = "Szafka (Nie wykryto)"

_PREVIOUS_MARKER_SUFFIX = (re.compile(r" - M\d+.*$"), re.compile(r" - Marker.*$"))


@dataclass
class Candidate:
    group_sku: str
    element: FurnitureElement
    shape: Polygon

    @property
    def center(self) -> Point:
        return self.shape.centroid


@dataclass
class MarkerMatchResult:
    groups: List[AnalyzedGroup]
    diagnostics: List[Diagnostic] = field(default_factory=list)
    matched: int = 0
    synthesized: int = 0


def box_to_polygon(box_2d: List[float]) -> Polygon:
    ymin, xmin, ymax, xmax = (float(v) for v in box_2d)
    return box(xmin, ymin, xmax, ymax)


def marker_region(marker: AnalysisMarker) -> Tuple[float, float, float, float]:
    """Marker rectangle as ``(ymin, xmin, ymax, xmax)`` in box space."""
    my = marker.y * PERCENT_TO_BOX_SCALE
    mx = marker.x * PERCENT_TO_BOX_SCALE
    return (
        my,
        mx,
        my + (marker.height or 0) * PERCENT_TO_BOX_SCALE,
        mx + (marker.width or 0) * PERCENT_TO_BOX_SCALE,
    )


def collect_candidates(groups: List[AnalyzedGroup]) -> List[Candidate]:
    candidates: List[Candidate] = []
    for group in groups:
        for element in group.elements:
            if element.has_box():
                candidates.append(Candidate(group.sku, element, box_to_polygon(element.box_2d)))
    return candidates


def find_candidate(marker: AnalysisMarker, candidates: List[Candidate]) -> Optional[int]:
    """Index of the first candidate claimed by ``marker``, bounds inclusive.

    Region markers claim a box whose center lies in the marker rectangle;
    point markers claim a box that contains the point.
    """
    ymin, xmin, ymax, xmax = marker_region(marker)
    if marker.is_region:
        region = box(xmin, ymin, xmax, ymax)
        for index, candidate in enumerate(candidates):
            if region.covers(candidate.center):
                return index
        return None

    point = Point(xmin, ymin)
    for index, candidate in enumerate(candidates):
        if candidate.shape.covers(point):
            return index
    return None


def clean_marker_name(name: str) -> str:
    cleaned = name or "Element"
    for pattern in _PREVIOUS_MARKER_SUFFIX:
        cleaned = pattern.sub("", cleaned)
    return cleaned


def marker_element_name(marker: AnalysisMarker, base_name: str) -> str:
    label = marker.type or clean_marker_name(base_name)
    return f"{label} - {label} M{marker.id}"


def placeholder_element(marker: AnalysisMarker) -> FurnitureElement:
    ymin, xmin, ymax, xmax = marker_region(marker)
    if marker.is_region:
        synthetic_box = [ymin, xmin, ymax, xmax]
    else:
        half = POINT_PLACEHOLDER_HALF_SIZE
        synthetic_box = [ymin - half, xmin - half, ymin + half, xmin + half]
    return FurnitureElement(
        name=marker_element_name(marker, UNDETECTED_CABINET),
        width=PLACEHOLDER_WIDTH_MM,
        height=PLACEHOLDER_HEIGHT_MM,
        qty=1,
        box_2d=synthetic_box,
    )


def match_markers(groups: List[AnalyzedGroup], markers: List[AnalysisMarker]) -> MarkerMatchResult:
    """Replace detected groups with exactly one element per marker.

    Args:
        groups: Post-processed groups; only elements with a valid ``box_2d``
            take part in matching.
        markers: User markers, processed in order.

    Returns:
        MarkerMatchResult whose groups are rebuilt by source group SKU in
        first-seen order (placeholders go to the unknown SKU).
    """
    candidates = collect_candidates(groups)
    logger.info("[markers] Matching {} markers against {} candidates", len(markers), len(candidates))

    diagnostics: List[Diagnostic] = []
    rebuilt: dict[str, List[FurnitureElement]] = {}
    matched = 0
    synthesized = 0

    for marker in markers:
        index = find_candidate(marker, candidates)
        if index is not None:
            candidate = candidates.pop(index)
            element = replace(
                candidate.element,
                qty=1,
                name=marker_element_name(marker, candidate.element.name),
                component_id=None,
            )
            sku = candidate.group_sku
            matched += 1
            logger.debug("[markers] M{} -> {}", marker.id, element.name)
        else:
            element = placeholder_element(marker)
            sku = UNKNOWN_SKU
            synthesized += 1
            message = f"Marker M{marker.id} has no matching detection; placeholder created: {element.name}"
            logger.warning("[markers] {}", message)
            diagnostics.append(Diagnostic(code="marker_unmatched", message=message, element=element.name, group_sku=sku))
        rebuilt.setdefault(sku, []).append(element)

    result_groups = [AnalyzedGroup(sku=sku, elements=elements) for sku, elements in rebuilt.items()]
    return MarkerMatchResult(groups=result_groups, diagnostics=diagnostics, matched=matched, synthesized=synthesized)


__all__ = [
    "MarkerMatchResult",
    "match_markers",
    "find_candidate",
    "marker_region",
    "marker_element_name",
    "placeholder_element",
    "collect_candidates",
    "box_to_polygon",
]
