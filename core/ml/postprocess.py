"""
Post-processing pipeline for raw vision-model output

Runs a fixed, order-sensitive chain of filters over the detected groups:
1. SKU normalization (uppercase / trim)
2. Building-door filter (name vocabulary + edge/full-height heuristic)
3. Window filter
4. Back-panel (HDF) filter
5. Wide-plinth check (warn only)
6. Dimension validator (cm -> mm correction, oversize warning)
7. Topper/upper-cabinet count check (warn only)
8. Hardware-placement guard
9. Deduplication

Door/window/back-panel filtering runs before dimension correction so the edge
heuristic sees the original coordinates. Every filter returns new objects and
leaves its input untouched; warnings are appended to an optional diagnostics
list as well as logged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

from loguru import logger

from core.models import UNKNOWN_SKU, AnalyzedGroup, Diagnostic, FurnitureElement
from core.settings import PostProcessSettings

DOOR_PATTERNS = [re.compile(p, re.IGNORECASE) for p in (r"drzwi", r"door", r"wejści", r"wejsci", r"entrance")]
# Cabinet fronts; these always survive the door filter
NOT_DOOR_PATTERNS = [re.compile(p, re.IGNORECASE) for p in (r"front", r"d\d{2}", r"g\d{2}", r"szafk", r"cargo", r"zlew")]
WINDOW_PATTERNS = [re.compile(p, re.IGNORECASE) for p in (r"okno", r"window", r"szpros")]
BACK_PANEL_PATTERNS = [re.compile(p, re.IGNORECASE) for p in (r"plecy", r"hdf", r"back")]
PLINTH_WORDS = ("cokół", "cokol", "plinth")

UPPER_SIDE_MARKERS = ("g30", "g40", "g50", "g60", "g80", "górn", "gorn", "witryn")
TOPPER_MARKERS = ("nadstawk", "n_", "overhead")
SIDE_WORDS = ("bok", "side")

FORBIDDEN_HARDWARE_SKU_KEYWORDS = (
    "INNE", "OTHER", "BLAT", "WORKTOP", "COKÓŁ", "COKOL", "PLINTH", "PANEL", "LISTWA", "STRIP",
)
HARDWARE_NAME_KEYWORDS = (
    "PROWADNICA", "ZAWIAS", "MOVENTO", "TANDEM", "MERIVOBOX", "UCHWYT", "RUNNER", "HINGE", "HANDLE",
)


@dataclass
class PostProcessResult:
    groups: List[AnalyzedGroup]
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def element_count(self) -> int:
        return count_elements(self.groups)


def count_elements(groups: List[AnalyzedGroup]) -> int:
    return sum(len(group.elements) for group in groups)


def _matches(patterns, name: str) -> bool:
    return any(pattern.search(name) for pattern in patterns)


def _emit(
    diagnostics: Optional[List[Diagnostic]],
    code: str,
    message: str,
    element: Optional[str] = None,
    group_sku: Optional[str] = None,
    level: str = "warning",
) -> None:
    if level == "info":
        logger.info("[postprocess] {}", message)
    else:
        logger.warning("[postprocess] {}", message)
    if diagnostics is not None:
        diagnostics.append(Diagnostic(code=code, message=message, level=level, element=element, group_sku=group_sku))


def _keep_elements(groups: List[AnalyzedGroup], predicate: Callable[[AnalyzedGroup, FurnitureElement], bool]) -> List[AnalyzedGroup]:
    result: List[AnalyzedGroup] = []
    for group in groups:
        kept = [replace(el) for el in group.elements if predicate(group, el)]
        if kept:
            result.append(AnalyzedGroup(sku=group.sku, elements=kept))
    return result


def normalize_group_skus(groups: List[AnalyzedGroup], diagnostics: Optional[List[Diagnostic]] = None) -> List[AnalyzedGroup]:
    return [
        AnalyzedGroup(
            sku=(group.sku or "").strip().upper() or UNKNOWN_SKU,
            elements=[replace(el) for el in group.elements],
        )
        for group in groups
    ]


def is_edge_door(element: FurnitureElement, settings: PostProcessSettings) -> bool:
    """Full-height box hugging the left or right image border."""
    if not element.has_box():
        return False
    ymin, xmin, ymax, xmax = element.box_2d
    at_edge = xmin < settings.edge_margin or xmax > 1000 - settings.edge_margin
    return at_edge and (ymax - ymin) > settings.full_height_span


def filter_building_doors(
    groups: List[AnalyzedGroup],
    diagnostics: Optional[List[Diagnostic]] = None,
    settings: Optional[PostProcessSettings] = None,
) -> List[AnalyzedGroup]:
    settings = settings or PostProcessSettings()

    def keep(group: AnalyzedGroup, element: FurnitureElement) -> bool:
        name = element.name or ""
        if _matches(NOT_DOOR_PATTERNS, name):
            return True
        if _matches(DOOR_PATTERNS, name):
            _emit(diagnostics, "door_removed", f"Removed building door: {name}", name, group.sku, level="info")
            return False
        if is_edge_door(element, settings):
            _emit(
                diagnostics,
                "edge_door_removed",
                f"Removed full-height element at image edge (likely a door): {name}",
                name,
                group.sku,
                level="info",
            )
            return False
        return True

    return _keep_elements(groups, keep)


def filter_windows(groups: List[AnalyzedGroup], diagnostics: Optional[List[Diagnostic]] = None) -> List[AnalyzedGroup]:
    def keep(group: AnalyzedGroup, element: FurnitureElement) -> bool:
        if _matches(WINDOW_PATTERNS, element.name or ""):
            _emit(diagnostics, "window_removed", f"Removed window: {element.name}", element.name, group.sku, level="info")
            return False
        return True

    return _keep_elements(groups, keep)


def filter_back_panels(groups: List[AnalyzedGroup], diagnostics: Optional[List[Diagnostic]] = None) -> List[AnalyzedGroup]:
    def keep(group: AnalyzedGroup, element: FurnitureElement) -> bool:
        if _matches(BACK_PANEL_PATTERNS, element.name or ""):
            _emit(diagnostics, "back_panel_removed", f"Removed back panel: {element.name}", element.name, group.sku, level="info")
            return False
        return True

    return _keep_elements(groups, keep)


def check_wide_plinths(
    groups: List[AnalyzedGroup],
    diagnostics: Optional[List[Diagnostic]] = None,
    settings: Optional[PostProcessSettings] = None,
) -> List[AnalyzedGroup]:
    """Warn about single plinths wider than a typical section. Never splits them."""
    settings = settings or PostProcessSettings()
    for group in groups:
        for element in group.elements:
            name = (element.name or "").lower()
            if any(word in name for word in PLINTH_WORDS) and element.width > settings.wide_plinth_mm and element.qty == 1:
                _emit(
                    diagnostics,
                    "wide_plinth",
                    f"Wide plinth ({element.width:g}mm) may need splitting into sections",
                    element.name,
                    group.sku,
                )
    return [AnalyzedGroup(sku=group.sku, elements=[replace(el) for el in group.elements]) for group in groups]


def validate_dimensions(
    groups: List[AnalyzedGroup],
    diagnostics: Optional[List[Diagnostic]] = None,
    settings: Optional[PostProcessSettings] = None,
) -> List[AnalyzedGroup]:
    """Scale dimensions in (0, min_dimension_mm) by 10 (cm read as mm); warn above the maximum."""
    settings = settings or PostProcessSettings()
    result: List[AnalyzedGroup] = []
    for group in groups:
        elements: List[FurnitureElement] = []
        for element in group.elements:
            width, height = element.width, element.height
            if 0 < width < settings.min_dimension_mm:
                _emit(diagnostics, "unit_corrected", f"Width {width:g} -> {width * 10:g} (cm->mm): {element.name}", element.name, group.sku, level="info")
                width = width * 10
            if 0 < height < settings.min_dimension_mm:
                _emit(diagnostics, "unit_corrected", f"Height {height:g} -> {height * 10:g} (cm->mm): {element.name}", element.name, group.sku, level="info")
                height = height * 10
            if width > settings.max_dimension_mm:
                _emit(diagnostics, "oversize_dimension", f"Very wide element {element.name} ({width:g}mm)", element.name, group.sku)
            if height > settings.max_dimension_mm:
                _emit(diagnostics, "oversize_dimension", f"Very tall element {element.name} ({height:g}mm)", element.name, group.sku)
            elements.append(replace(element, width=width, height=height))
        result.append(AnalyzedGroup(sku=group.sku, elements=elements))
    return result


def validate_overhead_cabinets(
    groups: List[AnalyzedGroup],
    diagnostics: Optional[List[Diagnostic]] = None,
    settings: Optional[PostProcessSettings] = None,
) -> List[AnalyzedGroup]:
    """Compare topper and upper-cabinet counts estimated from side-panel pairs.

    The substring heuristic can double count; the result is a hint only.
    """
    settings = settings or PostProcessSettings()
    upper_count = 0.0
    topper_count = 0.0
    for group in groups:
        for element in group.elements:
            name = (element.name or "").lower()
            is_side = any(word in name for word in SIDE_WORDS)
            if not is_side:
                continue
            if any(marker in name for marker in UPPER_SIDE_MARKERS):
                upper_count += element.qty / 2
            if any(marker in name for marker in TOPPER_MARKERS):
                topper_count += element.qty / 2

    if topper_count > upper_count + settings.overhead_tolerance:
        _emit(
            diagnostics,
            "topper_count",
            f"Too many toppers ({topper_count:g}) compared to upper cabinets ({upper_count:g})",
        )
    return [AnalyzedGroup(sku=group.sku, elements=[replace(el) for el in group.elements]) for group in groups]


def is_hardware_name(name: str) -> bool:
    upper = (name or "").upper()
    return any(keyword in upper for keyword in HARDWARE_NAME_KEYWORDS)


def remove_misplaced_hardware(groups: List[AnalyzedGroup], diagnostics: Optional[List[Diagnostic]] = None) -> List[AnalyzedGroup]:
    """Strip hardware-named elements from groups whose SKU is a non-unit category."""

    def keep(group: AnalyzedGroup, element: FurnitureElement) -> bool:
        sku = group.sku.upper()
        if not any(keyword in sku for keyword in FORBIDDEN_HARDWARE_SKU_KEYWORDS):
            return True
        if is_hardware_name(element.name):
            _emit(
                diagnostics,
                "misplaced_hardware",
                f"Removed hardware from group {group.sku}: {element.name}",
                element.name,
                group.sku,
            )
            return False
        return True

    return _keep_elements(groups, keep)


def dedup_key(element: FurnitureElement) -> str:
    box = ",".join(f"{value:g}" for value in element.box_2d) if element.box_2d else ""
    return f"{element.name}|{element.width:g}|{element.height:g}|{box}"


def deduplicate_components(groups: List[AnalyzedGroup], diagnostics: Optional[List[Diagnostic]] = None) -> List[AnalyzedGroup]:
    """Merge identical elements within a group by summing quantities.

    Elements of different units differ by the component id in their name, so
    only true duplicates (same name, size and box) collapse.
    """
    result: List[AnalyzedGroup] = []
    for group in groups:
        unique: dict[str, FurnitureElement] = {}
        for element in group.elements:
            key = dedup_key(element)
            existing = unique.get(key)
            if existing is None:
                unique[key] = replace(element)
                continue
            existing.qty += element.qty
            logger.debug("[postprocess] Merged duplicate {} -> x{}", element.name, existing.qty)
        result.append(AnalyzedGroup(sku=group.sku, elements=list(unique.values())))
    return result


def post_process_analysis(groups: List[AnalyzedGroup], settings: Optional[PostProcessSettings] = None) -> PostProcessResult:
    """Run the full filter chain over raw vision output.

    Args:
        groups: Groups as returned by the vision model (not modified)
        settings: Thresholds; defaults match config/default.yaml

    Returns:
        PostProcessResult with the cleaned groups and collected diagnostics
    """
    settings = settings or PostProcessSettings()
    diagnostics: List[Diagnostic] = []
    logger.info("[postprocess] Start - elements: {}", count_elements(groups))

    result = normalize_group_skus(groups, diagnostics)
    result = filter_building_doors(result, diagnostics, settings)
    result = filter_windows(result, diagnostics)
    result = filter_back_panels(result, diagnostics)
    result = check_wide_plinths(result, diagnostics, settings)
    result = validate_dimensions(result, diagnostics, settings)
    result = validate_overhead_cabinets(result, diagnostics, settings)
    result = remove_misplaced_hardware(result, diagnostics)
    result = deduplicate_components(result, diagnostics)

    logger.info("[postprocess] Done - elements: {}, diagnostics: {}", count_elements(result), len(diagnostics))
    return PostProcessResult(groups=result, diagnostics=diagnostics)


__all__ = [
    "PostProcessResult",
    "post_process_analysis",
    "normalize_group_skus",
    "filter_building_doors",
    "filter_windows",
    "filter_back_panels",
    "check_wide_plinths",
    "validate_dimensions",
    "validate_overhead_cabinets",
    "remove_misplaced_hardware",
    "deduplicate_components",
    "dedup_key",
    "is_hardware_name",
]
