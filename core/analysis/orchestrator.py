"""
Analysis orchestrator

Pipeline for one drawing:
1. Post-process the raw groups (core.ml.postprocess)
2. With markers, replace the groups by the marker-matched set
3. Expand every element: drawer kit, rule-based expansion or pass-through
4. Bucket boards by component id (fallback: group SKU) and hardware by
   (SKU, component id), then price each bucket against the catalogs

All state is local to one call; the catalog registry is read only.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set

from loguru import logger

from core.exceptions import EstimatorError, InputValidationError
from core.geometry.marker_matching import match_markers
from core.ml.postprocess import post_process_analysis
from core.models import (
    OTHER_COMPONENT,
    OTHER_COMPONENT_ALIASES,
    UNKNOWN_SKU,
    AnalysisMarker,
    AnalyzedGroup,
    Diagnostic,
    FurnitureElement,
    LineElement,
    Part,
    SheetResult,
)
from core.pricing.catalog import CatalogRegistry
from core.pricing.catalog_loader import PRICE_UNAVAILABLE, calculate_price, unknown_material
from core.rules.component_rules import PANEL_TYPES, expand_element, has_expansion_rule
from core.rules.drawer_systems import build_drawer_spec, expand_drawer
from core.rules.furniture_types import FurnitureType, is_cargo_name, is_drawer_element
from core.settings import Settings, get_settings

_COMPONENT_SUFFIX = re.compile(r" - ")
_NUMBER = re.compile(r"-?\d+(?:[.,]\d+)?")


class VisionClient(Protocol):
    def analyze(self, image_base64: str, description: Optional[str] = None) -> List[dict[str, Any]]:
        ...


@dataclass
class AnalysisResult:
    sheets: List[SheetResult]
    diagnostics: List[Diagnostic] = field(default_factory=list)


@dataclass
class AnalysisOutcome:
    success: bool
    sheets: List[SheetResult] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class _SheetBucket:
    sku: str
    component_id: Optional[str]
    elements: List[LineElement] = field(default_factory=list)
    # group SKUs of boards that joined after the bucket took its SKU
    other_skus: Set[str] = field(default_factory=set)


def extract_component_id(name: str) -> str:
    """Text after the last " - " in ``name``, or the Other sentinel."""
    parts = _COMPONENT_SUFFIX.split(name or "")
    if len(parts) < 2 or not parts[-1].strip():
        return OTHER_COMPONENT
    return parts[-1].strip()


def is_other_component(component_id: Optional[str]) -> bool:
    return not component_id or component_id.strip().upper() in OTHER_COMPONENT_ALIASES


def strip_component_suffix(name: str) -> str:
    head, sep, _ = (name or "").rpartition(" - ")
    return head if sep else name


def with_component_suffix(name: str, component_id: Optional[str]) -> str:
    if is_other_component(component_id):
        return name
    return f"{name} - {component_id}"


# -- untrusted payload coercion --------------------------------------------


def _to_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _NUMBER.search(value)
        if match:
            return float(match.group(0).replace(",", "."))
    return default


def _to_qty(value: Any) -> int:
    qty = int(_to_float(value, 1.0))
    return qty if qty >= 1 else 1


def _to_box(value: Any) -> Optional[List[float]]:
    if not isinstance(value, (list, tuple)) or len(value) != 4:
        return None
    try:
        ymin, xmin, ymax, xmax = (float(v) for v in value)
    except (TypeError, ValueError):
        return None
    if ymin >= ymax or xmin >= xmax:
        return None
    return [ymin, xmin, ymax, xmax]


def element_from_payload(raw: dict[str, Any]) -> FurnitureElement:
    depth = raw.get("depth")
    component_id = raw.get("component_id") or raw.get("componentId")
    return FurnitureElement(
        name=str(raw.get("name") or "Element"),
        width=_to_float(raw.get("width")),
        height=_to_float(raw.get("height")),
        qty=_to_qty(raw.get("qty", 1)),
        depth=_to_float(depth) or None,
        box_2d=_to_box(raw.get("box_2d")),
        component_id=str(component_id) if component_id else None,
    )


def groups_from_payload(raw: Any) -> List[AnalyzedGroup]:
    """Coerce model JSON into groups: string numbers, missing qty, bad boxes.

    Raises:
        InputValidationError: If the payload is not a list of groups.
    """
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        raise InputValidationError("Analysis payload must be a list of groups", {"type": type(raw).__name__})
    groups: List[AnalyzedGroup] = []
    for item in raw:
        if not isinstance(item, dict):
            logger.debug("[orchestrator] Skipping non-object group: {!r}", item)
            continue
        elements = [element_from_payload(el) for el in item.get("elements") or [] if isinstance(el, dict)]
        groups.append(AnalyzedGroup(sku=str(item.get("sku") or UNKNOWN_SKU), elements=elements))
    return groups


# -- orchestration -----------------------------------------------------------


class AnalysisOrchestrator:
    """Expands, buckets and prices post-processed groups."""

    def __init__(self, catalogs: Optional[CatalogRegistry] = None, settings: Optional[Settings] = None) -> None:
        self.catalogs = catalogs or CatalogRegistry.from_entries()
        self.settings = settings or get_settings()

    @property
    def product_type(self) -> str:
        return self.settings.estimate.default_product_type

    def run(self, groups: List[AnalyzedGroup], markers: Optional[List[AnalysisMarker]] = None) -> AnalysisResult:
        processed = post_process_analysis(groups, self.settings.postprocess)
        diagnostics = list(processed.diagnostics)
        working = processed.groups

        if markers:
            matched = match_markers(working, markers)
            diagnostics.extend(matched.diagnostics)
            working = matched.groups
            logger.info("[orchestrator] Markers: {} matched, {} placeholders", matched.matched, matched.synthesized)

        sheet_buckets: Dict[str, _SheetBucket] = {}
        hardware: Dict[str, List[LineElement]] = {}

        for group in working:
            group_sku = (group.sku or UNKNOWN_SKU).strip().upper() or UNKNOWN_SKU
            for element in group.elements:
                self._expand_into(element, group_sku, sheet_buckets, hardware)

        for bucket in sheet_buckets.values():
            if bucket.other_skus:
                diagnostics.append(self._mixed_sku_diagnostic(bucket))
        sheets = [self._board_line(bucket) for bucket in sheet_buckets.values() if bucket.elements]
        for sku, items in hardware.items():
            sheets.extend(self._hardware_lines(sku, items, diagnostics))

        for sheet in sheets:
            if sheet.advisory:
                diagnostics.append(
                    Diagnostic(code="pricing", message=f"{sheet.sku}: {sheet.advisory}", group_sku=sheet.sku)
                )
        logger.info("[orchestrator] Produced {} line items ({} diagnostics)", len(sheets), len(diagnostics))
        return AnalysisResult(sheets=sheets, diagnostics=diagnostics)

    # -- expansion ------------------------------------------------------

    def _expand_into(
        self,
        element: FurnitureElement,
        group_sku: str,
        sheet_buckets: Dict[str, _SheetBucket],
        hardware: Dict[str, List[LineElement]],
    ) -> None:
        component_id = element.component_id or extract_component_id(element.name)
        if is_other_component(component_id):
            component_id = OTHER_COMPONENT
        sheet_key = group_sku if component_id == OTHER_COMPONENT else component_id
        box = element.box_2d if element.has_box() else None
        name = element.name or "Element"

        is_cargo = is_cargo_name(name) or (component_id != OTHER_COMPONENT and is_cargo_name(component_id))
        is_drawer = not is_cargo and (is_drawer_element(name) or group_sku.startswith("SZUFLADA"))

        def add_board(line: LineElement) -> None:
            bucket = sheet_buckets.get(sheet_key)
            if bucket is None:
                bucket = sheet_buckets[sheet_key] = _SheetBucket(
                    sku=group_sku,
                    component_id=None if component_id == OTHER_COMPONENT else component_id,
                )
            elif bucket.sku != group_sku:
                bucket.other_skus.add(group_sku)
            bucket.elements.append(line)

        def add_hardware(part: Part, qty: int) -> None:
            sku = part.sku or UNKNOWN_SKU
            hardware.setdefault(sku, []).append(
                LineElement(
                    name=with_component_suffix(part.name, component_id),
                    width=0.0,
                    height=0.0,
                    qty=qty,
                    box_2d=box,
                    component_id=component_id,
                )
            )

        if is_drawer:
            spec = build_drawer_spec(name, group_sku)
            logger.debug("[orchestrator] Drawer {} -> {}", name, spec)
            for part in expand_drawer(spec, element.width):
                add_hardware(part, part.qty * element.qty)
            return

        if is_cargo or has_expansion_rule(name):
            forced = FurnitureType.CARGO if is_cargo else None
            expansion = expand_element(element, forced)
            for part in expansion.components:
                if part.is_hardware:
                    add_hardware(part, part.qty)
                else:
                    add_board(
                        LineElement(
                            name=with_component_suffix(part.name, component_id),
                            width=part.width or 0.0,
                            height=part.height or 0.0,
                            qty=part.qty,
                            box_2d=box,
                            component_id=None if component_id == OTHER_COMPONENT else component_id,
                        )
                    )
            if expansion.furniture_type not in PANEL_TYPES:
                return

        add_board(
            LineElement(
                name=name,
                width=element.width,
                height=element.height,
                qty=element.qty,
                box_2d=box,
                component_id=None if component_id == OTHER_COMPONENT else component_id,
            )
        )

    # -- line items ------------------------------------------------------

    @staticmethod
    def _mixed_sku_diagnostic(bucket: _SheetBucket) -> Diagnostic:
        # one board line per unit; its SKU is the first group seen
        others = ", ".join(sorted(bucket.other_skus))
        logger.warning("[orchestrator] Unit {} mixes {} with {}", bucket.component_id, bucket.sku, others)
        return Diagnostic(
            code="pricing",
            message=f"{bucket.component_id}: boards from {others} priced as {bucket.sku}",
            element=bucket.component_id,
            group_sku=bucket.sku,
        )

    def _board_line(self, bucket: _SheetBucket) -> SheetResult:
        total_area = sum(el.width * el.height * el.qty for el in bucket.elements)
        sheets_needed = max(1, math.ceil(total_area / self.settings.estimate.sheet_area_mm2))
        entry = None if bucket.sku == UNKNOWN_SKU else self.catalogs.find_board(bucket.sku)
        price = calculate_price(entry, self.product_type, sheets_needed, sku=bucket.sku)
        if price.error:
            logger.warning("[orchestrator] {}: {}", bucket.sku, price.error)
        return SheetResult(
            sku=bucket.sku,
            elements=bucket.elements,
            total_area_mm2=total_area,
            sheets_needed=sheets_needed,
            unit_price=price.unit_price,
            is_hardware=False,
            material_name=price.material_name or None,
            component_id=bucket.component_id,
            advisory=price.error,
            product_type=self.product_type,
        )

    def _hardware_lines(self, sku: str, items: List[LineElement], diagnostics: List[Diagnostic]) -> List[SheetResult]:
        by_component: Dict[str, List[LineElement]] = {}
        for item in items:
            by_component.setdefault(item.component_id or OTHER_COMPONENT, []).append(item)

        entry = None if sku == UNKNOWN_SKU else self.catalogs.find_hardware(sku)
        lines: List[SheetResult] = []
        for component_id, component_items in by_component.items():
            if is_other_component(component_id):
                logger.debug("[orchestrator] Dropping {} orphan hardware items for {}", len(component_items), sku)
                diagnostics.append(
                    Diagnostic(
                        code="orphan_hardware",
                        message=f"Hardware {sku} without a furniture unit was skipped",
                        level="info",
                        group_sku=sku,
                    )
                )
                continue
            if is_cargo_name(component_id):
                logger.debug("[orchestrator] Cargo unit {} is a complete system, skipping {}", component_id, sku)
                continue

            total_qty = sum(item.qty for item in component_items)
            if entry is not None:
                base_name = entry.description or f"Blum {entry.display_symbol}"
                unit_price = entry.prices.unit_price
                advisory = None if unit_price is not None else PRICE_UNAVAILABLE
            else:
                base_name = strip_component_suffix(component_items[0].name) or "Okucia Blum"
                unit_price = None
                advisory = unknown_material(sku)
            label = f"{base_name} - {component_id}"
            lines.append(
                SheetResult(
                    sku=sku,
                    elements=[
                        LineElement(
                            name=label,
                            width=item.width,
                            height=item.height,
                            qty=item.qty,
                            box_2d=item.box_2d,
                            component_id=component_id,
                        )
                        for item in component_items
                    ],
                    total_area_mm2=0.0,
                    sheets_needed=total_qty,
                    unit_price=unit_price,
                    is_hardware=True,
                    material_name=label,
                    component_id=component_id,
                    advisory=advisory,
                    product_type="unit_price",
                )
            )
        return lines


def analyze_drawing(
    image_base64: str,
    description: Optional[str],
    markers: Optional[Iterable[AnalysisMarker]],
    vision_client: VisionClient,
    catalogs: Optional[CatalogRegistry] = None,
    settings: Optional[Settings] = None,
) -> AnalysisOutcome:
    """Full analysis of one drawing; failures come back as ``success=False``."""
    try:
        raw = vision_client.analyze(image_base64, description)
        groups = groups_from_payload(raw)
        result = AnalysisOrchestrator(catalogs, settings).run(groups, list(markers or []))
    except EstimatorError as exc:
        logger.error("[orchestrator] Analysis failed: {} {}", exc.message, exc.details)
        return AnalysisOutcome(success=False, error=exc.message)
    except Exception as exc:
        logger.exception("[orchestrator] Unexpected analysis failure")
        return AnalysisOutcome(success=False, error=str(exc) or "Failed to analyze drawing")
    return AnalysisOutcome(success=True, sheets=result.sheets, diagnostics=result.diagnostics)


__all__ = [
    "AnalysisOrchestrator",
    "AnalysisResult",
    "AnalysisOutcome",
    "VisionClient",
    "analyze_drawing",
    "extract_component_id",
    "groups_from_payload",
    "element_from_payload",
    "with_component_suffix",
]
