"""Domain data structures shared by the expansion and pricing pipeline.

Dimensions are millimetres. ``box_2d`` is ``[ymin, xmin, ymax, xmax]`` in the
0-1000 normalized space of the source drawing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

UNKNOWN_SKU = "NIEZNANY"
OTHER_COMPONENT = "Other"
# Polish label produced by older prompts; treated the same as OTHER_COMPONENT
OTHER_COMPONENT_ALIASES = frozenset({"OTHER", "INNE"})


class PartType(str, Enum):
    HARDWARE = "hardware"
    MATERIAL = "material"


@dataclass
class FurnitureElement:
    name: str
    width: float = 0.0
    height: float = 0.0
    qty: int = 1
    depth: Optional[float] = None
    box_2d: Optional[List[float]] = None
    component_id: Optional[str] = None

    def has_box(self) -> bool:
        return isinstance(self.box_2d, (list, tuple)) and len(self.box_2d) == 4


@dataclass
class AnalyzedGroup:
    sku: str
    elements: List[FurnitureElement] = field(default_factory=list)


@dataclass
class Part:
    """One expanded part: a board (material) or a purchased fitting (hardware)."""

    name: str
    qty: int
    type: PartType
    sku: str = UNKNOWN_SKU
    width: Optional[float] = None
    height: Optional[float] = None
    depth: Optional[float] = None
    description: Optional[str] = None
    component_id: Optional[str] = None

    @property
    def is_hardware(self) -> bool:
        return self.type is PartType.HARDWARE


@dataclass
class AnalysisMarker:
    id: int | str
    x: float
    y: float
    width: Optional[float] = None
    height: Optional[float] = None
    type: Optional[str] = None

    @property
    def is_region(self) -> bool:
        return bool(self.width) and bool(self.height)


@dataclass
class LineElement:
    name: str
    width: float
    height: float
    qty: int
    box_2d: Optional[List[float]] = None
    component_id: Optional[str] = None


@dataclass
class SheetResult:
    sku: str
    elements: List[LineElement]
    total_area_mm2: float
    sheets_needed: int
    unit_price: Optional[float] = None
    is_hardware: bool = False
    material_name: Optional[str] = None
    component_id: Optional[str] = None
    advisory: Optional[str] = None
    product_type: str = "plate_18mm"


@dataclass
class CatalogPrices:
    plate_18mm: Optional[float] = None
    plate_fireproof: Optional[float] = None
    laminate: Optional[float] = None
    unit_price: Optional[float] = None  # Blum hardware

    def get(self, product_type: str) -> Optional[float]:
        return getattr(self, product_type, None)


@dataclass
class CatalogEntry:
    sku: str
    name: str
    source: str = "UNKNOWN"  # EGGER | WOODECO | BLUM | UNKNOWN
    structure: str = ""
    symbol: str = ""
    description: str = ""
    min_order: int = 1
    prices: CatalogPrices = field(default_factory=CatalogPrices)

    @property
    def display_symbol(self) -> str:
        return self.symbol or self.sku


@dataclass
class Diagnostic:
    code: str
    message: str
    level: str = "warning"
    element: Optional[str] = None
    group_sku: Optional[str] = None


__all__ = [
    "UNKNOWN_SKU",
    "OTHER_COMPONENT",
    "OTHER_COMPONENT_ALIASES",
    "PartType",
    "FurnitureElement",
    "AnalyzedGroup",
    "Part",
    "AnalysisMarker",
    "LineElement",
    "SheetResult",
    "CatalogPrices",
    "CatalogEntry",
    "Diagnostic",
]
