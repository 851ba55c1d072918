from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.models import (
    UNKNOWN_SKU,
    AnalysisMarker,
    AnalyzedGroup,
    FurnitureElement,
    LineElement,
    SheetResult,
)


def _check_box(value: list[float] | None) -> list[float] | None:
    if value is None:
        return None
    if len(value) != 4:
        raise ValueError("box_2d must be [ymin, xmin, ymax, xmax]")
    ymin, xmin, ymax, xmax = value
    if ymin >= ymax or xmin >= xmax:
        raise ValueError("box_2d requires ymin < ymax and xmin < xmax")
    return value


class ElementIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    width: float = 0.0
    height: float = 0.0
    qty: int = Field(1, ge=1)
    depth: float | None = Field(default=None, gt=0.0)
    box_2d: list[float] | None = None
    component_id: str | None = Field(default=None, alias="componentId")

    @field_validator("box_2d")
    @classmethod
    def _valid_box(cls, value: list[float] | None) -> list[float] | None:
        return _check_box(value)

    def to_element(self) -> FurnitureElement:
        return FurnitureElement(
            name=self.name,
            width=self.width,
            height=self.height,
            qty=self.qty,
            depth=self.depth,
            box_2d=list(self.box_2d) if self.box_2d else None,
            component_id=self.component_id,
        )


class GroupIn(BaseModel):
    sku: str = UNKNOWN_SKU
    elements: list[ElementIn] = Field(default_factory=list)

    def to_group(self) -> AnalyzedGroup:
        return AnalyzedGroup(sku=self.sku, elements=[el.to_element() for el in self.elements])


class MarkerIn(BaseModel):
    id: int | str
    x: float = Field(..., ge=0.0, le=100.0)
    y: float = Field(..., ge=0.0, le=100.0)
    width: float | None = Field(default=None, ge=0.0, le=100.0)
    height: float | None = Field(default=None, ge=0.0, le=100.0)
    type: str | None = None

    def to_marker(self) -> AnalysisMarker:
        return AnalysisMarker(id=self.id, x=self.x, y=self.y, width=self.width, height=self.height, type=self.type or None)


class AnalyzeRequest(BaseModel):
    image_base64: str = Field(..., min_length=1)
    description: str | None = None
    markers: list[MarkerIn] = Field(default_factory=list)


class EstimateRequest(BaseModel):
    groups: list[GroupIn]
    markers: list[MarkerIn] = Field(default_factory=list)


class LineElementModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    width: float = 0.0
    height: float = 0.0
    qty: int = Field(1, ge=0)
    box_2d: list[float] | None = None
    component_id: str | None = None


class SheetModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sku: str
    elements: list[LineElementModel] = Field(default_factory=list)
    total_area_mm2: float = 0.0
    sheets_needed: int = Field(1, ge=0)
    unit_price: float | None = None
    is_hardware: bool = False
    material_name: str | None = None
    component_id: str | None = None
    advisory: str | None = None
    product_type: str = "plate_18mm"

    def to_sheet(self) -> SheetResult:
        return SheetResult(
            sku=self.sku,
            elements=[LineElement(**el.model_dump()) for el in self.elements],
            total_area_mm2=self.total_area_mm2,
            sheets_needed=self.sheets_needed,
            unit_price=self.unit_price,
            is_hardware=self.is_hardware,
            material_name=self.material_name,
            component_id=self.component_id,
            advisory=self.advisory,
            product_type=self.product_type,
        )


class DiagnosticModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    level: str = "warning"
    element: str | None = None
    group_sku: str | None = None


class AnalysisResponse(BaseModel):
    success: bool
    sheets: list[SheetModel] = Field(default_factory=list)
    diagnostics: list[DiagnosticModel] = Field(default_factory=list)
    error: str | None = None


class CatalogPricesModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    plate_18mm: float | None = None
    plate_fireproof: float | None = None
    laminate: float | None = None
    unit_price: float | None = None


class CatalogEntryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sku: str
    name: str
    source: str
    structure: str = ""
    symbol: str = ""
    description: str = ""
    min_order: int = 1
    prices: CatalogPricesModel


class CatalogResponse(BaseModel):
    entries: list[CatalogEntryModel]
    count: int
    last_updated: str


class CatalogLookupResponse(BaseModel):
    sku: str
    found: bool
    entry: Optional[CatalogEntryModel] = None
    unit_price: float | None = None
    advisory: str | None = None


class CatalogSearchResponse(BaseModel):
    query: str
    count: int
    results: list[CatalogEntryModel]


class TotalsRequest(BaseModel):
    sheets: list[SheetModel]
    markup_percent: float = Field(0.0, ge=0.0)
    assembly_percent: float = Field(0.0, ge=0.0)


class TotalsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    materials_total: float
    markup_amount: float
    subtotal: float
    assembly_amount: float
    grand_total: float
    total_sheets: int
    total_pieces: int
    unpriced_rows: int


class RepriceRequest(BaseModel):
    sheet: SheetModel
    sku: str = Field(..., min_length=1)
    product_type: str | None = None

    @field_validator("product_type")
    @classmethod
    def _known_product_type(cls, value: str | None) -> str | None:
        allowed = {"plate_18mm", "plate_fireproof", "laminate", "unit_price"}
        if value is not None and value not in allowed:
            raise ValueError(f"product_type must be one of {sorted(allowed)}")
        return value


__all__ = [
    "ElementIn",
    "GroupIn",
    "MarkerIn",
    "AnalyzeRequest",
    "EstimateRequest",
    "LineElementModel",
    "SheetModel",
    "DiagnosticModel",
    "AnalysisResponse",
    "CatalogEntryModel",
    "CatalogResponse",
    "CatalogLookupResponse",
    "CatalogSearchResponse",
    "TotalsRequest",
    "TotalsResponse",
    "RepriceRequest",
]
