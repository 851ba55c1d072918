"""Estimate totals and manual SKU re-pricing of line items."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Optional

from loguru import logger

from core.models import SheetResult
from core.pricing.catalog import CatalogRegistry, normalize_sku
from core.pricing.catalog_loader import calculate_price


@dataclass
class EstimateTotals:
    materials_total: float
    markup_amount: float
    subtotal: float
    assembly_amount: float
    grand_total: float
    total_sheets: int
    total_pieces: int
    unpriced_rows: int


def is_priced(sheet: SheetResult) -> bool:
    return sheet.unit_price is not None and not sheet.advisory


def compute_totals(
    sheets: Iterable[SheetResult],
    markup_percent: float = 0.0,
    assembly_percent: float = 0.0,
) -> EstimateTotals:
    """Materials, markup on materials, assembly on (materials + markup).

    Rows without a price or carrying an advisory contribute nothing to the
    money totals but still count towards sheets and pieces.
    """
    sheets = list(sheets)
    materials = sum(sheet.unit_price * sheet.sheets_needed for sheet in sheets if is_priced(sheet))
    markup = materials * markup_percent / 100
    subtotal = materials + markup
    assembly = subtotal * assembly_percent / 100
    return EstimateTotals(
        materials_total=materials,
        markup_amount=markup,
        subtotal=subtotal,
        assembly_amount=assembly,
        grand_total=subtotal + assembly,
        total_sheets=sum(sheet.sheets_needed for sheet in sheets if not sheet.is_hardware),
        total_pieces=sum(sheet.sheets_needed for sheet in sheets if sheet.is_hardware),
        unpriced_rows=sum(1 for sheet in sheets if not is_priced(sheet)),
    )


def reprice_sheet(
    sheet: SheetResult,
    new_sku: str,
    catalogs: CatalogRegistry,
    product_type: Optional[str] = None,
) -> SheetResult:
    """Return ``sheet`` re-priced for a manually entered SKU."""
    sku = normalize_sku(new_sku)
    product_type = product_type or sheet.product_type
    entry = catalogs.find_hardware(sku) if sheet.is_hardware else catalogs.find_board(sku)
    if sheet.is_hardware and entry is None:
        entry = catalogs.find_board(sku)
    price = calculate_price(entry, product_type, sheet.sheets_needed, sku=sku)
    if price.error:
        logger.warning("[totals] Re-priced {} -> {}: {}", sheet.sku, sku, price.error)
    material_name = price.material_name or sheet.material_name
    if price.material_name and sheet.is_hardware and sheet.component_id:
        material_name = f"{price.material_name} - {sheet.component_id}"
    return replace(
        sheet,
        sku=sku,
        unit_price=price.unit_price,
        material_name=material_name,
        advisory=price.error,
        product_type=product_type,
    )


__all__ = ["EstimateTotals", "compute_totals", "reprice_sheet", "is_priced"]
