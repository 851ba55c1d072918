"""Tests for estimate totals and manual re-pricing."""

from __future__ import annotations

import pytest

from core.models import CatalogEntry, CatalogPrices, LineElement, SheetResult
from core.pricing.catalog import CatalogRegistry
from core.pricing.catalog_loader import PRICE_UNAVAILABLE
from core.pricing.totals import compute_totals, is_priced, reprice_sheet


def _sheet(sku, unit_price, sheets_needed, is_hardware=False, advisory=None, **kwargs):
    return SheetResult(
        sku=sku,
        elements=[LineElement(name="Bok", width=510, height=720, qty=2)],
        total_area_mm2=734_400.0,
        sheets_needed=sheets_needed,
        unit_price=unit_price,
        is_hardware=is_hardware,
        advisory=advisory,
        **kwargs,
    )


@pytest.fixture()
def catalogs() -> CatalogRegistry:
    return CatalogRegistry.from_entries(
        boards=[CatalogEntry(sku="W980", name="Biały platynowy", source="EGGER", prices=CatalogPrices(plate_18mm=100.0))],
        hardware=[CatalogEntry(sku="71B3590", name="Clip", source="BLUM", prices=CatalogPrices(unit_price=11.48))],
    )


class TestComputeTotals:
    """Materials, markup and assembly."""

    def test_totals(self):
        sheets = [
            _sheet("W980", 100.0, 2),
            _sheet("71B3590", 11.48, 4, is_hardware=True),
            _sheet("NIEZNANY", None, 1, advisory="unknown material: NIEZNANY"),
        ]
        totals = compute_totals(sheets, markup_percent=10, assembly_percent=20)
        assert totals.materials_total == pytest.approx(245.92)
        assert totals.markup_amount == pytest.approx(24.592)
        assert totals.subtotal == pytest.approx(270.512)
        assert totals.assembly_amount == pytest.approx(54.1024)
        assert totals.grand_total == pytest.approx(324.6144)
        assert totals.total_sheets == 3
        assert totals.total_pieces == 4
        assert totals.unpriced_rows == 1

    def test_empty(self):
        totals = compute_totals([])
        assert totals.grand_total == 0
        assert totals.unpriced_rows == 0

    def test_advisory_rows_excluded_from_money(self):
        sheet = _sheet("W980", 100.0, 1, advisory=PRICE_UNAVAILABLE)
        assert not is_priced(sheet)
        assert compute_totals([sheet]).materials_total == 0


class TestRepriceSheet:
    """Manual SKU edits."""

    def test_board(self, catalogs: CatalogRegistry):
        original = _sheet("NIEZNANY", None, 2, advisory="unknown material: NIEZNANY")
        updated = reprice_sheet(original, " w980 ", catalogs)
        assert updated.sku == "W980"
        assert updated.unit_price == 100.0
        assert updated.material_name == "Biały platynowy"
        assert updated.advisory is None
        assert updated.sheets_needed == 2
        assert original.sku == "NIEZNANY"

    def test_hardware_keeps_component_label(self, catalogs: CatalogRegistry):
        original = _sheet("NIEZNANY", None, 4, is_hardware=True, component_id="D60", product_type="unit_price")
        updated = reprice_sheet(original, "71B3590", catalogs)
        assert updated.unit_price == pytest.approx(11.48)
        assert updated.material_name == "Clip - D60"

    def test_unknown_sku(self, catalogs: CatalogRegistry):
        original = _sheet("W980", 100.0, 1, material_name="Biały platynowy")
        updated = reprice_sheet(original, "QQQ", catalogs)
        assert updated.unit_price is None
        assert updated.advisory == "unknown material: QQQ"
        assert updated.material_name == "Biały platynowy"

    def test_product_type_override(self, catalogs: CatalogRegistry):
        updated = reprice_sheet(_sheet("W980", 100.0, 1), "W980", catalogs, product_type="laminate")
        assert updated.product_type == "laminate"
        assert updated.advisory == PRICE_UNAVAILABLE
