from __future__ import annotations

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from loguru import logger

from core.analysis.orchestrator import AnalysisOrchestrator, analyze_drawing
from core.exceptions import AnalysisError, EstimatorError, MaterialNotFoundError
from core.ml.gemini_client import GeminiVisionClient
from core.pricing.catalog import CatalogRegistry, get_catalog_registry, normalize_sku
from core.pricing.catalog_loader import calculate_price
from core.pricing.totals import compute_totals, reprice_sheet
from core.settings import Settings, get_settings
from services.api.schemas import (
    AnalysisResponse,
    AnalyzeRequest,
    CatalogEntryModel,
    CatalogLookupResponse,
    CatalogResponse,
    CatalogSearchResponse,
    DiagnosticModel,
    EstimateRequest,
    RepriceRequest,
    SheetModel,
    TotalsRequest,
    TotalsResponse,
)

router = APIRouter(prefix="/v1")


def get_app_settings() -> Settings:
    return get_settings()


def get_vision_client(settings: Annotated[Settings, Depends(get_app_settings)]) -> GeminiVisionClient:
    return GeminiVisionClient(settings.vision)


def get_catalogs() -> CatalogRegistry:
    return get_catalog_registry()


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
CatalogsDep = Annotated[CatalogRegistry, Depends(get_catalogs)]


def _analysis_response(success: bool, sheets, diagnostics, error: str | None = None) -> AnalysisResponse:
    return AnalysisResponse(
        success=success,
        sheets=[SheetModel.model_validate(sheet) for sheet in sheets],
        diagnostics=[DiagnosticModel.model_validate(diag) for diag in diagnostics],
        error=error,
    )


@router.post("/analyze", response_model=AnalysisResponse, tags=["analysis"])
async def analyze(
    payload: AnalyzeRequest,
    settings: SettingsDep,
    catalogs: CatalogsDep,
    vision_client: Annotated[GeminiVisionClient, Depends(get_vision_client)],
) -> AnalysisResponse:
    markers = [marker.to_marker() for marker in payload.markers]
    logger.info("Analyze request: {} markers, description={}", len(markers), bool(payload.description))
    # the model call blocks; keep it off the event loop
    outcome = await asyncio.to_thread(
        analyze_drawing,
        payload.image_base64,
        payload.description,
        markers,
        vision_client,
        catalogs,
        settings,
    )
    return _analysis_response(outcome.success, outcome.sheets, outcome.diagnostics, outcome.error)


@router.post("/estimate", response_model=AnalysisResponse, tags=["analysis"])
async def estimate(payload: EstimateRequest, settings: SettingsDep, catalogs: CatalogsDep) -> AnalysisResponse:
    groups = [group.to_group() for group in payload.groups]
    markers = [marker.to_marker() for marker in payload.markers]
    try:
        result = AnalysisOrchestrator(catalogs, settings).run(groups, markers)
    except EstimatorError:
        raise
    except Exception as exc:
        raise AnalysisError(f"Estimation failed: {exc}", {"groups": str(len(groups))}) from exc
    return _analysis_response(True, result.sheets, result.diagnostics)


@router.get("/catalog", response_model=CatalogResponse, tags=["catalog"])
async def list_catalog(catalogs: CatalogsDep) -> CatalogResponse:
    return CatalogResponse(
        entries=[CatalogEntryModel.model_validate(entry) for entry in catalogs.entries],
        count=len(catalogs.entries),
        last_updated=catalogs.last_updated,
    )


@router.get("/catalog/lookup", response_model=CatalogLookupResponse, tags=["catalog"])
async def lookup_catalog(
    catalogs: CatalogsDep,
    settings: SettingsDep,
    sku: Annotated[str, Query(min_length=1)],
    product_type: str | None = None,
) -> CatalogLookupResponse:
    normalized = normalize_sku(sku)
    entry = catalogs.find(normalized)
    price = calculate_price(entry, product_type or settings.estimate.default_product_type, 1, sku=normalized)
    return CatalogLookupResponse(
        sku=normalized,
        found=entry is not None,
        entry=CatalogEntryModel.model_validate(entry) if entry is not None else None,
        unit_price=price.unit_price,
        advisory=price.error,
    )


@router.get("/catalog/search", response_model=CatalogSearchResponse, tags=["catalog"])
async def search_catalog(
    catalogs: CatalogsDep,
    q: Annotated[str, Query(min_length=1)],
    limit: Annotated[int, Query(ge=1, le=50)] = 50,
) -> CatalogSearchResponse:
    results = catalogs.search(q, limit)
    return CatalogSearchResponse(
        query=q,
        count=len(results),
        results=[CatalogEntryModel.model_validate(entry) for entry in results],
    )


@router.get("/catalog/entries/{sku}", response_model=CatalogEntryModel, tags=["catalog"])
async def get_catalog_entry(sku: str, catalogs: CatalogsDep) -> CatalogEntryModel:
    entry = catalogs.find(sku)
    if entry is None:
        raise MaterialNotFoundError(f"Material {normalize_sku(sku)} not found in any catalog", {"sku": sku})
    return CatalogEntryModel.model_validate(entry)


@router.post("/totals", response_model=TotalsResponse, tags=["estimate"])
async def totals(payload: TotalsRequest) -> TotalsResponse:
    result = compute_totals(
        [sheet.to_sheet() for sheet in payload.sheets],
        payload.markup_percent,
        payload.assembly_percent,
    )
    return TotalsResponse.model_validate(result)


@router.post("/sheets/reprice", response_model=SheetModel, tags=["estimate"])
async def reprice(payload: RepriceRequest, catalogs: CatalogsDep) -> SheetModel:
    updated = reprice_sheet(payload.sheet.to_sheet(), payload.sku, catalogs, payload.product_type)
    return SheetModel.model_validate(updated)


__all__ = ["router", "get_catalogs", "get_vision_client", "get_app_settings"]
