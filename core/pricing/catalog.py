"""
Catalog lookup and the process-wide catalog registry.

Lookup tiers (first tier with a hit wins, no ranking):
1. exact key: full SKU or the first whitespace token of the display symbol
2. prefix in either direction against every key
3. first dot/space token of the query against the first token of each symbol
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from loguru import logger

from core.models import CatalogEntry
from core.pricing.catalog_loader import PriceResult, calculate_price, load_catalog, merge_entries, search_catalog
from core.settings import CatalogSettings, get_settings

_TOKEN_SPLIT = re.compile(r"[\s.]+")


def normalize_sku(sku: Optional[str]) -> str:
    return re.sub(r"\s+", " ", sku or "").strip().upper()


def _first_token(text: str) -> str:
    parts = _TOKEN_SPLIT.split(text.strip().upper(), maxsplit=1)
    return parts[0] if parts else ""


class CatalogLookup:
    """Tiered SKU matching over one list of catalog entries."""

    def __init__(self, entries: Iterable[CatalogEntry]) -> None:
        self.entries: List[CatalogEntry] = list(entries)
        self._index: Dict[str, CatalogEntry] = {}
        for entry in self.entries:
            self._index[normalize_sku(entry.sku)] = entry
            symbol_key = normalize_sku(entry.display_symbol).split(" ")[0]
            if symbol_key:
                self._index[symbol_key] = entry

    def __len__(self) -> int:
        return len(self.entries)

    def find(self, sku: Optional[str]) -> Optional[CatalogEntry]:
        query = normalize_sku(sku)
        if not query:
            return None

        entry = self._index.get(query)
        if entry is not None:
            return entry

        for key, candidate in self._index.items():
            if key.startswith(query) or query.startswith(key):
                logger.debug("[catalog] '{}' matched '{}' by prefix", query, key)
                return candidate

        token = _first_token(query)
        for candidate in self.entries:
            if token and _first_token(candidate.display_symbol) == token:
                logger.debug("[catalog] '{}' matched '{}' by symbol token", query, candidate.display_symbol)
                return candidate
        return None


@dataclass
class CatalogRegistry:
    """Loaded price lists: boards (EGGER, Woodeco, technical) and Blum hardware."""

    boards: CatalogLookup
    hardware: CatalogLookup
    entries: List[CatalogEntry] = field(default_factory=list)
    last_updated: str = ""

    @classmethod
    def from_entries(
        cls,
        boards: Iterable[CatalogEntry] = (),
        hardware: Iterable[CatalogEntry] = (),
        last_updated: str = "",
    ) -> "CatalogRegistry":
        boards = list(boards)
        hardware = list(hardware)
        return cls(
            boards=CatalogLookup(boards),
            hardware=CatalogLookup(hardware),
            entries=merge_entries(boards, hardware),
            last_updated=last_updated,
        )

    @classmethod
    def load(cls, directory: Optional[Path] = None, settings: Optional[CatalogSettings] = None) -> "CatalogRegistry":
        loaded = load_catalog(directory, settings)
        return cls(
            boards=CatalogLookup(loaded.boards),
            hardware=CatalogLookup(loaded.hardware),
            entries=loaded.entries,
            last_updated=loaded.last_updated,
        )

    def find_board(self, sku: Optional[str]) -> Optional[CatalogEntry]:
        return self.boards.find(sku) or self.hardware.find(sku)

    def find_hardware(self, sku: Optional[str]) -> Optional[CatalogEntry]:
        return self.hardware.find(sku)

    def find(self, sku: Optional[str]) -> Optional[CatalogEntry]:
        return self.find_board(sku)

    def price(self, sku: str, product_type: str = "plate_18mm", quantity: float = 1) -> PriceResult:
        return calculate_price(self.find(sku), product_type, quantity, sku=normalize_sku(sku))

    def search(self, query: str, limit: int = 50) -> List[CatalogEntry]:
        return search_catalog(self.entries, query, limit)


_registry: Optional[CatalogRegistry] = None
_registry_lock = threading.Lock()


def get_catalog_registry() -> CatalogRegistry:
    """Load the price lists once per process; concurrent first calls parse them once."""
    global _registry
    if _registry is not None:
        return _registry
    with _registry_lock:
        if _registry is None:
            _registry = CatalogRegistry.load(settings=get_settings().catalog)
            logger.info("[catalog] Registry ready ({} entries)", len(_registry.entries))
    return _registry


def reset_catalog_registry() -> None:
    global _registry
    with _registry_lock:
        _registry = None


__all__ = [
    "CatalogLookup",
    "CatalogRegistry",
    "normalize_sku",
    "get_catalog_registry",
    "reset_catalog_registry",
]
