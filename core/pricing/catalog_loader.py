"""
Price list loading

Parses the supplier price lists kept as CSV exports in the catalog directory
into CatalogEntry rows:

- EGGER boards: code, structure, decor name, 18mm, fireproof, laminate
- Woodeco boards: number, decor code, decor name, structure, 18mm price
- Blum hardware: group, symbol, article number, price, minimum order
- Technical catalogs ("Table 1*.csv", "Katalog*.csv"): SKU and a name only

Prices use Polish formatting ("1 252zł", "11,48"); unavailable prices are
written as "XXX", "PALETOWE", "na zapytanie" or "-".
"""

from __future__ import annotations

import csv
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from loguru import logger

from core.exceptions import CatalogLoadError
from core.models import CatalogEntry, CatalogPrices
from core.settings import CatalogSettings

UNAVAILABLE_PRICES = {"XXX", "PALETOWE", "NA ZAPYTANIE", "-"}
EGGER_CODE = re.compile(r"^[A-Z]{1,2}\d{3,5}$")
TECHNICAL_SKU_PATTERNS = (
    re.compile(r"\b([A-Z]{1,2}\d{3,5})\b"),  # W980, H3170
    re.compile(r"\b(\d{7,})\b"),  # long numeric article numbers
)
TECHNICAL_IGNORED_COLUMNS = {"KOLOR", "MATERIAŁ", "NR ART."}
UNNAMED_ENTRY = "Element katalogowy (brak nazwy)"

PRICE_UNAVAILABLE = "price unavailable (on request)"


@dataclass
class PriceResult:
    success: bool
    unit_price: Optional[float]
    total: Optional[float]
    material_name: str
    error: Optional[str] = None


@dataclass
class LoadedCatalog:
    entries: List[CatalogEntry]
    boards: List[CatalogEntry]
    hardware: List[CatalogEntry]
    last_updated: str


def parse_price(text: Optional[str]) -> Optional[float]:
    """Parse a price cell; None for blanks, zero and "on request" markers.

    >>> parse_price("1 252zł")
    1252.0
    >>> parse_price("11,48")
    11.48
    """
    if text is None or not text.strip():
        return None
    if text.strip().upper() in UNAVAILABLE_PRICES:
        return None
    numeric = re.sub(r"zł", "", text, flags=re.IGNORECASE)
    numeric = re.sub(r"\s", "", numeric).replace(",", ".", 1)
    match = re.match(r"^-?\d+(?:\.\d+)?", numeric)
    if not match:
        return None
    value = float(match.group(0))
    return value or None


def _sniff_delimiter(lines: Sequence[str]) -> str:
    sample = "\n".join(lines[:20])
    return ";" if sample.count(";") > sample.count(",") else ","


PRICE_LIST_ENCODINGS = ("utf-8-sig", "cp1250")


def decode_price_list(data: bytes, path: Path) -> str:
    """Decode a CSV export; Excel on Polish systems writes cp1250."""
    for encoding in PRICE_LIST_ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    # bytes undefined in cp1250 (0x81, 0x83, ...) end up here
    logger.warning("[catalog] {} is neither UTF-8 nor cp1250, replacing invalid bytes", path.name)
    return data.decode("utf-8", errors="replace")


def read_rows(path: Path) -> List[List[str]]:
    """Read a CSV export into stripped rows, skipping blank lines."""
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise CatalogLoadError(f"Cannot read price list: {path.name}", details={"path": str(path)}) from exc
    text = decode_price_list(data, path)
    lines = [line for line in text.splitlines() if line.strip()]
    delimiter = _sniff_delimiter(lines)
    return [[cell.strip() for cell in row] for row in csv.reader(lines, delimiter=delimiter)]


def _cell(row: Sequence[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index]


def _find_header(rows: List[List[str]], keywords: Iterable[str], limit: int) -> int:
    keywords = tuple(keywords)
    for index, row in enumerate(rows[:limit]):
        line = " ".join(row).lower()
        if any(keyword in line for keyword in keywords):
            return index
    return -1


def load_egger_price_list(path: Path) -> List[CatalogEntry]:
    if not path.exists():
        logger.warning("[catalog] EGGER file not found: {}", path)
        return []
    entries: List[CatalogEntry] = []
    for row in read_rows(path):
        if len(row) < 4:
            continue
        code = row[0]
        if not EGGER_CODE.match(code):
            continue
        entries.append(
            CatalogEntry(
                sku=code,
                name=row[2],
                source="EGGER",
                structure=row[1],
                prices=CatalogPrices(
                    plate_18mm=parse_price(_cell(row, 3)),
                    plate_fireproof=parse_price(_cell(row, 4)),
                    laminate=parse_price(_cell(row, 5)),
                ),
            )
        )
    logger.info("[catalog] Loaded {} EGGER entries", len(entries))
    return entries


def load_woodeco_price_list(path: Path) -> List[CatalogEntry]:
    if not path.exists():
        logger.warning("[catalog] Woodeco file not found: {}", path)
        return []
    rows = read_rows(path)
    header = _find_header(rows, ("dekoru", "nazwa", "numer"), limit=10)
    entries: List[CatalogEntry] = []
    for row in rows[header + 1 if header >= 0 else 1:]:
        if len(row) < 4:
            continue
        number, code, name, structure = row[0], row[1], row[2], row[3]
        if len(code) < 2 or "kod" in code.lower() or "dekoru" in code.lower():
            continue
        if "legenda" in number.lower() or "legenda" in name.lower():
            continue
        entries.append(
            CatalogEntry(
                sku=code,
                name=name,
                source="WOODECO",
                structure=structure,
                prices=CatalogPrices(plate_18mm=parse_price(_cell(row, 4))),
            )
        )
    logger.info("[catalog] Loaded {} Woodeco entries", len(entries))
    return entries


def _blum_columns(header_row: Sequence[str]) -> dict[str, Optional[int]]:
    columns: dict[str, Optional[int]] = {
        "group": 0, "symbol": 1, "article": 2, "price": 3, "min_order": 4, "description": None,
    }
    for index, title in enumerate(cell.lower() for cell in header_row):
        if "grupa" in title:
            columns["group"] = index
        elif "symbol" in title:
            columns["symbol"] = index
        elif "art" in title or title.startswith("nr") or title == "id":
            columns["article"] = index
        elif "cena" in title:
            columns["price"] = index
        elif "min" in title:
            columns["min_order"] = index
        elif "opis" in title or "description" in title:
            columns["description"] = index
    return columns


def load_blum_price_list(path: Path) -> List[CatalogEntry]:
    if not path.exists():
        logger.warning("[catalog] Blum file not found: {}", path)
        return []
    rows = read_rows(path)
    header = _find_header(rows, ("symbol", "cena", "grupa"), limit=20)
    columns = _blum_columns(rows[header]) if header >= 0 else _blum_columns([])
    entries: List[CatalogEntry] = []
    for row in rows[header + 1 if header >= 0 else 1:]:
        if len(row) < 4:
            continue
        group = _cell(row, columns["group"])
        symbol = re.sub(r"\s+", " ", _cell(row, columns["symbol"]))
        article = _cell(row, columns["article"])
        if len(article) < 3 or "nr" in article.lower() or "art" in article.lower():
            continue
        if not group and not symbol:
            continue
        min_order = _cell(row, columns["min_order"])
        entries.append(
            CatalogEntry(
                sku=article,
                name=symbol,
                source="BLUM",
                structure=group,
                symbol=symbol,
                description=_cell(row, columns["description"]),
                min_order=int(min_order) if min_order.isdigit() else 1,
                prices=CatalogPrices(unit_price=parse_price(_cell(row, columns["price"]))),
            )
        )
    logger.info("[catalog] Loaded {} Blum entries", len(entries))
    return entries


def extract_sku_from_line(line: str) -> Optional[str]:
    for pattern in TECHNICAL_SKU_PATTERNS:
        match = pattern.search(line)
        if match:
            return match.group(1)
    return None


def _is_number(text: str) -> bool:
    try:
        float(text.replace(",", "."))
    except ValueError:
        return False
    return True


def load_technical_catalog(path: Path) -> List[CatalogEntry]:
    """SKU plus the longest descriptive column of each line; no prices."""
    if not path.exists():
        return []
    entries: List[CatalogEntry] = []
    for row in read_rows(path):
        sku = extract_sku_from_line(" ".join(row))
        if not sku:
            continue
        best_name = ""
        for column in row:
            if column == sku or len(column) < 3:
                continue
            if column.upper() in TECHNICAL_IGNORED_COLUMNS or _is_number(column):
                continue
            if len(column) > len(best_name):
                best_name = column
        entries.append(CatalogEntry(sku=sku, name=best_name or UNNAMED_ENTRY, source="UNKNOWN"))
    return entries


def technical_catalog_files(directory: Path, patterns: Iterable[str]) -> List[Path]:
    patterns = tuple(patterns)
    files = []
    for path in sorted(directory.glob("*.csv")):
        if not any(pattern in path.name for pattern in patterns):
            continue
        if "CENNIK" in path.name.upper():
            continue
        files.append(path)
    return files


def merge_entries(*sources: Iterable[CatalogEntry]) -> List[CatalogEntry]:
    """Concatenate sources keeping the first entry for each SKU (case-insensitive)."""
    merged: List[CatalogEntry] = []
    seen: set[str] = set()
    for source in sources:
        for entry in source:
            key = entry.sku.upper()
            if key in seen:
                continue
            seen.add(key)
            merged.append(entry)
    return merged


def load_catalog(directory: Optional[Path] = None, settings: Optional[CatalogSettings] = None) -> LoadedCatalog:
    """Load every price list found in the catalog directory.

    Args:
        directory: Catalog directory; defaults to the configured one.
        settings: File names and technical-catalog patterns.

    Returns:
        LoadedCatalog with merged entries, boards, hardware and the date of
        the newest file (today when nothing was loaded).
    """
    settings = settings or CatalogSettings()
    directory = Path(directory) if directory is not None else settings.resolved_directory()
    today = datetime.now(timezone.utc).date().isoformat()
    if not directory.is_dir():
        logger.warning("[catalog] Catalog directory not found: {}", directory)
        return LoadedCatalog(entries=[], boards=[], hardware=[], last_updated=today)

    egger_path = directory / settings.egger_file
    woodeco_path = directory / settings.woodeco_file
    blum_path = directory / settings.blum_file
    technical_paths = technical_catalog_files(directory, settings.technical_patterns)

    egger = load_egger_price_list(egger_path)
    woodeco = load_woodeco_price_list(woodeco_path)
    blum = load_blum_price_list(blum_path)
    technical = [entry for path in technical_paths for entry in load_technical_catalog(path)]

    mtimes = [path.stat().st_mtime for path in (egger_path, woodeco_path, blum_path, *technical_paths) if path.exists()]
    last_updated = (
        datetime.fromtimestamp(max(mtimes), tz=timezone.utc).date().isoformat() if mtimes else today
    )

    entries = merge_entries(egger, woodeco, blum, technical)
    logger.info(
        "[catalog] Total entries: {} (EGGER {}, Woodeco {}, Blum {}, technical {})",
        len(entries),
        len(egger),
        len(woodeco),
        len(blum),
        len(technical),
    )
    return LoadedCatalog(
        entries=entries,
        boards=merge_entries(egger, woodeco, technical),
        hardware=blum,
        last_updated=last_updated,
    )


def unknown_material(sku: str) -> str:
    return f"unknown material: {sku}"


def calculate_price(
    entry: Optional[CatalogEntry],
    product_type: str = "plate_18mm",
    quantity: float = 1,
    sku: str = "",
) -> PriceResult:
    """Price ``quantity`` units of ``entry``; Blum entries always use the unit price."""
    if entry is None:
        return PriceResult(False, None, None, "", unknown_material(sku))
    if entry.source == "BLUM":
        price = entry.prices.unit_price
    else:
        price = entry.prices.get(product_type)
    if price is None:
        return PriceResult(False, None, None, entry.name, PRICE_UNAVAILABLE)
    return PriceResult(True, price, price * quantity, entry.name)


def search_catalog(entries: Iterable[CatalogEntry], query: str, limit: int = 50) -> List[CatalogEntry]:
    needle = (query or "").strip().upper()
    if not needle:
        return []
    found = [entry for entry in entries if needle in entry.sku.upper() or needle in entry.name.upper()]
    return found[:limit]


__all__ = [
    "PriceResult",
    "LoadedCatalog",
    "PRICE_UNAVAILABLE",
    "parse_price",
    "read_rows",
    "load_egger_price_list",
    "load_woodeco_price_list",
    "load_blum_price_list",
    "load_technical_catalog",
    "merge_entries",
    "load_catalog",
    "calculate_price",
    "search_catalog",
    "unknown_material",
]
