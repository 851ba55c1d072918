"""Canonical furniture types and free-text name normalization.

Names come from the vision model or from user markers ("Szafka Dolna - D60",
"Słupek AGD 600", "Front Cargo x2"). They are folded to an uppercase
ASCII key and resolved against an ordered alias list. Part words (side,
rail, shelf, front) are listed before unit words so that "Bok - D60_Zlew"
stays a side panel instead of expanding into a whole sink cabinet.
"""

from __future__ import annotations

import re
import unicodedata
from enum import Enum
from typing import Optional, Pattern, Sequence, Tuple


class FurnitureType(str, Enum):
    LOWER_CABINET = "SZAFKA_DOLNA"
    UPPER_CABINET = "SZAFKA_GORNA"
    SINK_CABINET = "SZAFKA_ZLEW"
    DISHWASHER = "ZMYWARKA"
    TALL_UNIT = "SLUPEK"
    CARGO = "CARGO"
    TOPPER = "NADSTAWKA"
    BLENDA = "BLENDA"
    GENERIC_CABINET = "SZAFKA"
    DRAWER = "SZUFLADA"
    DOOR = "DRZWI"
    FRONT = "FRONT"
    COUNTERTOP = "BLAT"
    PLINTH = "COKOL"
    RAIL = "TRAWERS"
    SIDE = "BOK"
    SHELF = "POLKA"


# Evaluated top to bottom, first hit wins.
TYPE_ALIASES: Sequence[Tuple[Pattern[str], FurnitureType]] = tuple(
    (re.compile(pattern), furniture_type)
    for pattern, furniture_type in (
        (r"ZMYWARK|DISHWASHER", FurnitureType.DISHWASHER),
        (r"KOSZ_CARGO|CARGO|WYSUW", FurnitureType.CARGO),
        (r"SZUFLAD|DRAWER|SCHUBLADE", FurnitureType.DRAWER),
        (r"BOK|SIDE", FurnitureType.SIDE),
        (r"WIENIEC|TRAWERS|LISTWA", FurnitureType.RAIL),
        (r"POLK|SHELF", FurnitureType.SHELF),
        (r"COKOL|PLINTH", FurnitureType.PLINTH),
        (r"DRZWI|DOOR", FurnitureType.DOOR),
        (r"FRONT", FurnitureType.FRONT),
        (r"BLAT|WORKTOP|COUNTERTOP", FurnitureType.COUNTERTOP),
        (r"SZAFKA_ZLEWOZMYWAKOWA|SZAFKA_POD_ZLEW|SZAFA_ZLEW|ZLEW|SINK", FurnitureType.SINK_CABINET),
        (r"NADSTAWK|OVERHEAD", FurnitureType.TOPPER),
        (r"BLENDA", FurnitureType.BLENDA),
        (r"SLUPEK|LODOWK|PIEKARNIK|AGD", FurnitureType.TALL_UNIT),
        (r"SZAFKA_DOLNA|SZAFKA_STOJACA", FurnitureType.LOWER_CABINET),
        (r"SZAFKA_GORNA|SZAFKA_WISZACA", FurnitureType.UPPER_CABINET),
        (r"^NAD(_|$)|^N(_|$)", FurnitureType.TOPPER),
        (r"^D(_|$)", FurnitureType.LOWER_CABINET),
        (r"^G(_|$)", FurnitureType.UPPER_CABINET),
        (r"SZAFKA|SZAFA|KORPUS|CABINET", FurnitureType.GENERIC_CABINET),
    )
)

# Standard carcass depths (mm) used when neither the element nor its name gives one.
STANDARD_DEPTHS: dict[FurnitureType, float] = {
    FurnitureType.LOWER_CABINET: 510.0,
    FurnitureType.SINK_CABINET: 510.0,
    FurnitureType.GENERIC_CABINET: 510.0,
    FurnitureType.BLENDA: 510.0,
    FurnitureType.UPPER_CABINET: 340.0,
    FurnitureType.TOPPER: 340.0,
    FurnitureType.TALL_UNIT: 560.0,
    FurnitureType.DRAWER: 500.0,
}

MIN_NAME_DEPTH_MM = 200
MAX_NAME_DEPTH_MM = 700

_DEPTH_IN_NAME = re.compile(r"(\d{3,4})\s*(?:mm)?", re.IGNORECASE)
_QTY_SUFFIX = re.compile(r"X\d+")
_DIGITS = re.compile(r"\d")
_WHITESPACE = re.compile(r"\s+")

# Letters that have no NFKD decomposition
_LETTER_FOLDS = str.maketrans({"Ł": "L", "ł": "l", "Ø": "O", "ø": "o", "ß": "SS"})

DRAWER_KEYWORDS = ("SZUFLAD", "DRAWER", "SCHUBLADE", "MERIVOBOX", "TANDEMBOX", "MOVENTO", "LEGRABOX")
CARGO_KEYWORDS = ("CARGO", "WYSUW")


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text.translate(_LETTER_FOLDS))
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def fold_name(name: str) -> str:
    """Uppercase ASCII form with quantity suffixes and digits removed.

    >>> fold_name("Szafka Górna G60 x2")
    'SZAFKA_GORNA_G'
    """
    folded = strip_accents(name or "").upper()
    folded = _QTY_SUFFIX.sub("", folded)
    folded = _DIGITS.sub("", folded)
    folded = _WHITESPACE.sub("_", folded.strip())
    return folded


def resolve_furniture_type(name: str) -> Optional[FurnitureType]:
    folded = fold_name(name)
    if not folded:
        return None
    for pattern, furniture_type in TYPE_ALIASES:
        if pattern.search(folded):
            return furniture_type
    # Leading letter of cabinet codes such as "D80W" / "G45S"
    if folded.startswith("D"):
        return FurnitureType.LOWER_CABINET
    if folded.startswith("G"):
        return FurnitureType.UPPER_CABINET
    return None


def normalize_element_name(name: str) -> str:
    """Return the canonical type key for ``name``, or the folded name if unmatched."""
    furniture_type = resolve_furniture_type(name)
    if furniture_type is not None:
        return furniture_type.value
    return fold_name(name)


def extract_depth_from_name(name: str) -> Optional[float]:
    match = _DEPTH_IN_NAME.search(name or "")
    if not match:
        return None
    value = int(match.group(1))
    if MIN_NAME_DEPTH_MM <= value <= MAX_NAME_DEPTH_MM:
        return float(value)
    return None


def infer_depth(name: str, furniture_type: Optional[FurnitureType], explicit: Optional[float] = None) -> Optional[float]:
    if explicit:
        return float(explicit)
    from_name = extract_depth_from_name(name)
    if from_name is not None:
        return from_name
    if furniture_type is None:
        return None
    return STANDARD_DEPTHS.get(furniture_type)


def is_cargo_name(text: str | None) -> bool:
    upper = (text or "").upper()
    return any(keyword in upper for keyword in CARGO_KEYWORDS)


def is_drawer_element(name: str) -> bool:
    upper = (name or "").upper()
    if is_cargo_name(upper):
        return False
    return any(keyword in upper for keyword in DRAWER_KEYWORDS)


__all__ = [
    "FurnitureType",
    "TYPE_ALIASES",
    "STANDARD_DEPTHS",
    "fold_name",
    "strip_accents",
    "resolve_furniture_type",
    "normalize_element_name",
    "extract_depth_from_name",
    "infer_depth",
    "is_cargo_name",
    "is_drawer_element",
]
