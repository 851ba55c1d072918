"""Blum drawer-system kits.

A drawer spec string looks like ``"SZUFLADA [SYSTEM] L-<depth>"``, e.g.
``"SZUFLADA TANDEMBOX L-500"``. The family is only switched away from
MERIVOBOX when the drawer descriptor names another system explicitly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from core.models import Part, PartType

STANDARD_DRAWER_DEPTHS: Tuple[int, ...] = (
    250, 270, 300, 320, 350, 380, 400, 420, 450, 480, 500, 520, 550, 600, 650,
)
DEFAULT_DRAWER_DEPTH = 500

_DEPTH_TOKEN = re.compile(r"L-(\d+)")


class DrawerSystem(str, Enum):
    MERIVOBOX = "MERIVOBOX"
    MOVENTO = "MOVENTO"
    TANDEMBOX = "TANDEMBOX"
    LEGRABOX = "LEGRABOX"


@dataclass(frozen=True)
class DrawerSpec:
    system: DrawerSystem
    depth: int  # as written in the descriptor, before snapping

    @property
    def normalized_depth(self) -> int:
        return normalize_drawer_depth(self.depth)


def normalize_drawer_depth(depth: float) -> int:
    """Snap ``depth`` to the closest standard Blum length.

    The list is ascending and ``min`` keeps the first of equal distances, so a
    depth halfway between two lengths snaps to the lower one.
    """
    return min(STANDARD_DRAWER_DEPTHS, key=lambda candidate: abs(candidate - depth))


def detect_drawer_system(text: str) -> Optional[DrawerSystem]:
    upper = (text or "").upper()
    if "LEGRABOX" in upper:
        return DrawerSystem.LEGRABOX
    if "TANDEMBOX" in upper or "TANDEM" in upper:
        return DrawerSystem.TANDEMBOX
    if "MOVENTO" in upper:
        return DrawerSystem.MOVENTO
    if "MERIVOBOX" in upper:
        return DrawerSystem.MERIVOBOX
    return None


def parse_drawer_spec(spec: str) -> DrawerSpec:
    match = _DEPTH_TOKEN.search((spec or "").upper())
    depth = int(match.group(1)) if match else DEFAULT_DRAWER_DEPTH
    system = detect_drawer_system(spec) or DrawerSystem.MERIVOBOX
    return DrawerSpec(system=system, depth=depth)


def _kit_part(name: str, sku: str, qty: int, depth: Optional[int] = None) -> Part:
    return Part(name=name, sku=sku, qty=qty, type=PartType.HARDWARE, depth=depth)


def expand_drawer(spec: str, width: float = 0.0) -> List[Part]:
    """Hardware kit for one drawer; quantities are per drawer.

    Args:
        spec: Drawer spec string such as ``"SZUFLADA MOVENTO L-450"``.
        width: Cabinet width in mm. Kits are sold per length, so the width
            does not change the part list.

    Returns:
        Hardware parts in catalog order (runners first).
    """
    parsed = parse_drawer_spec(spec)
    depth = parsed.normalized_depth

    if parsed.system is DrawerSystem.MERIVOBOX:
        return [
            _kit_part(f"Prowadnica MERIVOBOX 40kg L-{depth} (kpl L+P)", f"450.{depth}1B", 1, depth),
            _kit_part(f"Bok MERIVOBOX M (91mm) L-{depth} (kpl L+P)", f"470M{depth}2S", 1, depth),
            _kit_part("Mocowanie frontu MERIVOBOX", "ZF4.1002", 2),
            _kit_part("Mocowanie ścianki tylnej MERIVOBOX M", "ZB4M000S", 2),
        ]

    if parsed.system is DrawerSystem.MOVENTO:
        # wooden drawer boxes are cut to the exact runner length
        raw = parsed.depth
        return [
            _kit_part(f"MOVENTO prowadnica 40kg L-{raw} (kpl L+P)", f"760H{raw}0S", 1, raw),
            _kit_part("Sprzęgło Movento z regulacją boczną (kpl L+P)", "T51.7601", 1),
        ]

    if parsed.system is DrawerSystem.LEGRABOX:
        return [_kit_part(f"LEGRABOX prowadnica K L-{depth} (kpl L+P)", f"770K{depth}0S", 1, depth)]

    return [
        _kit_part(f"TANDEM prowadnica 30kg L-{depth} (kpl L+P)", f"560F{depth}0B", 1, depth),
        _kit_part("Sprzęgło TANDEMBOX (kpl L+P)", "T51.1700", 1),
    ]


def build_drawer_spec(name: str, group_sku: str = "") -> str:
    """Drawer spec for an element: family from the name, else the group SKU; depth likewise."""
    system = detect_drawer_system(name)
    upper_sku = (group_sku or "").upper()
    if system is None and upper_sku.startswith("SZUFLADA"):
        system = detect_drawer_system(upper_sku)
    system = system or DrawerSystem.MERIVOBOX

    match = _DEPTH_TOKEN.search((name or "").upper()) or _DEPTH_TOKEN.search(upper_sku)
    depth = int(match.group(1)) if match else DEFAULT_DRAWER_DEPTH
    return f"SZUFLADA {system.value} L-{depth}"


__all__ = [
    "STANDARD_DRAWER_DEPTHS",
    "DrawerSystem",
    "DrawerSpec",
    "normalize_drawer_depth",
    "detect_drawer_system",
    "parse_drawer_spec",
    "expand_drawer",
    "build_drawer_spec",
]
