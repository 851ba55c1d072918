"""
Component rule engine

Expands one detected furniture element (a whole cabinet, a front, a
countertop...) into the boards and Blum hardware needed to build it.

Board conventions (18 mm carcass):
- Sides are depth x height.
- Bottom / full top / shelves are (width - 36) wide.
- Fronts leave a 3 mm gap: (width - 3) x (height - 3), halved for double doors.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from loguru import logger

from core.models import UNKNOWN_SKU, FurnitureElement, Part, PartType
from core.rules.drawer_systems import expand_drawer
from core.rules.furniture_types import (
    FurnitureType,
    infer_depth,
    normalize_element_name,
    resolve_furniture_type,
)

CARCASS_THICKNESS_MM = 18
FRONT_GAP_MM = 3
RAIL_HEIGHT_MM = 100
TALL_LOWER_FRONT_MM = 720
TALL_FRONT_SPLIT_GAP_MM = 4
SHELF_PITCH_MM = 350
SHELF_SETBACK_MM = 20
DOUBLE_DOOR_MIN_WIDTH_MM = 800
TALL_HINGE_HEIGHT_MM = 900
COUNTERTOP_JOINT_SPACING_MM = 600

BLUM_HINGES = {
    "clip_top": "71B3550",  # 110 degree, no soft close
    "clip_top_blumotion": "71B3590",  # soft close
}

DEFAULT_WIDTH_MM = 600.0
DEFAULT_HEIGHT_MM = 720.0


@dataclass(frozen=True)
class Dimensions:
    width: float
    height: float
    depth: float
    qty: int


@dataclass
class ExpansionResult:
    original: FurnitureElement
    components: List[Part] = field(default_factory=list)
    furniture_type: Optional[FurnitureType] = None

    @property
    def hardware(self) -> List[Part]:
        return [part for part in self.components if part.type is PartType.HARDWARE]

    @property
    def materials(self) -> List[Part]:
        return [part for part in self.components if part.type is PartType.MATERIAL]


RuleFunction = Callable[[Dimensions], List[Part]]


def _board(name: str, width: float, height: float, qty: int) -> Part:
    return Part(name=name, width=width, height=height, qty=qty, type=PartType.MATERIAL)


def _fitting(name: str, qty: int, sku: str = UNKNOWN_SKU, description: str | None = None) -> Part:
    return Part(name=name, qty=qty, type=PartType.HARDWARE, sku=sku, description=description)


def inner_width(width: float) -> float:
    return width - 2 * CARCASS_THICKNESS_MM


def create_cabinet_body(
    width: float,
    height: float,
    depth: float,
    qty: int,
    full_top: Optional[bool] = None,
) -> List[Part]:
    """Sides, bottom and top construction of a standard carcass.

    Upper and tall units (depth < 400 or height > 1800) get a full top panel,
    lower units get two 100 mm rails. ``full_top`` overrides the choice.
    """
    parts = [
        _board("Bok", depth, height, 2 * qty),
        _board("Wieniec Dolny", inner_width(width), depth, qty),
    ]
    if full_top is None:
        full_top = depth < 400 or height > 1800
    if full_top:
        parts.append(_board("Wieniec Górny", inner_width(width), depth, qty))
    else:
        parts.append(_board("Trawers", inner_width(width), RAIL_HEIGHT_MM, 2 * qty))
    return parts


def _door_layout(width: float, height: float) -> tuple[int, float, int]:
    doors = 2 if width >= DOUBLE_DOOR_MIN_WIDTH_MM else 1
    door_width = width / 2 - FRONT_GAP_MM if doors == 2 else width - FRONT_GAP_MM
    hinges_per_door = 3 if height > TALL_HINGE_HEIGHT_MM else 2
    return doors, door_width, hinges_per_door


def _fronts_with_hinges(dims: Dimensions) -> List[Part]:
    doors, door_width, hinges_per_door = _door_layout(dims.width, dims.height)
    return [
        _board("Front", door_width, dims.height - FRONT_GAP_MM, doors * dims.qty),
        _fitting(
            "Zawias Blum Clip Top Blumotion",
            doors * hinges_per_door * dims.qty,
            sku=BLUM_HINGES["clip_top_blumotion"],
        ),
    ]


def lower_cabinet_rule(dims: Dimensions) -> List[Part]:
    parts = create_cabinet_body(dims.width, dims.height, dims.depth, dims.qty)
    parts.extend(_fronts_with_hinges(dims))
    return parts


def upper_cabinet_rule(dims: Dimensions) -> List[Part]:
    parts = create_cabinet_body(dims.width, dims.height, dims.depth, dims.qty, full_top=True)
    parts.extend(_fronts_with_hinges(dims))
    shelves = math.floor(dims.height / SHELF_PITCH_MM) * dims.qty
    if shelves > 0:
        parts.append(
            _board("Półka", inner_width(dims.width), dims.depth - SHELF_SETBACK_MM, shelves)
        )
    return parts


def sink_cabinet_rule(dims: Dimensions) -> List[Part]:
    # rails instead of a full top leave room for the sink bowl
    parts = create_cabinet_body(dims.width, dims.height, dims.depth, dims.qty, full_top=False)
    parts.extend(
        [
            _board("Front", dims.width / 2 - FRONT_GAP_MM, dims.height - FRONT_GAP_MM, 2 * dims.qty),
            _fitting("Zawias Blum Clip Top (zlew)", 4 * dims.qty, sku=BLUM_HINGES["clip_top"]),
            _fitting("Mata ochronna pod zlew", dims.qty),
        ]
    )
    return parts


def dishwasher_rule(dims: Dimensions) -> List[Part]:
    return [_board("Front Zmywarki", dims.width, dims.height, dims.qty)]


def tall_unit_rule(dims: Dimensions) -> List[Part]:
    parts = create_cabinet_body(dims.width, dims.height, dims.depth, dims.qty, full_top=True)
    upper_front = dims.height - TALL_LOWER_FRONT_MM - TALL_FRONT_SPLIT_GAP_MM
    parts.extend(
        [
            _board("Front Dolny", dims.width - FRONT_GAP_MM, TALL_LOWER_FRONT_MM, dims.qty),
            _board("Front Górny", dims.width - FRONT_GAP_MM, upper_front, dims.qty),
            # 2 hinges on the lower front, 3 on the upper one
            _fitting("Zawias Blum Clip Top Blumotion", 5 * dims.qty, sku=BLUM_HINGES["clip_top_blumotion"]),
        ]
    )
    return parts


def cargo_rule(dims: Dimensions) -> List[Part]:
    # The pull-out mechanism is bought as a complete set; only the front is made.
    return [_board("Front Cargo", dims.width - FRONT_GAP_MM, dims.height - FRONT_GAP_MM, dims.qty)]


def blenda_rule(dims: Dimensions) -> List[Part]:
    return [
        _board("Bok", dims.depth, dims.height, 2 * dims.qty),
        _board("Wieniec Dolny", inner_width(dims.width), dims.depth, dims.qty),
        _board("Wieniec Górny", inner_width(dims.width), dims.depth, dims.qty),
        _board("Front", dims.width - FRONT_GAP_MM, dims.height - FRONT_GAP_MM, dims.qty),
        _fitting("Zawias Blum Clip Top", 2 * dims.qty, sku=BLUM_HINGES["clip_top"]),
    ]


def door_rule(dims: Dimensions) -> List[Part]:
    if dims.height <= 800:
        hinges = 2
    elif dims.height <= 1200:
        hinges = 3
    else:
        hinges = 4
    return [
        _fitting(
            "Zawias Blum Clip Top Blumotion",
            hinges * dims.qty,
            sku=BLUM_HINGES["clip_top_blumotion"],
            description=f"{hinges} zawiasy",
        ),
        _fitting("Uchwyt meblowy", dims.qty),
    ]


def countertop_rule(dims: Dimensions) -> List[Part]:
    joints = math.ceil(dims.width / COUNTERTOP_JOINT_SPACING_MM)
    return [_fitting("Łącznik blatu", joints * dims.qty)]


def drawer_rule(dims: Dimensions) -> List[Part]:
    """Standalone drawer: default-family kit plus the drawer front."""
    parts = [
        Part(name=p.name, sku=p.sku, qty=p.qty * dims.qty, type=p.type, depth=p.depth)
        for p in expand_drawer(f"SZUFLADA MERIVOBOX L-{int(dims.depth)}", dims.width)
    ]
    parts.append(_board("Front szuflady", dims.width, dims.height, dims.qty))
    return parts


RULES: Dict[FurnitureType, RuleFunction] = {
    FurnitureType.LOWER_CABINET: lower_cabinet_rule,
    FurnitureType.GENERIC_CABINET: lower_cabinet_rule,
    FurnitureType.UPPER_CABINET: upper_cabinet_rule,
    FurnitureType.TOPPER: upper_cabinet_rule,
    FurnitureType.SINK_CABINET: sink_cabinet_rule,
    FurnitureType.DISHWASHER: dishwasher_rule,
    FurnitureType.TALL_UNIT: tall_unit_rule,
    FurnitureType.CARGO: cargo_rule,
    FurnitureType.BLENDA: blenda_rule,
    FurnitureType.DOOR: door_rule,
    FurnitureType.FRONT: door_rule,
    FurnitureType.COUNTERTOP: countertop_rule,
    FurnitureType.DRAWER: drawer_rule,
    # PLINTH, RAIL, SIDE and SHELF have no rule: they are already single boards
}

# Per-type fallbacks for missing width / height
DEFAULT_SIZES: Dict[FurnitureType, tuple[float, float]] = {
    FurnitureType.TALL_UNIT: (DEFAULT_WIDTH_MM, 2100.0),
    FurnitureType.TOPPER: (DEFAULT_WIDTH_MM, 360.0),
    FurnitureType.CARGO: (400.0, DEFAULT_HEIGHT_MM),
    FurnitureType.DOOR: (DEFAULT_WIDTH_MM, 700.0),
    FurnitureType.FRONT: (DEFAULT_WIDTH_MM, 700.0),
}

# Types whose rule yields fittings only; the element itself is still a board.
PANEL_TYPES = frozenset({FurnitureType.DOOR, FurnitureType.FRONT, FurnitureType.COUNTERTOP})


def _dimensions_for(element: FurnitureElement, furniture_type: FurnitureType) -> Dimensions:
    default_w, default_h = DEFAULT_SIZES.get(furniture_type, (DEFAULT_WIDTH_MM, DEFAULT_HEIGHT_MM))
    depth = infer_depth(element.name, furniture_type, element.depth)
    return Dimensions(
        width=element.width or default_w,
        height=element.height or default_h,
        depth=depth if depth is not None else 510.0,
        qty=element.qty,
    )


def has_expansion_rule(element_name: str) -> bool:
    furniture_type = resolve_furniture_type(element_name)
    return furniture_type is not None and furniture_type in RULES


def expand_element(element: FurnitureElement, furniture_type: Optional[FurnitureType] = None) -> ExpansionResult:
    """Expand ``element`` into parts; unknown types give an empty expansion.

    ``furniture_type`` forces a rule (used for cargo units whose name does not
    resolve on its own). Width/height are not validated here.
    """
    furniture_type = furniture_type or resolve_furniture_type(element.name)
    rule = RULES.get(furniture_type) if furniture_type is not None else None
    if rule is None:
        logger.debug(
            "No expansion rule for '{name}' (key={key})",
            name=element.name,
            key=normalize_element_name(element.name),
        )
        return ExpansionResult(original=element, components=[], furniture_type=furniture_type)

    dims = _dimensions_for(element, furniture_type)
    components = rule(dims)
    for part in components:
        if not part.sku:
            part.sku = UNKNOWN_SKU
        part.component_id = element.component_id
    return ExpansionResult(original=element, components=components, furniture_type=furniture_type)


__all__ = [
    "BLUM_HINGES",
    "Dimensions",
    "ExpansionResult",
    "RULES",
    "PANEL_TYPES",
    "create_cabinet_body",
    "expand_element",
    "has_expansion_rule",
]
