"""
Stock material catalog.

Raw stock is linear: every unit (plank) has a length, width and thickness in
millimetres, and the saw removes ``saw_kerf`` millimetres between two cuts.
Materials are supplied by the user; the default catalog holds the single
Triboard plank that most projects start from.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from plankulator.contracts import MaterialConfigError, format_mm

logger = logging.getLogger(__name__)

DEFAULT_LENGTH_MM = 4000.0
DEFAULT_WIDTH_MM = 400.0
DEFAULT_THICKNESS_MM = 37.0
DEFAULT_SAW_KERF_MM = 2.0


@dataclass(frozen=True)
class Material:
    """A stock material the pieces can be cut from."""

    id: int
    name: str
    length: float
    width: float
    thickness: float
    saw_kerf: float = DEFAULT_SAW_KERF_MM
    price_per_unit: Optional[float] = None

    @property
    def dims_label(self) -> str:
        return (
            f"{format_mm(self.length)} × {format_mm(self.width)} × "
            f"{format_mm(self.thickness)}mm"
        )

    @property
    def has_price(self) -> bool:
        return self.price_per_unit is not None and self.price_per_unit > 0


DEFAULT_MATERIALS: List[Material] = [
    Material(
        id=1,
        name="Triboard Plank",
        length=DEFAULT_LENGTH_MM,
        width=DEFAULT_WIDTH_MM,
        thickness=DEFAULT_THICKNESS_MM,
        saw_kerf=DEFAULT_SAW_KERF_MM,
    ),
]


def validate_material(material: Material) -> Material:
    """Check a material's envelope; return it unchanged when valid."""
    for field_name in ("length", "width", "thickness"):
        value = getattr(material, field_name)
        if not _is_finite(value) or value <= 0:
            raise MaterialConfigError(
                f"Material {material.id} ({material.name}): {field_name} must be "
                f"a positive number, got {value!r}"
            )
    if not _is_finite(material.saw_kerf) or material.saw_kerf < 0:
        raise MaterialConfigError(
            f"Material {material.id} ({material.name}): saw kerf must be "
            f"non-negative, got {material.saw_kerf!r}"
        )
    if material.price_per_unit is not None and (
        not _is_finite(material.price_per_unit) or material.price_per_unit <= 0
    ):
        raise MaterialConfigError(
            f"Material {material.id} ({material.name}): price per unit must be "
            f"positive when set, got {material.price_per_unit!r}"
        )
    return material


def material_from_dict(payload: Dict[str, Any]) -> Material:
    """Build a Material from JSON, accepting camelCase keys from saved projects."""
    if not isinstance(payload, dict):
        raise MaterialConfigError(f"Material entry must be an object, got {payload!r}")
    try:
        kerf = payload.get("saw_kerf", payload.get("sawKerf", DEFAULT_SAW_KERF_MM))
        price = payload.get("price_per_unit", payload.get("pricePerUnit"))
        material = Material(
            id=int(payload["id"]),
            name=str(payload.get("name", f"Material {payload['id']}")),
            length=float(payload["length"]),
            width=float(payload["width"]),
            thickness=float(payload["thickness"]),
            saw_kerf=float(kerf),
            price_per_unit=None if price is None else float(price),
        )
    except KeyError as exc:
        raise MaterialConfigError(f"Material entry missing field {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise MaterialConfigError(f"Material entry has a non-numeric value: {exc}") from exc
    return validate_material(material)


def material_to_dict(material: Material) -> Dict[str, Any]:
    return {
        "id": material.id,
        "name": material.name,
        "length": material.length,
        "width": material.width,
        "thickness": material.thickness,
        "saw_kerf": material.saw_kerf,
        "price_per_unit": material.price_per_unit,
    }


def materials_from_payload(payload: Any) -> List[Material]:
    """Parse a list of materials, or an object holding one under ``materials``."""
    if isinstance(payload, dict) and "materials" in payload:
        payload = payload["materials"]
    if not isinstance(payload, list):
        raise MaterialConfigError("Materials must be a JSON list of material objects")

    materials = [material_from_dict(entry) for entry in payload]
    seen = set()
    for material in materials:
        if material.id in seen:
            raise MaterialConfigError(f"Duplicate material id {material.id}")
        seen.add(material.id)
    return materials


def load_materials(path: str) -> List[Material]:
    """Read and validate a materials JSON file."""
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Materials file not found: {path}")
    try:
        payload = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise MaterialConfigError(f"Materials file {path} is not valid JSON: {exc}") from exc

    materials = materials_from_payload(payload)
    if not materials:
        logger.warning("Materials file %s is empty; every piece will be unfit", path)
    logger.info("Loaded %d material(s) from %s", len(materials), path)
    return materials


def new_material(materials: Sequence[Material]) -> Material:
    """Default-sized material with the next free id."""
    next_id = max((m.id for m in materials), default=0) + 1
    return Material(
        id=next_id,
        name=f"Material {next_id}",
        length=DEFAULT_LENGTH_MM,
        width=DEFAULT_WIDTH_MM,
        thickness=DEFAULT_THICKNESS_MM,
        saw_kerf=DEFAULT_SAW_KERF_MM,
    )


def _is_finite(value: Any) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False
