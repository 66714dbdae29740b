"""
Project files: save and reload a cutting plan as JSON.

Only the inputs (materials), the optimized pieces and the plank list are
stored. Summary figures and warnings are derived again after loading.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from plankulator.contracts import (
    MaterialConfigError,
    OptimizedPiece,
    PieceGroup,
    PlacedPiece,
    Plank,
    PlanWarning,
    ProjectFormatError,
)
from plankulator.materials import Material, material_to_dict, materials_from_payload
from plankulator.orientation import unfit_warning

logger = logging.getLogger(__name__)

PROJECT_VERSION = "1.0"


@dataclass
class Project:
    materials: List[Material]
    pieces: List[OptimizedPiece]
    planks: List[Plank]
    notes: str = ""
    source_file: Optional[str] = None
    timestamp: Optional[str] = None

    @property
    def warnings(self) -> List[PlanWarning]:
        return [unfit_warning(p) for p in self.pieces if not p.can_fit]


def project_to_dict(
    materials: Sequence[Material],
    pieces: Sequence[OptimizedPiece],
    planks: Sequence[Plank],
    notes: str = "",
    source_file: Optional[str] = None,
) -> Dict[str, Any]:
    piece_index = {id(p.group): idx for idx, p in enumerate(pieces)}
    return {
        "version": PROJECT_VERSION,
        "timestamp": datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
        "materials": [material_to_dict(m) for m in materials],
        "source_file": source_file,
        "pieces": [_piece_to_dict(p) for p in pieces],
        "cutting_plan": [_plank_to_dict(plank, piece_index) for plank in planks],
        "notes": notes,
    }


def _piece_to_dict(piece: OptimizedPiece) -> Dict[str, Any]:
    group = piece.group
    return {
        "name": group.name,
        "length": group.length,
        "width": group.width,
        "thickness": group.thickness,
        "count": group.count,
        "source_names": list(group.source_names),
        "cutting_length": piece.cutting_length,
        "final_width": piece.final_width,
        "final_thickness": piece.final_thickness,
        "orientation": piece.orientation_label,
        "can_fit": piece.can_fit,
        "material_id": piece.material.id if piece.material else None,
        "score": piece.score,
    }


def _plank_to_dict(plank: Plank, piece_index: Dict[int, int]) -> Dict[str, Any]:
    return {
        "number": plank.number,
        "material_id": plank.material.id,
        "used_length": plank.used_length,
        "waste_length": plank.waste_length,
        "pieces": [
            {
                "id": placed.piece_id,
                "piece_index": piece_index.get(id(placed.group)),
                "cutting_length": placed.cutting_length,
                "final_width": placed.final_width,
                "final_thickness": placed.final_thickness,
                "orientation": placed.orientation_label,
            }
            for placed in plank.pieces
        ],
    }


def save_project(
    path: str,
    materials: Sequence[Material],
    pieces: Sequence[OptimizedPiece],
    planks: Sequence[Plank],
    notes: str = "",
    source_file: Optional[str] = None,
) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    payload = project_to_dict(materials, pieces, planks, notes=notes, source_file=source_file)
    out.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved project with %d plank(s) to %s", len(planks), out)
    return out


def load_project(path: str) -> Project:
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Project file not found: {path}")
    try:
        payload = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ProjectFormatError(f"Project file {path} is not valid JSON: {exc}") from exc
    return project_from_dict(payload)


def project_from_dict(payload: Any) -> Project:
    if not isinstance(payload, dict):
        raise ProjectFormatError("Project file must contain a JSON object")

    version = str(payload.get("version", ""))
    if version.split(".")[0] != PROJECT_VERSION.split(".")[0]:
        raise ProjectFormatError(f"Unsupported project version {version!r}")

    try:
        materials = materials_from_payload(payload.get("materials", []))
    except MaterialConfigError as exc:
        raise ProjectFormatError(f"Invalid materials in project: {exc}") from exc
    by_id = {m.id: m for m in materials}

    try:
        pieces = [_piece_from_dict(entry, by_id) for entry in payload.get("pieces", [])]
        planks = [
            _plank_from_dict(entry, by_id, pieces) for entry in payload.get("cutting_plan", [])
        ]
    except (KeyError, TypeError, ValueError) as exc:
        raise ProjectFormatError(f"Malformed project entry: {exc}") from exc

    return Project(
        materials=materials,
        pieces=pieces,
        planks=planks,
        notes=str(payload.get("notes") or ""),
        source_file=payload.get("source_file"),
        timestamp=payload.get("timestamp"),
    )


def _lookup_material(material_id: Any, by_id: Dict[int, Material]) -> Material:
    material = by_id.get(int(material_id))
    if material is None:
        raise ProjectFormatError(f"Unknown material id {material_id!r} in project")
    return material


def _piece_from_dict(entry: Dict[str, Any], by_id: Dict[int, Material]) -> OptimizedPiece:
    names = entry.get("source_names") or [entry["name"]]
    group = PieceGroup(
        length=float(entry["length"]),
        width=float(entry["width"]),
        thickness=float(entry["thickness"]),
        count=int(entry["count"]),
        source_names=tuple(str(n) for n in names),
    )
    can_fit = bool(entry.get("can_fit", False))
    material_id = entry.get("material_id")
    material = _lookup_material(material_id, by_id) if can_fit and material_id is not None else None
    score = entry.get("score")
    return OptimizedPiece(
        group=group,
        cutting_length=float(entry["cutting_length"]),
        final_width=float(entry["final_width"]),
        final_thickness=float(entry["final_thickness"]),
        orientation_label=str(entry.get("orientation", "")),
        material=material,
        can_fit=can_fit and material is not None,
        count=group.count,
        score=None if score is None else float(score),
    )


def _plank_from_dict(
    entry: Dict[str, Any],
    by_id: Dict[int, Material],
    pieces: Sequence[OptimizedPiece],
) -> Plank:
    material = _lookup_material(entry["material_id"], by_id)
    placed = []
    for item in entry.get("pieces", []):
        index = item.get("piece_index")
        if index is None or not 0 <= int(index) < len(pieces):
            raise ProjectFormatError(f"Plank {entry.get('number')} references unknown piece {index!r}")
        placed.append(
            PlacedPiece(
                piece_id=str(item["id"]),
                group=pieces[int(index)].group,
                cutting_length=float(item["cutting_length"]),
                final_width=float(item["final_width"]),
                final_thickness=float(item["final_thickness"]),
                orientation_label=str(item.get("orientation", "")),
            )
        )
    return Plank(
        number=int(entry["number"]),
        material=material,
        pieces=tuple(placed),
        used_length=float(entry["used_length"]),
        waste_length=float(entry["waste_length"]),
    )
