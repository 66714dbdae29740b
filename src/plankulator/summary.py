"""Plan summary: read-only statistics derived from a finished cutting plan."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from plankulator.contracts import OptimizedPiece, Plank
from plankulator.materials import Material


@dataclass(frozen=True)
class CostLine:
    material: Material
    plank_count: int
    unit_price: float
    subtotal: float


@dataclass(frozen=True)
class CostSummary:
    total: float
    lines: List[CostLine] = field(default_factory=list)


@dataclass(frozen=True)
class PlanSummary:
    plank_count: int
    placed_piece_count: int
    unfit_group_count: int
    total_waste: float
    total_stock_length: float
    total_used_length: float
    efficiency: float  # 0-1
    planks_per_material: Dict[int, int]
    cost: Optional[CostSummary] = None

    @property
    def has_cost(self) -> bool:
        return self.cost is not None


def plank_efficiency(plank: Plank) -> float:
    """Percentage of the plank length used by cuts and kerf."""
    return plank.efficiency * 100.0


def kerf_length(plank: Plank) -> float:
    """Length lost to the saw between the cuts of one plank."""
    return plank.kerf_count * plank.material.saw_kerf


def summarize_plan(
    planks: Sequence[Plank],
    pieces: Iterable[OptimizedPiece] = (),
) -> PlanSummary:
    """Aggregate a plank list; never stored, recompute whenever needed."""
    planks_per_material: Dict[int, int] = {}
    materials: Dict[int, Material] = {}
    for plank in planks:
        planks_per_material[plank.material.id] = planks_per_material.get(plank.material.id, 0) + 1
        materials.setdefault(plank.material.id, plank.material)

    total_stock = sum(p.material.length for p in planks)
    total_used = sum(p.used_length for p in planks)

    return PlanSummary(
        plank_count=len(planks),
        placed_piece_count=sum(len(p.pieces) for p in planks),
        unfit_group_count=sum(1 for piece in pieces if not piece.can_fit),
        total_waste=sum(p.waste_length for p in planks),
        total_stock_length=total_stock,
        total_used_length=total_used,
        efficiency=(total_used / total_stock) if total_stock > 0 else 0.0,
        planks_per_material=planks_per_material,
        cost=_cost_summary(planks_per_material, materials),
    )


def _cost_summary(
    planks_per_material: Dict[int, int],
    materials: Dict[int, Material],
) -> Optional[CostSummary]:
    lines = []
    for material_id, count in planks_per_material.items():
        material = materials[material_id]
        if not material.has_price:
            continue
        lines.append(
            CostLine(
                material=material,
                plank_count=count,
                unit_price=float(material.price_per_unit),
                subtotal=float(material.price_per_unit) * count,
            )
        )
    if not lines:
        return None
    return CostSummary(total=sum(line.subtotal for line in lines), lines=lines)
