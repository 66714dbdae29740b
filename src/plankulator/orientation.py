"""
Orientation optimizer: choose a material and an axis assignment per piece group.

For every material the six axis permutations of a piece are checked against
the stock envelope. The feasible permutation with the shortest cut wins for
that material, and materials are compared with a weighted score that mostly
rewards a tight thickness fit:

    score = cut + 100 * (material.thickness - thick) + 0.1 * (material.width - width)

Lower is better. Ties keep the earlier orientation and the earlier material.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from plankulator.contracts import (
    ERROR_ORIENTATION,
    NO_MATERIAL_FITS,
    Dims,
    MaterialCandidate,
    OptimizedPiece,
    Orientation,
    PieceGroup,
    PlanWarning,
    format_mm,
)
from plankulator.materials import Material

logger = logging.getLogger(__name__)

THICKNESS_WEIGHT = 100.0
WIDTH_WEIGHT = 0.1

# (cut, width, thick) as indices into (length, width, thickness).
ORIENTATION_ROLES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (0, 2, 1),
    (1, 0, 2),
    (1, 2, 0),
    (2, 0, 1),
    (2, 1, 0),
)


def orientation_label(cut: float, width: float, thick: float) -> str:
    return f"{format_mm(cut)}(cut) × {format_mm(width)} × {format_mm(thick)}"


def enumerate_orientations(dims: Dims) -> List[Orientation]:
    """All six orientations of ``dims`` in tie-break order."""
    orientations = []
    for index, (c, w, t) in enumerate(ORIENTATION_ROLES, start=1):
        cut, width, thick = dims[c], dims[w], dims[t]
        orientations.append(
            Orientation(
                index=index,
                cut=cut,
                width=width,
                thick=thick,
                label=orientation_label(cut, width, thick),
            )
        )
    return orientations


def fits(orientation: Orientation, material: Material) -> bool:
    return (
        orientation.cut <= material.length
        and orientation.width <= material.width
        and orientation.thick <= material.thickness
    )


def best_orientation_for_material(dims: Dims, material: Material) -> Optional[Orientation]:
    """Feasible orientation with the smallest cut; earliest wins a tie."""
    best: Optional[Orientation] = None
    for orientation in enumerate_orientations(dims):
        if not fits(orientation, material):
            continue
        if best is None or orientation.cut < best.cut:
            best = orientation
    return best


def orientation_score(orientation: Orientation, material: Material) -> float:
    thickness_waste = material.thickness - orientation.thick
    width_waste = material.width - orientation.width
    return orientation.cut + thickness_waste * THICKNESS_WEIGHT + width_waste * WIDTH_WEIGHT


def evaluate_materials(group: PieceGroup, materials: Sequence[Material]) -> List[MaterialCandidate]:
    """Per-material best orientation and score, skipping materials that cannot hold the piece."""
    candidates = []
    for material in materials:
        orientation = best_orientation_for_material(group.dims, material)
        if orientation is None:
            continue
        candidates.append(
            MaterialCandidate(
                material=material,
                orientation=orientation,
                score=orientation_score(orientation, material),
            )
        )
    return candidates


def select_candidate(candidates: Sequence[MaterialCandidate]) -> Optional[MaterialCandidate]:
    best: Optional[MaterialCandidate] = None
    for candidate in candidates:
        if best is None or candidate.score < best.score:
            best = candidate
    return best


def optimize_piece(group: PieceGroup, materials: Sequence[Material]) -> OptimizedPiece:
    best = select_candidate(evaluate_materials(group, materials))
    if best is None:
        return OptimizedPiece(
            group=group,
            cutting_length=group.length,
            final_width=group.width,
            final_thickness=group.thickness,
            orientation_label=ERROR_ORIENTATION,
            material=None,
            can_fit=False,
            count=group.count,
        )

    return OptimizedPiece(
        group=group,
        cutting_length=best.orientation.cut,
        final_width=best.orientation.width,
        final_thickness=best.orientation.thick,
        orientation_label=best.orientation.label,
        material=best.material,
        can_fit=True,
        count=group.count,
        score=best.score,
    )


def optimize_pieces(
    groups: Sequence[PieceGroup],
    materials: Sequence[Material],
) -> Tuple[List[OptimizedPiece], List[PlanWarning]]:
    """Optimize every group; unfit groups are kept and reported as warnings."""
    if not materials:
        logger.warning("No materials configured; all %d piece group(s) are unfit", len(groups))

    optimized: List[OptimizedPiece] = []
    warnings: List[PlanWarning] = []
    for group in groups:
        piece = optimize_piece(group, materials)
        optimized.append(piece)
        if piece.can_fit:
            logger.debug(
                "%s -> %s as %s (score %.1f)",
                group.name,
                piece.material.name,
                piece.orientation_label,
                piece.score,
            )
            continue
        warnings.append(unfit_warning(piece))
        logger.warning(
            "%s (%s mm, x%d) does not fit any material",
            group.name,
            " × ".join(format_mm(v) for v in group.dims),
            group.count,
        )
    return optimized, warnings


def unfit_warning(piece: OptimizedPiece) -> PlanWarning:
    return PlanWarning(
        piece=piece.name,
        original_dims=piece.original_dims,
        reason=NO_MATERIAL_FITS,
        count=piece.count,
    )
