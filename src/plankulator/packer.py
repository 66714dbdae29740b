"""
Bin packer: lay optimized pieces end to end along stock planks.

Per material, groups are sorted longest cut first. A plank is filled by
repeatedly scanning the sorted groups from the top and placing one unit of
the first group that still fits (its cut plus one kerf if the plank already
holds a piece). When a full scan places nothing the plank is closed and the
rest of its length is waste. Kerf is only charged between two cuts.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence, Tuple

from plankulator.contracts import OptimizedPiece, PlacedPiece, Plank
from plankulator.materials import Material

logger = logging.getLogger(__name__)


def partition_by_material(
    pieces: Iterable[OptimizedPiece],
) -> List[Tuple[Material, List[OptimizedPiece]]]:
    """Fit pieces grouped by material id, materials in order of first appearance."""
    partitions: Dict[int, Tuple[Material, List[OptimizedPiece]]] = {}
    for piece in pieces:
        if not piece.can_fit or piece.material is None or piece.count <= 0:
            continue
        entry = partitions.setdefault(piece.material.id, (piece.material, []))
        entry[1].append(piece)
    return list(partitions.values())


def pack_material(
    material: Material,
    pieces: Sequence[OptimizedPiece],
    first_number: int = 1,
) -> List[Plank]:
    """Pack all units of ``pieces`` onto planks of ``material``."""
    ordered = sorted(pieces, key=lambda p: p.cutting_length, reverse=True)
    remaining = [p.count for p in ordered]

    planks: List[Plank] = []
    number = first_number
    while any(count > 0 for count in remaining):
        placed: List[PlacedPiece] = []
        remaining_length = material.length

        found = True
        while found:
            found = False
            for idx, piece in enumerate(ordered):
                if remaining[idx] <= 0:
                    continue
                needed = piece.cutting_length
                if placed:
                    needed += material.saw_kerf
                if needed > remaining_length:
                    continue
                placed.append(
                    PlacedPiece(
                        piece_id=f"{piece.name}-{len(placed) + 1}",
                        group=piece.group,
                        cutting_length=piece.cutting_length,
                        final_width=piece.final_width,
                        final_thickness=piece.final_thickness,
                        orientation_label=piece.orientation_label,
                    )
                )
                remaining_length -= needed
                remaining[idx] -= 1
                found = True
                break

        if not placed:
            # Only reachable when a piece is longer than the stock.
            raise ValueError(
                f"Cannot place any remaining piece on {material.name} "
                f"({material.length:g}mm); pieces must be checked for fit first"
            )

        planks.append(
            Plank(
                number=number,
                material=material,
                pieces=tuple(placed),
                used_length=material.length - remaining_length,
                waste_length=remaining_length,
            )
        )
        number += 1

    return planks


def pack_pieces(pieces: Iterable[OptimizedPiece]) -> List[Plank]:
    """Cutting plan for every fit piece; plank numbers run across materials."""
    planks: List[Plank] = []
    for material, material_pieces in partition_by_material(pieces):
        material_planks = pack_material(material, material_pieces, first_number=len(planks) + 1)
        logger.info(
            "%s: %d piece(s) on %d plank(s)",
            material.name,
            sum(p.count for p in material_pieces),
            len(material_planks),
        )
        planks.extend(material_planks)
    return planks
