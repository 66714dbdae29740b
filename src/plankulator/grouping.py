"""Piece grouping: merge objects whose canonical dimensions are identical."""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List

from plankulator.contracts import Dims, PieceGroup, RawPiece, format_mm

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 1  # tenth of a millimetre


def canonical_mm(value: float, decimals: int = DEFAULT_DECIMALS) -> float:
    """Round half up to ``decimals`` places (never half to even)."""
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def canonical_dims(dims: Dims, decimals: int = DEFAULT_DECIMALS) -> Dims:
    return (
        canonical_mm(dims[0], decimals),
        canonical_mm(dims[1], decimals),
        canonical_mm(dims[2], decimals),
    )


def scale_piece(piece: RawPiece, scale: float) -> RawPiece:
    """Convert model-space extents to millimetres."""
    if scale == 1.0:
        return piece
    length, width, thickness = piece.dims
    return RawPiece(name=piece.name, dims=(length * scale, width * scale, thickness * scale))


def dimension_key(dims: Dims) -> str:
    return " × ".join(format_mm(v) for v in dims)


def group_pieces(
    pieces: Iterable[RawPiece],
    scale: float = 1.0,
    decimals: int = DEFAULT_DECIMALS,
) -> List[PieceGroup]:
    """Group pieces by rounded dimensions, in order of first appearance."""
    names_by_key: Dict[Dims, List[str]] = {}
    total = 0
    for piece in pieces:
        key = canonical_dims(scale_piece(piece, scale).dims, decimals)
        names_by_key.setdefault(key, []).append(piece.name)
        total += 1

    groups = [
        PieceGroup(
            length=key[0],
            width=key[1],
            thickness=key[2],
            count=len(names),
            source_names=tuple(names),
        )
        for key, names in names_by_key.items()
    ]
    logger.info("Grouped %d piece(s) into %d group(s)", total, len(groups))
    return groups
