"""Display colours for pieces, derived from their cut dimensions."""

from __future__ import annotations

import hashlib
from typing import Tuple

from plankulator.contracts import format_mm

# High-contrast colours, ordered so neighbours differ strongly.
DISTINCT_COLORS: Tuple[str, ...] = (
    "#FF0000",
    "#0000FF",
    "#00AA00",
    "#FF8C00",
    "#9400D3",
    "#00CED1",
    "#FFD700",
    "#FF1493",
    "#32CD32",
    "#4B0082",
    "#FF6347",
    "#1E90FF",
    "#8B4513",
    "#00FA9A",
    "#DC143C",
    "#00BFFF",
    "#FF69B4",
    "#228B22",
    "#FFA500",
    "#4169E1",
    "#A0522D",
    "#20B2AA",
    "#B22222",
    "#6495ED",
    "#FF4500",
    "#2E8B57",
    "#D2691E",
    "#48D1CC",
    "#C71585",
    "#6B8E23",
)


def color_key(cutting_length: float, final_width: float, final_thickness: float) -> str:
    return f"{format_mm(cutting_length)}×{format_mm(final_width)}×{format_mm(final_thickness)}"


def piece_color(cutting_length: float, final_width: float, final_thickness: float) -> str:
    """Stable palette colour for a cut size; identical cuts share a colour."""
    key = color_key(cutting_length, final_width, final_thickness)
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    index = int.from_bytes(digest[:8], "big") % len(DISTINCT_COLORS)
    return DISTINCT_COLORS[index]
