"""
SVG cutting diagram for a plank plan.

One horizontal strip per plank, drawn to scale along its length. Pieces are
coloured by cut size, kerf is drawn as a dark sliver between cuts and the
leftover is shaded as waste.
"""

from __future__ import annotations

import logging
import os
from typing import Sequence

import svgwrite

from plankulator.contracts import Plank, format_mm
from plankulator.palette import piece_color
from plankulator.summary import kerf_length, plank_efficiency

logger = logging.getLogger(__name__)

STRIP_LENGTH_PX = 1000.0
STRIP_HEIGHT_PX = 40.0
MARGIN_PX = 20.0
HEADER_PX = 18.0
ROW_GAP_PX = 16.0

STYLE = """
    .stock { fill: #8B4513; stroke: #654321; stroke-width: 1; }
    .kerf { fill: #333333; }
    .waste { fill: #ff8e8e; stroke: #ff0000; stroke-width: 0.5; opacity: 0.7; }
    .piece { stroke: #222222; stroke-width: 0.5; }
    .header { font-size: 12px; font-family: Arial, sans-serif; fill: #333; }
    .cut { font-size: 9px; font-family: Arial, sans-serif; fill: #ffffff; }
"""


def plan_to_drawing(planks: Sequence[Plank], filepath: str = "cutting_plan.svg") -> svgwrite.Drawing:
    row_height = HEADER_PX + STRIP_HEIGHT_PX + ROW_GAP_PX
    canvas_width = STRIP_LENGTH_PX + 2 * MARGIN_PX
    canvas_height = 2 * MARGIN_PX + max(1, len(planks)) * row_height

    dwg = svgwrite.Drawing(
        filepath,
        size=(f"{canvas_width}px", f"{canvas_height}px"),
        viewBox=f"0 0 {canvas_width} {canvas_height}",
    )
    dwg.defs.add(dwg.style(STYLE))

    for row, plank in enumerate(planks):
        top = MARGIN_PX + row * row_height
        _draw_plank(dwg, plank, top)
    return dwg


def _draw_plank(dwg: svgwrite.Drawing, plank: Plank, top: float) -> None:
    material = plank.material
    scale = STRIP_LENGTH_PX / material.length
    strip_top = top + HEADER_PX

    dwg.add(
        dwg.text(
            f"Plank {plank.number}: {material.name} ({material.dims_label}) - "
            f"{len(plank.pieces)} cuts ({format_mm(kerf_length(plank))}mm kerf), "
            f"{plank_efficiency(plank):.1f}% efficient",
            insert=(MARGIN_PX, top + HEADER_PX - 5),
            class_="header",
        )
    )
    dwg.add(
        dwg.rect(
            insert=(MARGIN_PX, strip_top),
            size=(STRIP_LENGTH_PX, STRIP_HEIGHT_PX),
            class_="stock",
        )
    )

    position = 0.0
    for idx, piece in enumerate(plank.pieces):
        if idx > 0:
            dwg.add(
                dwg.rect(
                    insert=(MARGIN_PX + position * scale, strip_top),
                    size=(material.saw_kerf * scale, STRIP_HEIGHT_PX),
                    class_="kerf",
                )
            )
            position += material.saw_kerf

        height = STRIP_HEIGHT_PX * min(piece.final_width / material.width, 1.0)
        x = MARGIN_PX + position * scale
        dwg.add(
            dwg.rect(
                insert=(x, strip_top),
                size=(piece.cutting_length * scale, height),
                fill=piece_color(piece.cutting_length, piece.final_width, piece.final_thickness),
                class_="piece",
            )
        )
        dwg.add(
            dwg.text(
                format_mm(piece.cutting_length),
                insert=(x + 3, strip_top + min(height, STRIP_HEIGHT_PX) / 2 + 3),
                class_="cut",
            )
        )
        position += piece.cutting_length

    if plank.waste_length > 0:
        dwg.add(
            dwg.rect(
                insert=(MARGIN_PX + position * scale, strip_top),
                size=(plank.waste_length * scale, STRIP_HEIGHT_PX),
                class_="waste",
            )
        )


def plan_to_svg(planks: Sequence[Plank], filepath: str) -> str:
    """Write the diagram for ``planks`` and return the file path."""
    os.makedirs(os.path.dirname(os.path.abspath(filepath)), exist_ok=True)
    dwg = plan_to_drawing(planks, filepath)
    dwg.save(pretty=True)
    logger.debug("Wrote cutting diagram for %d plank(s) to %s", len(planks), filepath)
    return filepath
