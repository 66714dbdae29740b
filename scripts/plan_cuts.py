#!/usr/bin/env python3
"""Plan plank cuts for a mesh whose objects are the pieces to cut."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from plankulator.contracts import PlankulatorError
from plankulator.materials import DEFAULT_MATERIALS, load_materials
from plankulator.pipeline import PlanConfig, run_plan_from_mesh


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Turn named mesh objects into a kerf-aware plank cutting plan"
    )
    parser.add_argument(
        "--mesh", required=True, help="Path to input mesh (.obj/.stl/.ply/.glb)"
    )
    parser.add_argument("--name", default="plan", help="Design/run name")
    parser.add_argument("--runs-dir", default="runs", help="Runs output root")
    parser.add_argument(
        "--materials",
        default=None,
        help="JSON file with stock materials (default: 4000x400x37mm Triboard plank)",
    )
    parser.add_argument(
        "--scale",
        type=float,
        default=1000.0,
        help="Model units to millimetres (default 1000: mesh in metres)",
    )
    parser.add_argument(
        "--decimals",
        type=int,
        default=1,
        help="Decimal places used when grouping identical pieces",
    )
    parser.add_argument("--no-svg", action="store_true", help="Skip the SVG diagram")
    parser.add_argument(
        "--no-audit", action="store_true", help="Skip decision log and checkpoints"
    )
    parser.add_argument("--notes", default="", help="Free-text notes stored with the plan")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.scale <= 0:
        parser.error("--scale must be positive")
    if args.decimals < 0:
        parser.error("--decimals must not be negative")

    config = PlanConfig(
        scale_to_mm=float(args.scale),
        round_decimals=int(args.decimals),
        runs_dir=args.runs_dir,
        export_svg=not args.no_svg,
        write_audit=not args.no_audit,
        notes=args.notes,
    )

    try:
        materials = load_materials(args.materials) if args.materials else DEFAULT_MATERIALS
        result = run_plan_from_mesh(
            args.mesh, design_name=args.name, materials=materials, config=config
        )
    except (PlankulatorError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    plan = result.plan
    summary = plan.summary
    print(f"Run ID: {result.run_id}")
    print(f"Run dir: {result.run_dir}")
    print(f"Piece groups: {len(plan.groups)}")
    print(f"Planks: {summary.plank_count}")
    print(f"Pieces placed: {summary.placed_piece_count}")
    print(f"Efficiency: {summary.efficiency * 100:.1f}%")
    print(f"Total waste: {summary.total_waste:.0f}mm")
    if summary.cost is not None:
        print(f"Total cost: ${summary.cost.total:.2f}")
    for warning in plan.warnings:
        print(f"Warning: {warning.piece} ({warning.dims_label}): {warning.reason}")
    print(f"Cutting plan: {result.plan_path}")
    if result.diagram_path:
        print(f"Diagram: {result.diagram_path}")
    print(f"Summary: {result.summary_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
