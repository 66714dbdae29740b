"""Cutting-plan pipeline: mesh -> pieces -> groups -> orientations -> planks -> run artifacts."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from plankulator.audit import PlanAudit
from plankulator.contracts import (
    MeshObject,
    OptimizedPiece,
    PieceGroup,
    Plank,
    PlanCancelledError,
    PlanWarning,
    RawPiece,
    format_mm,
)
from plankulator.grouping import DEFAULT_DECIMALS, dimension_key, group_pieces
from plankulator.ingest import load_mesh_objects, measure_objects
from plankulator.materials import DEFAULT_MATERIALS, Material, material_to_dict
from plankulator.orientation import evaluate_materials, optimize_pieces
from plankulator.packer import pack_pieces
from plankulator.run_folder import PlanRun, file_sha256
from plankulator.summary import PlanSummary, kerf_length, plank_efficiency, summarize_plan

logger = logging.getLogger(__name__)

CancelCheck = Callable[[], bool]


@dataclass(frozen=True)
class PlanConfig:
    """Settings for one planning run."""

    scale_to_mm: float = 1000.0  # OBJ exports are in metres
    round_decimals: int = DEFAULT_DECIMALS
    runs_dir: str = "runs"
    export_svg: bool = True
    write_audit: bool = True
    notes: str = ""


@dataclass
class CuttingPlan:
    """In-memory output of the planning stages."""

    pieces: List[RawPiece]
    groups: List[PieceGroup]
    optimized: List[OptimizedPiece]
    warnings: List[PlanWarning]
    planks: List[Plank]
    materials: List[Material] = field(default_factory=list)

    @property
    def summary(self) -> PlanSummary:
        return summarize_plan(self.planks, self.optimized)


@dataclass
class PlanRunResult:
    run_id: str
    run_dir: str
    plan_path: str
    metrics_path: str
    summary_path: str
    manifest_path: str
    mesh_input_path: str
    diagram_path: Optional[str] = None
    decision_log_path: Optional[str] = None
    checkpoint_paths: List[str] = field(default_factory=list)
    plan: Optional[CuttingPlan] = None


def _check_cancel(should_cancel: Optional[CancelCheck], stage: str) -> None:
    if should_cancel is not None and should_cancel():
        raise PlanCancelledError(f"Planning cancelled before {stage}")


def plan_from_objects(
    objects: Sequence[MeshObject],
    materials: Sequence[Material],
    config: Optional[PlanConfig] = None,
    should_cancel: Optional[CancelCheck] = None,
    audit: Optional[PlanAudit] = None,
) -> CuttingPlan:
    """Run every planning stage over already-parsed mesh objects.

    ``should_cancel`` is polled between stages only; a cancelled run raises
    PlanCancelledError and returns nothing partial.
    """
    if config is None:
        config = PlanConfig()
    materials = list(materials)

    _check_cancel(should_cancel, "ingest")
    pieces = measure_objects(objects)
    if not pieces:
        logger.warning("No pieces found in %d object(s)", len(objects))
    if audit is not None:
        audit.checkpoint(
            "ingest",
            counts={"objects": len(objects), "pieces": len(pieces)},
            metrics={"scale_to_mm": float(config.scale_to_mm)},
        )

    _check_cancel(should_cancel, "grouping")
    groups = group_pieces(pieces, scale=config.scale_to_mm, decimals=config.round_decimals)
    if audit is not None:
        audit.checkpoint(
            "grouping",
            counts={"groups": len(groups), "pieces": sum(g.count for g in groups)},
            outputs={"groups": {dimension_key(g.dims): g.count for g in groups}},
        )

    _check_cancel(should_cancel, "orientation")
    optimized, warnings = optimize_pieces(groups, materials)
    if audit is not None:
        for piece in optimized:
            audit.record_material_choice(piece, evaluate_materials(piece.group, materials), materials)
        audit.checkpoint(
            "orientation",
            counts={
                "fit_groups": sum(1 for p in optimized if p.can_fit),
                "unfit_groups": len(warnings),
                "materials": len(materials),
            },
        )

    _check_cancel(should_cancel, "packing")
    planks = pack_pieces(optimized)
    if audit is not None:
        audit.checkpoint(
            "packing",
            counts={"planks": len(planks), "cuts": sum(len(p.pieces) for p in planks)},
            metrics={"waste_mm": float(sum(p.waste_length for p in planks))},
        )

    logger.info(
        "Planned %d piece group(s) onto %d plank(s), %d unfit",
        len(groups),
        len(planks),
        len(warnings),
    )
    return CuttingPlan(
        pieces=pieces,
        groups=groups,
        optimized=optimized,
        warnings=warnings,
        planks=planks,
        materials=materials,
    )


def run_plan_from_mesh(
    mesh_path: str,
    design_name: str = "plan",
    materials: Optional[Sequence[Material]] = None,
    config: Optional[PlanConfig] = None,
    should_cancel: Optional[CancelCheck] = None,
) -> PlanRunResult:
    """Plan a mesh file and write the run folder.

    The mesh is read before the folder is created, and a run that fails or
    is cancelled afterwards is removed, so every folder under ``runs_dir``
    holds a finished plan.
    """
    if config is None:
        config = PlanConfig()
    if materials is None:
        materials = DEFAULT_MATERIALS
    materials = list(materials)

    started = time.perf_counter()
    objects = load_mesh_objects(mesh_path)

    run = PlanRun(config.runs_dir, design_name)
    try:
        result = _plan_into_run(run, mesh_path, objects, materials, config, should_cancel, started)
    except Exception:
        run.discard()
        raise
    run.mark_latest()
    return result


def _plan_into_run(
    run: PlanRun,
    mesh_path: str,
    objects: Sequence[MeshObject],
    materials: List[Material],
    config: PlanConfig,
    should_cancel: Optional[CancelCheck],
    started: float,
) -> PlanRunResult:
    stored_mesh = run.store_input(mesh_path)
    audit = PlanAudit(run_id=run.run_id, artifacts_dir=run.artifacts_dir) if config.write_audit else None

    logger.info("Planning cuts for %s into run %s", stored_mesh.name, run.run_id)
    plan = plan_from_objects(objects, materials, config, should_cancel=should_cancel, audit=audit)
    summary = plan.summary

    run.write_project(
        materials, plan.optimized, plan.planks, notes=config.notes, source_file=stored_mesh.name
    )
    diagram = run.write_diagram(plan.planks) if config.export_svg else None

    if audit is not None:
        audit.checkpoint(
            "summary",
            counts={"planks": summary.plank_count, "placed_pieces": summary.placed_piece_count},
            metrics={"efficiency": summary.efficiency, "total_waste_mm": summary.total_waste},
        )
        audit.finalize()

    elapsed = time.perf_counter() - started
    decisions = audit.decision_count if audit else 0
    run.write_metrics(_metrics_payload(run.run_id, plan, summary, elapsed, decisions))
    run.write_cutting_list(build_cutting_list(plan, summary, run.design_name, config.notes))

    checkpoint_paths = [str(c.path) for c in audit.checkpoints] if audit else []
    run.write_manifest(
        {
            "design_name": run.design_name,
            "input_mesh": str(stored_mesh),
            "input_mesh_sha256": file_sha256(stored_mesh),
            "created_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "config": asdict(config),
            "materials": [material_to_dict(m) for m in materials],
            "artifacts": {
                "cutting_plan": str(run.project_path),
                "diagram": str(diagram) if diagram else None,
                "metrics": str(run.metrics_path),
                "summary": str(run.summary_path),
                "decision_log": str(audit.decision_log_path) if audit else None,
                "checkpoints": checkpoint_paths,
            },
        }
    )

    return PlanRunResult(
        run_id=run.run_id,
        run_dir=str(run.run_dir),
        plan_path=str(run.project_path),
        metrics_path=str(run.metrics_path),
        summary_path=str(run.summary_path),
        manifest_path=str(run.manifest_path),
        mesh_input_path=str(stored_mesh),
        diagram_path=str(diagram) if diagram else None,
        decision_log_path=str(audit.decision_log_path) if audit else None,
        checkpoint_paths=checkpoint_paths,
        plan=plan,
    )




def _metrics_payload(
    run_id: str,
    plan: CuttingPlan,
    summary: PlanSummary,
    elapsed_s: float,
    decisions: int = 0,
) -> Dict[str, object]:
    return {
        "run_id": run_id,
        "elapsed_s": round(elapsed_s, 3),
        "decisions_logged": decisions,
        "counts": {
            "objects_measured": len(plan.pieces),
            "groups": len(plan.groups),
            "unfit_groups": summary.unfit_group_count,
            "planks": summary.plank_count,
            "placed_pieces": summary.placed_piece_count,
        },
        "planks_per_material": {str(k): v for k, v in summary.planks_per_material.items()},
        "total_waste_mm": summary.total_waste,
        "efficiency": round(summary.efficiency, 6),
        "total_cost": summary.cost.total if summary.cost else None,
        "warnings": [
            {"piece": w.piece, "dims": list(w.original_dims), "reason": w.reason, "count": w.count}
            for w in plan.warnings
        ],
    }


def build_cutting_list(
    plan: CuttingPlan,
    summary: PlanSummary,
    design_name: str,
    notes: str = "",
) -> str:
    """Markdown cutting list: totals, stock to buy, per-plank cuts, warnings."""
    lines = [
        f"# Cutting plan: {design_name}",
        "",
        f"- Planks: {summary.plank_count}",
        f"- Pieces placed: {summary.placed_piece_count}",
        f"- Efficiency: {summary.efficiency * 100:.1f}%",
        f"- Total waste: {summary.total_waste:.0f}mm",
    ]
    if summary.cost is not None:
        lines.append(f"- Total cost: ${summary.cost.total:.2f}")
    lines.extend(["", "## Materials", "", "| Material | Dimensions | Planks | Cost |", "|---|---|---|---|"])

    materials_by_id = {p.material.id: p.material for p in plan.planks}
    costs = {line.material.id: line for line in summary.cost.lines} if summary.cost else {}
    for material_id, count in summary.planks_per_material.items():
        material = materials_by_id[material_id]
        line = costs.get(material_id)
        cost = f"{count} × ${line.unit_price:.2f} = ${line.subtotal:.2f}" if line else "-"
        lines.append(f"| {material.name} | {material.dims_label} | {count} | {cost} |")

    if not plan.planks:
        lines.extend(["", "No pieces found." if not plan.groups else "No piece fits the configured materials."])

    for plank in plan.planks:
        lines.extend(
            [
                "",
                f"## Plank {plank.number}: {plank.material.name} ({plank.material.dims_label})",
                "",
                f"{len(plank.pieces)} cuts ({format_mm(kerf_length(plank))}mm kerf), "
                f"{plank_efficiency(plank):.1f}% efficient, waste {format_mm(plank.waste_length)}mm",
                "",
            ]
        )
        for idx, placed in enumerate(plank.pieces, start=1):
            lines.append(
                f"{idx}. {placed.name}: cut {format_mm(placed.cutting_length)}mm "
                f"(width {format_mm(placed.final_width)}, thickness {format_mm(placed.final_thickness)})"
            )

    if plan.warnings:
        lines.extend(["", "## Warnings", ""])
        for warning in plan.warnings:
            lines.append(f"- {warning.piece} ({warning.dims_label}, x{warning.count}): {warning.reason}")

    if notes:
        lines.extend(["", "## Notes", "", notes])

    return "\n".join(lines) + "\n"
