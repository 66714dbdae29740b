"""Public API for the plankulator cutting-plan pipeline."""

from plankulator.contracts import OptimizedPiece, PieceGroup, Plank, PlanWarning
from plankulator.materials import DEFAULT_MATERIALS, Material, load_materials
from plankulator.pipeline import CuttingPlan, PlanConfig, plan_from_objects, run_plan_from_mesh
from plankulator.summary import PlanSummary, summarize_plan

__all__ = [
    "CuttingPlan",
    "DEFAULT_MATERIALS",
    "Material",
    "OptimizedPiece",
    "PieceGroup",
    "PlanConfig",
    "PlanSummary",
    "PlanWarning",
    "Plank",
    "load_materials",
    "plan_from_objects",
    "run_plan_from_mesh",
    "summarize_plan",
]
