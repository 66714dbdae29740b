"""
Run folders for cutting-plan runs.

Each run lives in ``<runs_root>/<UTC stamp>_<design slug>/``::

    input/                  copy of the mesh that was planned
    artifacts/cutting_plan.json   reloadable project file
    artifacts/cutting_plan.svg    plank diagram (only when planks exist)
    metrics.json, summary.md, manifest.json

``<runs_root>/latest.json`` names the most recent finished run.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from plankulator.contracts import OptimizedPiece, Plank
from plankulator.materials import Material
from plankulator.project import save_project
from plankulator.svg_plan import plan_to_svg

logger = logging.getLogger(__name__)

LATEST_MARKER = "latest.json"


def design_slug(design_name: str) -> str:
    """Lowercase ASCII slug of a design name; ``plan`` when nothing is left."""
    return re.sub(r"[^0-9a-z]+", "-", design_name.lower()).strip("-") or "plan"


def plan_run_id(design_name: str, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d_%H%M%S")
    return f"{stamp}_{design_slug(design_name)}"


class PlanRun:
    """Owns one run folder and every file written into it."""

    def __init__(self, runs_root: str, design_name: str, now: Optional[datetime] = None):
        self.runs_root = Path(runs_root)
        self.design_name = design_name

        base_id = plan_run_id(design_name, now)
        run_id, attempt = base_id, 1
        while (self.runs_root / run_id).exists():
            attempt += 1
            run_id = f"{base_id}_{attempt}"
        self.run_id = run_id
        self.run_dir = self.runs_root / run_id
        self.input_dir = self.run_dir / "input"
        self.artifacts_dir = self.run_dir / "artifacts"
        self.input_dir.mkdir(parents=True)
        self.artifacts_dir.mkdir()

    @property
    def project_path(self) -> Path:
        return self.artifacts_dir / "cutting_plan.json"

    @property
    def diagram_path(self) -> Path:
        return self.artifacts_dir / "cutting_plan.svg"

    @property
    def metrics_path(self) -> Path:
        return self.run_dir / "metrics.json"

    @property
    def summary_path(self) -> Path:
        return self.run_dir / "summary.md"

    @property
    def manifest_path(self) -> Path:
        return self.run_dir / "manifest.json"

    def store_input(self, mesh_path: str) -> Path:
        stored = self.input_dir / Path(mesh_path).name
        shutil.copy2(mesh_path, stored)
        return stored

    def write_project(
        self,
        materials: Sequence[Material],
        pieces: Sequence[OptimizedPiece],
        planks: Sequence[Plank],
        notes: str = "",
        source_file: Optional[str] = None,
    ) -> Path:
        return save_project(
            str(self.project_path), materials, pieces, planks, notes=notes, source_file=source_file
        )

    def write_diagram(self, planks: Sequence[Plank]) -> Optional[Path]:
        """Draw the planks; an empty plan has nothing to draw and gets no file."""
        if not planks:
            return None
        plan_to_svg(planks, str(self.diagram_path))
        return self.diagram_path

    def write_metrics(self, payload: Dict[str, Any]) -> Path:
        return self._write_json(self.metrics_path, payload)

    def write_manifest(self, payload: Dict[str, Any]) -> Path:
        return self._write_json(self.manifest_path, {"run_id": self.run_id, **payload})

    def write_cutting_list(self, markdown: str) -> Path:
        self.summary_path.write_text(markdown, encoding="utf-8")
        return self.summary_path

    def mark_latest(self) -> None:
        marker = self.runs_root / LATEST_MARKER
        marker.write_text(
            json.dumps({"run_id": self.run_id, "run_dir": self.run_dir.name}, indent=2),
            encoding="utf-8",
        )

    def discard(self) -> None:
        """Remove a run that did not finish."""
        shutil.rmtree(self.run_dir, ignore_errors=True)
        logger.info("Discarded unfinished run %s", self.run_id)

    @staticmethod
    def _write_json(path: Path, payload: Dict[str, Any]) -> Path:
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        return path


def file_sha256(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()
