"""Tests for the planning pipeline and run folder."""
import json
from pathlib import Path

import pytest

from plankulator.contracts import MeshLoadError, PlanCancelledError
from plankulator.materials import Material
from plankulator.pipeline import PlanConfig, build_cutting_list, plan_from_objects, run_plan_from_mesh


class TestPlanFromObjects:
    """Test the in-memory planning stages."""

    def test_shelf_plan(self, shelf_objects, triboard):
        plan = plan_from_objects(shelf_objects, [triboard])

        assert len(plan.pieces) == 3
        assert [(g.dims, g.count) for g in plan.groups] == [
            ((600.0, 300.0, 18.0), 2),
            ((800.0, 300.0, 18.0), 1),
        ]
        assert plan.warnings == []
        assert len(plan.planks) == 1

        plank = plan.planks[0]
        assert [p.piece_id for p in plank.pieces] == ["Top-1", "Side_L-2", "Side_L-3"]
        assert plank.used_length == pytest.approx(2004)
        assert plank.waste_length == pytest.approx(1996)

        summary = plan.summary
        assert summary.efficiency == pytest.approx(2004 / 4000)
        assert summary.cost is None

    def test_unit_scale(self, make_box_object, triboard):
        objects = [make_box_object("Panel", (600, 300, 18))]
        plan = plan_from_objects(objects, [triboard], PlanConfig(scale_to_mm=1.0))
        assert plan.groups[0].dims == (600.0, 300.0, 18.0)

    def test_unfit_piece_reported(self, shelf_objects, make_box_object, triboard):
        objects = list(shelf_objects) + [make_box_object("Beam", (5.0, 0.1, 0.1))]
        plan = plan_from_objects(objects, [triboard])
        assert [w.piece for w in plan.warnings] == ["Beam"]
        assert plan.summary.unfit_group_count == 1
        assert sum(len(p.pieces) for p in plan.planks) == 3

    def test_no_objects(self, triboard):
        plan = plan_from_objects([], [triboard])
        assert plan.groups == []
        assert plan.planks == []
        assert plan.summary.efficiency == 0.0

    def test_no_materials(self, shelf_objects):
        plan = plan_from_objects(shelf_objects, [])
        assert plan.planks == []
        assert len(plan.warnings) == 2

    @pytest.mark.parametrize("cancel_after", [0, 1, 2, 3])
    def test_cancellation_between_stages(self, shelf_objects, triboard, cancel_after):
        calls = []

        def should_cancel():
            calls.append(1)
            return len(calls) > cancel_after

        with pytest.raises(PlanCancelledError):
            plan_from_objects(shelf_objects, [triboard], should_cancel=should_cancel)

    def test_not_cancelled(self, shelf_objects, triboard):
        plan = plan_from_objects(shelf_objects, [triboard], should_cancel=lambda: False)
        assert len(plan.planks) == 1


class TestRunPlanFromMesh:
    """Test run-folder artifacts."""

    def test_artifacts(self, shelf_obj_file, tmp_path):
        runs = tmp_path / "runs"
        result = run_plan_from_mesh(
            shelf_obj_file,
            design_name="Shelf Unit",
            config=PlanConfig(runs_dir=str(runs), notes="pine edge banding"),
        )

        run_dir = Path(result.run_dir)
        assert run_dir.parent == runs
        assert result.run_id.endswith("shelf-unit")
        assert Path(result.mesh_input_path).exists()
        assert Path(result.plan_path).exists()
        assert Path(result.diagram_path).exists()
        assert Path(result.decision_log_path).exists()
        assert len(result.checkpoint_paths) == 5
        latest = json.loads((runs / "latest.json").read_text(encoding="utf-8"))
        assert latest["run_id"] == result.run_id

        plan_payload = json.loads(Path(result.plan_path).read_text(encoding="utf-8"))
        assert plan_payload["version"] == "1.0"
        assert plan_payload["source_file"] == "shelf.obj"
        assert plan_payload["notes"] == "pine edge banding"
        assert len(plan_payload["cutting_plan"]) == 1

        metrics = json.loads(Path(result.metrics_path).read_text(encoding="utf-8"))
        assert metrics["counts"]["planks"] == 1
        assert metrics["counts"]["placed_pieces"] == 3
        assert metrics["total_cost"] is None
        assert metrics["decisions_logged"] == 2

        manifest = json.loads(Path(result.manifest_path).read_text(encoding="utf-8"))
        assert manifest["run_id"] == result.run_id
        assert len(manifest["input_mesh_sha256"]) == 64
        assert manifest["materials"][0]["name"] == "Triboard Plank"

        summary_md = Path(result.summary_path).read_text(encoding="utf-8")
        assert "# Cutting plan: Shelf Unit" in summary_md
        assert "## Plank 1: Triboard Plank" in summary_md
        assert "Top: cut 800mm" in summary_md
        assert "3 cuts (4mm kerf)" in summary_md
        assert "pine edge banding" in summary_md

    def test_priced_materials_add_cost(self, shelf_obj_file, tmp_path):
        priced = Material(id=1, name="Triboard", length=4000, width=400, thickness=37, price_per_unit=89.9)
        result = run_plan_from_mesh(
            shelf_obj_file, materials=[priced], config=PlanConfig(runs_dir=str(tmp_path))
        )
        metrics = json.loads(Path(result.metrics_path).read_text(encoding="utf-8"))
        assert metrics["total_cost"] == pytest.approx(89.9)
        assert "Total cost: $89.90" in Path(result.summary_path).read_text(encoding="utf-8")

    def test_no_planks_skips_diagram(self, shelf_obj_file, tmp_path):
        result = run_plan_from_mesh(shelf_obj_file, materials=[], config=PlanConfig(runs_dir=str(tmp_path)))
        assert result.diagram_path is None
        summary_md = Path(result.summary_path).read_text(encoding="utf-8")
        assert "No piece fits the configured materials." in summary_md
        assert "## Warnings" in summary_md

    def test_without_audit_or_svg(self, shelf_obj_file, tmp_path):
        config = PlanConfig(runs_dir=str(tmp_path), export_svg=False, write_audit=False)
        result = run_plan_from_mesh(shelf_obj_file, config=config)
        assert result.diagram_path is None
        assert result.decision_log_path is None
        assert result.checkpoint_paths == []

    def test_missing_mesh(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            run_plan_from_mesh(str(tmp_path / "nope.obj"), config=PlanConfig(runs_dir=str(tmp_path)))

    def test_cancelled_run_leaves_no_folder(self, shelf_obj_file, tmp_path):
        runs = tmp_path / "runs"
        with pytest.raises(PlanCancelledError):
            run_plan_from_mesh(
                shelf_obj_file, config=PlanConfig(runs_dir=str(runs)), should_cancel=lambda: True
            )
        assert list(runs.iterdir()) == []

    def test_unreadable_mesh_creates_no_folder(self, tmp_path):
        mesh = tmp_path / "model.notamesh"
        mesh.write_text("hello", encoding="utf-8")
        runs = tmp_path / "runs"
        with pytest.raises(MeshLoadError):
            run_plan_from_mesh(str(mesh), config=PlanConfig(runs_dir=str(runs)))
        assert not runs.exists()

    def test_failed_run_keeps_latest_marker(self, shelf_obj_file, tmp_path):
        runs = tmp_path / "runs"
        done = run_plan_from_mesh(shelf_obj_file, config=PlanConfig(runs_dir=str(runs), export_svg=False))
        with pytest.raises(PlanCancelledError):
            run_plan_from_mesh(
                shelf_obj_file, config=PlanConfig(runs_dir=str(runs)), should_cancel=lambda: True
            )
        assert [p.name for p in runs.iterdir() if p.is_dir()] == [done.run_id]
        latest = json.loads((runs / "latest.json").read_text(encoding="utf-8"))
        assert latest["run_id"] == done.run_id

    def test_repeated_runs_get_distinct_dirs(self, shelf_obj_file, tmp_path):
        config = PlanConfig(runs_dir=str(tmp_path), export_svg=False)
        first = run_plan_from_mesh(shelf_obj_file, design_name="twice", config=config)
        second = run_plan_from_mesh(shelf_obj_file, design_name="twice", config=config)
        assert first.run_dir != second.run_dir


def test_cutting_list_for_empty_plan(triboard):
    plan = plan_from_objects([], [triboard])
    text = build_cutting_list(plan, plan.summary, "empty")
    assert "No pieces found." in text
    assert "- Planks: 0" in text
