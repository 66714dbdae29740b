"""Tests for run folders."""
import json
from datetime import datetime, timezone

from plankulator.packer import pack_pieces
from plankulator.run_folder import PlanRun, design_slug, file_sha256, plan_run_id

FIXED_NOW = datetime(2024, 3, 5, 14, 30, 0, tzinfo=timezone.utc)


class TestRunIds:
    def test_slug(self):
        assert design_slug("Shelf Unit #2") == "shelf-unit-2"
        assert design_slug("  ***  ") == "plan"

    def test_run_id_uses_utc_stamp(self):
        assert plan_run_id("Bookcase", FIXED_NOW) == "20240305_143000_bookcase"

    def test_same_second_runs_get_suffix(self, tmp_path):
        first = PlanRun(str(tmp_path), "desk", now=FIXED_NOW)
        second = PlanRun(str(tmp_path), "desk", now=FIXED_NOW)
        assert first.run_id == "20240305_143000_desk"
        assert second.run_id == "20240305_143000_desk_2"
        assert second.input_dir.is_dir()
        assert second.artifacts_dir.is_dir()


class TestPlanRun:
    """Test the files a run writes."""

    def test_store_input_copies_mesh(self, tmp_path, shelf_obj_file):
        run = PlanRun(str(tmp_path / "runs"), "shelf")
        stored = run.store_input(shelf_obj_file)
        assert stored.parent == run.input_dir
        assert stored.name == "shelf.obj"
        assert len(file_sha256(stored)) == 64

    def test_empty_plan_has_no_diagram(self, tmp_path):
        run = PlanRun(str(tmp_path), "empty")
        assert run.write_diagram([]) is None
        assert not run.diagram_path.exists()

    def test_diagram_and_project(self, tmp_path, make_optimized, triboard):
        pieces = [make_optimized(1000, triboard, count=2)]
        planks = pack_pieces(pieces)
        run = PlanRun(str(tmp_path), "boards")

        assert run.write_diagram(planks) == run.diagram_path
        run.write_project([triboard], pieces, planks, notes="oil finish")

        project = json.loads(run.project_path.read_text(encoding="utf-8"))
        assert project["notes"] == "oil finish"
        assert len(project["cutting_plan"]) == 1

    def test_manifest_carries_run_id(self, tmp_path):
        run = PlanRun(str(tmp_path), "manifest")
        run.write_manifest({"design_name": "manifest"})
        manifest = json.loads(run.manifest_path.read_text(encoding="utf-8"))
        assert manifest == {"run_id": run.run_id, "design_name": "manifest"}

    def test_mark_latest(self, tmp_path):
        run = PlanRun(str(tmp_path), "latest")
        run.mark_latest()
        marker = json.loads((tmp_path / "latest.json").read_text(encoding="utf-8"))
        assert marker["run_id"] == run.run_id

    def test_discard_removes_folder(self, tmp_path):
        run = PlanRun(str(tmp_path), "scrap")
        run.write_cutting_list("# scrap\n")
        run.discard()
        assert not run.run_dir.exists()
        assert list(tmp_path.iterdir()) == []
