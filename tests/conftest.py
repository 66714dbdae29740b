"""
Shared test fixtures for the cutting-plan pipeline tests.
"""
import sys
from pathlib import Path

import pytest
import trimesh

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from plankulator.contracts import MeshObject, OptimizedPiece, PieceGroup
from plankulator.materials import Material


def box_vertices(size, origin=(0.0, 0.0, 0.0)):
    """Eight corners of an axis-aligned box."""
    ox, oy, oz = origin
    sx, sy, sz = size
    return [
        (ox + dx * sx, oy + dy * sy, oz + dz * sz)
        for dx in (0, 1)
        for dy in (0, 1)
        for dz in (0, 1)
    ]


def obj_box_lines(name, size, origin=(0.0, 0.0, 0.0)):
    lines = [f"o {name}"]
    lines.extend(f"v {x} {y} {z}" for x, y, z in box_vertices(size, origin))
    return lines


@pytest.fixture
def triboard():
    """The default 4000 x 400 x 37mm plank with a 2mm kerf."""
    return Material(id=1, name="Triboard Plank", length=4000, width=400, thickness=37, saw_kerf=2)


@pytest.fixture
def make_group():
    def _make(length, width, thickness, count=1, name="piece"):
        names = tuple(name if count == 1 else f"{name}.{i:03d}" for i in range(count))
        return PieceGroup(
            length=length,
            width=width,
            thickness=thickness,
            count=count,
            source_names=names,
        )

    return _make


@pytest.fixture
def make_optimized(make_group):
    """Fit OptimizedPiece with the given cut; width/thickness default to a shelf board."""

    def _make(cutting_length, material, count=1, name="piece", width=300.0, thickness=18.0):
        group = make_group(cutting_length, width, thickness, count=count, name=name)
        return OptimizedPiece(
            group=group,
            cutting_length=cutting_length,
            final_width=width,
            final_thickness=thickness,
            orientation_label=f"{cutting_length:g}(cut) × {width:g} × {thickness:g}",
            material=material,
            can_fit=True,
            count=count,
        )

    return _make


@pytest.fixture
def make_box_object():
    def _make(name, size, origin=(0.0, 0.0, 0.0)):
        return MeshObject(name=name, vertices=box_vertices(size, origin))

    return _make


@pytest.fixture
def shelf_objects():
    """Two sides (one with authoring noise), a top and an empty helper, in metres."""
    return [
        MeshObject(name="Side_L", vertices=box_vertices((0.6, 0.3, 0.018))),
        MeshObject(name="Side_R", vertices=box_vertices((0.6000004, 0.3, 0.018), origin=(1.0, 0.0, 0.0))),
        MeshObject(name="Top", vertices=box_vertices((0.8, 0.3, 0.018), origin=(0.0, 0.0, 0.6))),
        MeshObject(name="Empty", vertices=[]),
    ]


@pytest.fixture
def shelf_obj_text():
    lines = ["# shelf", "mtllib shelf.mtl"]
    lines += obj_box_lines("Side_L", (0.6, 0.3, 0.018))
    lines += ["vn 0 0 1", "f 1 2 3"]
    lines += obj_box_lines("Side_R", (0.6000004, 0.3, 0.018), origin=(1.0, 0.0, 0.0))
    lines += obj_box_lines("Top", (0.8, 0.3, 0.018), origin=(0.0, 0.0, 0.6))
    lines += ["v 0.1 abc 0.2"]
    lines += ["o Empty"]
    return "\n".join(lines) + "\n"


@pytest.fixture
def shelf_obj_file(tmp_path, shelf_obj_text):
    path = tmp_path / "shelf.obj"
    path.write_text(shelf_obj_text, encoding="utf-8")
    return str(path)


@pytest.fixture
def panel_stl_file(tmp_path):
    """A single 600 x 300 x 18mm panel (in metres) written as STL."""
    mesh = trimesh.creation.box(extents=[0.6, 0.3, 0.018])
    path = tmp_path / "panel.stl"
    mesh.export(str(path))
    return str(path)
