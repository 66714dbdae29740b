"""
Geometry ingest: named mesh objects -> raw bounding-box dimensions.

Each physical piece is modelled as its own named object. Only the axis-aligned
extents of every object are needed, so the OBJ reader keeps vertex positions
and ignores faces, normals and texture coordinates. Other formats go through
trimesh and are flattened to one object per scene node.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

import numpy as np
import trimesh

from plankulator.contracts import Dims, MeshLoadError, MeshObject, RawPiece, Vec3, to_vec3

logger = logging.getLogger(__name__)

OBJ_SUFFIXES = {".obj"}


def parse_obj(text: str) -> List[MeshObject]:
    """Split Wavefront OBJ text into named objects in declaration order.

    A vertex line that does not carry three finite numbers is dropped on its
    own; the rest of the object is kept. Vertices declared before the first
    ``o`` statement belong to no object and are ignored.
    """
    objects: List[MeshObject] = []
    current: Optional[MeshObject] = None
    skipped = 0
    orphaned = 0

    # A byte-order mark would otherwise hide the first "o" statement.
    for raw_line in text.lstrip("\ufeff").splitlines():
        line = raw_line.strip()
        if line.startswith("o ") or line == "o":
            current = MeshObject(name=line[2:].strip(), vertices=[])
            objects.append(current)
        elif line.startswith("v ") or line.startswith("v\t"):
            if current is None:
                orphaned += 1
                continue
            vertex = _parse_vertex(line[2:])
            if vertex is None:
                skipped += 1
                continue
            current.vertices.append(vertex)

    if skipped:
        logger.debug("Skipped %d malformed vertex line(s)", skipped)
    if orphaned:
        logger.warning("Ignored %d vertex line(s) declared before any object", orphaned)
    return objects


def _parse_vertex(fields: str) -> Optional[Vec3]:
    tokens = fields.split()
    if len(tokens) < 3:
        return None
    coords = []
    for token in tokens[:3]:
        try:
            value = float(token)
        except ValueError:
            return None
        if not math.isfinite(value):
            return None
        coords.append(value)
    return to_vec3(coords)


def object_dimensions(vertices: Sequence[Vec3]) -> Optional[Dims]:
    """Axis-aligned extents ``|max - min|`` per axis, or None without vertices."""
    if len(vertices) == 0:
        return None
    points = np.asarray(vertices, dtype=float).reshape(-1, 3)
    extents = np.abs(points.max(axis=0) - points.min(axis=0))
    return (float(extents[0]), float(extents[1]), float(extents[2]))


def iter_object_dimensions(objects: Iterable[MeshObject]) -> Iterator[RawPiece]:
    """Yield one RawPiece per object with vertices, preserving order."""
    for obj in objects:
        dims = object_dimensions(obj.vertices)
        if dims is None:
            logger.debug("Object %r has no vertices; skipped", obj.name)
            continue
        yield RawPiece(name=obj.name, dims=dims)


def measure_objects(objects: Iterable[MeshObject]) -> List[RawPiece]:
    return list(iter_object_dimensions(objects))


def load_mesh_objects(mesh_path: str) -> List[MeshObject]:
    """Read a mesh file into named objects.

    Raises:
        FileNotFoundError: If the file does not exist.
        MeshLoadError: If the file cannot be interpreted as mesh geometry.
    """
    path = Path(mesh_path)
    if not path.is_file():
        raise FileNotFoundError(f"Mesh file not found: {mesh_path}")

    if path.suffix.lower() in OBJ_SUFFIXES:
        try:
            text = path.read_text(encoding="utf-8-sig", errors="replace")
        except OSError as exc:
            raise MeshLoadError(f"Cannot read {mesh_path}: {exc}") from exc
        objects = parse_obj(text)
    else:
        objects = _load_with_trimesh(path)

    logger.info("Read %d object(s) from %s", len(objects), path.name)
    return objects


def _load_with_trimesh(path: Path) -> List[MeshObject]:
    try:
        loaded = trimesh.load(str(path))
    except Exception as exc:
        raise MeshLoadError(f"trimesh could not load {path}: {exc}") from exc

    if isinstance(loaded, trimesh.Scene):
        return _scene_objects(loaded)
    if isinstance(loaded, trimesh.Trimesh):
        return [MeshObject(name=path.stem, vertices=_as_vertex_list(loaded.vertices))]
    raise MeshLoadError(f"Unsupported geometry type {type(loaded).__name__} in {path}")


def _scene_objects(scene: trimesh.Scene) -> List[MeshObject]:
    objects: List[MeshObject] = []
    for node_name in scene.graph.nodes_geometry:
        transform, geometry_name = scene.graph[node_name]
        geometry = scene.geometry.get(geometry_name)
        vertices = getattr(geometry, "vertices", None)
        if vertices is None:
            continue
        world = trimesh.transformations.transform_points(
            np.asarray(vertices, dtype=float), transform
        )
        objects.append(MeshObject(name=str(node_name), vertices=_as_vertex_list(world)))
    return objects


def _as_vertex_list(vertices: np.ndarray) -> List[Vec3]:
    return [to_vec3(row) for row in np.asarray(vertices, dtype=float)]
