"""Contracts for the plankulator cutting-plan pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from plankulator.materials import Material

Vec3 = Tuple[float, float, float]
Dims = Tuple[float, float, float]

NO_MATERIAL_FITS = "no material fits"
ERROR_ORIENTATION = "ERROR"


class PlankulatorError(Exception):
    """Base exception for plankulator errors."""
    pass


class MeshLoadError(PlankulatorError):
    """Mesh file could not be read into named objects."""
    pass


class MaterialConfigError(PlankulatorError):
    """Material definition is invalid."""
    pass


class ProjectFormatError(PlankulatorError):
    """Saved project file is malformed or from an unknown version."""
    pass


class PlanCancelledError(PlankulatorError):
    """Planning was cancelled between two stages."""
    pass


@dataclass(frozen=True)
class MeshObject:
    """A named object from the source mesh with its raw vertex positions."""

    name: str
    vertices: List[Vec3] = field(default_factory=list)


@dataclass(frozen=True)
class RawPiece:
    """Bounding-box extents of one source object (X, Y, Z order)."""

    name: str
    dims: Dims


@dataclass(frozen=True)
class PieceGroup:
    """Identical source objects sharing one canonical dimension triple."""

    length: float
    width: float
    thickness: float
    count: int
    source_names: Tuple[str, ...]

    @property
    def name(self) -> str:
        return self.source_names[0] if self.source_names else ""

    @property
    def dims(self) -> Dims:
        return (self.length, self.width, self.thickness)


@dataclass(frozen=True)
class Orientation:
    """Assignment of a piece's dimensions to (cut, width, thick) roles."""

    index: int  # 1-based position in the fixed enumeration
    cut: float
    width: float
    thick: float
    label: str


@dataclass(frozen=True)
class MaterialCandidate:
    """Best feasible orientation of a piece group for one material."""

    material: "Material"
    orientation: Orientation
    score: float


@dataclass(frozen=True)
class OptimizedPiece:
    """A piece group with its chosen material and orientation."""

    group: PieceGroup
    cutting_length: float
    final_width: float
    final_thickness: float
    orientation_label: str
    material: Optional["Material"]
    can_fit: bool
    count: int
    score: Optional[float] = None

    @property
    def name(self) -> str:
        return self.group.name

    @property
    def original_dims(self) -> Dims:
        return self.group.dims


@dataclass(frozen=True)
class PlanWarning:
    """Non-fatal planning issue surfaced to the user."""

    piece: str
    original_dims: Dims
    reason: str = NO_MATERIAL_FITS
    count: int = 1

    @property
    def dims_label(self) -> str:
        return " × ".join(format_mm(v) for v in self.original_dims) + "mm"


@dataclass(frozen=True)
class PlacedPiece:
    """One physical cut placed on a plank."""

    piece_id: str
    group: PieceGroup
    cutting_length: float
    final_width: float
    final_thickness: float
    orientation_label: str = ""

    @property
    def name(self) -> str:
        return self.group.name


@dataclass(frozen=True)
class Plank:
    """One unit of stock with its ordered cuts and leftover."""

    number: int
    material: "Material"
    pieces: Tuple[PlacedPiece, ...]
    used_length: float
    waste_length: float

    @property
    def kerf_count(self) -> int:
        return max(0, len(self.pieces) - 1)

    @property
    def efficiency(self) -> float:
        """Used fraction of the stock length (0-1)."""
        if self.material.length <= 0:
            return 0.0
        return self.used_length / self.material.length


def format_mm(value: float) -> str:
    """Render a millimetre value without a trailing ``.0``."""
    text = f"{float(value):.6f}".rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"


def to_vec3(values: Sequence[float]) -> Vec3:
    return (float(values[0]), float(values[1]), float(values[2]))
