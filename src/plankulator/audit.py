"""
Decision log and stage checkpoints for cutting-plan runs.

Every piece group gets one ``material_orientation`` record listing each
material it was scored against. Records are chained: each one stores the
digest of its predecessor, so ``verify_decision_log`` can tell when a line was
edited, dropped or reordered after the run.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from plankulator.contracts import MaterialCandidate, OptimizedPiece
from plankulator.materials import Material

STAGES = ("ingest", "grouping", "orientation", "packing", "summary")
CHAIN_START = "0" * 64
DECISION_SCHEMA = "plankulator.decision.v1"
CHECKPOINT_SCHEMA = "plankulator.checkpoint.v1"


def record_digest(record: Dict[str, Any]) -> str:
    """sha256 over the sorted, compact JSON of a record minus its own ``hash``."""
    body = {k: v for k, v in record.items() if k != "hash"}
    text = json.dumps(body, sort_keys=True, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def verify_decision_log(path: Path) -> int:
    """Walk the chain in ``path``; return the record count or raise ValueError."""
    expected_prev = CHAIN_START
    count = 0
    for line_no, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        record = json.loads(line)
        if record.get("previous_hash") != expected_prev:
            raise ValueError(f"Decision log chain broken at line {line_no}")
        if record_digest(record) != record.get("hash"):
            raise ValueError(f"Decision log record at line {line_no} was modified")
        expected_prev = record["hash"]
        count += 1
    return count


@dataclass
class StageCheckpoint:
    stage: str
    path: Path
    digest: str

    @property
    def index(self) -> int:
        return STAGES.index(self.stage)


def _alternative(material: Material, candidate: Optional[MaterialCandidate]) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"material_id": material.id, "material": material.name}
    if candidate is None:
        entry["feasible"] = False
        return entry
    entry.update(
        feasible=True,
        orientation=candidate.orientation.label,
        orientation_index=candidate.orientation.index,
        score=round(candidate.score, 6),
    )
    return entry


class PlanAudit:
    """Writes ``decision_log.jsonl``, ``checkpoints/`` and ``decision_hash_chain.json``."""

    def __init__(self, run_id: str, artifacts_dir: Path):
        self.run_id = run_id
        self.checkpoints_dir = artifacts_dir / "checkpoints"
        self.checkpoints_dir.mkdir(parents=True, exist_ok=True)
        self.decision_log_path = artifacts_dir / "decision_log.jsonl"
        self.hash_chain_path = artifacts_dir / "decision_hash_chain.json"
        self._hashes: List[str] = []
        self._checkpoints: List[StageCheckpoint] = []

    @property
    def checkpoints(self) -> List[StageCheckpoint]:
        return list(self._checkpoints)

    @property
    def decision_count(self) -> int:
        return len(self._hashes)

    @property
    def last_hash(self) -> str:
        return self._hashes[-1] if self._hashes else CHAIN_START

    def record_material_choice(
        self,
        piece: OptimizedPiece,
        candidates: Sequence[MaterialCandidate],
        materials: Sequence[Material],
    ) -> Dict[str, Any]:
        by_material = {c.material.id: c for c in candidates}
        record: Dict[str, Any] = {
            "schema_version": DECISION_SCHEMA,
            "run_id": self.run_id,
            "seq": self.decision_count + 1,
            "decision_type": "material_orientation",
            "entity_ids": list(piece.group.source_names),
            "evidence": {
                "group": piece.name,
                "dims": list(piece.original_dims),
                "count": piece.count,
                "alternatives": [_alternative(m, by_material.get(m.id)) for m in materials],
                "selected_material_id": piece.material.id if piece.material else None,
                "selected_orientation": piece.orientation_label,
                "can_fit": piece.can_fit,
            },
            "previous_hash": self.last_hash,
        }
        record["hash"] = record_digest(record)

        with self.decision_log_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, sort_keys=True) + "\n")
        self._hashes.append(record["hash"])
        return record

    def checkpoint(
        self,
        stage: str,
        counts: Dict[str, int],
        metrics: Optional[Dict[str, float]] = None,
        outputs: Optional[Dict[str, Any]] = None,
    ) -> StageCheckpoint:
        """Snapshot the figures of a finished stage; stages must be known names."""
        if stage not in STAGES:
            raise ValueError(f"Unknown planning stage {stage!r}")
        index = STAGES.index(stage)
        payload: Dict[str, Any] = {
            "schema_version": CHECKPOINT_SCHEMA,
            "run_id": self.run_id,
            "stage": stage,
            "stage_index": index,
            "decisions_so_far": self.decision_count,
            "counts": counts,
            "metrics": metrics or {},
            "outputs": outputs or {},
        }
        payload["hash"] = record_digest(payload)
        path = self.checkpoints_dir / f"stage_{index:02d}_{stage}.json"
        path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")

        checkpoint = StageCheckpoint(stage=stage, path=path, digest=payload["hash"])
        self._checkpoints.append(checkpoint)
        return checkpoint

    def finalize(self) -> None:
        summary = {
            "run_id": self.run_id,
            "closed_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
            "decision_count": self.decision_count,
            "final_hash": self.last_hash,
            "decision_hashes": list(self._hashes),
            "checkpoints": {c.stage: c.digest for c in self._checkpoints},
        }
        self.hash_chain_path.write_text(json.dumps(summary, indent=2), encoding="utf-8")
