from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .correction import canonical_method
from .provenance import sha256_json
from .records import ComparisonScenario

LINKAGE_METHODS = ("single", "complete", "average", "weighted", "centroid", "median", "ward")
SIZE_COLUMNS = ("calibrated_volume", "raw_volume")


def _require_keys(payload: dict[str, Any], keys: list[str], label: str) -> None:
    missing = [k for k in keys if k not in payload]
    if missing:
        raise ValueError(f"{label} missing required keys: {', '.join(missing)}")


def validate_config_payload(payload: dict[str, Any]) -> None:
    if not isinstance(payload, dict):
        raise ValueError("analysis config must be dict.")
    _require_keys(payload, ["schema_version", "scenarios"], "analysis config")
    if int(payload["schema_version"]) != 1:
        raise ValueError("analysis config schema_version must be 1.")

    scenarios = payload["scenarios"]
    if not isinstance(scenarios, list) or not scenarios:
        raise ValueError("scenarios must be a non-empty list.")
    for idx, item in enumerate(scenarios):
        if not isinstance(item, dict):
            raise ValueError(f"scenario {idx} must be an object.")
        _require_keys(item, ["reference_label", "sample_label"], f"scenario {idx}")

    methods = payload.get("correction_methods", ["BH"])
    if isinstance(methods, str) or not isinstance(methods, list) or not methods:
        raise ValueError("correction_methods must be a non-empty list.")
    for method in methods:
        canonical_method(str(method))

    confidence = float(payload.get("confidence", 0.95))
    if not (0.0 < confidence < 1.0):
        raise ValueError("confidence must be in (0, 1).")
    for key in ("hierarchical_clusters", "kmeans_clusters", "dbscan_min_samples"):
        if key in payload and int(payload[key]) <= 0:
            raise ValueError(f"{key} must be > 0.")
    if "kmeans_seed" in payload and not (0 <= int(payload["kmeans_seed"]) < 2**32):
        raise ValueError("kmeans_seed must be in [0, 2**32 - 1].")
    if "dbscan_eps" in payload and float(payload["dbscan_eps"]) <= 0:
        raise ValueError("dbscan_eps must be > 0.")
    if str(payload.get("linkage_method", "average")) not in LINKAGE_METHODS:
        raise ValueError(f"linkage_method must be one of {', '.join(LINKAGE_METHODS)}.")
    if str(payload.get("ladder_size_column", "calibrated_volume")) not in SIZE_COLUMNS:
        raise ValueError(f"ladder_size_column must be one of {', '.join(SIZE_COLUMNS)}.")


@dataclass(frozen=True)
class AnalysisConfig:
    scenarios: tuple[ComparisonScenario, ...]
    ladder_lane: int = 1
    ladder_size_column: str = "calibrated_volume"
    correction_methods: tuple[str, ...] = ("BH",)
    confidence: float = 0.95
    score_matches: bool = True
    posthoc: bool = False
    hierarchical_clusters: int = 3
    linkage_method: str = "average"
    kmeans_clusters: int = 3
    kmeans_seed: int = 0
    dbscan_eps: float = 0.5
    dbscan_min_samples: int = 2
    schema_version: int = 1

    def to_dict(self) -> dict[str, object]:
        return {
            "schema_version": self.schema_version,
            "scenarios": [s.to_dict() for s in self.scenarios],
            "ladder_lane": self.ladder_lane,
            "ladder_size_column": self.ladder_size_column,
            "correction_methods": list(self.correction_methods),
            "confidence": self.confidence,
            "score_matches": self.score_matches,
            "posthoc": self.posthoc,
            "hierarchical_clusters": self.hierarchical_clusters,
            "linkage_method": self.linkage_method,
            "kmeans_clusters": self.kmeans_clusters,
            "kmeans_seed": self.kmeans_seed,
            "dbscan_eps": self.dbscan_eps,
            "dbscan_min_samples": self.dbscan_min_samples,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "AnalysisConfig":
        validate_config_payload(payload)
        return cls(
            scenarios=tuple(ComparisonScenario.from_dict(dict(s)) for s in payload["scenarios"]),
            ladder_lane=int(payload.get("ladder_lane", 1)),
            ladder_size_column=str(payload.get("ladder_size_column", "calibrated_volume")),
            correction_methods=tuple(
                canonical_method(str(m)) for m in payload.get("correction_methods", ["BH"])
            ),
            confidence=float(payload.get("confidence", 0.95)),
            score_matches=bool(payload.get("score_matches", True)),
            posthoc=bool(payload.get("posthoc", False)),
            hierarchical_clusters=int(payload.get("hierarchical_clusters", 3)),
            linkage_method=str(payload.get("linkage_method", "average")),
            kmeans_clusters=int(payload.get("kmeans_clusters", 3)),
            kmeans_seed=int(payload.get("kmeans_seed", 0)),
            dbscan_eps=float(payload.get("dbscan_eps", 0.5)),
            dbscan_min_samples=int(payload.get("dbscan_min_samples", 2)),
            schema_version=int(payload["schema_version"]),
        )


def load_config(path: str | Path) -> AnalysisConfig:
    p = Path(path)
    with p.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"analysis config must be a JSON object: {p}")
    return AnalysisConfig.from_dict(payload)


def config_hash(config: AnalysisConfig) -> str:
    return sha256_json(config.to_dict())
