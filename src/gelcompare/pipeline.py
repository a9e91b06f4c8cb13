from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import pandas as pd

from .annotate import annotate_tables
from .calibration import CalibrationModel
from .clustering import ClusteringResult, cluster_labels
from .compare import TukeyComparison, tukey_posthoc
from .config import AnalysisConfig
from .correction import CorrectionResult, correct_run
from .errors import EmptyComparisonGroup
from .io import records_to_frame, write_json, write_table
from .records import FragmentRecord, LadderEntry
from .scenarios import ScenarioRun, run_scenarios

logger = logging.getLogger(__name__)

RESULT_COLUMNS = [
    "reference_label",
    "sample_label",
    "status",
    "p_value",
    "test_statistic",
    "ci_low",
    "ci_high",
    "mean_difference",
    "n_reference",
    "n_sample",
    "n_matched",
    "mean_matching_score",
    "matching_error",
]


@dataclass
class AnalysisReport:
    config: AnalysisConfig
    calibration: CalibrationModel
    reference: list[FragmentRecord]
    sample: list[FragmentRecord]
    run: ScenarioRun
    corrections: list[CorrectionResult]
    clustering: ClusteringResult
    posthoc: list[TukeyComparison] | None = None
    warnings: tuple[str, ...] = ()

    def results_frame(self) -> pd.DataFrame:
        rows = []
        for result in self.run.results:
            payload = result.to_dict()
            matching = payload.pop("matching") or {}
            adjusted = payload.pop("adjusted")
            payload.pop("warnings")
            payload["n_matched"] = matching.get("n_matched")
            payload["mean_matching_score"] = matching.get("mean_score")
            for method in self.config.correction_methods:
                payload[f"p_adj_{method}"] = adjusted.get(method)
            rows.append(payload)
        columns = RESULT_COLUMNS + [f"p_adj_{m}" for m in self.config.correction_methods]
        return pd.DataFrame(rows, columns=columns)

    def matches_frame(self) -> pd.DataFrame:
        rows = []
        for result in self.run.results:
            for match in result.matches or []:
                row = {
                    "reference_label": result.scenario.reference_label,
                    "sample_label": result.scenario.sample_label,
                }
                row.update(match.to_dict())
                rows.append(row)
        return pd.DataFrame(
            rows,
            columns=[
                "reference_label",
                "sample_label",
                "lane",
                "band",
                "reference_fragment_size",
                "sample_fragment_size",
                "matching_score",
            ],
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "config": self.config.to_dict(),
            "calibration": self.calibration.to_dict(),
            "scenarios": [r.to_dict() for r in self.run.results],
            "failures": [f.to_dict() for f in self.run.failures],
            "corrections": [c.to_dict() for c in self.corrections],
            "clustering": self.clustering.to_dict(),
            "posthoc": None if self.posthoc is None else [t.to_dict() for t in self.posthoc],
            "warnings": list(self.warnings),
        }


def _posthoc(sample: Sequence[FragmentRecord], confidence: float) -> tuple[list[TukeyComparison] | None, str | None]:
    groups: dict[str, list[float]] = {}
    for record in sample:
        groups.setdefault(record.sample_label, []).append(float(record.fragment_size))  # type: ignore[arg-type]
    eligible = {label: values for label, values in groups.items() if len(values) >= 2}
    try:
        return tukey_posthoc(eligible, confidence=confidence), None
    except EmptyComparisonGroup as exc:
        return None, f"Tukey post-hoc skipped: {exc}"


def run_analysis(
    reference: Sequence[FragmentRecord],
    sample: Sequence[FragmentRecord],
    ladder: Sequence[LadderEntry],
    config: AnalysisConfig,
) -> AnalysisReport:
    """Annotate, compare, correct and cluster one reference/sample dataset pair."""
    model, tables = annotate_tables(
        ladder,
        {"reference": reference, "sample": sample},
        ladder_lane=config.ladder_lane,
    )
    ref_rows = tables["reference"]
    sample_rows = tables["sample"]

    run = run_scenarios(
        config.scenarios,
        ref_rows,
        sample_rows,
        confidence=config.confidence,
        score_matches_enabled=config.score_matches,
    )
    corrections = correct_run(run, config.correction_methods)

    warnings: list[str] = []
    posthoc = None
    if config.posthoc:
        posthoc, msg = _posthoc(sample_rows, config.confidence)
        if msg:
            logger.warning(msg)
            warnings.append(msg)

    clustering = cluster_labels(
        sample_rows,
        n_hierarchical=config.hierarchical_clusters,
        linkage_method=config.linkage_method,
        n_kmeans=config.kmeans_clusters,
        kmeans_seed=config.kmeans_seed,
        dbscan_eps=config.dbscan_eps,
        dbscan_min_samples=config.dbscan_min_samples,
    )
    warnings.extend(clustering.warnings)

    return AnalysisReport(
        config=config,
        calibration=model,
        reference=ref_rows,
        sample=sample_rows,
        run=run,
        corrections=corrections,
        clustering=clustering,
        posthoc=posthoc,
        warnings=tuple(warnings),
    )


def write_report(report: AnalysisReport, outdir: str | Path) -> dict[str, Path]:
    out = Path(outdir)
    out.mkdir(parents=True, exist_ok=True)
    written: dict[str, Path] = {
        "reference_annotated": write_table(
            records_to_frame(report.reference), out / "reference_annotated.tsv"
        ),
        "sample_annotated": write_table(
            records_to_frame(report.sample), out / "sample_annotated.tsv"
        ),
        "scenario_results": write_table(report.results_frame(), out / "scenario_results.tsv"),
        "scenario_failures": write_table(
            records_to_frame(
                report.run.failures,
                columns=["reference_label", "sample_label", "status", "reason"],
            ),
            out / "scenario_failures.tsv",
        ),
        "matching_scores": write_table(report.matches_frame(), out / "matching_scores.tsv"),
        "distance_matrix": write_table(
            report.clustering.distances.rename_axis("sample_label").reset_index(),
            out / "distance_matrix.tsv",
        ),
        "clusters": write_table(report.clustering.assignments(), out / "clusters.tsv"),
    }
    if report.posthoc is not None:
        written["posthoc"] = write_table(
            records_to_frame(
                report.posthoc,
                columns=["label_a", "label_b", "mean_difference", "p_value", "ci_low", "ci_high"],
            ),
            out / "posthoc.tsv",
        )
    written["report"] = write_json(out / "report.json", report.to_dict())
    return written


def write_plots(report: AnalysisReport, outdir: str | Path) -> dict[str, Path]:
    from .plots import plot_dendrogram, plot_distance_heatmap, plot_fragment_histogram

    out = Path(outdir) / "plots"
    labels = [str(x) for x in report.clustering.distances.index]
    return {
        "reference_histogram": plot_fragment_histogram(
            report.reference, out / "reference_fragment_sizes.png", title="Reference fragment sizes"
        ),
        "sample_histogram": plot_fragment_histogram(
            report.sample, out / "sample_fragment_sizes.png", title="Sample fragment sizes"
        ),
        "distance_heatmap": plot_distance_heatmap(
            report.clustering.distances, out / "distance_heatmap.png"
        ),
        "dendrogram": plot_dendrogram(
            report.clustering.linkage_matrix, labels, out / "dendrogram.png"
        ),
    }
