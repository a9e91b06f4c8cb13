from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from . import __version__

if TYPE_CHECKING:
    from .config import AnalysisConfig

logger = logging.getLogger(__name__)


def _base_manifest(args: argparse.Namespace, command_name: str) -> dict[str, object]:
    from .provenance import system_metadata

    return {
        "schema_version": 1,
        "command": command_name,
        "command_line": "gelcompare " + " ".join(getattr(args, "_argv", [])),
        "tool_version": __version__,
        "system": system_metadata(),
    }


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s %(levelname)s %(message)s",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gelcompare",
        description=(
            "gelcompare: ladder-calibrated fragment sizing, reference-vs-sample ANOVA "
            "with multiple-testing correction, and label clustering for gel runs."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # run
    run = subparsers.add_parser("run", help="Run the full comparison pipeline.")
    run.add_argument("--reference", required=True, metavar="CSV")
    run.add_argument("--sample", required=True, metavar="CSV")
    run.add_argument("--ladder", required=True, metavar="CSV")
    run.add_argument("--config", required=True, metavar="JSON")
    run.add_argument("--scenarios", default=None, metavar="TSV", help="Override config scenarios.")
    run.add_argument("--ladder-lane", type=int, default=None)
    run.add_argument("--method", action="append", default=None, help="Correction method (repeatable).")
    run.add_argument("--outdir", required=True, metavar="DIR")
    run.add_argument("--plots", action="store_true")
    run.add_argument("--manifest", default=None, metavar="JSON")

    # adjust
    adjust = subparsers.add_parser("adjust", help="Adjust a p-value column of a TSV.")
    adjust.add_argument("--input", required=True, metavar="TSV")
    adjust.add_argument("--output", required=True, metavar="TSV")
    adjust.add_argument("--p-column", default="p_value", metavar="NAME")
    adjust.add_argument("--method", action="append", default=None, help="Correction method (repeatable).")
    return parser


def _load_run_config(args: argparse.Namespace) -> "AnalysisConfig":
    from dataclasses import replace

    from .config import AnalysisConfig, load_config
    from .io import read_scenarios_table

    config = load_config(args.config)
    payload = config.to_dict()
    if args.scenarios:
        payload["scenarios"] = read_scenarios_table(args.scenarios)
    if args.method:
        payload["correction_methods"] = list(args.method)
    config = AnalysisConfig.from_dict(payload)
    if args.ladder_lane is not None:
        config = replace(config, ladder_lane=int(args.ladder_lane))
    return config


def _cmd_run(args: argparse.Namespace) -> int:
    from .config import config_hash
    from .io import read_gel_table, read_ladder, write_json
    from .pipeline import run_analysis, write_plots, write_report
    from .provenance import input_fingerprints

    config = _load_run_config(args)
    reference = read_gel_table(args.reference)
    sample = read_gel_table(args.sample)
    ladder = read_ladder(args.ladder, size_column=config.ladder_size_column)

    report = run_analysis(reference, sample, ladder, config)
    written = write_report(report, args.outdir)
    if args.plots:
        written.update(write_plots(report, args.outdir))

    n_ok = len(report.run.testable())
    print(f"Ran {len(config.scenarios)} scenarios: {n_ok} tested, {len(report.run.failures)} failed.")
    for failure in report.run.failures:
        print(f"FAILED {failure.scenario.reference_label} vs {failure.scenario.sample_label}: {failure.reason}")
    print(f"Output directory: {Path(args.outdir).resolve()}")

    if args.manifest:
        manifest = _base_manifest(args, "run")
        manifest.update(
            {
                "config_hash": config_hash(config),
                "inputs": input_fingerprints(
                    {"reference": args.reference, "sample": args.sample, "ladder": args.ladder}
                ),
                "outputs": {name: path.name for name, path in sorted(written.items())},
                "n_scenarios": len(config.scenarios),
                "n_failed": len(report.run.failures),
                "correction_methods": list(config.correction_methods),
            }
        )
        write_json(args.manifest, manifest)
    return 0


def _cmd_adjust(args: argparse.Namespace) -> int:
    import numpy as np
    import pandas as pd

    from .correction import adjust_p_values, canonical_method
    from .scenarios import STATUS_OK

    df = pd.read_csv(args.input, sep="\t")
    if args.p_column not in df.columns:
        raise ValueError(f"p-column '{args.p_column}' not found in {args.input}")
    pvals = pd.to_numeric(df[args.p_column], errors="coerce").to_numpy(dtype=float)
    # undefined, failed or blank rows keep an empty adjusted value
    testable = np.isfinite(pvals)
    if "status" in df.columns:
        testable &= (df["status"].astype(str) == STATUS_OK).to_numpy()
    if not testable.any():
        logger.warning("No testable p-values in %s; nothing adjusted.", args.input)
    for method in args.method or ["BH"]:
        name = canonical_method(method)
        adjusted = np.full(pvals.shape, np.nan)
        if testable.any():
            adjusted[testable] = adjust_p_values(pvals[testable], name)
        df[f"p_adj_{name}"] = adjusted
    out = Path(args.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, sep="\t", index=False)
    print(f"Adjusted output: {out.resolve()}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    args._argv = list(argv if argv is not None else sys.argv[1:])
    _configure_logging(args.verbose)
    try:
        if args.command == "run":
            return _cmd_run(args)
        if args.command == "adjust":
            return _cmd_adjust(args)
    except Exception as exc:  # pragma: no cover
        parser.exit(status=2, message=f"error: {exc}\n")
    parser.exit(status=2, message="error: unknown command\n")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
