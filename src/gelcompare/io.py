from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Sequence

import numpy as np
import pandas as pd

from .records import FragmentRecord, LadderEntry

REQUIRED_COLUMNS = (
    "lane",
    "band",
    "sample_label",
    "migration_distance",
    "raw_volume",
    "calibrated_volume",
)
NUMERIC_COLUMNS = ("lane", "band", "migration_distance", "raw_volume", "calibrated_volume")

COLUMN_ALIASES: dict[str, str] = {
    "lane": "lane",
    "band": "band",
    "band_no": "band",
    "sample_label": "sample_label",
    "sample": "sample_label",
    "label": "sample_label",
    "samplelabel": "sample_label",
    "migration_distance": "migration_distance",
    "rf": "migration_distance",
    "mobility": "migration_distance",
    "raw_volume": "raw_volume",
    "raw_vol": "raw_volume",
    "raw_vol_(int)": "raw_volume",
    "volume": "raw_volume",
    "calibrated_volume": "calibrated_volume",
    "calibrated_vol": "calibrated_volume",
    "calibrated_vol_(ng)": "calibrated_volume",
    "calibrated_quantity": "calibrated_volume",
    "fragment_size": "fragment_size",
}


def _normalize_header(name: str) -> str:
    text = "_".join(str(name).strip().lower().replace("-", " ").split())
    return COLUMN_ALIASES.get(text, text)


def _separator(path: Path) -> str:
    return "\t" if path.suffix.lower() in {".tsv", ".tab", ".txt"} else ","


def read_gel_frame(path: str | Path) -> pd.DataFrame:
    """Read a gel table and normalise headers and missing numeric values."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Gel table not found: {path}")
    df = pd.read_csv(path, sep=_separator(path))
    df = df.rename(columns={c: _normalize_header(c) for c in df.columns})
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path} missing required columns: {', '.join(missing)}")

    for column in NUMERIC_COLUMNS:
        df[column] = pd.to_numeric(df[column], errors="coerce").fillna(0.0)
    df["sample_label"] = df["sample_label"].fillna("").astype(str).str.strip()
    return df


def frame_to_records(df: pd.DataFrame) -> list[FragmentRecord]:
    has_size = "fragment_size" in df.columns
    out: list[FragmentRecord] = []
    for row in df.itertuples(index=False):
        size = getattr(row, "fragment_size") if has_size else None
        out.append(
            FragmentRecord(
                lane=int(row.lane),
                band=int(row.band),
                sample_label=str(row.sample_label),
                migration_distance=float(row.migration_distance),
                raw_volume=float(row.raw_volume),
                calibrated_volume=float(row.calibrated_volume),
                fragment_size=(None if size is None or pd.isna(size) else float(size)),
            )
        )
    return out


def read_gel_table(path: str | Path) -> list[FragmentRecord]:
    return frame_to_records(read_gel_frame(path))


def read_ladder(path: str | Path, size_column: str = "calibrated_volume") -> list[LadderEntry]:
    """Read a ladder table; ``size_column`` holds the known size of each band."""
    df = read_gel_frame(path)
    if size_column not in df.columns:
        raise ValueError(f"Ladder size column '{size_column}' not found in {path}")
    return [
        LadderEntry(
            lane=int(row["lane"]),
            band=int(row["band"]),
            migration_distance=float(row["migration_distance"]),
            known_size=float(row[size_column]),
        )
        for _, row in df.iterrows()
    ]


def records_to_frame(records: Sequence[Any], columns: Sequence[str] | None = None) -> pd.DataFrame:
    rows = [record.to_dict() for record in records]
    if columns is None:
        return pd.DataFrame(rows)
    return pd.DataFrame(rows, columns=list(columns))


def write_table(df: pd.DataFrame, path: str | Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, sep="\t", index=False)
    return out


def _json_default(value: Any) -> Any:
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    if isinstance(value, np.ndarray):
        return value.tolist()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def write_json(path: str | Path, payload: Any) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, sort_keys=True, default=_json_default)
        handle.write("\n")
    return out


def read_scenarios_table(path: str | Path) -> list[dict[str, str]]:
    """Scenario pairs from a two-column table (reference_label, sample_label)."""
    df = pd.read_csv(path, sep=_separator(Path(path)), dtype=str)
    df = df.rename(columns={c: "_".join(str(c).strip().lower().split()) for c in df.columns})
    missing = [c for c in ("reference_label", "sample_label") if c not in df.columns]
    if missing:
        raise ValueError(f"{path} missing required columns: {', '.join(missing)}")
    return [
        {"reference_label": str(r), "sample_label": str(s)}
        for r, s in zip(df["reference_label"], df["sample_label"])
    ]
