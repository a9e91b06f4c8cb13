from __future__ import annotations

import logging
from typing import Mapping, Sequence

import numpy as np

from .calibration import CalibrationModel, fit_ladder
from .errors import MissingLadderLane
from .records import FragmentRecord, LadderEntry

logger = logging.getLogger(__name__)


def select_ladder_lane(entries: Sequence[LadderEntry], ladder_lane: int) -> list[LadderEntry]:
    chosen = [entry for entry in entries if entry.lane == ladder_lane]
    if not chosen:
        lanes = sorted({entry.lane for entry in entries})
        raise MissingLadderLane(
            f"no ladder rows with lane={ladder_lane}; lanes present: {lanes or 'none'}."
        )
    return chosen


def _group_indices(records: Sequence[FragmentRecord]) -> dict[tuple[int, int], list[int]]:
    groups: dict[tuple[int, int], list[int]] = {}
    for idx, record in enumerate(records):
        groups.setdefault(record.key, []).append(idx)
    return groups


def annotate_records(
    records: Sequence[FragmentRecord], model: CalibrationModel
) -> list[FragmentRecord]:
    """Return new records carrying a per-row fragment size estimate.

    Rows are predicted per (lane, band) group and written back to their
    original positions, so output order always equals input order.
    """
    sizes = np.empty(len(records), dtype=float)
    for indices in _group_indices(records).values():
        positions = [records[i].migration_distance for i in indices]
        sizes[indices] = model.predict(positions)

    n_out = model.n_extrapolated([record.migration_distance for record in records])
    if n_out:
        logger.warning(
            "%d of %d rows lie outside the ladder range [%.4g, %.4g]; sizes are extrapolated.",
            n_out,
            len(records),
            model.position_min,
            model.position_max,
        )
    return [record.with_fragment_size(size) for record, size in zip(records, sizes)]


def annotate_tables(
    ladder: Sequence[LadderEntry],
    tables: Mapping[str, Sequence[FragmentRecord]],
    *,
    ladder_lane: int,
) -> tuple[CalibrationModel, dict[str, list[FragmentRecord]]]:
    """Fit one calibration from the ladder lane and annotate every table."""
    model = fit_ladder(select_ladder_lane(ladder, ladder_lane))
    annotated: dict[str, list[FragmentRecord]] = {}
    for name, records in tables.items():
        annotated[name] = annotate_records(records, model)
        logger.info("annotated %d rows in %s table", len(records), name)
    return model, annotated
