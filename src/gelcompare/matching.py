from __future__ import annotations

from typing import Sequence

import numpy as np

from .errors import DuplicateJoinKey
from .records import FragmentRecord, MatchingScoreRecord


def _index_by_key(records: Sequence[FragmentRecord], side: str) -> dict[tuple[int, int], FragmentRecord]:
    index: dict[tuple[int, int], FragmentRecord] = {}
    for record in records:
        if record.fragment_size is None:
            raise ValueError(
                f"{side} record lane={record.lane} band={record.band} has no fragment size; "
                "annotate the table first."
            )
        if record.key in index:
            raise DuplicateJoinKey(
                f"{side} table has more than one row for lane={record.lane} band={record.band}."
            )
        index[record.key] = record
    return index


def score_matches(
    reference: Sequence[FragmentRecord],
    sample: Sequence[FragmentRecord],
) -> list[MatchingScoreRecord]:
    """Inner-join on (lane, band) and score each pair by absolute size difference.

    Bands present on only one side are dropped. No shared keys gives an
    empty list.
    """
    ref_index = _index_by_key(reference, "reference")
    sample_index = _index_by_key(sample, "sample")
    out: list[MatchingScoreRecord] = []
    for key, ref in ref_index.items():
        other = sample_index.get(key)
        if other is None:
            continue
        ref_size = float(ref.fragment_size)  # type: ignore[arg-type]
        sample_size = float(other.fragment_size)  # type: ignore[arg-type]
        out.append(
            MatchingScoreRecord(
                lane=key[0],
                band=key[1],
                reference_fragment_size=ref_size,
                sample_fragment_size=sample_size,
                matching_score=abs(ref_size - sample_size),
            )
        )
    return out


def matching_summary(records: Sequence[MatchingScoreRecord]) -> dict[str, float | int]:
    if not records:
        return {"n_matched": 0, "mean_score": float("nan"), "max_score": float("nan")}
    scores = np.array([r.matching_score for r in records], dtype=float)
    return {
        "n_matched": int(scores.size),
        "mean_score": float(np.mean(scores)),
        "max_score": float(np.max(scores)),
    }
