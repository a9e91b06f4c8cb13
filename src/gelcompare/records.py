from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class LadderEntry:
    lane: int
    band: int
    migration_distance: float
    known_size: float

    def to_dict(self) -> dict[str, object]:
        return {
            "lane": self.lane,
            "band": self.band,
            "migration_distance": self.migration_distance,
            "known_size": self.known_size,
        }


@dataclass(frozen=True)
class FragmentRecord:
    lane: int
    band: int
    sample_label: str
    migration_distance: float
    raw_volume: float
    calibrated_volume: float
    fragment_size: float | None = None

    @property
    def key(self) -> tuple[int, int]:
        return (self.lane, self.band)

    def with_fragment_size(self, value: float) -> "FragmentRecord":
        if self.fragment_size is not None:
            raise ValueError(
                f"Fragment size already set for lane={self.lane} band={self.band}."
            )
        return replace(self, fragment_size=float(value))

    def to_dict(self) -> dict[str, object]:
        return {
            "lane": self.lane,
            "band": self.band,
            "sample_label": self.sample_label,
            "migration_distance": self.migration_distance,
            "raw_volume": self.raw_volume,
            "calibrated_volume": self.calibrated_volume,
            "fragment_size": self.fragment_size,
        }


@dataclass(frozen=True)
class ComparisonScenario:
    reference_label: str
    sample_label: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.reference_label, self.sample_label)

    def to_dict(self) -> dict[str, object]:
        return {"reference_label": self.reference_label, "sample_label": self.sample_label}

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> "ComparisonScenario":
        return cls(
            reference_label=str(payload["reference_label"]),  # type: ignore[index]
            sample_label=str(payload["sample_label"]),  # type: ignore[index]
        )


@dataclass(frozen=True)
class MatchingScoreRecord:
    lane: int
    band: int
    reference_fragment_size: float
    sample_fragment_size: float
    matching_score: float

    def to_dict(self) -> dict[str, object]:
        return {
            "lane": self.lane,
            "band": self.band,
            "reference_fragment_size": self.reference_fragment_size,
            "sample_fragment_size": self.sample_fragment_size,
            "matching_score": self.matching_score,
        }


def fragment_sizes(records: list[FragmentRecord]) -> list[float]:
    """Fragment sizes of annotated records, in record order."""
    out: list[float] = []
    for record in records:
        if record.fragment_size is None:
            raise ValueError(
                f"Record lane={record.lane} band={record.band} has no fragment size; "
                "annotate the table first."
            )
        out.append(record.fragment_size)
    return out
