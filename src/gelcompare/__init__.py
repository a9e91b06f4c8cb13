"""gelcompare package."""

from .annotate import annotate_records, annotate_tables
from .calibration import CalibrationModel, fit_calibration
from .clustering import ClusteringResult, cluster_labels
from .compare import ComparisonResult, compare_groups, tukey_posthoc
from .config import AnalysisConfig, load_config
from .correction import adjust_p_values, correct_run
from .matching import score_matches
from .pipeline import AnalysisReport, run_analysis
from .records import ComparisonScenario, FragmentRecord, LadderEntry, MatchingScoreRecord
from .scenarios import ScenarioRun, run_scenarios

__all__ = [
    "AnalysisConfig",
    "AnalysisReport",
    "CalibrationModel",
    "ClusteringResult",
    "ComparisonResult",
    "ComparisonScenario",
    "FragmentRecord",
    "LadderEntry",
    "MatchingScoreRecord",
    "ScenarioRun",
    "adjust_p_values",
    "annotate_records",
    "annotate_tables",
    "cluster_labels",
    "compare_groups",
    "correct_run",
    "fit_calibration",
    "load_config",
    "run_analysis",
    "run_scenarios",
    "score_matches",
    "tukey_posthoc",
]

__version__ = "0.1.0"
