"""FitFare cycle and streak tracking engine.

Pure computation, no I/O.  Services in ``src.services`` load rows, call into
this package, and persist the results.

Modules:
    temporal        Reference-timezone clock and calendar arithmetic
    config_loader   Load/validate/hot-reload tracking_config.yaml
    cycle_inference Period length and cycle-length back-fill rules
    aggregates      Averages and the regularity heuristic
    prediction      Next period, ovulation and fertile window
    dashboard       Dashboard and insights projections
    streak          Daily sign-in streak state machine
"""

from src.tracking.aggregates import CycleStatistics, Regularity, regularity, summarize
from src.tracking.config_loader import TrackingConfig, get_tracking_config
from src.tracking.cycle_inference import CycleEntry, infer_cycle_gap, inclusive_period_length
from src.tracking.dashboard import Dashboard, CycleInsights, build_insights, project_dashboard
from src.tracking.prediction import CyclePrediction, predict_from_date, predict_from_entry
from src.tracking.streak import StreakRecord, WeekdayStatus, advance_streak
from src.tracking.temporal import FixedClock, ReferenceClock

__all__ = [
    "CycleEntry",
    "CycleInsights",
    "CyclePrediction",
    "CycleStatistics",
    "Dashboard",
    "FixedClock",
    "ReferenceClock",
    "Regularity",
    "StreakRecord",
    "TrackingConfig",
    "WeekdayStatus",
    "advance_streak",
    "build_insights",
    "get_tracking_config",
    "inclusive_period_length",
    "infer_cycle_gap",
    "predict_from_date",
    "predict_from_entry",
    "project_dashboard",
    "regularity",
    "summarize",
]
