"""
Daily feature vector: field order, record types and the two missing-value
policies used by training and scoring.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd


# Fixed order of the model inputs. Coefficients are aligned with this list.
FEATURE_NAMES: List[str] = [
    "session_avg_sec",
    "idle_ratio",
    "app_switch_count",
    "work_notif_count",
    "personal_notif_count",
    "avg_notif_sentiment",
    "hours_slept",
    "steps",
    "hrv",
    "time_at_work_ratio",
    "location_switches",
    "commute_min",
]

EVENT_TYPES = ("app_usage", "notification", "location", "activity", "mood_log")

LABEL = "mood_label"

# Count features whose zero value is stored as null unless the fix is enabled
COUNT_FEATURES = (
    "app_switch_count",
    "work_notif_count",
    "personal_notif_count",
    "location_switches",
    "commute_min",
)


@dataclass(frozen=True)
class RawEvent:
    """One row of the system_events log."""

    user_id: str
    ts: datetime
    event_type: str
    app_name: Optional[str] = None
    duration_sec: Optional[int] = None
    location_category: Optional[str] = None
    action_after: Optional[str] = None
    notification_sender_type: Optional[str] = None
    message_sentiment: Optional[float] = None
    mood_rating: Optional[int] = None


@dataclass(frozen=True)
class DailyFeature:
    user_id: str
    day: date
    session_avg_sec: Optional[float] = None
    idle_ratio: Optional[float] = None
    app_switch_count: Optional[float] = None
    work_notif_count: Optional[float] = None
    personal_notif_count: Optional[float] = None
    avg_notif_sentiment: Optional[float] = None
    hours_slept: Optional[float] = None
    steps: Optional[float] = None
    hrv: Optional[float] = None
    time_at_work_ratio: Optional[float] = None
    location_switches: Optional[float] = None
    commute_min: Optional[float] = None
    mood_label: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def feature_values(self) -> List[Optional[float]]:
        return [getattr(self, name) for name in FEATURE_NAMES]

    def features_present(self) -> int:
        return sum(1 for v in self.feature_values() if v is not None)

    @property
    def is_complete(self) -> bool:
        """All 12 features and the label are present."""
        return self.mood_label is not None and self.features_present() == len(FEATURE_NAMES)


def to_frame(rows: Sequence[DailyFeature]) -> pd.DataFrame:
    """Rows -> DataFrame with user_id, day, the 12 features and the label."""
    columns = ["user_id", "day", *FEATURE_NAMES, LABEL]
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([r.to_dict() for r in rows], columns=columns)


def complete_rows_only(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Training policy: drop every row missing any feature or the label.
    """
    return frame.dropna(subset=[*FEATURE_NAMES, LABEL]).reset_index(drop=True)


def zero_fill_missing(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Scoring policy: keep every row, missing features count as 0.
    The label is left as is (it becomes y_true, nullable).
    """
    frame = frame.copy()
    frame[FEATURE_NAMES] = frame[FEATURE_NAMES].astype(float).fillna(0.0)
    return frame
