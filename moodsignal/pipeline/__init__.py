"""
Mood model pipeline: Aggregate -> Train -> Importance -> Predict.
"""
from moodsignal.pipeline.features import (
    FEATURE_NAMES,
    DailyFeature,
    RawEvent,
    complete_rows_only,
    zero_fill_missing,
)
from moodsignal.pipeline.solver import RidgeFit, ridge_fit
from moodsignal.pipeline.aggregator import (
    CountFeature,
    build_daily_feature,
    aggregate_user_day,
    upsert_daily_feature,
    aggregate_all_users_for_day,
)
from moodsignal.pipeline.trainer import TrainedModel, train_model
from moodsignal.pipeline.importance import FeatureImportance, compute_importance
from moodsignal.pipeline.predictor import Prediction, predict_rows, predict_trailing_window
from moodsignal.pipeline.versioning import VersionSource

__all__ = [
    "FEATURE_NAMES",
    "DailyFeature",
    "RawEvent",
    "complete_rows_only",
    "zero_fill_missing",
    "RidgeFit",
    "ridge_fit",
    "CountFeature",
    "build_daily_feature",
    "aggregate_user_day",
    "upsert_daily_feature",
    "aggregate_all_users_for_day",
    "TrainedModel",
    "train_model",
    "FeatureImportance",
    "compute_importance",
    "Prediction",
    "predict_rows",
    "predict_trailing_window",
    "VersionSource",
]
