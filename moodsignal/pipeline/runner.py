"""
One training run: Train -> Importance -> Predict -> commit.

The registry entry, its importances and the window predictions are written
in one transaction. If any step fails nothing of the run is committed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import List, Optional

from moodsignal.core.config import settings
from moodsignal.pipeline.importance import FeatureImportance, compute_importance
from moodsignal.pipeline.predictor import Prediction, predict_trailing_window
from moodsignal.pipeline.trainer import TrainedModel, train_model
from moodsignal.pipeline.versioning import VersionSource, next_free_version, version_stamp
from moodsignal.repositories import SqlFeatureStore, SqlModelRegistry, SqlPredictionStore

logger = logging.getLogger(__name__)


@dataclass
class TrainingRun:
    model: TrainedModel
    importances: List[FeatureImportance]
    predictions: List[Prediction]

    def summary(self) -> dict:
        return {
            "model_version": self.model.model_version,
            "train_rows": self.model.train_rows,
            "train_mae": round(self.model.train_mae, 3),
        }


async def run_training(
    session_factory,
    lam: Optional[float] = None,
    window_days: Optional[int] = None,
    version_source: Optional[VersionSource] = None,
    today: Optional[date] = None,
    min_features_present: Optional[int] = None,
) -> TrainingRun:
    lam = settings.RIDGE_LAMBDA if lam is None else lam
    window_days = settings.PREDICTION_WINDOW_DAYS if window_days is None else window_days
    if min_features_present is None:
        min_features_present = settings.MIN_FEATURES_PRESENT

    async with session_factory() as session:
        features = SqlFeatureStore(session)
        registry = SqlModelRegistry(session)
        predictions = SqlPredictionStore(session)

        try:
            rows = await features.labeled_rows()
            model = train_model(rows, lam=lam, version_source=version_source)
            # Other processes may have registered the same second already
            taken = await registry.taken_versions(version_stamp(model.model_version))
            free = next_free_version(model.model_version, taken)
            if free != model.model_version:
                logger.info("Version %s is taken, using %s", model.model_version, free)
                model = replace(model, model_version=free)
            importances = compute_importance(model)

            await registry.add(model, importances)
            scored = await predict_trailing_window(
                model,
                features,
                predictions,
                window_days=window_days,
                today=today,
                min_features_present=min_features_present,
            )
            await session.commit()
        except BaseException:
            await session.rollback()
            raise

    logger.info(
        "Committed training run %s: %d importances, %d predictions",
        model.model_version, len(importances), len(scored)
    )
    return TrainingRun(model=model, importances=importances, predictions=scored)
