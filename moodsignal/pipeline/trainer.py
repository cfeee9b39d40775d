"""
Model training: complete daily feature rows -> versioned ridge model.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from sklearn.metrics import mean_absolute_error

from moodsignal.core.exceptions import InsufficientTrainingData
from moodsignal.pipeline.features import (
    FEATURE_NAMES,
    LABEL,
    DailyFeature,
    complete_rows_only,
    to_frame,
)
from moodsignal.pipeline.solver import ridge_fit
from moodsignal.pipeline.versioning import VersionSource, default_version_source

logger = logging.getLogger(__name__)

MIN_TRAINING_ROWS = 2


@dataclass(frozen=True)
class TrainedModel:
    """Immutable snapshot of one training run."""

    model_version: str
    features: List[str]
    coefficients: List[float]
    intercept: float
    lam: float
    train_mae: float
    created_at: datetime
    train_rows: int = 0
    notes: Optional[str] = field(default="Ridge regression mood model")

    def __post_init__(self):
        if len(self.coefficients) != len(self.features):
            raise ValueError(
                f"{len(self.coefficients)} coefficients for {len(self.features)} features"
            )

    def score(self, values: Sequence[float]) -> float:
        """intercept + Σ coef_i * x_i, unrounded."""
        return self.intercept + sum(c * float(v) for c, v in zip(self.coefficients, values))


def train_model(
    rows: Sequence[DailyFeature],
    lam: float = 1.0,
    version_source: Optional[VersionSource] = None,
) -> TrainedModel:
    """
    Fit a ridge model on the complete rows of `rows`.

    A row missing any feature or the label is dropped. Raises
    InsufficientTrainingData when fewer than two rows remain.
    """
    version_source = version_source or default_version_source

    frame = complete_rows_only(to_frame(rows))
    if len(frame) < MIN_TRAINING_ROWS:
        raise InsufficientTrainingData(len(frame), MIN_TRAINING_ROWS)

    X = frame[FEATURE_NAMES].to_numpy(dtype=float)
    y = frame[LABEL].to_numpy(dtype=float)

    fit = ridge_fit(X, y, lam)

    # In-sample error only, there is no holdout
    train_mae = float(mean_absolute_error(y, fit.predict(X)))

    model_version, created_at = version_source.next_version()
    logger.info(
        "Trained model %s on %d of %d rows (lambda=%s, train_mae=%.3f)",
        model_version, len(frame), len(rows), lam, train_mae
    )

    return TrainedModel(
        model_version=model_version,
        features=list(FEATURE_NAMES),
        coefficients=fit.beta,
        intercept=fit.intercept,
        lam=float(lam),
        train_mae=train_mae,
        created_at=created_at,
        train_rows=len(frame),
    )
