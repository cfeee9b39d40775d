"""
Scoring of the trailing window of daily feature rows.

Unlike training, scoring keeps partially observed days and treats the
missing features as 0.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Sequence

from moodsignal.pipeline.features import FEATURE_NAMES, LABEL, DailyFeature, to_frame, zero_fill_missing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Prediction:
    model_version: str
    user_id: str
    day: date
    y_true: Optional[float]
    y_pred: float
    proba_at_risk: Optional[float] = None


def round_score(value: float) -> float:
    """Two decimals, exact ties rounded away from zero."""
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def predict_rows(model, rows: Sequence[DailyFeature], min_features_present: int = 0) -> List[Prediction]:
    """
    Score rows with `model`.

    Rows with fewer than `min_features_present` non-null features are
    skipped; the default of 0 scores every row.
    """
    kept = [r for r in rows if r.features_present() >= min_features_present]
    skipped = len(rows) - len(kept)
    if skipped:
        logger.info("Skipped %d rows with fewer than %d features present", skipped, min_features_present)
    if not kept:
        return []

    frame = zero_fill_missing(to_frame(kept))
    predictions = []
    for record in frame.to_dict(orient="records"):
        y_pred = round_score(model.score([record[name] for name in FEATURE_NAMES]))
        label = record[LABEL]
        y_true = None if label is None or (isinstance(label, float) and math.isnan(label)) else float(label)
        predictions.append(Prediction(
            model_version=model.model_version,
            user_id=record["user_id"],
            day=record["day"],
            y_true=y_true,
            y_pred=y_pred,
        ))
    return predictions


async def predict_trailing_window(
    model,
    features,
    predictions,
    window_days: int = 14,
    today: Optional[date] = None,
    min_features_present: int = 0,
) -> List[Prediction]:
    """
    Score every user's rows with day >= today - window_days and upsert them.

    `features` is a FeatureStore, `predictions` a PredictionStore. Upserts
    are keyed by (model_version, user_id, day), so re-running overwrites.
    """
    today = today or datetime.now(timezone.utc).date()
    since = today - timedelta(days=window_days)
    rows = await features.rows_since(since)
    scored = predict_rows(model, rows, min_features_present)
    if scored:
        await predictions.upsert_many(scored)
    logger.info("Scored %d rows since %s with model %s", len(scored), since.isoformat(), model.model_version)
    return scored
