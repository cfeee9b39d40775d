from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from moodsignal.core.database import get_db
from moodsignal.models import DailyFeatureRecord
from moodsignal.repositories import SqlModelRegistry, SqlPredictionStore

router = APIRouter()

def since_days(days: int):
    return datetime.now(timezone.utc).date() - timedelta(days=days)

@router.get("/feature-importance")
async def feature_importance(db: AsyncSession = Depends(get_db)):
    """
    Importances of the latest model, largest first
    """
    registry = SqlModelRegistry(db)
    model = await registry.latest()
    if model is None:
        return {"items": []}

    items = sorted(await registry.importances(model.model_version), key=lambda i: i.importance, reverse=True)
    return {
        "modelVersion": model.model_version,
        "items": [{"feature": i.feature, "importance": i.importance} for i in items]
    }

@router.get("/mood-predictions")
async def mood_predictions(days: int = Query(default=14, ge=0), db: AsyncSession = Depends(get_db)):
    """
    y_true vs y_pred series of the latest model
    """
    model = await SqlModelRegistry(db).latest()
    if model is None:
        return {"series": []}

    series = await SqlPredictionStore(db).series(model.model_version, since_days(days))
    return {
        "modelVersion": model.model_version,
        "series": [
            {"user_id": p.user_id, "day": p.day.isoformat(), "y_true": p.y_true, "y_pred": p.y_pred}
            for p in series
        ]
    }

@router.get("/sleep-vs-mood")
async def sleep_vs_mood(days: int = Query(default=14, ge=0), db: AsyncSession = Depends(get_db)):
    """
    Days where both hours_slept and mood_label are known
    """
    result = await db.execute(
        select(DailyFeatureRecord.day, DailyFeatureRecord.hours_slept, DailyFeatureRecord.mood_label)
        .where(
            DailyFeatureRecord.day >= since_days(days),
            DailyFeatureRecord.hours_slept.is_not(None),
            DailyFeatureRecord.mood_label.is_not(None)
        )
        .order_by(DailyFeatureRecord.day)
    )
    return {
        "points": [
            {"day": row.day.isoformat(), "hours_slept": row.hours_slept, "mood_label": row.mood_label}
            for row in result.all()
        ]
    }
