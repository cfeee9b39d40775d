from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from moodsignal.core.config import settings
from moodsignal.core.database import get_db
from moodsignal.pipeline.predictor import predict_trailing_window
from moodsignal.repositories import SqlFeatureStore, SqlModelRegistry, SqlPredictionStore

router = APIRouter()

@router.post("/window")
async def score_window(
    days: int = Query(default=settings.PREDICTION_WINDOW_DAYS, ge=0),
    db: AsyncSession = Depends(get_db)
):
    """
    Re-score the trailing window with the latest model (upsert, last write wins)
    """
    model = await SqlModelRegistry(db).latest()
    if model is None:
        raise HTTPException(
            status_code=404,
            detail="Model not found. Train the model first"
        )

    scored = await predict_trailing_window(
        model,
        SqlFeatureStore(db),
        SqlPredictionStore(db),
        window_days=days,
        min_features_present=settings.MIN_FEATURES_PRESENT
    )
    await db.commit()

    return {
        "status": "success",
        "model_version": model.model_version,
        "scored": len(scored)
    }
