from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from moodsignal.core.database import get_db, get_session_factory
from moodsignal.pipeline.runner import run_training
from moodsignal.repositories import SqlModelRegistry

router = APIRouter()

def serialize_model(model) -> dict:
    return {
        "model_version": model.model_version,
        "created_at": model.created_at.isoformat() if model.created_at else None,
        "features": model.features,
        "coefficients": model.coefficients,
        "intercept": model.intercept,
        "lambda": model.lam,
        "train_mae": model.train_mae,
        "notes": model.notes
    }

@router.post("/train")
async def train_model(session_factory = Depends(get_session_factory)):
    """
    Train a new model version on all complete labeled days
    """
    run = await run_training(session_factory)
    return run.summary()

@router.get("/history")
async def get_model_history(db: AsyncSession = Depends(get_db)):
    """
    Get history of all trained models, newest first
    """
    versions = await SqlModelRegistry(db).history()
    return [serialize_model(m) for m in versions]

@router.get("/latest")
async def get_latest_model(db: AsyncSession = Depends(get_db)):
    model = await SqlModelRegistry(db).latest()
    if model is None:
        return {"status": "not_trained", "message": "Model has not been trained yet"}
    return {"status": "trained", "model": serialize_model(model)}
