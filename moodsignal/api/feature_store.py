from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from moodsignal.core.config import settings
from moodsignal.core.database import get_session_factory
from moodsignal.pipeline.aggregator import aggregate_all_users_for_day
from moodsignal.repositories import event_and_feature_stores

router = APIRouter()

# For validation input data
class AggregateRequest(BaseModel):
    day: date

@router.post("/aggregate")
async def aggregate_day(body: AggregateRequest, session_factory = Depends(get_session_factory)):
    """
    Recompute daily_features for every user with events on the given day
    """
    rows = await aggregate_all_users_for_day(
        body.day,
        session_factory,
        event_and_feature_stores,
        workers=settings.AGGREGATION_WORKERS,
        collapse_zero_counts=settings.COLLAPSE_ZERO_COUNTS
    )
    return {"ok": True, "users": len(rows)}
