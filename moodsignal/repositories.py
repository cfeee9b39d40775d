"""
Store interfaces used by the pipeline, and their SQLAlchemy implementations.

The pipeline only talks to the abstract classes. The Sql* classes work on a
caller-owned AsyncSession and never commit: the caller decides where the
transaction ends. Every call is bounded by a timeout; driver errors and
timeouts surface as RepositoryError.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Awaitable, List, Optional, Sequence, TypeVar

from sqlalchemy import select, desc, distinct, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from moodsignal.core.config import settings
from moodsignal.core.exceptions import RepositoryError
from moodsignal.models import (
    DailyFeatureRecord,
    FeatureImportanceRecord,
    ModelRegistryEntry,
    PredictionRecord,
    SystemEvent,
)
from moodsignal.pipeline.features import FEATURE_NAMES, DailyFeature, RawEvent
from moodsignal.pipeline.importance import FeatureImportance
from moodsignal.pipeline.predictor import Prediction
from moodsignal.pipeline.trainer import TrainedModel

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventStore(ABC):
    @abstractmethod
    async def events_for_user_day(self, user_id: str, start: datetime, end: datetime) -> List[RawEvent]:
        """Events of one user with start <= ts <= end."""

    @abstractmethod
    async def users_with_events(self, start: datetime, end: datetime) -> List[str]:
        """Distinct user ids with at least one event in the range."""


class FeatureStore(ABC):
    @abstractmethod
    async def upsert(self, row: DailyFeature) -> None:
        ...

    @abstractmethod
    async def labeled_rows(self) -> List[DailyFeature]:
        """All rows with a non-null mood label."""

    @abstractmethod
    async def rows_since(self, since: date) -> List[DailyFeature]:
        """All users' rows with day >= since."""


class ModelRegistry(ABC):
    @abstractmethod
    async def add(self, model: TrainedModel, importances: Sequence[FeatureImportance]) -> None:
        """Append a model and its importances. Existing versions are never overwritten."""

    @abstractmethod
    async def taken_versions(self, stamp: str) -> List[str]:
        """Registered versions sharing the `vYYYYMMDD-HHMMSS` stamp."""

    @abstractmethod
    async def latest(self) -> Optional[TrainedModel]:
        ...

    @abstractmethod
    async def history(self) -> List[TrainedModel]:
        ...

    @abstractmethod
    async def importances(self, model_version: str) -> List[FeatureImportance]:
        ...


class PredictionStore(ABC):
    @abstractmethod
    async def upsert_many(self, predictions: Sequence[Prediction]) -> None:
        ...

    @abstractmethod
    async def series(self, model_version: str, since: date) -> List[Prediction]:
        ...


class _SqlStore:
    def __init__(self, session: AsyncSession, timeout: Optional[float] = None):
        self.session = session
        self.timeout = timeout if timeout is not None else settings.STORE_TIMEOUT_S

    async def _guard(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise RepositoryError(f"{operation} timed out after {self.timeout}s") from e
        except SQLAlchemyError as e:
            raise RepositoryError(f"{operation} failed: {e}") from e

    def _insert(self, table):
        """INSERT construct with ON CONFLICT support for the bound dialect."""
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(table)
        if dialect == "sqlite":
            return sqlite.insert(table)
        raise RepositoryError(f"Upsert not supported for dialect '{dialect}'")


def _event_from_record(record: SystemEvent) -> RawEvent:
    return RawEvent(
        user_id=record.user_id,
        ts=record.ts,
        event_type=record.event_type,
        app_name=record.app_name,
        duration_sec=record.duration_sec,
        location_category=record.location_category,
        action_after=record.action_after,
        notification_sender_type=record.notification_sender_type,
        message_sentiment=record.message_sentiment,
        mood_rating=record.mood_rating,
    )


def _feature_from_record(record: DailyFeatureRecord) -> DailyFeature:
    values = {name: getattr(record, name) for name in FEATURE_NAMES}
    return DailyFeature(user_id=record.user_id, day=record.day, mood_label=record.mood_label, **values)


def _model_from_record(record: ModelRegistryEntry) -> TrainedModel:
    return TrainedModel(
        model_version=record.model_version,
        features=list(record.features),
        coefficients=[float(c) for c in record.coefficients],
        intercept=record.intercept,
        lam=record.lambda_,
        train_mae=record.train_mae,
        created_at=record.created_at,
        train_rows=record.train_rows or 0,
        notes=record.notes,
    )


class SqlEventStore(_SqlStore, EventStore):
    async def events_for_user_day(self, user_id, start, end):
        async def run():
            result = await self.session.execute(
                select(SystemEvent)
                .where(SystemEvent.user_id == user_id, SystemEvent.ts >= start, SystemEvent.ts <= end)
                .order_by(SystemEvent.ts, SystemEvent.id)
            )
            return [_event_from_record(r) for r in result.scalars().all()]
        return await self._guard("events_for_user_day", run())

    async def users_with_events(self, start, end):
        async def run():
            result = await self.session.execute(
                select(distinct(SystemEvent.user_id))
                .where(SystemEvent.ts >= start, SystemEvent.ts <= end)
                .order_by(SystemEvent.user_id)
            )
            return list(result.scalars().all())
        return await self._guard("users_with_events", run())


class SqlFeatureStore(_SqlStore, FeatureStore):
    async def upsert(self, row):
        values = row.to_dict()
        stmt = self._insert(DailyFeatureRecord).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "day"],
            set_={name: stmt.excluded[name] for name in [*FEATURE_NAMES, "mood_label"]},
        )
        await self._guard("upsert daily_features", self.session.execute(stmt))

    async def labeled_rows(self):
        async def run():
            result = await self.session.execute(
                select(DailyFeatureRecord)
                .where(DailyFeatureRecord.mood_label.is_not(None))
                .order_by(DailyFeatureRecord.day, DailyFeatureRecord.user_id)
            )
            return [_feature_from_record(r) for r in result.scalars().all()]
        return await self._guard("labeled_rows", run())

    async def rows_since(self, since):
        async def run():
            result = await self.session.execute(
                select(DailyFeatureRecord)
                .where(DailyFeatureRecord.day >= since)
                .order_by(DailyFeatureRecord.day, DailyFeatureRecord.user_id)
            )
            return [_feature_from_record(r) for r in result.scalars().all()]
        return await self._guard("rows_since", run())


class SqlModelRegistry(_SqlStore, ModelRegistry):
    async def add(self, model, importances):
        self.session.add(ModelRegistryEntry(
            model_version=model.model_version,
            features=list(model.features),
            coefficients=list(model.coefficients),
            intercept=model.intercept,
            lambda_=model.lam,
            train_mae=model.train_mae,
            train_rows=model.train_rows,
            notes=model.notes,
            created_at=model.created_at,
        ))
        # Flush the parent row first so a duplicate version fails here
        await self._guard("add model_registry", self.session.flush())
        self.session.add_all([
            FeatureImportanceRecord(model_version=i.model_version, feature=i.feature, importance=i.importance)
            for i in importances
        ])
        await self._guard("add model_feature_importance", self.session.flush())

    async def taken_versions(self, stamp):
        async def run():
            result = await self.session.execute(
                select(ModelRegistryEntry.model_version)
                .where(or_(
                    ModelRegistryEntry.model_version == stamp,
                    ModelRegistryEntry.model_version.like(f"{stamp}-%"),
                ))
            )
            return list(result.scalars().all())
        return await self._guard("taken model versions", run())

    async def latest(self):
        async def run():
            result = await self.session.execute(
                select(ModelRegistryEntry)
                .order_by(desc(ModelRegistryEntry.created_at), desc(ModelRegistryEntry.model_version))
                .limit(1)
            )
            record = result.scalars().first()
            return _model_from_record(record) if record else None
        return await self._guard("latest model", run())

    async def history(self):
        async def run():
            result = await self.session.execute(
                select(ModelRegistryEntry)
                .order_by(desc(ModelRegistryEntry.created_at), desc(ModelRegistryEntry.model_version))
            )
            return [_model_from_record(r) for r in result.scalars().all()]
        return await self._guard("model history", run())

    async def importances(self, model_version):
        async def run():
            result = await self.session.execute(
                select(FeatureImportanceRecord)
                .where(FeatureImportanceRecord.model_version == model_version)
                .order_by(FeatureImportanceRecord.id)
            )
            return [
                FeatureImportance(model_version=r.model_version, feature=r.feature, importance=r.importance)
                for r in result.scalars().all()
            ]
        return await self._guard("feature importances", run())


class SqlPredictionStore(_SqlStore, PredictionStore):
    async def upsert_many(self, predictions):
        rows = [
            {
                "model_version": p.model_version,
                "user_id": p.user_id,
                "day": p.day,
                "y_true": p.y_true,
                "y_pred": p.y_pred,
                "proba_at_risk": p.proba_at_risk,
            }
            for p in predictions
        ]
        if not rows:
            return
        stmt = self._insert(PredictionRecord).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=["model_version", "user_id", "day"],
            set_={
                "y_true": stmt.excluded.y_true,
                "y_pred": stmt.excluded.y_pred,
                "proba_at_risk": stmt.excluded.proba_at_risk,
            },
        )
        await self._guard("upsert model_predictions", self.session.execute(stmt))

    async def series(self, model_version, since):
        async def run():
            result = await self.session.execute(
                select(PredictionRecord)
                .where(PredictionRecord.model_version == model_version, PredictionRecord.day >= since)
                .order_by(PredictionRecord.day, PredictionRecord.user_id)
            )
            return [
                Prediction(
                    model_version=r.model_version,
                    user_id=r.user_id,
                    day=r.day,
                    y_true=r.y_true,
                    y_pred=r.y_pred,
                    proba_at_risk=r.proba_at_risk,
                )
                for r in result.scalars().all()
            ]
        return await self._guard("prediction series", run())


def event_and_feature_stores(session: AsyncSession):
    """Store factory for aggregation tasks."""
    return SqlEventStore(session), SqlFeatureStore(session)
