"""
End-to-end tests for a training run against SQLite

Train -> Importance -> Predict, committed as one unit.
"""
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from moodsignal.core.exceptions import InsufficientTrainingData, RepositoryError
from moodsignal.models import FeatureImportanceRecord, ModelRegistryEntry, PredictionRecord
from moodsignal.pipeline.predictor import round_score
from moodsignal.pipeline.runner import run_training
from moodsignal.pipeline.versioning import VersionSource
from moodsignal.repositories import SqlModelRegistry, SqlPredictionStore

from helpers import add_daily_features, make_row

TODAY = date(2025, 3, 20)


def same_second_source():
    return VersionSource(lambda: datetime(2025, 3, 20, 6, 30, 0, tzinfo=timezone.utc))


def history_rows():
    rows = []
    for d in range(20):
        day = TODAY - timedelta(days=d)
        rows.append(make_row("u1", day, value=float(d % 7), label=d % 5 + 1, hours_slept=6.0 + (d % 4)))
    # Partially observed, still inside the window
    rows.append(make_row("u2", TODAY, value=1.0, label=4, steps=None))
    return rows


async def count(session_factory, table):
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(table))).scalar()


@pytest.mark.asyncio
async def test_training_run_writes_model_importances_and_predictions(session_factory):
    await add_daily_features(session_factory, history_rows())

    run = await run_training(session_factory, lam=1.0, window_days=14, version_source=same_second_source(), today=TODAY)

    assert run.summary() == {
        "model_version": "v20250320-063000",
        "train_rows": 20,
        "train_mae": round(run.model.train_mae, 3),
    }
    assert await count(session_factory, ModelRegistryEntry) == 1
    assert await count(session_factory, FeatureImportanceRecord) == 12
    # 15 days of u1 (today - 14 .. today) plus u2's partial day
    assert await count(session_factory, PredictionRecord) == 16
    assert len(run.predictions) == 16

    async with session_factory() as session:
        registry = SqlModelRegistry(session)
        latest = await registry.latest()
        importances = await registry.importances(latest.model_version)

    assert latest.model_version == run.model.model_version
    assert latest.coefficients == pytest.approx(run.model.coefficients)
    assert sum(i.importance for i in importances) == pytest.approx(1.0, abs=1e-9)


@pytest.mark.asyncio
async def test_two_runs_in_the_same_second_keep_both_models(session_factory):
    await add_daily_features(session_factory, history_rows())
    source = same_second_source()

    first = await run_training(session_factory, version_source=source, today=TODAY)
    second = await run_training(session_factory, version_source=source, today=TODAY)

    assert first.model.model_version != second.model.model_version
    assert await count(session_factory, ModelRegistryEntry) == 2
    assert await count(session_factory, FeatureImportanceRecord) == 24


@pytest.mark.asyncio
async def test_separate_sources_in_the_same_second_keep_both_models(session_factory):
    await add_daily_features(session_factory, history_rows())

    # Each CLI invocation starts with a fresh source
    first = await run_training(session_factory, version_source=same_second_source(), today=TODAY)
    second = await run_training(session_factory, version_source=same_second_source(), today=TODAY)
    third = await run_training(session_factory, version_source=same_second_source(), today=TODAY)

    assert [first.model.model_version, second.model.model_version, third.model.model_version] == [
        "v20250320-063000",
        "v20250320-063000-1",
        "v20250320-063000-2",
    ]
    assert await count(session_factory, ModelRegistryEntry) == 3
    assert await count(session_factory, FeatureImportanceRecord) == 36
    assert {p.model_version for p in second.predictions} == {"v20250320-063000-1"}
    assert {i.model_version for i in second.importances} == {"v20250320-063000-1"}


@pytest.mark.asyncio
async def test_stored_model_keeps_its_train_rows(session_factory):
    await add_daily_features(session_factory, history_rows())
    await run_training(session_factory, version_source=same_second_source(), today=TODAY)

    async with session_factory() as session:
        latest = await SqlModelRegistry(session).latest()

    assert latest.train_rows == 20


@pytest.mark.asyncio
async def test_failed_prediction_write_leaves_no_registry_entry(session_factory, monkeypatch):
    await add_daily_features(session_factory, history_rows())

    async def broken_upsert(self, predictions):
        raise RepositoryError("prediction store unavailable")

    monkeypatch.setattr(SqlPredictionStore, "upsert_many", broken_upsert)

    with pytest.raises(RepositoryError):
        await run_training(session_factory, version_source=same_second_source(), today=TODAY)

    assert await count(session_factory, ModelRegistryEntry) == 0
    assert await count(session_factory, FeatureImportanceRecord) == 0
    assert await count(session_factory, PredictionRecord) == 0


@pytest.mark.asyncio
async def test_insufficient_data_writes_nothing(session_factory):
    await add_daily_features(session_factory, [make_row("u1", TODAY), make_row("u1", TODAY - timedelta(days=1), hrv=None)])

    with pytest.raises(InsufficientTrainingData):
        await run_training(session_factory, today=TODAY)

    assert await count(session_factory, ModelRegistryEntry) == 0


@pytest.mark.asyncio
async def test_partial_day_scored_with_zero_fill(session_factory):
    await add_daily_features(session_factory, history_rows())

    run = await run_training(session_factory, version_source=same_second_source(), today=TODAY)

    [partial] = [p for p in run.predictions if p.user_id == "u2"]
    model = run.model
    expected = model.intercept + sum(
        c * (0.0 if name == "steps" else 1.0) for name, c in zip(model.features, model.coefficients)
    )
    assert partial.y_pred == pytest.approx(round_score(expected), abs=1e-9)
    assert partial.y_true == 4
