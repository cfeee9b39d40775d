"""
Shared builders for test data
"""
from datetime import date, datetime, timezone

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from moodsignal.core.database import Base
from moodsignal.models import DailyFeatureRecord, SystemEvent
from moodsignal.pipeline.features import FEATURE_NAMES, DailyFeature


def make_engine(tmp_path):
    return create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)


async def create_schema(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def make_row(user_id="u1", day=date(2025, 3, 1), value=1.0, label=3, **overrides):
    """Complete DailyFeature with every feature set to `value`."""
    values = {name: value for name in FEATURE_NAMES}
    values.update(overrides)
    return DailyFeature(user_id=user_id, day=day, mood_label=label, **values)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def event(user_id, when, event_type, **fields):
    return SystemEvent(user_id=user_id, ts=when, event_type=event_type, **fields)


async def add_all(session_factory, records):
    async with session_factory() as session:
        session.add_all(records)
        await session.commit()


async def add_daily_features(session_factory, rows):
    await add_all(session_factory, [DailyFeatureRecord(**row.to_dict()) for row in rows])
