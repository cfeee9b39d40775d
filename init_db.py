import asyncio
from datetime import datetime, timedelta, timezone

import numpy as np
import pandas as pd
from sqlalchemy import select, func

from moodsignal.core.config import settings
from moodsignal.core.database import engine, Base, AsyncSessionLocal
from moodsignal.models import DailyFeatureRecord

def synth_daily_features(user_id: str, days: int, seed: int = None) -> pd.DataFrame:
    """
    Synthetic daily_features rows for the last `days` days (today inclusive).
    Mood is a latent score driven by sleep(+), steps(+), hrv(+),
    work notifications(-) and idle ratio(-), plus noise.
    """
    rng = np.random.default_rng(seed)
    today = datetime.now(timezone.utc).date()
    rows = []

    for d in range(days - 1, -1, -1):
        day = today - timedelta(days=d)
        weekend = day.weekday() >= 5

        hours_slept = np.clip(rng.normal(7.2 + (0.4 if weekend else 0), 1.0), 4.0, 9.5)
        steps = round(np.clip(rng.normal(6500 + (1500 if weekend else -500), 1800), 1500, 14000))
        hrv = np.clip(rng.normal(45 + (hours_slept - 7) * 3, 8), 20, 80)
        work_notif_count = max(0, round(rng.normal(2 if weekend else 18, 2 if weekend else 7)))
        personal_notif_count = max(0, round(rng.normal(10 if weekend else 6, 3)))
        avg_notif_sentiment = np.clip(rng.normal(0.1 - 0.02 * (work_notif_count / 10), 0.25), -1.0, 1.0)
        session_avg_sec = round(np.clip(rng.normal(1200, 400), 300, 3600))
        idle_ratio = np.clip(rng.normal(0.22 + (-0.05 if weekend else 0.02), 0.08), 0.02, 0.7)
        app_switch_count = max(0, round(rng.normal(30 if weekend else 55, 15)))
        time_at_work_ratio = np.clip(rng.normal(0.05, 0.03) if weekend else rng.normal(0.38, 0.08), 0, 0.9)
        location_switches = max(0, round(rng.normal(5 if weekend else 8, 3)))
        commute_min = max(0, round(rng.normal(10 if weekend else 42, 15)))

        mood = (
            3.0
            + 0.25 * (hours_slept - 7)
            + 0.02 * ((steps - 6500) / 1000)
            + 0.03 * (hrv - 45)
            - 0.03 * work_notif_count
            - 0.8 * (idle_ratio - 0.25)
            + rng.normal(0, 0.4)
        )

        rows.append({
            "user_id": user_id,
            "day": day,
            "session_avg_sec": float(session_avg_sec),
            "idle_ratio": float(idle_ratio),
            "app_switch_count": float(app_switch_count),
            "work_notif_count": float(work_notif_count),
            "personal_notif_count": float(personal_notif_count),
            "avg_notif_sentiment": round(float(avg_notif_sentiment), 3),
            "hours_slept": round(float(hours_slept), 2),
            "steps": float(steps),
            "hrv": round(float(hrv), 1),
            "time_at_work_ratio": round(float(time_at_work_ratio), 3),
            "location_switches": float(location_switches),
            "commute_min": float(commute_min),
            "mood_label": int(max(1, min(5, round(mood)))),
        })

    return pd.DataFrame(rows)

async def init_db():
    # 1. Create tables (if not exist)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    print("Database structure checked/created")

    if not settings.SEED_USER_ID:
        print("SEED_USER_ID not set. Skipping seeding.")
        return

    async with AsyncSessionLocal() as session:
        # 2. CHECK: Are there any data in the database?
        result = await session.execute(select(func.count()).select_from(DailyFeatureRecord))
        count = result.scalar()

        if count > 0:
            print(f"Database already contains {count} daily feature rows. Skipping seeding.")
            return

        # 3. If feature store is empty - seeding synthetic days
        print(f"Feature store is empty. Seeding {settings.SEED_DAYS} days for user {settings.SEED_USER_ID}...")
        df = synth_daily_features(settings.SEED_USER_ID, settings.SEED_DAYS)

        session.add_all([DailyFeatureRecord(**row) for row in df.to_dict(orient="records")])
        await session.commit()
        print(f"Successfully seeded {len(df)} rows!")

if __name__ == "__main__":
    try:
        asyncio.run(init_db())
    except Exception as e:
        print(f"Error during migration: {e}")
