from sqlalchemy import Column, Integer, String, Float, Date, DateTime, UniqueConstraint, func
from moodsignal.core.database import Base

class DailyFeatureRecord(Base):
    """
    Daily feature store: one row per user per day.
    Recomputing a day overwrites the row in place.
    """
    __tablename__ = "daily_features"
    __table_args__ = (
        UniqueConstraint("user_id", "day", name="uq_daily_features_user_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    day = Column(Date, nullable=False, index=True)

    # Aggregated behaviour features
    session_avg_sec = Column(Float, nullable=True)
    idle_ratio = Column(Float, nullable=True)
    app_switch_count = Column(Float, nullable=True)
    work_notif_count = Column(Float, nullable=True)
    personal_notif_count = Column(Float, nullable=True)
    avg_notif_sentiment = Column(Float, nullable=True)
    hours_slept = Column(Float, nullable=True)
    steps = Column(Float, nullable=True)
    hrv = Column(Float, nullable=True)
    time_at_work_ratio = Column(Float, nullable=True)
    location_switches = Column(Float, nullable=True)
    commute_min = Column(Float, nullable=True)

    # Same-day aggregate of the user's mood logs (1..5)
    mood_label = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
