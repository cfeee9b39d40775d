from sqlalchemy import Column, Integer, String, Float, DateTime, Index, func
from moodsignal.core.database import Base

class SystemEvent(Base):
    """
    Raw event log, append-only. Written by the external collectors.
    """
    __tablename__ = "system_events"
    __table_args__ = (
        Index("idx_system_events_user_ts", "user_id", "ts"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False)
    ts = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    event_type = Column(String, nullable=False) # app_usage, notification, location, activity, mood_log

    # Common fields, nullable depending on event type
    app_name = Column(String, nullable=True)
    duration_sec = Column(Integer, nullable=True)
    location_category = Column(String, nullable=True) # home, work, commute
    action_after = Column(String, nullable=True)
    notification_sender_type = Column(String, nullable=True) # work or personal
    message_sentiment = Column(Float, nullable=True)
    mood_rating = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
