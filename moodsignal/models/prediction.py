from sqlalchemy import Column, Integer, String, Float, Date, ForeignKey, UniqueConstraint
from moodsignal.core.database import Base

class PredictionRecord(Base):
    __tablename__ = "model_predictions"
    __table_args__ = (
        UniqueConstraint("model_version", "user_id", "day", name="uq_model_predictions_version_user_day"),
    )

    id = Column(Integer, primary_key = True, index = True)
    model_version = Column(
        String,
        ForeignKey("model_registry.model_version", ondelete="CASCADE"),
        nullable=False
    )
    user_id = Column(String, nullable=False)
    day = Column(Date, nullable=False)
    y_true = Column(Float, nullable=True) # Logged mood, when present
    y_pred = Column(Float, nullable=False) # Model output, 2 decimals
    proba_at_risk = Column(Float, nullable=True) # Reserved for a future classifier
