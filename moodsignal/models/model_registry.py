from sqlalchemy import Column, String, DateTime, JSON, Float, Integer
from moodsignal.core.database import Base

class ModelRegistryEntry(Base):
    """
    One row per training run. Append-only, never updated.
    """
    __tablename__ = "model_registry"

    model_version = Column(String, primary_key=True)
    features = Column(JSON, nullable=False) # Ordered feature names
    coefficients = Column(JSON, nullable=False) # Aligned with features
    intercept = Column(Float, nullable=False)
    lambda_ = Column("lambda", Float, nullable=False)
    train_mae = Column(Float, nullable=True)
    train_rows = Column(Integer, nullable=True) # Complete rows the model was fit on
    notes = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
