from sqlalchemy import Column, Integer, String, Float, ForeignKey
from moodsignal.core.database import Base

class FeatureImportanceRecord(Base):
    __tablename__ = "model_feature_importance"

    id = Column(Integer, primary_key=True, index=True)
    model_version = Column(
        String,
        ForeignKey("model_registry.model_version", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    feature = Column(String, nullable=False)
    importance = Column(Float, nullable=False) # |coef| share, 0..1
