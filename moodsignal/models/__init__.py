from moodsignal.models.system_event import SystemEvent
from moodsignal.models.daily_feature import DailyFeatureRecord
from moodsignal.models.model_registry import ModelRegistryEntry
from moodsignal.models.feature_importance import FeatureImportanceRecord
from moodsignal.models.prediction import PredictionRecord

__all__ = [
    "SystemEvent",
    "DailyFeatureRecord",
    "ModelRegistryEntry",
    "FeatureImportanceRecord",
    "PredictionRecord",
]
