from __future__ import annotations

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class FeatureImportance:
    model_version: str
    feature: str
    importance: float


def compute_importance(model) -> List[FeatureImportance]:
    """
    Normalized |coefficient| per feature, in model-feature order.

    All-zero coefficients give all-zero importances (the denominator is
    floored to 1).
    """
    magnitudes = [abs(c) for c in model.coefficients]
    total = sum(magnitudes) or 1.0
    return [
        FeatureImportance(model_version=model.model_version, feature=name, importance=m / total)
        for name, m in zip(model.features, magnitudes)
    ]
