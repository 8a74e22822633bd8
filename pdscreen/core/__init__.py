"""Core components for the screening pipeline"""

from pdscreen.core.base import (
    ScreeningConfig,
    ScreeningModel,
    BaseExtractor,
    FeatureVector,
    AGGREGATION_POLICY
)
from pdscreen.core.registry import (
    ClassifierRegistry,
    register_classifier,
    get_classifier,
    create_classifier,
    list_classifiers
)
from pdscreen.core.metrics import (
    SeverityMetrics,
    FeatureReliability,
    evaluate_classifier,
    calculate_feature_reliability
)

__all__ = [
    # Base classes
    "ScreeningConfig",
    "ScreeningModel",
    "BaseExtractor",
    "FeatureVector",
    "AGGREGATION_POLICY",
    # Registry
    "ClassifierRegistry",
    "register_classifier",
    "get_classifier",
    "create_classifier",
    "list_classifiers",
    # Metrics
    "SeverityMetrics",
    "FeatureReliability",
    "evaluate_classifier",
    "calculate_feature_reliability"
]
