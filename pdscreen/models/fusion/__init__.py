"""Aggregation of per-modality results"""

from pdscreen.models.fusion.aggregator import AssessmentAggregator, aggregate, RECOMMENDATIONS

__all__ = [
    'AssessmentAggregator',
    'aggregate',
    'RECOMMENDATIONS'
]
