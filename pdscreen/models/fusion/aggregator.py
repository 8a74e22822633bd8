"""Combine per-modality results into one overall assessment"""

import logging
from typing import Dict, Optional, Mapping, Union

from pdscreen.core.base import AGGREGATION_POLICY
from pdscreen.core.results import (
    AssessmentResult,
    OverallAssessment,
    Modality,
    Severity,
    score_to_status
)

logger = logging.getLogger(__name__)

RECOMMENDATIONS: Dict[Severity, str] = {
    Severity.HEALTHY: (
        "Based on the assessment, no significant Parkinson's disease indicators were "
        "detected. Continue with regular exercise and health monitoring."
    ),
    Severity.MILD: (
        "Some mild indicators of Parkinson's disease were detected. Consider consulting "
        "a neurologist for a professional evaluation. Early intervention can help manage "
        "symptoms effectively."
    ),
    Severity.MODERATE: (
        "Moderate indicators of Parkinson's disease were detected. We strongly recommend "
        "consulting with a neurologist soon for a thorough evaluation and proper diagnosis."
    ),
    Severity.SEVERE: (
        "Several strong indicators of Parkinson's disease were detected. Please consult "
        "with a neurologist as soon as possible for a professional evaluation and "
        "treatment options."
    ),
}

DEFAULT_WEIGHTS: Dict[str, float] = {
    'spiral': 0.25,
    'voice': 0.25,
    'posture': 0.20,
    'symptoms': 0.30,
}


class AssessmentAggregator:
    """
    Combine per-modality results without ever under-calling severity.

    Scores and confidences are averaged (equally, or with renormalized
    modality weights under the ``weighted`` policy). The overall status is
    the worse of the averaged score's band and the worst individual
    status, so one severe modality cannot be averaged away.
    """

    def __init__(self,
                 policy: str = AGGREGATION_POLICY,
                 weights: Optional[Mapping[str, float]] = None):
        if policy not in ('equal', 'weighted'):
            raise ValueError(f"Unknown aggregation policy '{policy}'")
        self.policy = policy
        self.weights = dict(weights) if weights is not None else dict(DEFAULT_WEIGHTS)

    def aggregate(self,
                  results: Mapping[Union[str, Modality], AssessmentResult]) -> Optional[OverallAssessment]:
        """
        Args:
            results: Result per modality; modalities without a result are left out

        Returns:
            ``None`` when ``results`` is empty
        """
        results = {_modality_name(m): r for m, r in results.items() if r is not None}
        if not results:
            return None

        weights = self._weights_for(results)
        score = round(sum(weights[m] * r.score for m, r in results.items()))
        confidence = round(sum(weights[m] * r.confidence for m, r in results.items()))

        averaged_status = score_to_status(score)
        worst = Severity.worst(r.status for r in results.values())
        status = Severity.worst([averaged_status, worst])

        if status != averaged_status:
            logger.info(f"Escalated overall status from {averaged_status.value} to {status.value}")

        return OverallAssessment(
            score=int(score),
            confidence=int(confidence),
            status=status,
            recommendation=RECOMMENDATIONS[status],
            modalities=tuple(sorted(results)),
        )

    def _weights_for(self, results: Mapping[str, AssessmentResult]) -> Dict[str, float]:
        if self.policy == 'equal':
            return {m: 1.0 / len(results) for m in results}

        raw = {m: float(self.weights.get(m, 0.0)) for m in results}
        total = sum(raw.values())
        if total <= 0:
            raise ValueError(f"No positive weight for modalities {sorted(results)}")
        return {m: w / total for m, w in raw.items()}

    def __call__(self, results: Mapping[Union[str, Modality], AssessmentResult]) -> Optional[OverallAssessment]:
        return self.aggregate(results)


def _modality_name(modality: Union[str, Modality]) -> str:
    return modality.value if isinstance(modality, Modality) else str(modality)


def aggregate(results: Mapping[Union[str, Modality], AssessmentResult],
              policy: str = AGGREGATION_POLICY,
              weights: Optional[Mapping[str, float]] = None) -> Optional[OverallAssessment]:
    """Aggregate per-modality results with the given policy"""
    return AssessmentAggregator(policy, weights).aggregate(results)
