"""Result types shared by classifiers, the aggregator and the session"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional, Tuple, Iterable


class Modality(str, Enum):
    """Input modalities collected by an assessment"""
    SPIRAL = "spiral"
    VOICE = "voice"
    POSTURE = "posture"
    SYMPTOMS = "symptoms"


class Severity(str, Enum):
    """Ordered severity bands: healthy < mild < moderate < severe"""
    HEALTHY = "healthy"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    @classmethod
    def from_rank(cls, rank: int) -> 'Severity':
        return _SEVERITY_ORDER[rank]

    @classmethod
    def worst(cls, statuses: Iterable['Severity']) -> Optional['Severity']:
        """Most severe status in ``statuses`` (None when empty)"""
        statuses = list(statuses)
        if not statuses:
            return None
        return max(statuses, key=lambda s: s.rank)


_SEVERITY_ORDER = [Severity.HEALTHY, Severity.MILD, Severity.MODERATE, Severity.SEVERE]

# Lower bound of each band on the 0-100 score scale (higher score = healthier)
STATUS_THRESHOLDS: Tuple[Tuple[int, Severity], ...] = (
    (80, Severity.HEALTHY),
    (60, Severity.MILD),
    (40, Severity.MODERATE),
)


def score_to_status(score: float) -> Severity:
    """Map a 0-100 score onto the four severity bands"""
    for lower_bound, status in STATUS_THRESHOLDS:
        if score >= lower_bound:
            return status
    return Severity.SEVERE


@dataclass(frozen=True)
class AssessmentResult:
    """Outcome of classifying one modality"""
    score: int
    confidence: int
    status: Severity
    details: str = ""
    probabilities: Tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not 0 <= self.score <= 100:
            raise ValueError(f"score must be within 0-100, got {self.score}")
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"confidence must be within 0-100, got {self.confidence}")
        if not isinstance(self.status, Severity):
            object.__setattr__(self, 'status', Severity(self.status))

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'score': self.score,
            'confidence': self.confidence,
            'status': self.status.value,
            'details': self.details,
        }
        if self.probabilities:
            d['probabilities'] = list(self.probabilities)
        return d


@dataclass(frozen=True)
class OverallAssessment:
    """Combined assessment across every modality that has a result"""
    score: int
    confidence: int
    status: Severity
    recommendation: str
    modalities: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': self.score,
            'confidence': self.confidence,
            'status': self.status.value,
            'recommendation': self.recommendation,
            'modalities': list(self.modalities),
        }
