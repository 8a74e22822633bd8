"""Risk calibration, probability bands and score bands for severity classifiers"""

from dataclasses import dataclass, field
from typing import Dict, Tuple, Optional, Mapping

import numpy as np

from pdscreen.core.base import FeatureVector
from pdscreen.core.results import Severity


@dataclass(frozen=True)
class RiskTerm:
    """
    One feature's contribution to a modality risk index

    The index is ``clip((value - baseline) / scale, 0, 1)``, flipped to
    ``1 - index`` when ``inverted`` (for features where lower is worse).
    """
    feature: str
    weight: float
    scale: float = 1.0
    baseline: float = 0.0
    inverted: bool = False

    def index(self, value: float) -> float:
        bounded = float(np.clip((value - self.baseline) / self.scale, 0.0, 1.0))
        return 1.0 - bounded if self.inverted else bounded


@dataclass(frozen=True)
class ModalityCalibration:
    """
    Weighted mean of bounded risk indices for one modality.

    None of these constants are fitted to clinical data; change
    ``version`` whenever a term changes.
    """
    modality: str
    terms: Tuple[RiskTerm, ...]
    version: str = "1"

    def __post_init__(self):
        if not self.terms:
            raise ValueError(f"Calibration for '{self.modality}' has no terms")
        if sum(t.weight for t in self.terms) <= 0:
            raise ValueError(f"Calibration for '{self.modality}' has no positive weight")

    @property
    def feature_names(self) -> Tuple[str, ...]:
        return tuple(t.feature for t in self.terms)

    def risk_indices(self, features: FeatureVector) -> Dict[str, float]:
        values = features.scalar_features()
        missing = [name for name in self.feature_names if name not in values]
        if missing:
            raise KeyError(f"{features.__class__.__name__} lacks calibrated features {missing}")
        return {t.feature: t.index(values[t.feature]) for t in self.terms}

    def risk(self, features: FeatureVector) -> float:
        """Weighted risk in [0, 1]"""
        indices = self.risk_indices(features)
        total_weight = sum(t.weight for t in self.terms)
        return float(sum(t.weight * indices[t.feature] for t in self.terms) / total_weight)


SPIRAL_CALIBRATION = ModalityCalibration(
    modality="spiral",
    version="spiral-risk-1",
    terms=(
        RiskTerm('tremor', 0.35),
        RiskTerm('irregularity', 0.20),
        RiskTerm('pressure', 0.15),
        RiskTerm('smoothness', 0.20),
        RiskTerm('speed', 0.10, inverted=True),
    ),
)

VOICE_CALIBRATION = ModalityCalibration(
    modality="voice",
    version="voice-risk-1",
    terms=(
        RiskTerm('jitter', 0.30, scale=0.05),
        RiskTerm('shimmer', 0.30, scale=0.15),
        RiskTerm('harmonicity', 0.20, inverted=True),
        RiskTerm('f0_variation', 0.20, scale=0.3),
    ),
)

# A neutral standing pose already gives a neck angle near 45 degrees and a
# limb-angle rigidity near 0.95, hence the baselines
POSTURE_CALIBRATION = ModalityCalibration(
    modality="posture",
    version="posture-risk-1",
    terms=(
        RiskTerm('forward_head_posture', 0.20, scale=0.5, baseline=0.3),
        RiskTerm('shoulder_asymmetry', 0.20, scale=0.1),
        RiskTerm('spinal_curvature', 0.20, scale=0.1),
        RiskTerm('arm_swing_asymmetry', 0.15, scale=0.3),
        RiskTerm('body_rigidity', 0.10, scale=0.1, baseline=0.9),
        RiskTerm('balance_index', 0.15, scale=0.2, baseline=0.4),
    ),
)

DEFAULT_CALIBRATIONS: Dict[str, ModalityCalibration] = {
    'spiral': SPIRAL_CALIBRATION,
    'voice': VOICE_CALIBRATION,
    'posture': POSTURE_CALIBRATION,
}


@dataclass(frozen=True)
class RiskBandPolicy:
    """
    Map a risk in [0, 1] to class probabilities [healthy, mild, moderate, severe]

    Weak or ambiguous signal leans toward the non-alarming classes: a risk
    below 0.5 still reads as healthy and only a risk of 0.7 or more makes
    severe the most likely class.
    """
    bands: Tuple[Tuple[float, Tuple[float, ...]], ...] = (
        (0.3, (0.80, 0.15, 0.04, 0.01)),
        (0.5, (0.55, 0.30, 0.10, 0.05)),
        (0.7, (0.15, 0.45, 0.30, 0.10)),
    )
    highest: Tuple[float, ...] = (0.05, 0.15, 0.35, 0.45)

    def probabilities(self, risk: float) -> np.ndarray:
        for upper_bound, probs in self.bands:
            if risk < upper_bound:
                return np.array(probs, dtype=np.float64)
        return np.array(self.highest, dtype=np.float64)


@dataclass(frozen=True)
class ScoreBands:
    """
    Score range reported for each predicted class

    Every range lies inside the score interval that ``score_to_status``
    maps back to the same class, and the ranges do not overlap.
    """
    bands: Mapping[Severity, Tuple[int, int]] = field(default_factory=lambda: {
        Severity.HEALTHY: (85, 95),
        Severity.MILD: (65, 79),
        Severity.MODERATE: (45, 59),
        Severity.SEVERE: (25, 39),
    })

    def centre(self, status: Severity) -> int:
        low, high = self.bands[status]
        return (low + high) // 2

    def score_for(self, status: Severity, rng: Optional[np.random.Generator] = None) -> int:
        """Band centre, or a uniform draw from the band when ``rng`` is given"""
        if rng is None:
            return self.centre(status)
        low, high = self.bands[status]
        return int(rng.integers(low, high + 1))
