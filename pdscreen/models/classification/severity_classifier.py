"""Per-modality severity classifiers"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, List, Union

import numpy as np
import torch

from pdscreen.core.base import FeatureVector, ScreeningConfig
from pdscreen.core.exceptions import InvalidInputError, ModelUnavailableError
from pdscreen.core.registry import register_classifier, get_classifier
from pdscreen.core.results import AssessmentResult, Severity
from pdscreen.models.classification.calibration import (
    ModalityCalibration,
    RiskBandPolicy,
    ScoreBands,
    DEFAULT_CALIBRATIONS
)
from pdscreen.models.classification.severity_net import SeverityNet

logger = logging.getLogger(__name__)


class SeverityClassifier(ABC):
    """
    Base class for turning one modality's features into an ``AssessmentResult``

    Subclasses only provide class probabilities. The predicted class is
    the most probable one, confidence is its probability as a percentage
    and the score comes from the class's ``ScoreBands`` range: the band
    centre, or a uniform draw within the band when ``cosmetic_jitter``
    is on.
    """

    supported_modalities = ('spiral', 'voice', 'posture')

    def __init__(self,
                 modality: str,
                 score_bands: Optional[ScoreBands] = None,
                 cosmetic_jitter: bool = False,
                 random_seed: Optional[int] = None):
        if modality not in self.supported_modalities:
            raise ValueError(f"{self.__class__.__name__} does not support modality '{modality}'")
        self.modality = modality
        self.score_bands = score_bands or ScoreBands()
        self.cosmetic_jitter = cosmetic_jitter
        self._rng = np.random.default_rng(random_seed) if cosmetic_jitter else None

    @classmethod
    def from_config(cls, modality: str, config: ScreeningConfig) -> 'SeverityClassifier':
        return cls(modality=modality,
                   cosmetic_jitter=config.cosmetic_jitter,
                   random_seed=config.random_seed)

    @abstractmethod
    def predict_proba(self, features: FeatureVector) -> np.ndarray:
        """Probabilities for [healthy, mild, moderate, severe]"""
        pass

    def classify(self, features: FeatureVector) -> AssessmentResult:
        if features.modality != self.modality:
            raise InvalidInputError(
                f"{self.modality} classifier received {features.modality} features"
            )

        probs = np.asarray(self.predict_proba(features), dtype=np.float64)
        best = int(np.argmax(probs))
        status = Severity.from_rank(best)

        return AssessmentResult(
            score=self.score_bands.score_for(status, self._rng),
            confidence=int(round(float(probs[best]) * 100)),
            status=status,
            details=self.describe(features),
            probabilities=tuple(float(p) for p in probs),
        )

    def describe(self, features: FeatureVector) -> str:
        """Feature values to three decimals"""
        values = features.to_dict()
        parts = []
        for name, value in values.items():
            if isinstance(value, bool) or value is None:
                continue
            if isinstance(value, (int, float, np.floating)):
                parts.append(f"{name}={value:.3f}")
            elif isinstance(value, (list, tuple)):
                parts.append(f"{name}=[{', '.join(f'{v:.3f}' for v in value)}]")
            elif isinstance(value, dict) and value.get('available'):
                nested = ', '.join(
                    f"{k}={v:.3f}" for k, v in value.items()
                    if isinstance(v, (int, float)) and not isinstance(v, bool)
                )
                parts.append(f"{name}({nested})")

        text = f"{self.modality.capitalize()} analysis: {', '.join(parts)}"
        if values.get('degenerate'):
            text += " (no usable signal)"
        return text

    def __call__(self, features: FeatureVector) -> AssessmentResult:
        return self.classify(features)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(modality={self.modality!r})"


@register_classifier("reference")
class ReferenceSeverityClassifier(SeverityClassifier):
    """
    Rule-based classifier: calibrated risk index mapped through fixed risk bands

    The risk is a weighted mean of bounded per-feature indices (see
    ``ModalityCalibration``); ``RiskBandPolicy`` turns it into class
    probabilities.
    """

    def __init__(self,
                 modality: str,
                 calibration: Optional[ModalityCalibration] = None,
                 policy: Optional[RiskBandPolicy] = None,
                 **kwargs):
        super().__init__(modality, **kwargs)
        self.calibration = calibration or DEFAULT_CALIBRATIONS[modality]
        self.policy = policy or RiskBandPolicy()

    def risk(self, features: FeatureVector) -> float:
        return self.calibration.risk(features)

    def predict_proba(self, features: FeatureVector) -> np.ndarray:
        return self.policy.probabilities(self.risk(features))


@register_classifier("torch")
class TorchSeverityClassifier(SeverityClassifier):
    """
    Classifier backed by a trained ``SeverityNet`` checkpoint

    The checkpoint's ``feature_names`` fix the input order; when absent,
    the feature vector's own flat order is used.
    """

    def __init__(self,
                 modality: str,
                 checkpoint: Optional[Union[str, Path]] = None,
                 device: str = 'cpu',
                 **kwargs):
        super().__init__(modality, **kwargs)
        if checkpoint is None:
            raise ModelUnavailableError(f"No checkpoint configured for the {modality} model")

        path = Path(checkpoint)
        if not path.is_file():
            raise ModelUnavailableError(f"Checkpoint not found: {path}")

        try:
            self.model = SeverityNet.load(path, map_location=device)
        except Exception as e:
            raise ModelUnavailableError(f"Could not load {modality} model from {path}: {e}") from e

        self.model.eval()
        self.feature_names: Optional[List[str]] = self.model.feature_names or None
        logger.info(f"Loaded {modality} severity model from {path} "
                    f"({self.model.num_parameters} parameters)")

    @classmethod
    def from_config(cls, modality: str, config: ScreeningConfig) -> 'TorchSeverityClassifier':
        return cls(modality=modality,
                   checkpoint=config.checkpoints.get(modality),
                   device=config.device,
                   cosmetic_jitter=config.cosmetic_jitter,
                   random_seed=config.random_seed)

    def predict_proba(self, features: FeatureVector) -> np.ndarray:
        x = torch.from_numpy(features.to_array(self.feature_names)).unsqueeze(0)
        if x.shape[-1] != self.model.input_dim:
            raise InvalidInputError(
                f"Model expects {self.model.input_dim} features, got {x.shape[-1]}"
            )
        output = self.model.predict(x)
        return output['probabilities'][0].cpu().numpy()


def build_classifier(modality: str,
                     config: Optional[ScreeningConfig] = None) -> SeverityClassifier:
    """Instantiate the classifier named for ``modality`` in ``config.classifiers``"""
    config = config or ScreeningConfig()
    name = config.classifiers.get(modality, 'reference')
    classifier_class = get_classifier(name)
    return classifier_class.from_config(modality, config)


def build_classifiers(config: Optional[ScreeningConfig] = None) -> Dict[str, SeverityClassifier]:
    config = config or ScreeningConfig()
    return {m: build_classifier(m, config) for m in SeverityClassifier.supported_modalities}
