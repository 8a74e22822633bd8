"""Per-modality severity classification"""

from pdscreen.models.classification.calibration import (
    RiskTerm,
    ModalityCalibration,
    RiskBandPolicy,
    ScoreBands,
    DEFAULT_CALIBRATIONS
)
from pdscreen.models.classification.severity_net import SeverityNet
from pdscreen.models.classification.severity_classifier import (
    SeverityClassifier,
    ReferenceSeverityClassifier,
    TorchSeverityClassifier,
    build_classifier,
    build_classifiers
)

__all__ = [
    'RiskTerm',
    'ModalityCalibration',
    'RiskBandPolicy',
    'ScoreBands',
    'DEFAULT_CALIBRATIONS',
    'SeverityNet',
    'SeverityClassifier',
    'ReferenceSeverityClassifier',
    'TorchSeverityClassifier',
    'build_classifier',
    'build_classifiers'
]
