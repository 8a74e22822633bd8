"""Signal extractors, classifiers and aggregation"""

# Extractors
from pdscreen.models.spiral.spiral_analyzer import (
    SpiralFeatureExtractor,
    SpiralFeatures,
    SpiralCalibration
)
from pdscreen.models.voice.voice_analyzer import VoiceFeatureExtractor, VoiceFeatures
from pdscreen.models.posture.posture_analyzer import (
    PostureFeatureExtractor,
    PostureFeatures,
    GaitParameters,
    KeypointProvider,
    KEYPOINT_NAMES
)
from pdscreen.models.symptoms.questionnaire import SymptomQuestionnaire, SymptomScorer

# Classification
from pdscreen.models.classification.severity_classifier import (
    SeverityClassifier,
    ReferenceSeverityClassifier,
    TorchSeverityClassifier,
    build_classifier,
    build_classifiers
)
from pdscreen.models.classification.severity_net import SeverityNet

# Fusion
from pdscreen.models.fusion.aggregator import AssessmentAggregator, aggregate, RECOMMENDATIONS

__all__ = [
    # Extractors
    'SpiralFeatureExtractor',
    'SpiralFeatures',
    'SpiralCalibration',
    'VoiceFeatureExtractor',
    'VoiceFeatures',
    'PostureFeatureExtractor',
    'PostureFeatures',
    'GaitParameters',
    'KeypointProvider',
    'KEYPOINT_NAMES',
    'SymptomQuestionnaire',
    'SymptomScorer',

    # Classification
    'SeverityClassifier',
    'ReferenceSeverityClassifier',
    'TorchSeverityClassifier',
    'build_classifier',
    'build_classifiers',
    'SeverityNet',

    # Fusion
    'AssessmentAggregator',
    'aggregate',
    'RECOMMENDATIONS'
]
