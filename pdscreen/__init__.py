"""
Multi-Modal Parkinson's Screening

Feature extraction and severity scoring for spiral drawings, voice
recordings, posture photographs and a symptom questionnaire, combined
into one conservative overall assessment. A screening aid for wellness
and education, not a diagnostic.
"""

__version__ = "0.1.0"
__author__ = "Screening Pipeline Team"

from pdscreen.core.base import ScreeningConfig, AGGREGATION_POLICY
from pdscreen.core.exceptions import (
    ScreeningError,
    InvalidInputError,
    DegenerateSignalError,
    ModelUnavailableError,
    ExtractionTimeoutError
)
from pdscreen.core.registry import ClassifierRegistry, register_classifier, get_classifier
from pdscreen.core.results import (
    AssessmentResult,
    OverallAssessment,
    Modality,
    Severity,
    score_to_status
)
from pdscreen.models.spiral.spiral_analyzer import SpiralFeatureExtractor, SpiralFeatures
from pdscreen.models.voice.voice_analyzer import VoiceFeatureExtractor, VoiceFeatures
from pdscreen.models.posture.posture_analyzer import (
    PostureFeatureExtractor,
    PostureFeatures,
    GaitParameters,
    KeypointProvider
)
from pdscreen.models.symptoms.questionnaire import SymptomQuestionnaire, SymptomScorer
from pdscreen.models.classification.severity_classifier import (
    SeverityClassifier,
    ReferenceSeverityClassifier,
    TorchSeverityClassifier
)
from pdscreen.models.fusion.aggregator import AssessmentAggregator, aggregate
from pdscreen.session import AssessmentSession, ModalityRecord
from pdscreen.utils.clinical_report import AssessmentReportGenerator

__all__ = [
    "ScreeningConfig",
    "AGGREGATION_POLICY",
    "ScreeningError",
    "InvalidInputError",
    "DegenerateSignalError",
    "ModelUnavailableError",
    "ExtractionTimeoutError",
    "ClassifierRegistry",
    "register_classifier",
    "get_classifier",
    "AssessmentResult",
    "OverallAssessment",
    "Modality",
    "Severity",
    "score_to_status",
    "SpiralFeatureExtractor",
    "SpiralFeatures",
    "VoiceFeatureExtractor",
    "VoiceFeatures",
    "PostureFeatureExtractor",
    "PostureFeatures",
    "GaitParameters",
    "KeypointProvider",
    "SymptomQuestionnaire",
    "SymptomScorer",
    "SeverityClassifier",
    "ReferenceSeverityClassifier",
    "TorchSeverityClassifier",
    "AssessmentAggregator",
    "aggregate",
    "AssessmentSession",
    "ModalityRecord",
    "AssessmentReportGenerator"
]
