"""In-memory assessment session collecting one record per modality"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Callable, Union, Mapping

from pdscreen.core.base import FeatureVector, ScreeningConfig
from pdscreen.core.exceptions import ExtractionTimeoutError
from pdscreen.core.results import AssessmentResult, OverallAssessment, Modality
from pdscreen.models.classification.severity_classifier import SeverityClassifier, build_classifier
from pdscreen.models.fusion.aggregator import AssessmentAggregator
from pdscreen.models.posture.posture_analyzer import PostureFeatureExtractor, KeypointProvider, Keypoints
from pdscreen.models.spiral.spiral_analyzer import SpiralFeatureExtractor
from pdscreen.models.symptoms.questionnaire import SymptomQuestionnaire, SymptomScorer
from pdscreen.models.voice.voice_analyzer import VoiceFeatureExtractor
from pdscreen.data.preprocessing import ImageInput, AudioInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModalityRecord:
    """Input, features and result of the latest submission for one modality"""
    modality: Modality
    source: Any
    features: Optional[Union[FeatureVector, SymptomQuestionnaire]]
    result: AssessmentResult
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'modality': self.modality.value,
            'source': _describe_source(self.source),
            'features': self.features.to_dict() if self.features is not None else None,
            'result': self.result.to_dict(),
            'updated_at': self.updated_at.isoformat(),
        }


def _describe_source(source: Any) -> Any:
    if source is None or isinstance(source, (str, int, float)):
        return source
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    shape = getattr(source, 'shape', None)
    if shape is not None:
        return f"<array {tuple(shape)}>"
    return str(source)


class AssessmentSession:
    """
    Caller-owned store of the current assessment.

    Each ``submit_*`` coroutine extracts features in a worker thread,
    bounded by ``config.extraction_timeout`` seconds, classifies them and
    replaces that modality's record. Submissions for the same modality
    are serialized and the last one wins. A failed submission raises to
    the caller and leaves the existing record alone.
    """

    def __init__(self,
                 config: Optional[Union[ScreeningConfig, Dict[str, Any]]] = None,
                 classifiers: Optional[Mapping[str, SeverityClassifier]] = None,
                 keypoint_provider: Optional[KeypointProvider] = None):
        if config is None:
            config = ScreeningConfig()
        elif isinstance(config, dict):
            config = ScreeningConfig.from_dict(config)
        self.config = config

        self.spiral_extractor = SpiralFeatureExtractor(config)
        self.voice_extractor = VoiceFeatureExtractor(config)
        self.posture_extractor = PostureFeatureExtractor(config, keypoint_provider=keypoint_provider)
        self.symptom_scorer = SymptomScorer()
        self.aggregator = AssessmentAggregator(config.aggregation_policy, config.modality_weights)

        self._classifiers: Dict[str, SeverityClassifier] = dict(classifiers or {})
        self._records: Dict[Modality, ModalityRecord] = {}
        self._locks: Dict[Modality, asyncio.Lock] = {}

    def classifier(self, modality: Union[str, Modality]) -> SeverityClassifier:
        """Classifier for ``modality``, built from the config on first use"""
        name = Modality(modality).value
        if name not in self._classifiers:
            self._classifiers[name] = build_classifier(name, self.config)
        return self._classifiers[name]

    def _lock(self, modality: Modality) -> asyncio.Lock:
        # Created lazily so the session can be constructed outside an event loop
        if modality not in self._locks:
            self._locks[modality] = asyncio.Lock()
        return self._locks[modality]

    async def _run(self, modality: Modality, source: Any, work: Callable[[], tuple]) -> AssessmentResult:
        async with self._lock(modality):
            try:
                features, result = await asyncio.wait_for(
                    asyncio.to_thread(work), timeout=self.config.extraction_timeout
                )
            except asyncio.TimeoutError as e:
                logger.warning(f"{modality.value} extraction exceeded {self.config.extraction_timeout}s")
                raise ExtractionTimeoutError(
                    f"{modality.value} extraction did not finish within "
                    f"{self.config.extraction_timeout} seconds"
                ) from e
            except Exception as e:
                logger.warning(f"{modality.value} submission failed: {e}")
                raise

            self._records[modality] = ModalityRecord(
                modality=modality, source=source, features=features, result=result
            )
            logger.info(f"Recorded {modality.value} result: {result.status.value} "
                        f"(score {result.score}, confidence {result.confidence})")
            return result

    async def submit_spiral(self, image: ImageInput) -> AssessmentResult:
        classifier = self.classifier(Modality.SPIRAL)

        def work():
            features = self.spiral_extractor.extract(image)
            return features, classifier.classify(features)

        return await self._run(Modality.SPIRAL, image, work)

    async def submit_voice(self, audio: AudioInput,
                           sample_rate: Optional[int] = None) -> AssessmentResult:
        classifier = self.classifier(Modality.VOICE)

        def work():
            features = self.voice_extractor.extract(audio, sample_rate=sample_rate)
            return features, classifier.classify(features)

        return await self._run(Modality.VOICE, audio, work)

    async def submit_posture(self, image: Optional[ImageInput] = None,
                             keypoints: Optional[Keypoints] = None) -> AssessmentResult:
        classifier = self.classifier(Modality.POSTURE)

        def work():
            features = self.posture_extractor.extract(image, keypoints=keypoints)
            return features, classifier.classify(features)

        return await self._run(Modality.POSTURE, image, work)

    async def submit_symptoms(self,
                              answers: Union[SymptomQuestionnaire, Mapping[str, Any]]) -> AssessmentResult:
        def work():
            questionnaire = (answers if isinstance(answers, SymptomQuestionnaire)
                             else SymptomQuestionnaire.from_dict(answers))
            return questionnaire, self.symptom_scorer.score(questionnaire)

        return await self._run(Modality.SYMPTOMS, None, work)

    def record(self, modality: Union[str, Modality]) -> Optional[ModalityRecord]:
        return self._records.get(Modality(modality))

    def results(self) -> Dict[str, AssessmentResult]:
        """Latest result per submitted modality"""
        return {m.value: r.result for m, r in self._records.items()}

    def overall(self) -> Optional[OverallAssessment]:
        """Aggregate of the current results, recomputed on every call"""
        return self.aggregator.aggregate(self.results())

    def reset(self):
        """Discard every record"""
        self._records.clear()
        logger.info("Assessment session reset")

    def to_dict(self) -> Dict[str, Any]:
        overall = self.overall()
        return {
            'records': {m.value: r.to_dict() for m, r in self._records.items()},
            'overall': overall.to_dict() if overall is not None else None,
        }

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"AssessmentSession(modalities={sorted(m.value for m in self._records)})"
