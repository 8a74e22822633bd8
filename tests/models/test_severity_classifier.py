import pytest
import numpy as np
import torch

from pdscreen.core.base import ScreeningConfig
from pdscreen.core.exceptions import InvalidInputError, ModelUnavailableError
from pdscreen.core.registry import get_registry
from pdscreen.core.results import Severity, score_to_status
from pdscreen.models.classification.calibration import (
    RiskBandPolicy,
    RiskTerm,
    ScoreBands,
    SPIRAL_CALIBRATION,
)
from pdscreen.models.classification.severity_classifier import (
    ReferenceSeverityClassifier,
    TorchSeverityClassifier,
    build_classifier,
    build_classifiers,
)
from pdscreen.models.classification.severity_net import SeverityNet
from pdscreen.models.posture.posture_analyzer import PostureFeatureExtractor
from pdscreen.models.spiral.spiral_analyzer import SpiralFeatures
from pdscreen.models.voice.voice_analyzer import VoiceFeatures

SPIRAL_NAMES = ['tremor', 'irregularity', 'pressure', 'speed', 'smoothness']


@pytest.fixture
def calm_spiral():
    return SpiralFeatures(tremor=0.0, irregularity=0.0, pressure=0.0, speed=1.0, smoothness=0.0)


@pytest.fixture
def shaky_spiral():
    return SpiralFeatures(tremor=1.0, irregularity=1.0, pressure=1.0, speed=0.0, smoothness=1.0)


@pytest.fixture
def spiral_checkpoint(tmp_path):
    torch.manual_seed(0)
    model = SeverityNet({'feature_names': SPIRAL_NAMES, 'input_dim': 5, 'device': 'cpu'})
    path = tmp_path / "spiral.pth"
    model.save(path)
    return path


class TestScoreBands:
    def test_bands_map_back_to_their_class(self):
        bands = ScoreBands()
        for status, (low, high) in bands.bands.items():
            for score in range(low, high + 1):
                assert score_to_status(score) is status

    def test_bands_do_not_overlap(self):
        ranges = sorted(ScoreBands().bands.values())
        for (_, high), (low, _) in zip(ranges, ranges[1:]):
            assert high < low

    def test_centres(self):
        bands = ScoreBands()
        assert [bands.centre(s) for s in Severity] == [90, 72, 52, 32]

    def test_jitter_stays_in_band(self):
        bands = ScoreBands()
        rng = np.random.default_rng(7)
        for status, (low, high) in bands.bands.items():
            scores = [bands.score_for(status, rng) for _ in range(50)]
            assert all(low <= s <= high for s in scores)


class TestRiskBandPolicy:
    @pytest.mark.parametrize("risk,expected", [
        (0.0, Severity.HEALTHY),
        (0.29, Severity.HEALTHY),
        (0.3, Severity.HEALTHY),
        (0.5, Severity.MILD),
        (0.69, Severity.MILD),
        (0.7, Severity.SEVERE),
        (1.0, Severity.SEVERE),
    ])
    def test_most_likely_class(self, risk, expected):
        probs = RiskBandPolicy().probabilities(risk)
        assert Severity.from_rank(int(np.argmax(probs))) is expected
        assert probs.sum() == pytest.approx(1.0)

    def test_monotonic(self):
        policy = RiskBandPolicy()
        ranks = [int(np.argmax(policy.probabilities(r))) for r in np.linspace(0, 1, 101)]
        assert all(a <= b for a, b in zip(ranks, ranks[1:]))


class TestRiskTerm:
    def test_scaled_and_clipped(self):
        term = RiskTerm('jitter', 1.0, scale=0.05)
        assert term.index(0.025) == pytest.approx(0.5)
        assert term.index(1.0) == 1.0
        assert term.index(-1.0) == 0.0

    def test_inverted_with_baseline(self):
        term = RiskTerm('harmonicity', 1.0, baseline=0.2, scale=0.5, inverted=True)
        assert term.index(0.45) == pytest.approx(0.5)
        assert term.index(0.0) == 1.0

    def test_calibration_requires_features(self):
        with pytest.raises(KeyError):
            SPIRAL_CALIBRATION.risk(VoiceFeatures.degenerate_default())


class TestReferenceSeverityClassifier:
    def test_low_risk(self, calm_spiral):
        classifier = ReferenceSeverityClassifier("spiral")
        assert classifier.risk(calm_spiral) == 0.0

        result = classifier.classify(calm_spiral)
        assert result.status is Severity.HEALTHY
        assert result.score == 90
        assert result.confidence == 80
        assert result.probabilities == pytest.approx((0.80, 0.15, 0.04, 0.01))

    def test_high_risk(self, shaky_spiral):
        result = ReferenceSeverityClassifier("spiral")(shaky_spiral)
        assert result.status is Severity.SEVERE
        assert result.score == 32
        assert result.confidence == 45

    def test_details(self, calm_spiral):
        details = ReferenceSeverityClassifier("spiral").classify(calm_spiral).details
        assert details.startswith("Spiral analysis: tremor=0.000")
        assert "speed=1.000" in details

    def test_modality_mismatch(self, calm_spiral):
        with pytest.raises(InvalidInputError):
            ReferenceSeverityClassifier("voice").classify(calm_spiral)

    def test_unsupported_modality(self):
        with pytest.raises(ValueError):
            ReferenceSeverityClassifier("symptoms")

    def test_degenerate_voice_flagged(self):
        result = ReferenceSeverityClassifier("voice").classify(VoiceFeatures.degenerate_default())
        assert result.details.endswith("(no usable signal)")
        assert "mfcc=[" in result.details

    def test_standing_pose_is_healthy(self, keypoints):
        features = PostureFeatureExtractor().extract(keypoints=keypoints)
        assert ReferenceSeverityClassifier("posture").classify(features).status is Severity.HEALTHY

    def test_seeded_jitter(self, calm_spiral):
        first = ReferenceSeverityClassifier("spiral", cosmetic_jitter=True, random_seed=3)
        second = ReferenceSeverityClassifier("spiral", cosmetic_jitter=True, random_seed=3)
        scores = [first.classify(calm_spiral).score for _ in range(20)]
        assert scores == [second.classify(calm_spiral).score for _ in range(20)]
        assert all(85 <= s <= 95 for s in scores)

    def test_status_monotonic_in_feature_severity(self):
        classifier = ReferenceSeverityClassifier("spiral")
        ranks = []
        for level in np.linspace(0, 1, 21):
            features = SpiralFeatures(tremor=level, irregularity=level, pressure=level,
                                      speed=1.0 - level, smoothness=level)
            ranks.append(classifier.classify(features).status.rank)
        assert all(a <= b for a, b in zip(ranks, ranks[1:]))


class TestTorchSeverityClassifier:
    def test_missing_checkpoint(self, tmp_path):
        with pytest.raises(ModelUnavailableError):
            TorchSeverityClassifier("spiral")
        with pytest.raises(ModelUnavailableError):
            TorchSeverityClassifier("spiral", checkpoint=tmp_path / "missing.pth")

    def test_corrupt_checkpoint(self, tmp_path):
        path = tmp_path / "broken.pth"
        path.write_bytes(b"not a checkpoint")
        with pytest.raises(ModelUnavailableError):
            TorchSeverityClassifier("spiral", checkpoint=path)

    def test_classify(self, spiral_checkpoint, calm_spiral):
        classifier = TorchSeverityClassifier("spiral", checkpoint=spiral_checkpoint)
        assert classifier.feature_names == SPIRAL_NAMES

        result = classifier.classify(calm_spiral)
        assert sum(result.probabilities) == pytest.approx(1.0, abs=1e-5)
        assert result.confidence == round(max(result.probabilities) * 100)
        assert result.score == ScoreBands().centre(result.status)

    def test_input_dim_mismatch(self, tmp_path, calm_spiral):
        path = tmp_path / "small.pth"
        SeverityNet({'input_dim': 3, 'device': 'cpu'}).save(path)
        classifier = TorchSeverityClassifier("spiral", checkpoint=path)
        with pytest.raises(InvalidInputError):
            classifier.classify(calm_spiral)

    def test_from_config(self, spiral_checkpoint):
        config = ScreeningConfig(classifiers={'spiral': 'torch'},
                                 checkpoints={'spiral': str(spiral_checkpoint)},
                                 cosmetic_jitter=False)
        assert isinstance(build_classifier("spiral", config), TorchSeverityClassifier)


def test_build_classifiers_default(config):
    classifiers = build_classifiers(config)
    assert set(classifiers) == {'spiral', 'voice', 'posture'}
    assert all(isinstance(c, ReferenceSeverityClassifier) for c in classifiers.values())
    assert classifiers['voice']._rng is None


def test_build_torch_without_checkpoint():
    config = ScreeningConfig(classifiers={'voice': 'torch'})
    with pytest.raises(ModelUnavailableError):
        build_classifier("voice", config)


def test_registry_create():
    classifier = get_registry().create("reference", "posture")
    assert isinstance(classifier, ReferenceSeverityClassifier)
    assert classifier.modality == "posture"


def test_severity_net_normalization():
    model = SeverityNet({'input_dim': 2, 'device': 'cpu'})
    model.fit_normalization(np.array([[0.0, 10.0], [2.0, 30.0]]))
    assert torch.allclose(model.feature_mean, torch.tensor([1.0, 20.0]))
    assert torch.allclose(model.feature_std, torch.tensor([1.0, 10.0]))

    with pytest.raises(ValueError):
        SeverityNet({'feature_names': ['a', 'b'], 'input_dim': 3})
