import pytest
import numpy as np

from pdscreen.core.metrics import (
    SeverityMetrics,
    FeatureReliability,
    evaluate_classifier,
    calculate_feature_reliability,
)
from pdscreen.core.results import Severity
from pdscreen.models.classification.severity_classifier import ReferenceSeverityClassifier
from pdscreen.models.spiral.spiral_analyzer import SpiralFeatures


@pytest.fixture
def sample_labels():
    """Fixture for reference and predicted severity labels."""
    return {
        "y_true": ["healthy", "healthy", "mild", "moderate", "severe", "severe"],
        "y_pred": ["healthy", "mild", "mild", "mild", "severe", "moderate"],
    }


@pytest.fixture
def reliability_data():
    """Fixture for sample reliability data."""
    rng = np.random.default_rng(0)
    test = rng.uniform(0, 1, 30)
    return {
        "test": test,
        "retest": test + rng.normal(0, 0.02, 30),
    }


class TestSeverityMetrics:
    def test_perfect_agreement(self):
        labels = ["healthy", "mild", "moderate", "severe"]
        metrics = SeverityMetrics().calculate_all(labels, labels)
        assert metrics['accuracy'] == 1.0
        assert metrics['cohen_kappa'] == pytest.approx(1.0)
        assert metrics['weighted_kappa'] == pytest.approx(1.0)
        assert metrics['under_call_rate'] == 0.0

    def test_calculate_all(self, sample_labels):
        metrics = SeverityMetrics().calculate_all(sample_labels['y_true'], sample_labels['y_pred'])

        assert metrics['accuracy'] == pytest.approx(3 / 6)
        assert metrics['severe_sensitivity'] == pytest.approx(0.5)
        assert metrics['healthy_specificity'] == pytest.approx(1.0)
        # moderate->mild and severe->moderate are under-calls
        assert metrics['under_call_rate'] == pytest.approx(2 / 6)
        assert 0.0 <= metrics['macro_f1'] <= 1.0
        assert metrics['weighted_kappa'] > metrics['cohen_kappa']

    def test_accepts_enum_labels(self):
        metrics = SeverityMetrics().calculate_all([Severity.MILD, Severity.SEVERE],
                                                  ["mild", "severe"])
        assert metrics['accuracy'] == 1.0

    def test_unknown_label(self):
        with pytest.raises(ValueError):
            SeverityMetrics().calculate_all(["healthy"], ["very bad"])


class TestFeatureReliability:
    def test_identical_measurements(self):
        values = np.array([0.1, 0.4, 0.6, 0.9])
        metrics = FeatureReliability().test_retest(values, values)
        assert metrics['icc'] == pytest.approx(1.0)
        assert metrics['mean_difference'] == 0.0

    def test_repeatable_measurements(self, reliability_data):
        metrics = calculate_feature_reliability(reliability_data['test'], reliability_data['retest'])
        assert metrics['icc'] > 0.9
        assert metrics['pearson_r'] > 0.9
        assert metrics['lower_loa'] < metrics['mean_difference'] < metrics['upper_loa']


def test_evaluate_classifier():
    classifier = ReferenceSeverityClassifier("spiral")
    calm = SpiralFeatures(tremor=0.0, irregularity=0.0, pressure=0.0, speed=1.0, smoothness=0.0)
    shaky = SpiralFeatures(tremor=1.0, irregularity=1.0, pressure=1.0, speed=0.0, smoothness=1.0)

    metrics = evaluate_classifier(classifier, [calm, shaky], ["healthy", "severe"])
    assert metrics['accuracy'] == 1.0

    with pytest.raises(ValueError):
        evaluate_classifier(classifier, [calm], ["healthy", "severe"])
