"""Metrics for checking severity classifiers and feature repeatability"""

import numpy as np
from typing import Dict, List, Optional, Tuple, Union, Sequence, Any
from sklearn.metrics import (
    accuracy_score, precision_recall_fscore_support,
    confusion_matrix, cohen_kappa_score
)
from scipy import stats
import logging

from pdscreen.core.results import Severity

logger = logging.getLogger(__name__)

SEVERITY_LABELS = [s.value for s in Severity]


class SeverityMetrics:
    """Agreement metrics between predicted and reference severity labels"""

    def __init__(self, labels: Optional[List[str]] = None):
        self.labels = labels or SEVERITY_LABELS

    def calculate_all(self,
                      y_true: Sequence[Union[str, Severity]],
                      y_pred: Sequence[Union[str, Severity]]) -> Dict[str, float]:
        """Calculate all agreement metrics"""
        y_true = self._to_indices(y_true)
        y_pred = self._to_indices(y_pred)
        label_idx = list(range(len(self.labels)))

        metrics = {}
        metrics['accuracy'] = accuracy_score(y_true, y_pred)

        precision, recall, f1, support = precision_recall_fscore_support(
            y_true, y_pred, labels=label_idx, average=None, zero_division=0
        )

        for i, label in enumerate(self.labels):
            binary_true = (y_true == i).astype(int)
            binary_pred = (y_pred == i).astype(int)

            metrics[f'{label}_precision'] = precision[i]
            metrics[f'{label}_recall'] = recall[i]
            metrics[f'{label}_f1'] = f1[i]
            metrics[f'{label}_support'] = support[i]

            tn, fp, fn, tp = confusion_matrix(binary_true, binary_pred, labels=[0, 1]).ravel()
            metrics[f'{label}_sensitivity'] = tp / (tp + fn) if (tp + fn) > 0 else 0
            metrics[f'{label}_specificity'] = tn / (tn + fp) if (tn + fp) > 0 else 0

        present = support > 0
        metrics['macro_f1'] = float(np.mean(f1[present])) if np.any(present) else 0.0
        metrics['cohen_kappa'] = self._kappa(y_true, y_pred)
        # Ordinal labels: penalize healthy-vs-severe more than adjacent bands
        metrics['weighted_kappa'] = self._kappa(y_true, y_pred, weights='quadratic')
        metrics['under_call_rate'] = float(np.mean(y_pred < y_true))

        return metrics

    def _kappa(self, y_true: np.ndarray, y_pred: np.ndarray,
               weights: Optional[str] = None) -> float:
        # Kappa is undefined when both raters use a single label
        if len(np.unique(np.concatenate([y_true, y_pred]))) < 2:
            return 1.0 if np.array_equal(y_true, y_pred) else 0.0
        return float(cohen_kappa_score(y_true, y_pred, weights=weights))

    def _to_indices(self, labels: Sequence[Union[str, Severity]]) -> np.ndarray:
        values = [l.value if isinstance(l, Severity) else str(l) for l in labels]
        unknown = set(values) - set(self.labels)
        if unknown:
            raise ValueError(f"Unknown severity labels: {sorted(unknown)}")
        return np.array([self.labels.index(v) for v in values])


class FeatureReliability:
    """Test-retest repeatability of extracted features"""

    def test_retest(self,
                    measurements1: np.ndarray,
                    measurements2: np.ndarray) -> Dict[str, float]:
        """Calculate test-retest reliability metrics for one feature"""
        measurements1 = np.asarray(measurements1, dtype=float).flatten()
        measurements2 = np.asarray(measurements2, dtype=float).flatten()

        icc = self._calculate_icc(measurements1, measurements2)

        if np.std(measurements1) > 0 and np.std(measurements2) > 0:
            correlation, p_value = stats.pearsonr(measurements1, measurements2)
        else:
            correlation, p_value = 0.0, 1.0

        mean_diff, std_diff, limits_of_agreement = self._bland_altman(
            measurements1, measurements2
        )

        return {
            'icc': icc,
            'pearson_r': float(correlation),
            'pearson_p': float(p_value),
            'mean_difference': mean_diff,
            'std_difference': std_diff,
            'lower_loa': limits_of_agreement[0],
            'upper_loa': limits_of_agreement[1]
        }

    def _calculate_icc(self,
                       measurements1: np.ndarray,
                       measurements2: np.ndarray) -> float:
        """One-way random effects ICC(1,1) for two repeated sessions"""
        n = len(measurements1)
        if n < 2:
            return 0.0
        data = np.array([measurements1, measurements2]).T

        grand_mean = np.mean(data)
        subject_means = np.mean(data, axis=1)
        ms_between = np.sum((subject_means - grand_mean) ** 2) * 2 / (n - 1)
        ms_within = np.sum((data - subject_means.reshape(-1, 1)) ** 2) / n

        denom = ms_between + ms_within
        if denom == 0:
            return 1.0
        icc = (ms_between - ms_within) / denom
        return float(max(0, min(1, icc)))

    def _bland_altman(self,
                      measurements1: np.ndarray,
                      measurements2: np.ndarray) -> Tuple[float, float, Tuple[float, float]]:
        differences = measurements1 - measurements2
        mean_diff = float(np.mean(differences))
        std_diff = float(np.std(differences))
        return mean_diff, std_diff, (mean_diff - 1.96 * std_diff, mean_diff + 1.96 * std_diff)


def evaluate_classifier(classifier: Any,
                        features: Sequence[Any],
                        labels: Sequence[Union[str, Severity]]) -> Dict[str, float]:
    """
    Run ``classifier`` over labelled feature vectors and score the agreement

    Args:
        classifier: Any object with ``classify(features) -> AssessmentResult``
        features: Feature vectors of a single modality
        labels: Reference severity label per feature vector
    """
    if len(features) != len(labels):
        raise ValueError("features and labels must have the same length")
    predictions = [classifier.classify(f).status for f in features]
    metrics = SeverityMetrics().calculate_all(labels, predictions)
    logger.info(f"Evaluated {classifier!r} on {len(features)} samples: "
                f"accuracy={metrics['accuracy']:.3f}")
    return metrics


def calculate_feature_reliability(test_measurements: np.ndarray,
                                  retest_measurements: np.ndarray) -> Dict[str, float]:
    """Test-retest reliability for one feature measured twice per subject"""
    return FeatureReliability().test_retest(test_measurements, retest_measurements)
