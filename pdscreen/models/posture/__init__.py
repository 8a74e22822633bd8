"""Posture and gait analysis"""

from pdscreen.models.posture.posture_analyzer import (
    PostureFeatureExtractor,
    PostureFeatures,
    GaitParameters,
    KeypointProvider,
    KEYPOINT_NAMES,
    normalize_keypoints
)

__all__ = [
    'PostureFeatureExtractor',
    'PostureFeatures',
    'GaitParameters',
    'KeypointProvider',
    'KEYPOINT_NAMES',
    'normalize_keypoints'
]
