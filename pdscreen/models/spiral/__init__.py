"""Spiral drawing analysis"""

from pdscreen.models.spiral.spiral_analyzer import (
    SpiralFeatureExtractor,
    SpiralFeatures,
    SpiralCalibration
)

__all__ = [
    'SpiralFeatureExtractor',
    'SpiralFeatures',
    'SpiralCalibration'
]
