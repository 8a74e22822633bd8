"""Input decoding and quality checks"""

from pdscreen.data.preprocessing import (
    SignalQualityChecker,
    VisionPreprocessor,
    VoicePreprocessor,
    decode_image,
    to_grayscale
)

__all__ = [
    'SignalQualityChecker',
    'VisionPreprocessor',
    'VoicePreprocessor',
    'decode_image',
    'to_grayscale'
]
