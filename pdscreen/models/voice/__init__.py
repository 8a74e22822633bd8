"""Voice analysis"""

from pdscreen.models.voice.voice_analyzer import VoiceFeatureExtractor, VoiceFeatures

__all__ = [
    'VoiceFeatureExtractor',
    'VoiceFeatures'
]
