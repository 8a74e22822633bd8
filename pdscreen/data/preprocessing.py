"""Decoding and quality checks for raw screening inputs"""

import io
import numpy as np
from typing import Dict, List, Optional, Any, Tuple, Union, Callable
from pathlib import Path
import logging
import librosa
import soundfile as sf
import cv2

from pdscreen.core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

ImageInput = Union[str, Path, bytes, bytearray, np.ndarray]
AudioInput = Union[str, Path, bytes, bytearray, np.ndarray]


class SignalQualityChecker:
    """Check signal quality for voice and image inputs"""

    def __init__(self,
                 modality: str,
                 quality_threshold: float = 0.7):
        self.modality = modality
        self.quality_threshold = quality_threshold
        self.checks = self._get_quality_checks(modality)

    def _get_quality_checks(self, modality: str) -> List[Callable]:
        checks = {
            'voice': [self._check_voice_quality],
            'spiral': [self._check_image_quality],
            'posture': [self._check_image_quality],
        }
        return checks.get(modality, [self._check_generic_quality])

    def check_quality(self, data: np.ndarray) -> Dict[str, Any]:
        """Check data quality and return metrics"""
        quality_scores = []
        issues = []

        for check in self.checks:
            score, issue = check(data)
            quality_scores.append(score)
            if issue:
                issues.append(issue)

        overall_score = float(np.mean(quality_scores)) if quality_scores else 0.0

        return {
            'quality_score': overall_score,
            'passes': overall_score >= self.quality_threshold,
            'issues': issues,
            'detailed_scores': quality_scores
        }

    def _check_voice_quality(self, audio: np.ndarray) -> Tuple[float, Optional[str]]:
        """Check voice signal quality"""
        if audio.size == 0:
            return 0.0, "Empty recording"

        max_val = np.max(np.abs(audio))
        if max_val >= 0.99:
            return 0.3, "Signal clipping detected"

        signal_power = np.mean(audio ** 2)
        if signal_power < 1e-6:
            return 0.0, "Signal too weak"

        frame_length = 2048
        hop_length = 512
        energy = librosa.feature.rms(y=audio, frame_length=frame_length, hop_length=hop_length)[0]

        # Very stable energy = likely a sustained tone with no noise variation
        if np.std(energy) / (np.mean(energy) + 1e-10) < 0.1:
            return 1.0, None

        threshold = np.percentile(energy, 10)
        noise_frames = energy < threshold

        if np.any(noise_frames):
            noise_level = np.mean(energy[noise_frames])
            signal_level = np.mean(energy[~noise_frames]) if np.any(~noise_frames) else 0

            if signal_level > 0:
                snr = 20 * np.log10(signal_level / (noise_level + 1e-10))
                quality_score = min(1.0, snr / 40)
                issue = None if snr > 10 else "Low SNR"
                return quality_score, issue

        return 0.8, None

    def _check_image_quality(self, image: np.ndarray) -> Tuple[float, Optional[str]]:
        """Check photo brightness and blur"""
        issues = []

        gray = to_grayscale(image)
        mean_brightness = np.mean(gray) * 255.0
        if mean_brightness < 30:
            issues.append("Too dark")
        elif mean_brightness > 250:
            issues.append("Overexposed")

        # Blur check using Laplacian variance on the 8-bit image
        laplacian_var = cv2.Laplacian((gray * 255).astype(np.uint8), cv2.CV_64F).var()
        if laplacian_var < 100:
            issues.append("Image is blurry")

        if issues:
            quality_score = max(0.3, 1.0 - len(issues) * 0.2)
            return quality_score, "; ".join(issues)

        return 0.9, None

    def _check_generic_quality(self, data: np.ndarray) -> Tuple[float, Optional[str]]:
        if np.any(np.isnan(data)):
            return 0.0, "NaN values detected"
        if np.any(np.isinf(data)):
            return 0.0, "Inf values detected"

        return 0.7, None


def decode_image(image: ImageInput) -> np.ndarray:
    """
    Decode an image from a path, encoded bytes or an array

    Returns:
        uint8 array, either [H, W] or [H, W, 3] in BGR order

    Raises:
        InvalidInputError: when nothing decodable with at least one pixel is found
    """
    if isinstance(image, np.ndarray):
        decoded = image
    elif isinstance(image, (bytes, bytearray)):
        buffer = np.frombuffer(bytes(image), dtype=np.uint8)
        decoded = cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
    elif isinstance(image, (str, Path)):
        path = Path(image)
        if not path.is_file():
            raise InvalidInputError(f"Image file not found: {path}")
        decoded = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if decoded is None:
            # cv2.imread cannot read GIFs; fall back to the video reader
            capture = cv2.VideoCapture(str(path))
            ok, frame = capture.read()
            capture.release()
            decoded = frame if ok else None
    else:
        raise InvalidInputError(f"Unsupported image input type: {type(image).__name__}")

    if decoded is None or decoded.size == 0 or decoded.ndim not in (2, 3):
        raise InvalidInputError("Image could not be decoded to a non-empty pixel grid")

    if decoded.dtype != np.uint8:
        decoded = _to_uint8(decoded)

    if decoded.ndim == 3:
        channels = decoded.shape[2]
        if channels in (1, 2):
            # Gray, or gray plus alpha
            decoded = np.ascontiguousarray(decoded[:, :, 0])
        elif channels == 4:
            decoded = cv2.cvtColor(decoded, cv2.COLOR_BGRA2BGR)
        elif channels != 3:
            raise InvalidInputError(f"Unsupported image channel count: {channels}")

    return decoded


def _to_uint8(image: np.ndarray) -> np.ndarray:
    image = np.nan_to_num(image.astype(np.float64))
    # Float images are taken to be in [0, 1]
    if image.max() <= 1.0:
        image = image * 255.0
    return np.clip(image, 0, 255).astype(np.uint8)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Grayscale float32 image in [0, 1]"""
    if image.dtype != np.uint8:
        image = _to_uint8(image)
    if image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return image.astype(np.float32) / 255.0


class VisionPreprocessor:
    """Decode, resize and grayscale a still photograph"""

    def __init__(self, target_size: Tuple[int, int] = (224, 224)):
        self.target_size = tuple(target_size)

    def process(self, image: ImageInput) -> Dict[str, np.ndarray]:
        decoded = decode_image(image)
        original_size = decoded.shape[:2]

        if decoded.shape[:2] != (self.target_size[1], self.target_size[0]):
            # cv2 takes (width, height); INTER_AREA keeps thin strokes when shrinking
            decoded = cv2.resize(decoded, self.target_size, interpolation=cv2.INTER_AREA)

        return {
            'image': decoded,
            'gray': to_grayscale(decoded),
            'original_size': np.array(original_size)
        }

    def __call__(self, image: ImageInput) -> Dict[str, np.ndarray]:
        return self.process(image)


class VoicePreprocessor:
    """Decode audio to a mono float waveform at the target sample rate"""

    def __init__(self, target_sr: int = 16000, normalize: bool = False):
        self.target_sr = target_sr
        self.normalize = normalize

    def process(self, audio: AudioInput,
                sample_rate: Optional[int] = None) -> Tuple[np.ndarray, int]:
        """
        Returns:
            Tuple of (waveform float32 [samples], sample_rate)

        Raises:
            InvalidInputError: when the audio cannot be decoded
        """
        if isinstance(audio, np.ndarray):
            waveform = audio.astype(np.float32)
            if np.issubdtype(audio.dtype, np.integer):
                # Integer PCM to [-1, 1]
                waveform = waveform / np.float32(np.iinfo(audio.dtype).max)
            if waveform.ndim == 2:
                # [channels, samples] or [samples, channels]
                channel_axis = 0 if waveform.shape[0] < waveform.shape[1] else 1
                waveform = waveform.mean(axis=channel_axis)
            elif waveform.ndim != 1:
                raise InvalidInputError(f"Expected 1-D or 2-D audio, got shape {waveform.shape}")
            sr = sample_rate or self.target_sr
            if sr != self.target_sr and waveform.size > 0:
                waveform = librosa.resample(waveform, orig_sr=sr, target_sr=self.target_sr)
                sr = self.target_sr
        elif isinstance(audio, (str, Path)):
            path = Path(audio)
            if not path.is_file():
                raise InvalidInputError(f"Audio file not found: {path}")
            try:
                waveform, sr = librosa.load(str(path), sr=self.target_sr, mono=True)
            except Exception as e:
                raise InvalidInputError(f"Audio could not be decoded: {e}") from e
        elif isinstance(audio, (bytes, bytearray)):
            if len(audio) == 0:
                raise InvalidInputError("Audio buffer is empty")
            try:
                waveform, sr = sf.read(io.BytesIO(bytes(audio)), dtype='float32', always_2d=True)
            except Exception as e:
                raise InvalidInputError(f"Audio could not be decoded: {e}") from e
            waveform = waveform.mean(axis=1)
            if sr != self.target_sr and waveform.size > 0:
                waveform = librosa.resample(waveform, orig_sr=sr, target_sr=self.target_sr)
                sr = self.target_sr
        else:
            raise InvalidInputError(f"Unsupported audio input type: {type(audio).__name__}")

        waveform = np.nan_to_num(np.asarray(waveform, dtype=np.float32))

        if self.normalize and waveform.size > 0:
            waveform = waveform / (np.max(np.abs(waveform)) + 1e-10)

        return waveform, int(sr)

    def __call__(self, audio: AudioInput,
                 sample_rate: Optional[int] = None) -> Tuple[np.ndarray, int]:
        return self.process(audio, sample_rate)
