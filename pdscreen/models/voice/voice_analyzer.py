"""Acoustic voice features: pitch and amplitude perturbation, harmonicity, MFCC"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional, ClassVar, Tuple, Union

import librosa
import numpy as np
from scipy.signal import find_peaks

from pdscreen.core.base import BaseExtractor, FeatureVector, ScreeningConfig
from pdscreen.core.exceptions import DegenerateSignalError
from pdscreen.data.preprocessing import VoicePreprocessor, SignalQualityChecker, AudioInput

logger = logging.getLogger(__name__)

# Minimum peak of the normalized autocorrelation for a frame to count as voiced
VOICING_THRESHOLD = 0.3
# Peaks within this fraction of the best one are preferred when they come at a
# shorter lag, which keeps multiples of the true period from winning
OCTAVE_TOLERANCE = 0.95
HARMONICITY_FFT = 2048
NUM_HARMONICS = 5


@dataclass(frozen=True)
class VoiceFeatures(FeatureVector):
    """Acoustic measurements of a sustained phonation"""
    modality: ClassVar[str] = "voice"

    mfcc: Tuple[float, ...]
    jitter: float
    shimmer: float
    harmonicity: float
    hnr: float
    f0_variation: float
    spectral_centroid: float
    spectral_rolloff: float
    zero_crossing_rate: float
    degenerate: bool = False

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['mfcc'] = list(self.mfcc)
        return d

    @classmethod
    def degenerate_default(cls, n_mfcc: int = 13) -> 'VoiceFeatures':
        """All-zero features for silent or empty recordings"""
        return cls(
            mfcc=tuple([0.0] * n_mfcc),
            jitter=0.0,
            shimmer=0.0,
            harmonicity=0.0,
            hnr=0.0,
            f0_variation=0.0,
            spectral_centroid=0.0,
            spectral_rolloff=0.0,
            zero_crossing_rate=0.0,
            degenerate=True,
        )


class VoiceFeatureExtractor(BaseExtractor):
    """
    Extract perturbation and spectral features from a voice recording.

    Pitch periods come from a normalized autocorrelation computed every
    ``frame_ms`` over a window spanning two of the longest periods in the
    ``f0_min``-``f0_max`` search range. Spectral summaries (centroid,
    rolloff, zero-crossing rate, MFCC) are computed with librosa and
    averaged over frames.
    """

    modality = "voice"

    def __init__(self,
                 config: Optional[Union[Dict[str, Any], ScreeningConfig]] = None,
                 check_quality: bool = True):
        super().__init__(config)
        self.preprocessor = VoicePreprocessor(target_sr=self.config.sample_rate)
        self.quality_checker = SignalQualityChecker('voice') if check_quality else None

    def extract(self, audio: AudioInput, sample_rate: Optional[int] = None,
                **kwargs) -> VoiceFeatures:
        """
        Args:
            audio: Path, encoded bytes or waveform array
            sample_rate: Rate of ``audio`` when it is an array (defaults
                to the configured rate)

        Raises:
            InvalidInputError: if the audio cannot be decoded
        """
        waveform, sr = self.preprocessor(audio, sample_rate)

        try:
            return self._compute_features(waveform, sr)
        except DegenerateSignalError as e:
            logger.warning(f"Degenerate voice recording, using default features: {e}")
            return VoiceFeatures.degenerate_default(self.config.n_mfcc)
        finally:
            del waveform

    def _compute_features(self, waveform: np.ndarray, sr: int) -> VoiceFeatures:
        if waveform.size == 0:
            raise DegenerateSignalError("recording is empty")
        if float(np.max(np.abs(waveform))) < 1e-8:
            raise DegenerateSignalError("recording is silent")

        if self.quality_checker is not None:
            quality = self.quality_checker.check_quality(waveform)
            if not quality['passes']:
                logger.warning(f"Voice quality {quality['quality_score']:.2f}: {quality['issues']}")

        periods = self.pitch_periods(waveform, sr)
        harmonicity = self.harmonicity(waveform)

        return VoiceFeatures(
            mfcc=tuple(float(c) for c in self._mfcc(waveform, sr)),
            jitter=self.jitter(periods),
            shimmer=self.shimmer(waveform, sr),
            harmonicity=harmonicity,
            hnr=20.0 * harmonicity,
            f0_variation=self.f0_variation(periods, sr),
            spectral_centroid=float(np.mean(
                librosa.feature.spectral_centroid(y=waveform, sr=sr))),
            spectral_rolloff=float(np.mean(
                librosa.feature.spectral_rolloff(y=waveform, sr=sr, roll_percent=0.85))),
            zero_crossing_rate=float(np.mean(
                librosa.feature.zero_crossing_rate(waveform))),
            degenerate=False,
        )

    def _hop(self, sr: int) -> int:
        return max(1, int(round(sr * self.config.frame_ms / 1000.0)))

    def pitch_periods(self, waveform: np.ndarray, sr: int) -> np.ndarray:
        """
        Pitch period (in samples, sub-sample resolution) of every voiced frame

        Returns an empty array when no frame is voiced.
        """
        min_lag = max(1, int(sr / self.config.f0_max))
        max_lag = int(np.ceil(sr / self.config.f0_min))
        window = 2 * max_lag
        hop = self._hop(sr)

        periods = []
        for start in range(0, len(waveform) - window + 1, hop):
            frame = waveform[start:start + window].astype(np.float64)
            frame = frame - frame.mean()
            period = self._frame_period(frame, min_lag, max_lag)
            if period is not None:
                periods.append(period)

        return np.array(periods, dtype=np.float64)

    @staticmethod
    def _frame_period(frame: np.ndarray, min_lag: int, max_lag: int) -> Optional[float]:
        n = len(frame)
        if np.dot(frame, frame) < 1e-12:
            return None

        autocorr = np.correlate(frame, frame, mode='full')[n - 1:]
        # Energy of the overlapping head and tail at each lag
        cumulative = np.concatenate([[0.0], np.cumsum(frame ** 2)])
        lags = np.arange(min_lag, max_lag + 1)
        head = cumulative[n - lags]
        tail = cumulative[n] - cumulative[lags]
        corr = autocorr[lags] / (np.sqrt(head * tail) + 1e-12)

        best = float(np.max(corr))
        if best <= VOICING_THRESHOLD:
            return None

        peaks, _ = find_peaks(corr, height=OCTAVE_TOLERANCE * best)
        idx = int(peaks[0]) if len(peaks) else int(np.argmax(corr))

        # Parabolic interpolation around the chosen lag
        offset = 0.0
        if 0 < idx < len(corr) - 1:
            left, centre, right = corr[idx - 1], corr[idx], corr[idx + 1]
            denom = left - 2 * centre + right
            if abs(denom) > 1e-12:
                offset = float(np.clip(0.5 * (left - right) / denom, -0.5, 0.5))

        return float(lags[idx] + offset)

    @staticmethod
    def jitter(periods: np.ndarray) -> float:
        """Mean absolute period change relative to the preceding period"""
        if len(periods) < 2:
            return 0.0
        return float(np.mean(np.abs(np.diff(periods)) / periods[:-1]))

    def shimmer(self, waveform: np.ndarray, sr: int) -> float:
        """Mean absolute change in per-frame peak amplitude, relative to the preceding frame"""
        hop = self._hop(sr)
        n_frames = len(waveform) // hop
        if n_frames < 2:
            return 0.0

        amps = np.max(np.abs(waveform[:n_frames * hop].reshape(n_frames, hop)), axis=1)
        prev, curr = amps[:-1], amps[1:]
        valid = prev > 1e-8
        if not np.any(valid):
            return 0.0

        # Pairs starting from a silent frame contribute nothing
        ratios = np.abs(curr[valid] - prev[valid]) / prev[valid]
        return float(np.sum(ratios) / len(prev))

    @staticmethod
    def harmonicity(waveform: np.ndarray) -> float:
        """
        Share of spectral magnitude found at the first five harmonics

        Uses the loudest ``HARMONICITY_FFT``-sample window. The fundamental
        is taken as the strongest non-DC bin in the lower quarter of the
        spectrum; each harmonic counts its bin and the two Hann side bins.
        """
        n = min(HARMONICITY_FFT, len(waveform))
        if n < 8:
            return 0.0

        if len(waveform) > n:
            hop = n // 4
            starts = np.arange(0, len(waveform) - n + 1, hop)
            energies = [np.sum(waveform[s:s + n] ** 2) for s in starts]
            start = int(starts[int(np.argmax(energies))])
        else:
            start = 0

        frame = waveform[start:start + n].astype(np.float64)
        spectrum = np.abs(np.fft.rfft(frame * np.hanning(n)))
        total = float(np.sum(spectrum))
        if total <= 0:
            return 0.0

        search = spectrum[1:max(2, len(spectrum) // 4)]
        fundamental = int(np.argmax(search)) + 1

        mask = np.zeros(len(spectrum), dtype=bool)
        for harmonic in range(1, NUM_HARMONICS + 1):
            centre = fundamental * harmonic
            if centre >= len(spectrum):
                break
            mask[max(1, centre - 1):centre + 2] = True

        return float(np.clip(np.sum(spectrum[mask]) / total, 0.0, 1.0))

    @staticmethod
    def f0_variation(periods: np.ndarray, sr: int) -> float:
        """Coefficient of variation of the per-frame fundamental frequency"""
        if len(periods) < 2:
            return 0.0
        f0 = sr / periods
        return float(np.std(f0) / np.mean(f0))

    def _mfcc(self, waveform: np.ndarray, sr: int) -> np.ndarray:
        mfcc = librosa.feature.mfcc(
            y=waveform,
            sr=sr,
            n_mfcc=self.config.n_mfcc,
            n_mels=self.config.n_mels,
            fmin=0.0,
            fmax=sr / 2.0,
        )
        return np.nan_to_num(mfcc.mean(axis=1))
